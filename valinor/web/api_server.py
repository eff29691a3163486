# valinor/web/api_server.py
"""API REST de configuration (dashboard): salon par défaut et abonnements.

Lit et écrit les mêmes tables que les slash-commands. Auth optionnelle par
jeton Bearer partagé (API_TOKEN).
"""
from __future__ import annotations
import hmac, ipaddress, logging, sqlite3
from typing import Optional

import discord
from aiohttp import web

from valinor.core.config import settings
from valinor.core.war_ticker import WarTicker
from valinor.persistence import alliances as repo_alliances
from valinor.persistence import guild_settings as repo_guilds

log = logging.getLogger(__name__)

VERSION = "1.0.0"

_runner: Optional[web.AppRunner] = None


def _error(status: int, msg: str) -> web.Response:
    return web.json_response({"error": msg}, status=status)


def _auth_middleware(token: str):
    @web.middleware
    async def mw(request: web.Request, handler):
        if token:
            header = request.headers.get("Authorization", "")
            given = header[7:] if header.startswith("Bearer ") else ""
            if not hmac.compare_digest(given, token):
                return _error(401, "Authentication required")
        return await handler(request)
    return mw


@web.middleware
async def _store_errors(request: web.Request, handler):
    try:
        return await handler(request)
    except sqlite3.Error:
        log.exception("REST: store error on %s %s", request.method, request.path)
        return _error(500, "Storage error")


async def _json_body(request: web.Request) -> dict:
    try:
        body = await request.json()
    except ValueError:
        raise web.HTTPBadRequest(text='{"error": "Invalid JSON body"}', content_type="application/json")
    if not isinstance(body, dict):
        raise web.HTTPBadRequest(text='{"error": "JSON object expected"}', content_type="application/json")
    return body


def create_app(client: discord.Client | None = None, token: str | None = None) -> web.Application:
    app = web.Application(middlewares=[
        _auth_middleware(settings.api_token if token is None else token),
        _store_errors,
    ])

    async def bot_status(_request):
        ready = bool(client and client.is_ready())
        return web.json_response({
            "ready": ready,
            "user": str(client.user) if ready and client.user else None,
            "guilds": len(client.guilds) if ready else 0,
            "monitoring": WarTicker.is_running(),
        })

    async def bot_config(_request):
        return web.json_response({
            "version": VERSION,
            "monitoring_enabled": settings.monitoring_enabled,
            "check_interval": settings.poll_interval_s // 60,
        })

    async def guild_channels(request):
        guild_id = request.match_info["guild_id"]
        guild = client.get_guild(int(guild_id)) if client and guild_id.isdigit() else None
        if guild is None:
            return _error(404, "Guild not found")
        channels = [{"id": str(c.id), "name": c.name} for c in guild.text_channels]
        return web.json_response({"channels": channels})

    async def set_channel(request):
        body = await _json_body(request)
        guild_id, channel_id = str(body.get("guild_id") or ""), str(body.get("channel_id") or "")
        if not guild_id.isdigit() or not channel_id.isdigit():
            return _error(400, "guild_id and channel_id are required")
        repo_guilds.set_channel(guild_id, channel_id)
        log.info("REST: default channel for guild %s -> %s", guild_id, channel_id)
        return web.json_response({"success": True})

    async def list_monitoring(request):
        guild_id = request.query.get("guild_id")
        alliances = repo_alliances.list_for_guild(guild_id) if guild_id else repo_alliances.list_all()
        return web.json_response({"alliances": alliances})

    async def add_monitoring(request):
        body = await _json_body(request)
        try:
            alliance_id = int(body.get("alliance_id"))
        except (TypeError, ValueError):
            return _error(400, "alliance_id must be an integer")
        guild_id = str(body.get("guild_id") or "")
        channel_id = str(body.get("channel_id") or "")
        user_id = str(body.get("user_id") or "")
        if not (guild_id and channel_id and user_id):
            return _error(400, "guild_id, channel_id and user_id are required")
        sub = repo_alliances.add(alliance_id, guild_id, channel_id, user_id)
        return web.json_response({"success": True, "alliance": sub})

    async def remove_monitoring(request):
        try:
            alliance_id = int(request.match_info["alliance_id"])
        except ValueError:
            return _error(400, "alliance_id must be an integer")
        removed = repo_alliances.remove(alliance_id, request.match_info["guild_id"])
        if not removed:
            return _error(404, "Subscription not found")
        return web.json_response({"success": True})

    app.router.add_get("/api/bot/status", bot_status)
    app.router.add_get("/api/bot/config", bot_config)
    app.router.add_get("/api/bot/channels/{guild_id}", guild_channels)
    app.router.add_post("/api/bot/config/channel", set_channel)
    app.router.add_get("/api/bot/monitoring", list_monitoring)
    app.router.add_post("/api/bot/monitoring", add_monitoring)
    app.router.add_delete("/api/bot/monitoring/{alliance_id}/{guild_id}", remove_monitoring)
    return app


def check_bind(host: str, token: str) -> None:
    """Sans API_TOKEN, l'API n'écoute qu'en loopback."""
    if token:
        return
    if host == "localhost":
        return
    try:
        if ipaddress.ip_address(host).is_loopback:
            return
    except ValueError:
        pass
    raise RuntimeError(f"Refusing to expose the REST API on {host!r} without API_TOKEN")


async def start(client: discord.Client) -> None:
    global _runner
    if _runner is not None:
        return
    check_bind(settings.api_host, settings.api_token)
    _runner = web.AppRunner(create_app(client))
    await _runner.setup()
    site = web.TCPSite(_runner, settings.api_host, settings.api_port)
    await site.start()
    log.info("REST API listening on %s:%s", settings.api_host, settings.api_port)


async def stop() -> None:
    global _runner
    if _runner is not None:
        await _runner.cleanup()
        _runner = None
