# valinor/core/client.py
from __future__ import annotations
import logging, importlib, os
import discord
from discord import app_commands
from discord.ext import tasks

from .config import settings
from .db.base import get_conn, current_db_path
from .db.migrations import migrate_if_needed

from valinor.core.notifier import DiscordNotifier
from valinor.core.war_monitor import WarMonitor, purge_old_wars
from valinor.core.war_ticker import WarTicker
from valinor.modules.common import reply_error
from valinor.web import api_server

# ── Logging
log = logging.getLogger("valinor")
logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO),
                    format="%(asctime)s %(levelname)s %(name)s: %(message)s")
for noisy in ("discord.http", "discord.gateway", "aiohttp.access"):
    logging.getLogger(noisy).setLevel(logging.WARNING)

# ── Discord client (pas besoin de l'intent members)
intents = discord.Intents.default()
client = discord.Client(intents=intents)
tree = app_commands.CommandTree(client)

monitor = WarMonitor(DiscordNotifier(client))

# ── Guilds de test (supporte 1..n guilds)
SYNC_SCOPE = settings.sync_scope

def _list_from_env(var: str) -> list[int]:
    raw = os.getenv(var, "").strip()
    if not raw:
        return []
    out: list[int] = []
    for part in raw.split(","):
        s = part.strip()
        if s.isdigit():
            out.append(int(s))
    return out

if SYNC_SCOPE in ("guild", "both"):
    TEST_GUILD_IDS = _list_from_env("TEST_GUILD_IDS") or ([settings.guild_id] if settings.guild_id else [])
else:
    TEST_GUILD_IDS = []

TEST_GUILDS = [discord.Object(id=g) for g in TEST_GUILD_IDS]

# ═══════════════════════════════════════════════════════════════════
# Où publier chaque module
MODULES_GLOBAL = [
    "valinor.modules.alerts.api_key",
    "valinor.modules.alerts.alert",
    "valinor.modules.alerts.status",
    "valinor.modules.alerts.help",
]

MODULES_TEST_ONLY = [
    "valinor.modules.system.health",
]

def _register_one_module(dotted: str, guild_obj: discord.Object | None):
    mod = importlib.import_module(dotted)
    if not callable(getattr(mod, "register", None)):
        log.warning("Module %s: no register() found, skipped.", dotted)
        return
    log.info("Register %s (guild=%s)", dotted, getattr(guild_obj, "id", None))
    mod.register(tree, guild_obj, client)

def _register_modules(modules: list[str], guilds: list[discord.Object | None]):
    for dotted in modules:
        for g in guilds:
            try:
                _register_one_module(dotted, g)
            except Exception:
                log.exception("Module registration failed: %s on %s", dotted, getattr(g, "id", None))

_registered = False

def _register_all():
    global _registered
    if _registered:
        return
    if SYNC_SCOPE == "guild":
        if not TEST_GUILDS:
            raise RuntimeError("SYNC_SCOPE=guild but no test guild is configured.")
        _register_modules(MODULES_GLOBAL + MODULES_TEST_ONLY, TEST_GUILDS)
    else:
        _register_modules(MODULES_GLOBAL, [None])
        _register_modules(MODULES_TEST_ONLY, TEST_GUILDS)
    _registered = True

async def _sync_commands():
    if SYNC_SCOPE != "guild":
        g_synced = await tree.sync()
        log.info("Synced %d GLOBAL commands: %s", len(g_synced), [c.name for c in g_synced])
    for g in TEST_GUILDS:
        if SYNC_SCOPE == "both":
            tree.copy_global_to(guild=g)
        synced = await tree.sync(guild=g)
        log.info("Synced %d commands on guild %s: %s", len(synced), g.id, [c.name for c in synced])

# ═══════════════════════════════════════════════════════════════════

@tree.error
async def on_app_command_error(inter: discord.Interaction, error: app_commands.AppCommandError):
    name = inter.command.name if inter.command else "?"
    log.error("Error handling command %s: %s", name, error, exc_info=error)
    await reply_error(inter)

@client.event
async def on_ready():
    log.info("Boot: SYNC_SCOPE=%s • TEST_GUILD_IDS=%s • DB=%s", SYNC_SCOPE, TEST_GUILD_IDS, current_db_path())

    try:
        _register_all()
        await _sync_commands()
    except discord.Forbidden as e:
        log.error("403 Missing Access on sync. Invite the bot with the applications.commands scope. %s", e)
    except Exception:
        log.exception("Sync error")

    if settings.monitoring_enabled:
        WarTicker.start(monitor)
    else:
        log.info("War monitoring disabled by env.")

    if not daily_tick.is_running():
        daily_tick.start()

    if settings.api_enabled:
        try:
            await api_server.start(client)
        except (OSError, RuntimeError):
            log.exception("REST API failed to start on %s:%s", settings.api_host, settings.api_port)

    log.info("✅ Ready! Logged in as %s", client.user)

@tasks.loop(hours=24)
async def daily_tick():
    # Rétention des guerres suivies (hors cycle de surveillance)
    try:
        purge_old_wars()
    except Exception:
        log.exception("Daily maintenance failed")

def run():
    # 1) Migrations au boot
    migrate_if_needed(get_conn())

    # 2) Lancement du client (logging déjà configuré plus haut)
    client.run(settings.token, log_handler=None)
