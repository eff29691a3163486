# valinor/modules/alerts/api_key.py
from __future__ import annotations
import logging
import discord
from discord import app_commands, Interaction

from valinor.domain import monitoring as d_monitoring
from valinor.modules.common import reply_error
from valinor.pnw import api as pnw

log = logging.getLogger(__name__)

def register(tree: app_commands.CommandTree, guild_obj: discord.Object | None, client: discord.Client | None = None):
    @tree.command(name="api", description="Set your Politics and War API key")
    @app_commands.describe(key="Your Politics and War API key")
    @app_commands.guilds(guild_obj) if guild_obj else (lambda f: f)
    async def api_cmd(inter: Interaction, key: str):
        try:
            await inter.response.defer(ephemeral=True, thinking=True)
            d_monitoring.set_api_key(inter.user.id, key)
            valid = await pnw.probe_api_key(key.strip())
        except Exception:
            log.exception("/api failed for user %s", inter.user.id)
            await reply_error(inter)
            return

        if valid:
            e = discord.Embed(title="✅ API Key Set",
                              description="Your Politics and War API key has been securely stored.",
                              color=discord.Color.green())
        else:
            e = discord.Embed(title="⚠️ API Key Stored",
                              description="The key was saved, but Politics and War rejected a test query. "
                                          "Double-check it on your account page.",
                              color=discord.Color.gold())
        e.timestamp = discord.utils.utcnow()
        await inter.followup.send(embed=e, ephemeral=True)
