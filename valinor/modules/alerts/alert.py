# valinor/modules/alerts/alert.py
from __future__ import annotations
import logging
import discord
from discord import app_commands, Interaction

from valinor.domain import monitoring as d_monitoring
from valinor.modules.common import reply_error
from valinor.pnw import api as pnw

log = logging.getLogger(__name__)

def _started_embed(alliance_id: int, info, channel_id: int) -> discord.Embed:
    e = discord.Embed(
        title="🔔 Alliance Monitoring Started",
        description=f"Now monitoring **{info.name}** ({info.acronym}) for war declarations.",
        color=discord.Color.green(),
        timestamp=discord.utils.utcnow(),
    )
    e.add_field(name="Alliance ID", value=str(alliance_id), inline=True)
    e.add_field(name="Nations", value=str(len(info.nations)), inline=True)
    e.add_field(name="Score", value=f"{info.score:,.2f}", inline=True)
    e.add_field(name="Channel", value=f"<#{channel_id}>", inline=False)
    return e

def register(tree: app_commands.CommandTree, guild_obj: discord.Object | None, client: discord.Client | None = None):
    @tree.command(name="alert", description="Monitor an alliance for war declarations")
    @app_commands.describe(alliance_id="The alliance ID to monitor",
                           channel="Where alerts go (default: server setting, else this channel)")
    @app_commands.guild_only()
    @app_commands.guilds(guild_obj) if guild_obj else (lambda f: f)
    async def alert(inter: Interaction, alliance_id: app_commands.Range[int, 1],
                    channel: discord.TextChannel | None = None):
        api_key = d_monitoring.get_api_key(inter.user.id)
        if not api_key:
            e = discord.Embed(title="❌ API Key Required",
                              description="Please set your API key first using `/api <your_key>`",
                              color=discord.Color.red(), timestamp=discord.utils.utcnow())
            await inter.response.send_message(embed=e, ephemeral=True)
            return

        channel_id = d_monitoring.resolve_channel(inter.guild_id, channel.id if channel else None, inter.channel_id)
        try:
            d_monitoring.subscribe(alliance_id, inter.guild_id, channel_id, inter.user.id)
        except Exception:
            log.exception("/alert subscribe failed (alliance=%s guild=%s)", alliance_id, inter.guild_id)
            await reply_error(inter)
            return

        await inter.response.defer(thinking=True)
        try:
            info = await pnw.get_alliance_info(alliance_id, api_key)
        except pnw.UpstreamError as ex:
            log.info("Alliance %s added but lookup failed: %s", alliance_id, ex)
            e = discord.Embed(
                title="⚠️ Alliance Added with Warning",
                description=f"Alliance ID {alliance_id} has been added to monitoring, but we couldn't fetch "
                            "alliance details. Please verify the alliance ID is correct.",
                color=discord.Color.gold(), timestamp=discord.utils.utcnow(),
            )
            await inter.followup.send(embed=e)
            return
        await inter.followup.send(embed=_started_embed(alliance_id, info, channel_id))

    @tree.command(name="unalert", description="Stop monitoring an alliance in this server")
    @app_commands.describe(alliance_id="The alliance ID to stop monitoring")
    @app_commands.guild_only()
    @app_commands.guilds(guild_obj) if guild_obj else (lambda f: f)
    async def unalert(inter: Interaction, alliance_id: int):
        if d_monitoring.unsubscribe(alliance_id, inter.guild_id):
            await inter.response.send_message(f"🔕 Alliance **{alliance_id}** is no longer monitored here.")
        else:
            await inter.response.send_message(f"Alliance {alliance_id} was not monitored in this server.",
                                              ephemeral=True)

    @tree.command(name="channel", description="Set this server's default alert channel")
    @app_commands.describe(channel="Default channel for new /alert subscriptions")
    @app_commands.guild_only()
    @app_commands.default_permissions(manage_guild=True)
    @app_commands.guilds(guild_obj) if guild_obj else (lambda f: f)
    async def channel_cmd(inter: Interaction, channel: discord.TextChannel):
        d_monitoring.set_guild_channel(inter.guild_id, channel.id)
        await inter.response.send_message(f"✅ Default alert channel set to {channel.mention}.", ephemeral=True)
