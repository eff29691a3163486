from __future__ import annotations
import discord
from discord import app_commands, Interaction

from valinor.core.war_embeds import alliance_url
from valinor.domain import monitoring as d_monitoring

def _status_embed(guild_id: int) -> discord.Embed:
    subs = d_monitoring.guild_status(guild_id)
    if not subs:
        return discord.Embed(title="📊 Monitoring Status",
                             description="No alliances are currently being monitored in this server.",
                             color=discord.Color.gold(), timestamp=discord.utils.utcnow())
    lines = "\n".join(f"• Alliance {s['alliance_id']} (Channel: <#{s['channel_id']}>)" for s in subs)
    e = discord.Embed(title="📊 Monitoring Status",
                      description=f"Currently monitoring {len(subs)} alliance(s):",
                      color=discord.Color.blue(), timestamp=discord.utils.utcnow())
    e.add_field(name="Monitored Alliances", value=lines[:1024], inline=False)
    default = d_monitoring.get_guild_channel(guild_id)
    if default:
        e.add_field(name="Default channel", value=f"<#{default}>", inline=False)
    return e

def _wars_embed(alliance_id: int) -> discord.Embed:
    s = d_monitoring.war_summary(alliance_id)
    e = discord.Embed(title=f"⚔️ Alliance {alliance_id} — tracked wars", url=alliance_url(alliance_id),
                      color=discord.Color.dark_red())
    e.add_field(name="Tracked", value=str(s["total"]), inline=True)
    e.add_field(name="Last 24h", value=str(s["recent"]), inline=True)
    if s["active"]:
        e.add_field(
            name="Most recent",
            value="\n".join(f"• **{w['attacker_nation']}** → **{w['defender_nation']}**" for w in s["active"]),
            inline=False,
        )
    return e

def register(tree, guild_obj, client=None):
    @tree.command(name="status", description="Check current monitoring status")
    @app_commands.guild_only()
    @app_commands.guilds(guild_obj) if guild_obj else (lambda f: f)
    async def status(inter: Interaction):
        await inter.response.send_message(embed=_status_embed(inter.guild_id))

    @tree.command(name="wars", description="Recent defensive wars tracked for an alliance")
    @app_commands.describe(alliance_id="The alliance ID")
    @app_commands.guilds(guild_obj) if guild_obj else (lambda f: f)
    async def wars(inter: Interaction, alliance_id: int):
        await inter.response.send_message(embed=_wars_embed(alliance_id), ephemeral=True)
