from __future__ import annotations
import discord
from discord import app_commands, Interaction

HELP_LINES = [
    ("🔑 `/api <key>`", "Set your Politics and War API key (required first step)"),
    ("🔔 `/alert <alliance_id> [channel]`", "Start monitoring an alliance for war declarations"),
    ("🔕 `/unalert <alliance_id>`", "Stop monitoring an alliance in this server"),
    ("📌 `/channel <channel>`", "Set the server's default alert channel"),
    ("📊 `/status`", "Check which alliances are being monitored"),
    ("⚔️ `/wars <alliance_id>`", "Recent defensive wars tracked for an alliance"),
    ("❓ `/help`", "Show this help message"),
]

@app_commands.command(name="help", description="Show available commands")
async def help_cmd(inter: Interaction):
    e = discord.Embed(title="🤖 Valinor Alliance Monitor Bot",
                      description="Monitor Politics and War alliances for war declarations",
                      color=discord.Color.blue(), timestamp=discord.utils.utcnow())
    for name, value in HELP_LINES:
        e.add_field(name=name, value=value, inline=False)
    e.add_field(name="🔗 Links",
                value="[Politics and War](https://politicsandwar.com) • "
                      "[Valinor Alliance](https://politicsandwar.com/alliance/id=10523)",
                inline=False)
    await inter.response.send_message(embed=e)

def register(tree, guild_obj, client=None):
    if guild_obj:
        tree.add_command(help_cmd, guild=guild_obj)
    else:
        tree.add_command(help_cmd)
