from __future__ import annotations
import logging
import discord
from discord import Interaction

log = logging.getLogger(__name__)

def error_embed(desc: str = "An error occurred while processing your command.") -> discord.Embed:
    return discord.Embed(title="❌ Error", description=desc, color=discord.Color.red(),
                         timestamp=discord.utils.utcnow())

async def reply_error(inter: Interaction, desc: str | None = None) -> None:
    """Réponse d'erreur éphémère, que l'interaction ait déjà répondu ou non."""
    e = error_embed(desc) if desc else error_embed()
    try:
        if inter.response.is_done():
            await inter.followup.send(embed=e, ephemeral=True)
        else:
            await inter.response.send_message(embed=e, ephemeral=True)
    except discord.HTTPException as ex:
        log.warning("Could not send error reply: %s", ex)
