from __future__ import annotations
import discord
from typing import Dict, List

from valinor.domain.clock import parse_war_date

MAX_LISTED_WARS = 10
MAX_FIELD_CHARS = 1024
MORE_LINE = "*...and more*"
PNW_ALLIANCE_URL = "https://politicsandwar.com/alliance/id={alliance_id}"

def alliance_url(alliance_id: int) -> str:
    return PNW_ALLIANCE_URL.format(alliance_id=int(alliance_id))

def _fmt_start(raw: str) -> str:
    dt = parse_war_date(raw)
    return f"<t:{int(dt.timestamp())}:f>" if dt else (raw or "?")

def build_war_alert(alliance_id: int, wars: List[Dict]) -> discord.Embed:
    """
    wars: lignes tracked_wars (dicts) d'une même alliance, non notifiées.
    1 guerre -> champs détaillés ; plusieurs -> liste plafonnée à MAX_LISTED_WARS.
    """
    e = discord.Embed(
        title="🚨 WAR DECLARATION ALERT",
        description=f"**Alliance {alliance_id}** members are under attack!",
        color=discord.Color.red(),
        timestamp=discord.utils.utcnow(),
    )

    if len(wars) == 1:
        w = wars[0]
        e.add_field(name="⚔️ Attacker", value=w["attacker_nation"], inline=True)
        e.add_field(name="🛡️ Defender", value=w["defender_nation"], inline=True)
        e.add_field(name="📅 War Started", value=_fmt_start(w["war_date"]), inline=True)
    else:
        lines = [f"• **{w['attacker_nation']}** → **{w['defender_nation']}**" for w in wars[:MAX_LISTED_WARS]]
        more = len(wars) > MAX_LISTED_WARS
        # Discord refuse un champ de plus de 1024 caractères
        while lines and len("\n".join(lines + [MORE_LINE] if more else lines)) > MAX_FIELD_CHARS:
            lines.pop()
            more = True
        if more:
            lines.append(MORE_LINE)
        e.add_field(name=f"⚔️ {len(wars)} New Wars", value="\n".join(lines), inline=False)

    e.add_field(name="🔗 Politics and War", value=f"[Alliance Page]({alliance_url(alliance_id)})", inline=False)
    return e
