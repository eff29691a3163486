from __future__ import annotations
from typing import Dict, List, Optional

from .clock import DAY_S, now_ts, parse_war_date
from ..persistence import alliances as repo_alliances
from ..persistence import api_keys as repo_keys
from ..persistence import guild_settings as repo_guilds
from ..persistence import wars as repo_wars


class MissingApiKey(Exception):
    pass


def set_api_key(user_id: int, api_key: str) -> None:
    repo_keys.set_key(str(user_id), api_key.strip())

def get_api_key(user_id: int) -> Optional[str]:
    return repo_keys.get_key(str(user_id))

def resolve_channel(guild_id: int, explicit: int | None, fallback: int) -> int:
    """Salon explicite > salon par défaut du serveur > salon de la commande."""
    if explicit:
        return int(explicit)
    default = repo_guilds.get_channel(str(guild_id))
    return int(default) if default else int(fallback)

def subscribe(alliance_id: int, guild_id: int, channel_id: int, user_id: int) -> Dict:
    if not repo_keys.get_key(str(user_id)):
        raise MissingApiKey(str(user_id))
    return repo_alliances.add(int(alliance_id), str(guild_id), str(channel_id), str(user_id))

def unsubscribe(alliance_id: int, guild_id: int) -> bool:
    return repo_alliances.remove(int(alliance_id), str(guild_id))

def guild_status(guild_id: int) -> List[Dict]:
    return repo_alliances.list_for_guild(str(guild_id))

def set_guild_channel(guild_id: int, channel_id: int) -> None:
    repo_guilds.set_channel(str(guild_id), str(channel_id))

def get_guild_channel(guild_id: int) -> Optional[str]:
    return repo_guilds.get_channel(str(guild_id))

def war_summary(alliance_id: int, now: int | None = None) -> Dict:
    """total suivi, guerres démarrées depuis 24h, 5 plus récentes."""
    wars = repo_wars.list_for_alliance(int(alliance_id))
    since = (now_ts() if now is None else int(now)) - DAY_S
    recent = 0
    for w in wars:
        d = parse_war_date(w["war_date"])
        if d and d.timestamp() > since:
            recent += 1
    return {"total": len(wars), "recent": recent, "active": wars[:5]}
