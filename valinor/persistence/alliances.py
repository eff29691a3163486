from __future__ import annotations
from typing import Dict, List
from ..core.db.base import get_conn, atomic

_COLS = "id,alliance_id,guild_id,channel_id,user_id,created_ts"

def add(alliance_id: int, guild_id: str, channel_id: str, user_id: str) -> Dict:
    """Unique par (alliance_id, guild_id) : un re-ajout remplace salon et propriétaire."""
    with atomic():
        con = get_conn()
        con.execute(
            "INSERT INTO monitored_alliances(alliance_id, guild_id, channel_id, user_id) VALUES(?,?,?,?) "
            "ON CONFLICT(alliance_id, guild_id) DO UPDATE SET channel_id=excluded.channel_id, user_id=excluded.user_id",
            (int(alliance_id), guild_id, channel_id, user_id)
        )
        row = con.execute(f"SELECT {_COLS} FROM monitored_alliances WHERE alliance_id=? AND guild_id=?",
                          (int(alliance_id), guild_id)).fetchone()
    return _row_to_alliance(row)

def remove(alliance_id: int, guild_id: str) -> bool:
    with atomic():
        con = get_conn()
        cur = con.execute("DELETE FROM monitored_alliances WHERE alliance_id=? AND guild_id=?",
                          (int(alliance_id), guild_id))
        return cur.rowcount > 0

def list_all() -> List[Dict]:
    con = get_conn()
    rows = con.execute(f"SELECT {_COLS} FROM monitored_alliances ORDER BY id ASC").fetchall()
    return [_row_to_alliance(r) for r in rows]

def list_for_guild(guild_id: str) -> List[Dict]:
    con = get_conn()
    rows = con.execute(f"SELECT {_COLS} FROM monitored_alliances WHERE guild_id=? ORDER BY id ASC",
                       (guild_id,)).fetchall()
    return [_row_to_alliance(r) for r in rows]

def list_for_alliance(alliance_id: int) -> List[Dict]:
    con = get_conn()
    rows = con.execute(f"SELECT {_COLS} FROM monitored_alliances WHERE alliance_id=? ORDER BY id ASC",
                       (int(alliance_id),)).fetchall()
    return [_row_to_alliance(r) for r in rows]

def _row_to_alliance(row) -> Dict:
    return {
        "id": int(row[0]), "alliance_id": int(row[1]),
        "guild_id": row[2], "channel_id": row[3], "user_id": row[4],
        "created_ts": int(row[5]),
    }
