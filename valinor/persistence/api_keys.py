from __future__ import annotations
from typing import Optional
from ..core.db.base import get_conn, atomic

def set_key(user_id: str, api_key: str) -> None:
    # une seule clé par utilisateur : on écrase
    with atomic():
        con = get_conn()
        con.execute(
            "INSERT INTO user_api_keys(user_id, api_key) VALUES(?,?) "
            "ON CONFLICT(user_id) DO UPDATE SET api_key=excluded.api_key, created_ts=strftime('%s','now')",
            (user_id, api_key)
        )

def get_key(user_id: str) -> Optional[str]:
    con = get_conn()
    row = con.execute("SELECT api_key FROM user_api_keys WHERE user_id=?", (user_id,)).fetchone()
    return row[0] if row else None

def delete_key(user_id: str) -> bool:
    with atomic():
        con = get_conn()
        cur = con.execute("DELETE FROM user_api_keys WHERE user_id=?", (user_id,))
        return cur.rowcount > 0
