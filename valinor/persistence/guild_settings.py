from typing import Optional
from ..core.db.base import get_conn, atomic

def set_channel(guild_id: str, channel_id: str) -> None:
    with atomic():
        con = get_conn()
        con.execute(
            "INSERT INTO guild_settings(guild_id, notification_channel_id) VALUES(?,?) "
            "ON CONFLICT(guild_id) DO UPDATE SET notification_channel_id=excluded.notification_channel_id, "
            "updated_ts=strftime('%s','now')",
            (guild_id, channel_id)
        )

def get_channel(guild_id: str) -> Optional[str]:
    con = get_conn()
    row = con.execute("SELECT notification_channel_id FROM guild_settings WHERE guild_id=?", (guild_id,)).fetchone()
    return (row[0] or None) if row else None
