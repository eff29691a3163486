from __future__ import annotations
from typing import Optional, Dict, List
import time
from ..core.db.base import get_conn, atomic

_COLS = "id,war_id,alliance_id,attacker_nation,defender_nation,war_date,notified,created_ts"

def add_tracked(war_id: str, alliance_id: int, attacker_nation: str, defender_nation: str,
                war_date: str, created_ts: int | None = None) -> bool:
    """INSERT OR IGNORE sur war_id. True si la guerre est nouvelle."""
    ts = int(created_ts if created_ts is not None else time.time())
    with atomic():
        con = get_conn()
        before = con.total_changes
        con.execute(
            "INSERT OR IGNORE INTO tracked_wars(war_id,alliance_id,attacker_nation,defender_nation,war_date,created_ts) "
            "VALUES(?,?,?,?,?,?)",
            (str(war_id), int(alliance_id), attacker_nation, defender_nation, war_date, ts)
        )
        return (con.total_changes - before) > 0

def mark_notified(war_id: str) -> bool:
    # 0 -> 1 une seule fois
    with atomic():
        con = get_conn()
        cur = con.execute("UPDATE tracked_wars SET notified=1 WHERE war_id=? AND notified=0", (str(war_id),))
        return cur.rowcount > 0

def list_unnotified() -> List[Dict]:
    con = get_conn()
    rows = con.execute(
        f"SELECT {_COLS} FROM tracked_wars WHERE notified=0 ORDER BY war_date DESC"
    ).fetchall()
    return [_row_to_war(r) for r in rows]

def list_for_alliance(alliance_id: int, limit: int = 50) -> List[Dict]:
    con = get_conn()
    rows = con.execute(
        f"SELECT {_COLS} FROM tracked_wars WHERE alliance_id=? ORDER BY war_date DESC LIMIT ?",
        (int(alliance_id), int(limit))
    ).fetchall()
    return [_row_to_war(r) for r in rows]

def get(war_id: str) -> Optional[Dict]:
    con = get_conn()
    row = con.execute(f"SELECT {_COLS} FROM tracked_wars WHERE war_id=?", (str(war_id),)).fetchone()
    return _row_to_war(row) if row else None

def purge_older_than(cutoff_ts: int) -> int:
    with atomic():
        con = get_conn()
        cur = con.execute("DELETE FROM tracked_wars WHERE created_ts < ?", (int(cutoff_ts),))
        return cur.rowcount

def count() -> int:
    con = get_conn()
    (n,) = con.execute("SELECT COUNT(*) FROM tracked_wars").fetchone()
    return int(n)

def _row_to_war(row) -> Dict:
    return {
        "id": int(row[0]), "war_id": row[1], "alliance_id": int(row[2]),
        "attacker_nation": row[3], "defender_nation": row[4],
        "war_date": row[5], "notified": bool(int(row[6])),
        "created_ts": int(row[7]),
    }
