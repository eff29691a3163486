DDL = """
CREATE INDEX IF NOT EXISTS idx_wars_notified ON tracked_wars(notified);
CREATE INDEX IF NOT EXISTS idx_wars_alliance ON tracked_wars(alliance_id, war_date);
CREATE INDEX IF NOT EXISTS idx_wars_created ON tracked_wars(created_ts);
CREATE INDEX IF NOT EXISTS idx_alliances_user ON monitored_alliances(user_id);
"""

def apply(con):
    con.executescript(DDL)
