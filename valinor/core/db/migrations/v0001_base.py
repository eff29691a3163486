DDL = """
CREATE TABLE IF NOT EXISTS user_api_keys (
  user_id    TEXT PRIMARY KEY,
  api_key    TEXT NOT NULL,
  created_ts INTEGER NOT NULL DEFAULT (strftime('%s','now'))
);

CREATE TABLE IF NOT EXISTS monitored_alliances (
  id          INTEGER PRIMARY KEY AUTOINCREMENT,
  alliance_id INTEGER NOT NULL,
  guild_id    TEXT NOT NULL,
  channel_id  TEXT NOT NULL,
  user_id     TEXT NOT NULL,
  created_ts  INTEGER NOT NULL DEFAULT (strftime('%s','now')),
  UNIQUE (alliance_id, guild_id)
);

CREATE TABLE IF NOT EXISTS tracked_wars (
  id              INTEGER PRIMARY KEY AUTOINCREMENT,
  war_id          TEXT NOT NULL UNIQUE,                 -- id upstream (idempotence)
  alliance_id     INTEGER NOT NULL,
  attacker_nation TEXT NOT NULL,
  defender_nation TEXT NOT NULL,
  war_date        TEXT NOT NULL,                        -- ISO 8601 tel que renvoyé par l'API
  notified        INTEGER NOT NULL DEFAULT 0 CHECK (notified IN (0,1)),
  created_ts      INTEGER NOT NULL DEFAULT (strftime('%s','now'))
);

CREATE TABLE IF NOT EXISTS guild_settings (
  guild_id                TEXT PRIMARY KEY,
  notification_channel_id TEXT,
  updated_ts              INTEGER NOT NULL DEFAULT (strftime('%s','now'))
);
"""
def apply(con): con.executescript(DDL)
