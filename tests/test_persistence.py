import sqlite3

import pytest

from valinor.core.db import base
from valinor.core.war_monitor import purge_old_wars
from valinor.domain.clock import DAY_S
from valinor.persistence import alliances as repo_alliances
from valinor.persistence import api_keys as repo_keys
from valinor.persistence import guild_settings as repo_guilds
from valinor.persistence import wars as repo_wars


def test_add_tracked_war_is_idempotent():
    assert repo_wars.add_tracked("war1", 10523, "Enemy", "Nation Beta", "2025-01-01T00:00:00+00:00")
    # un second fetch de la même guerre ne crée rien et n'écrase rien
    assert not repo_wars.add_tracked("war1", 10523, "Other", "Other", "2025-02-01T00:00:00+00:00")

    assert repo_wars.count() == 1
    war = repo_wars.get("war1")
    assert war["attacker_nation"] == "Enemy"
    assert war["notified"] is False


def test_mark_notified_only_once():
    repo_wars.add_tracked("war1", 1, "A", "B", "2025-01-01T00:00:00+00:00")
    assert repo_wars.mark_notified("war1")
    assert not repo_wars.mark_notified("war1")
    assert repo_wars.get("war1")["notified"] is True
    assert repo_wars.list_unnotified() == []


def test_retention_drops_31_day_old_wars_and_keeps_29():
    now = 1_750_000_000
    repo_wars.add_tracked("old", 1, "A", "B", "2025-01-01T00:00:00+00:00", created_ts=now - 31 * DAY_S)
    repo_wars.add_tracked("young", 1, "A", "B", "2025-01-01T00:00:00+00:00", created_ts=now - 29 * DAY_S)
    repo_wars.mark_notified("old")

    assert purge_old_wars(30, now=now) == 1
    assert repo_wars.get("old") is None
    assert repo_wars.get("young") is not None


def test_subscription_unique_per_alliance_and_guild():
    repo_alliances.add(10523, "G1", "C1", "U1")
    repo_alliances.add(10523, "G2", "C2", "U1")
    sub = repo_alliances.add(10523, "G1", "C9", "U2")

    assert sub["channel_id"] == "C9" and sub["user_id"] == "U2"
    assert len(repo_alliances.list_all()) == 2
    assert {s["guild_id"] for s in repo_alliances.list_for_alliance(10523)} == {"G1", "G2"}

    assert repo_alliances.remove(10523, "G1")
    assert not repo_alliances.remove(10523, "G1")
    assert [s["guild_id"] for s in repo_alliances.list_all()] == ["G2"]


def test_api_key_replaced_on_second_set():
    assert repo_keys.get_key("U") is None
    repo_keys.set_key("U", "first")
    repo_keys.set_key("U", "second")
    assert repo_keys.get_key("U") == "second"


def test_guild_default_channel():
    assert repo_guilds.get_channel("G") is None
    repo_guilds.set_channel("G", "123")
    repo_guilds.set_channel("G", "456")
    assert repo_guilds.get_channel("G") == "456"


def test_busy_database_error_is_not_masked_by_rollback(db):
    other = sqlite3.connect(base.current_db_path(), isolation_level=None)
    other.execute("BEGIN IMMEDIATE;")
    db.execute("PRAGMA busy_timeout=0;")
    try:
        with pytest.raises(sqlite3.OperationalError, match="locked"):
            with base.atomic(db):
                db.execute("DELETE FROM tracked_wars;")
        assert not db.in_transaction
    finally:
        other.execute("ROLLBACK;")
        other.close()
