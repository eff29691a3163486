import asyncio
import sqlite3

from valinor.core.war_monitor import WarMonitor
from valinor.persistence import alliances as repo_alliances
from valinor.persistence import api_keys as repo_keys
from valinor.persistence import wars as repo_wars
from valinor.pnw.api import TransportError
from valinor.pnw.schemas import War

T = "2025-03-01T12:00:00+00:00"


def make_war(war_id, attacker="Enemy", defender="Nation Beta", att_aa=None, def_aa="10523"):
    def side(nid, name, aa):
        return {"id": nid, "nation_name": name, "alliance": {"id": aa, "name": "x"} if aa else None}
    return War.model_validate({
        "id": war_id, "date": T, "turns_left": 60,
        "attacker": side("1", attacker, att_aa),
        "defender": side("2", defender, def_aa),
    })


class FakeNotifier:
    def __init__(self, failing=()):
        self.failing = set(failing)
        self.sent = []

    async def deliver(self, channel_id, embed):
        self.sent.append((channel_id, embed))
        if channel_id in self.failing:
            raise RuntimeError("channel deleted")
        return True


def fetcher(wars_by_alliance, calls=None):
    async def fetch(alliance_id, api_key):
        if calls is not None:
            calls.append((alliance_id, api_key))
        return list(wars_by_alliance.get(alliance_id, []))
    return fetch


def field_values(embed):
    return " ".join(f"{f.name} {f.value}" for f in embed.fields)


async def test_single_defensive_war_is_tracked_and_delivered():
    repo_keys.set_key("U", "key-U")
    repo_alliances.add(10523, "G", "C", "U")
    notifier = FakeNotifier()
    monitor = WarMonitor(notifier, fetch_wars=fetcher({10523: [make_war("war1")]}))

    report = await monitor.run_cycle()

    assert report.new_wars == 1 and report.wars_notified == 1
    assert repo_wars.get("war1")["notified"] is True
    assert len(notifier.sent) == 1
    channel_id, embed = notifier.sent[0]
    assert channel_id == "C"
    assert "Enemy" in field_values(embed)
    assert "Nation Beta" in field_values(embed)


async def test_only_defensive_wars_are_tracked():
    repo_keys.set_key("U", "k")
    repo_alliances.add(10523, "G", "C", "U")
    wars = [
        make_war("def1"),
        make_war("off1", att_aa="10523", def_aa="999"),
        make_war("none1", def_aa=None),
    ]
    monitor = WarMonitor(FakeNotifier(), fetch_wars=fetcher({10523: wars}))

    await monitor.run_cycle()

    assert repo_wars.get("def1") is not None
    assert repo_wars.get("off1") is None
    assert repo_wars.get("none1") is None


async def test_fan_out_one_message_per_subscribed_channel():
    repo_keys.set_key("U1", "k1")
    repo_keys.set_key("U2", "k2")
    repo_alliances.add(10523, "G1", "C1", "U1")
    repo_alliances.add(10523, "G2", "C2", "U2")
    notifier = FakeNotifier()
    monitor = WarMonitor(notifier, fetch_wars=fetcher({10523: [make_war("war1")]}))

    await monitor.run_cycle()

    assert sorted(c for c, _ in notifier.sent) == ["C1", "C2"]
    assert repo_wars.count() == 1


async def test_failed_destination_does_not_block_others_or_marking():
    repo_keys.set_key("U", "k")
    repo_alliances.add(10523, "G1", "C1", "U")
    repo_alliances.add(10523, "G2", "C2", "U")
    notifier = FakeNotifier(failing={"C1"})
    monitor = WarMonitor(notifier, fetch_wars=fetcher({10523: [make_war("war1")]}))

    report = await monitor.run_cycle()

    assert {c for c, _ in notifier.sent} == {"C1", "C2"}
    assert report.deliveries_ok == 1 and report.deliveries_failed == 1
    assert repo_wars.get("war1")["notified"] is True


async def test_user_without_key_is_skipped_but_others_processed():
    repo_keys.set_key("U2", "k2")
    repo_alliances.add(111, "G1", "C1", "U1")  # pas de clé
    repo_alliances.add(222, "G2", "C2", "U2")
    calls = []
    monitor = WarMonitor(FakeNotifier(), fetch_wars=fetcher({222: [make_war("w", def_aa="222")]}, calls))

    report = await monitor.run_cycle()

    assert calls == [(222, "k2")]
    assert report.users_skipped == 1
    assert repo_wars.get("w")["notified"] is True
    assert len(repo_alliances.list_all()) == 2


async def test_upstream_failure_skips_only_that_alliance():
    repo_keys.set_key("U", "k")
    repo_alliances.add(111, "G", "C1", "U")
    repo_alliances.add(222, "G", "C2", "U")

    async def fetch(alliance_id, api_key):
        if alliance_id == 111:
            raise TransportError("timeout after 30s")
        return [make_war("w222", def_aa="222")]

    notifier = FakeNotifier()
    report = await WarMonitor(notifier, fetch_wars=fetch).run_cycle()

    assert report.alliances_failed == 1
    assert [c for c, _ in notifier.sent] == ["C2"]


async def test_known_war_is_not_notified_again():
    repo_keys.set_key("U", "k")
    repo_alliances.add(10523, "G", "C", "U")
    notifier = FakeNotifier()
    monitor = WarMonitor(notifier, fetch_wars=fetcher({10523: [make_war("war1")]}))

    await monitor.run_cycle()
    report = await monitor.run_cycle()

    assert report.new_wars == 0
    assert len(notifier.sent) == 1


async def test_no_subscriptions_is_a_noop():
    calls = []
    notifier = FakeNotifier()
    report = await WarMonitor(notifier, fetch_wars=fetcher({}, calls)).run_cycle()

    assert report.alliances_checked == 0
    assert calls == [] and notifier.sent == []


async def test_several_wars_grouped_into_one_message():
    repo_keys.set_key("U", "k")
    repo_alliances.add(10523, "G", "C", "U")
    wars = [make_war(f"w{i}", attacker=f"Raider {i}") for i in range(3)]
    notifier = FakeNotifier()

    await WarMonitor(notifier, fetch_wars=fetcher({10523: wars})).run_cycle()

    assert len(notifier.sent) == 1
    assert notifier.sent[0][1].fields[0].name == "⚔️ 3 New Wars"


async def test_store_error_aborts_cycle_without_marking(monkeypatch):
    repo_keys.set_key("U", "k")
    repo_alliances.add(10523, "G", "C", "U")
    repo_wars.add_tracked("pending", 10523, "A", "B", T)

    def boom(*args, **kwargs):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(repo_wars, "add_tracked", boom)
    notifier = FakeNotifier()

    report = await WarMonitor(notifier, fetch_wars=fetcher({10523: [make_war("war1")]})).run_cycle()

    assert report is None
    assert notifier.sent == []
    assert repo_wars.get("pending")["notified"] is False


async def test_tick_during_running_cycle_is_skipped():
    repo_keys.set_key("U", "k")
    repo_alliances.add(10523, "G", "C", "U")
    gate = asyncio.Event()

    async def slow_fetch(alliance_id, api_key):
        await gate.wait()
        return []

    monitor = WarMonitor(FakeNotifier(), fetch_wars=slow_fetch)
    first = asyncio.create_task(monitor.run_cycle())
    for _ in range(5):
        await asyncio.sleep(0)

    assert monitor.running
    assert await monitor.run_cycle() is None

    gate.set()
    report = await first
    assert report is not None and report.alliances_checked == 1
    assert not monitor.running


async def test_war_with_deleted_nation_does_not_hide_the_others(monkeypatch):
    from valinor.pnw import api as pnw_api
    repo_keys.set_key("U", "k")
    repo_alliances.add(10523, "G", "C", "U")
    good = make_war("good").model_dump()
    ghost = dict(good, id="ghost", attacker=None)

    async def execute(query, variables=None, *, api_key, **kw):
        return {"wars": {"data": [good, ghost]}}

    monkeypatch.setattr(pnw_api, "execute", execute)
    notifier = FakeNotifier()

    report = await WarMonitor(notifier).run_cycle()

    assert report.alliances_failed == 0
    assert repo_wars.get("good")["notified"] is True
    assert repo_wars.get("ghost") is None
    assert len(notifier.sent) == 1
