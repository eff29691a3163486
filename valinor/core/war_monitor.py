# valinor/core/war_monitor.py
from __future__ import annotations
import asyncio, logging, sqlite3
from collections import defaultdict
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional, Protocol

import discord

from valinor.core.config import settings
from valinor.core import war_embeds as builders
from valinor.domain.clock import DAY_S, now_ts
from valinor.persistence import alliances as repo_alliances
from valinor.persistence import api_keys as repo_keys
from valinor.persistence import wars as repo_wars
from valinor.pnw import api as pnw
from valinor.pnw.schemas import War

log = logging.getLogger(__name__)

FetchWars = Callable[[int, str], Awaitable[List[War]]]


class Notifier(Protocol):
    async def deliver(self, channel_id: str, embed: discord.Embed) -> bool: ...


@dataclass
class CycleReport:
    alliances_checked: int = 0
    alliances_failed: int = 0
    users_skipped: int = 0
    new_wars: int = 0
    wars_notified: int = 0
    deliveries_ok: int = 0
    deliveries_failed: int = 0


async def _fetch_active_wars(alliance_id: int, api_key: str) -> List[War]:
    return await pnw.get_alliance_wars(alliance_id, api_key, active_only=True)


class WarMonitor:
    """
    Un cycle = récupération des guerres défensives par alliance surveillée,
    insertion idempotente (war_id), puis envoi des alertes non notifiées.
    """

    def __init__(self, notifier: Notifier, fetch_wars: FetchWars | None = None):
        self.notifier = notifier
        self.fetch_wars = fetch_wars or _fetch_active_wars
        self._lock = asyncio.Lock()
        self.last_report: Optional[CycleReport] = None

    @property
    def running(self) -> bool:
        return self._lock.locked()

    async def run_cycle(self) -> Optional[CycleReport]:
        """Ne lève jamais. None si le cycle est sauté (déjà en cours) ou avorté."""
        if self._lock.locked():
            log.warning("War check still in flight; skipping this tick.")
            return None
        async with self._lock:
            try:
                report = await self._check_for_new_wars()
            except sqlite3.Error:
                log.exception("Store error during war check; cycle aborted, retry next tick.")
                return None
            except Exception:
                log.exception("Error checking for new wars")
                return None
            self.last_report = report
            return report

    async def _check_for_new_wars(self) -> CycleReport:
        log.info("🔍 Checking for new wars...")
        report = CycleReport()

        subs = repo_alliances.list_all()
        if not subs:
            log.info("No alliances being monitored")
            return report

        # Une clé API par utilisateur
        by_user: Dict[str, List[Dict]] = defaultdict(list)
        for sub in subs:
            by_user[sub["user_id"]].append(sub)

        for user_id, user_subs in by_user.items():
            api_key = repo_keys.get_key(user_id)
            if not api_key:
                log.info("No API key found for user %s, skipping their alliances", user_id)
                report.users_skipped += 1
                continue
            for sub in user_subs:
                await self._check_alliance_wars(sub, api_key, report)

        await self._send_new_war_notifications(subs, report)
        log.info("War check done: %s", report)
        return report

    async def _check_alliance_wars(self, sub: Dict, api_key: str, report: CycleReport) -> None:
        alliance_id = sub["alliance_id"]
        report.alliances_checked += 1
        try:
            wars = await self.fetch_wars(alliance_id, api_key)
        except pnw.UpstreamError as e:
            log.warning("Skipping alliance %s this cycle: %s", alliance_id, e)
            report.alliances_failed += 1
            return

        # Uniquement les guerres où l'alliance est en défense
        for war in wars:
            if not war.is_defended_by(alliance_id):
                continue
            if repo_wars.add_tracked(war.id, alliance_id, war.attacker.nation_name,
                                     war.defender.nation_name, war.date):
                report.new_wars += 1

    async def _send_new_war_notifications(self, subs: List[Dict], report: CycleReport) -> None:
        pending = repo_wars.list_unnotified()
        if not pending:
            return
        log.info("📢 Sending notifications for %d new wars", len(pending))

        by_alliance: Dict[int, List[Dict]] = defaultdict(list)
        for war in pending:
            by_alliance[war["alliance_id"]].append(war)

        for alliance_id, wars in by_alliance.items():
            targets = [s for s in subs if s["alliance_id"] == alliance_id]
            if not targets:
                log.info("No Discord channels monitoring alliance %s", alliance_id)

            for sub in targets:
                embed = builders.build_war_alert(alliance_id, wars)
                try:
                    ok = await self.notifier.deliver(sub["channel_id"], embed)
                except Exception:
                    log.exception("Delivery to channel %s raised", sub["channel_id"])
                    ok = False
                if ok:
                    report.deliveries_ok += 1
                else:
                    report.deliveries_failed += 1

            # Best-effort : la guerre est traitée dès qu'une tentative a eu lieu
            for war in wars:
                if repo_wars.mark_notified(war["war_id"]):
                    report.wars_notified += 1


def purge_old_wars(days: int | None = None, now: int | None = None) -> int:
    """Supprime les tracked_wars créées il y a plus de `days` jours (notifiées ou non)."""
    days = settings.war_retention_days if days is None else int(days)
    cutoff = (now_ts() if now is None else int(now)) - days * DAY_S
    n = repo_wars.purge_older_than(cutoff)
    log.info("Retention: removed %d tracked wars older than %d days", n, days)
    return n
