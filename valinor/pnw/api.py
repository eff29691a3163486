# valinor/pnw/api.py
"""Politics and War GraphQL.

Fonctions pures: la clé API est passée à chaque appel (query param ``api_key``),
aucun client n'est gardé en mémoire par clé. Les réponses sont validées avec
pydantic et les erreurs sont typées (transport, auth, introuvable, réponse
invalide).
"""
from __future__ import annotations
import asyncio, logging
from typing import Any, Dict, List, Optional

import aiohttp
from pydantic import ValidationError

from valinor.core.config import settings
from .schemas import Alliance, Nation, War

log = logging.getLogger(__name__)


class UpstreamError(Exception):
    pass

class TransportError(UpstreamError):
    pass

class AuthError(UpstreamError):
    pass

class NotFoundError(UpstreamError):
    pass

class MalformedResponseError(UpstreamError):
    pass


_WAR_FIELDS = """
            id
            date
            turns_left
            attacker { id nation_name alliance { id name } }
            defender { id nation_name alliance { id name } }
"""

ALLIANCE_INFO_QUERY = """
query GetAllianceInfo($id: [Int!]) {
  alliances(id: $id) {
    data {
      id
      name
      acronym
      score
      nations { id nation_name leader_name alliance_id alliance_position score num_cities }
    }
  }
}
"""

ALLIANCE_WARS_QUERY = """
query GetAllianceWars($allianceId: [Int!], $active: Boolean) {
  wars(alliance_id: $allianceId, active: $active, first: 100) {
    data {%s}
  }
}
""" % _WAR_FIELDS

RECENT_WARS_QUERY = """
query GetRecentWars($after: DateTime) {
  wars(after: $after, first: 100) {
    data {%s}
  }
}
""" % _WAR_FIELDS

NATION_INFO_QUERY = """
query GetNationInfo($id: [Int!]) {
  nations(id: $id) {
    data {
      id
      nation_name
      leader_name
      alliance_id
      alliance_position
      score
      num_cities
      wars(limit: 10, active: true) {%s}
    }
  }
}
""" % _WAR_FIELDS

PROBE_QUERY = """
query TestQuery {
  nations(first: 1) { data { id nation_name } }
}
"""

# Messages d'erreur GraphQL qui signalent une clé refusée
_AUTH_HINTS = ("api key", "api_key", "unauthorized", "unauthenticated", "invalid key")


def parse_response(status: int, body: Any) -> Dict:
    """Vérifie une réponse HTTP/GraphQL et renvoie son bloc ``data``."""
    if status in (401, 403):
        raise AuthError(f"HTTP {status}")
    if not isinstance(body, dict):
        if status >= 400:
            raise TransportError(f"HTTP {status}")
        raise MalformedResponseError("response body is not a JSON object")

    errors = body.get("errors") or []
    if errors:
        msg = "; ".join(str(e.get("message", e)) if isinstance(e, dict) else str(e) for e in errors)
        if any(h in msg.lower() for h in _AUTH_HINTS):
            raise AuthError(msg)
        if status >= 400:
            raise TransportError(f"HTTP {status}: {msg}")
        raise MalformedResponseError(msg)
    if status >= 400:
        raise TransportError(f"HTTP {status}")

    data = body.get("data")
    if not isinstance(data, dict):
        raise MalformedResponseError("missing 'data' in response")
    return data


async def execute(query: str, variables: Optional[Dict] = None, *, api_key: str,
                  session: aiohttp.ClientSession | None = None,
                  timeout: float | None = None) -> Dict:
    """POST GraphQL brut. Ouvre une session éphémère si aucune n'est fournie."""
    t = aiohttp.ClientTimeout(total=timeout or settings.pnw_timeout_s)
    payload = {"query": query, "variables": variables or {}}
    own = session is None
    sess = session or aiohttp.ClientSession(timeout=t)
    try:
        async with sess.post(settings.pnw_graphql_url, params={"api_key": api_key},
                             json=payload, timeout=t) as resp:
            try:
                body = await resp.json(content_type=None)
            except ValueError:
                if resp.status >= 400:
                    raise TransportError(f"HTTP {resp.status}")
                raise MalformedResponseError("response is not valid JSON")
            return parse_response(resp.status, body)
    except asyncio.TimeoutError as e:
        raise TransportError(f"timeout after {t.total}s") from e
    except aiohttp.ClientError as e:
        raise TransportError(str(e)) from e
    finally:
        if own:
            await sess.close()


def _first(data: Dict, root: str, what: str, ident: int) -> Dict:
    try:
        items = (data.get(root) or {}).get("data") or []
    except AttributeError as e:
        raise MalformedResponseError(f"unexpected '{root}' shape") from e
    if not items:
        raise NotFoundError(f"{what} with ID {ident} not found")
    return items[0]

def _valid_wars(raw: Any) -> List[War]:
    """Valide guerre par guerre : une entrée invalide (nation supprimée -> côté null) est ignorée."""
    if not isinstance(raw, list):
        raise MalformedResponseError("unexpected 'wars' shape")
    wars: List[War] = []
    for w in raw:
        try:
            wars.append(War.model_validate(w))
        except ValidationError as e:
            wid = w.get("id") if isinstance(w, dict) else None
            log.warning("Dropping unreadable war %s: %s", wid, e.errors()[0].get("msg", e))
    return wars

def parse_wars(data: Dict) -> List[War]:
    try:
        raw = (data.get("wars") or {}).get("data") or []
    except AttributeError as e:
        raise MalformedResponseError("unexpected 'wars' shape") from e
    return _valid_wars(raw)


async def get_alliance_info(alliance_id: int, api_key: str, **kw) -> Alliance:
    data = await execute(ALLIANCE_INFO_QUERY, {"id": [int(alliance_id)]}, api_key=api_key, **kw)
    raw = _first(data, "alliances", "Alliance", alliance_id)
    try:
        return Alliance.model_validate(raw)
    except ValidationError as e:
        raise MalformedResponseError(str(e)) from e

async def get_alliance_wars(alliance_id: int, api_key: str, active_only: bool = True, **kw) -> List[War]:
    data = await execute(ALLIANCE_WARS_QUERY, {"allianceId": [int(alliance_id)], "active": active_only},
                         api_key=api_key, **kw)
    return parse_wars(data)

async def get_recent_wars(since: str, api_key: str, **kw) -> List[War]:
    data = await execute(RECENT_WARS_QUERY, {"after": since}, api_key=api_key, **kw)
    return parse_wars(data)

async def get_nation_info(nation_id: int, api_key: str, **kw) -> Nation:
    data = await execute(NATION_INFO_QUERY, {"id": [int(nation_id)]}, api_key=api_key, **kw)
    raw = _first(data, "nations", "Nation", nation_id)
    if isinstance(raw, dict):
        raw = dict(raw, wars=_valid_wars(raw.get("wars") or []))
    try:
        return Nation.model_validate(raw)
    except ValidationError as e:
        raise MalformedResponseError(str(e)) from e

async def probe_api_key(api_key: str, **kw) -> bool:
    try:
        await execute(PROBE_QUERY, api_key=api_key, **kw)
        return True
    except UpstreamError as e:
        log.warning("API key test failed: %s", e)
        return False
