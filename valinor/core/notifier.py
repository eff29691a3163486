# valinor/core/notifier.py
from __future__ import annotations
import asyncio, logging
import discord

from valinor.core.config import settings

log = logging.getLogger(__name__)

class DiscordNotifier:
    """
    Transport des alertes: un embed vers un channel_id.
    Jamais d'exception vers l'appelant : un échec est loggé et renvoie False.
    """

    def __init__(self, client: discord.Client, timeout: float | None = None):
        self.client = client
        self.timeout = timeout or settings.send_timeout_s

    async def _resolve(self, channel_id: int):
        ch = self.client.get_channel(channel_id)
        if ch is None:
            ch = await self.client.fetch_channel(channel_id)
        return ch

    async def deliver(self, channel_id: str | int, embed: discord.Embed) -> bool:
        try:
            cid = int(channel_id)
            ch = await asyncio.wait_for(self._resolve(cid), timeout=self.timeout)
            if not callable(getattr(ch, "send", None)):
                log.warning("Channel %s is not text-based; alert dropped.", channel_id)
                return False
            await asyncio.wait_for(ch.send(embed=embed), timeout=self.timeout)
            log.info("Sent war notification to channel %s", channel_id)
            return True
        except asyncio.TimeoutError:
            log.warning("Timed out sending to channel %s after %ss", channel_id, self.timeout)
        except (discord.Forbidden, discord.NotFound) as e:
            log.warning("Channel %s unreachable (%s)", channel_id, e)
        except Exception:
            log.exception("Failed to send notification to channel %s", channel_id)
        return False
