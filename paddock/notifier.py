"""
Fire-and-forget notifications: league press announcements and per-team office news.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

import aiohttp

logger = logging.getLogger(__name__)


class Notifier(ABC):
    """Delivers press (league-wide) and office (per-team) messages."""

    @abstractmethod
    async def press(self, league_id: str, title: str, message: str, kind: str, **extra: Any) -> bool:
        """Publish a league-wide announcement. Returns True if delivered."""

    @abstractmethod
    async def office(self, team_id: str, title: str, message: str, kind: str, **extra: Any) -> bool:
        """Send a message to one team's office. Returns True if delivered."""

    async def close(self) -> None:
        """Release any resources."""


class LogNotifier(Notifier):
    """Writes notifications to the log. Used when no webhook is configured."""

    async def press(self, league_id: str, title: str, message: str, kind: str, **extra: Any) -> bool:
        logger.info("[press:%s] %s | %s", league_id, title, message)
        return True

    async def office(self, team_id: str, title: str, message: str, kind: str, **extra: Any) -> bool:
        logger.info("[office:%s] %s | %s", team_id, title, message.replace("\n", " / "))
        return True


class WebhookNotifier(Notifier):
    """Async client posting notifications as JSON to a webhook."""

    def __init__(self, url: str, timeout: float = 5.0):
        self.url = url
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure aiohttp session exists."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
        return self._session

    async def press(self, league_id: str, title: str, message: str, kind: str, **extra: Any) -> bool:
        payload = self._build_payload("press", title, message, kind, extra)
        payload["league_id"] = league_id
        payload["is_archived"] = False
        return await self._deliver(payload)

    async def office(self, team_id: str, title: str, message: str, kind: str, **extra: Any) -> bool:
        payload = self._build_payload("office", title, message, kind, extra)
        payload["team_id"] = team_id
        payload["is_read"] = False
        return await self._deliver(payload)

    def _build_payload(
        self,
        channel: str,
        title: str,
        message: str,
        kind: str,
        extra: Dict[str, Any],
    ) -> Dict[str, Any]:
        return {
            "channel": channel,
            "title": title,
            "message": message,
            "type": kind,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            **extra,
        }

    async def _deliver(self, payload: Dict[str, Any]) -> bool:
        """Post a payload; failures are logged, never raised."""
        try:
            await self._make_request(payload)
            return True
        except asyncio.TimeoutError:
            logger.warning("Notification timed out after %ss: %s", self.timeout, payload["title"])
            return False
        except aiohttp.ClientError as e:
            logger.warning("Notification delivery failed: %s", e)
            return False

    async def _make_request(self, payload: Dict[str, Any]) -> None:
        """Make the actual webhook request."""
        session = await self._ensure_session()
        async with session.post(self.url, json=payload) as resp:
            resp.raise_for_status()

    async def close(self) -> None:
        """Close the aiohttp session."""
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "WebhookNotifier":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


def create_notifier(url: Optional[str], timeout: float = 5.0) -> Notifier:
    """Webhook notifier if a URL is configured, else log-only."""
    if url:
        return WebhookNotifier(url, timeout=timeout)
    return LogNotifier()


def format_qualifying_report(entries: Iterable[Dict[str, Any]]) -> str:
    """
    Format one team's qualifying summary.

    Args:
        entries: Qualifying result dicts for the team's drivers

    Returns:
        One line per driver, e.g. "Ana Ruiz: P3" or "Ana Ruiz: DNF (Crash)".
    """
    lines = []
    for entry in entries:
        status = "DNF (Crash)" if entry["is_crashed"] else f"P{entry['position']}"
        lines.append(f"{entry['driver_name']}: {status}")
    return "\n".join(lines)


def format_race_report(entries: Iterable[Dict[str, Any]], prize: int) -> str:
    """
    Format one team's race summary.

    Args:
        entries: Dicts with name, pos ("P4" or "DNF") and pts
        prize: Prize money earned by the team

    Returns:
        One line per driver followed by the prize line.
    """
    lines = [f"{e['name']}: {e['pos']} (+{e['pts']} pts)" for e in entries]
    lines.append(f"Prize: ${prize:,}")
    return "\n".join(lines)
