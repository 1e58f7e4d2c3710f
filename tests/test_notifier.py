"""
Tests for press and office notifications.
"""

import asyncio
from unittest.mock import AsyncMock, patch

import aiohttp
import pytest

from paddock.notifier import (
    LogNotifier,
    WebhookNotifier,
    create_notifier,
    format_qualifying_report,
    format_race_report,
)


class TestCreateNotifier:
    """Tests for create_notifier()."""

    def test_log_notifier_without_url(self):
        assert isinstance(create_notifier(None), LogNotifier)
        assert isinstance(create_notifier(""), LogNotifier)

    def test_webhook_notifier_with_url(self):
        notifier = create_notifier("http://localhost:9000/hook", timeout=2.0)
        assert isinstance(notifier, WebhookNotifier)
        assert notifier.url == "http://localhost:9000/hook"
        assert notifier.timeout == 2.0


class TestLogNotifier:
    """Tests for the log-only notifier."""

    @pytest.mark.asyncio
    async def test_always_delivers(self, caplog):
        notifier = LogNotifier()
        with caplog.at_level("INFO", logger="paddock.notifier"):
            assert await notifier.press("L1", "POLE POSITION: MONZA", "Ana takes POLE!", "POLE")
            assert await notifier.office("t1", "Qualifying Results", "Ana: P1\nBen: P4", "QUALIFYING_RESULT")
        assert "POLE POSITION: MONZA" in caplog.text
        assert "Ana: P1 / Ben: P4" in caplog.text


class TestWebhookNotifier:
    """Tests for webhook delivery."""

    @pytest.mark.asyncio
    async def test_press_payload(self):
        """Test press payloads carry the league and the archive flag."""
        notifier = WebhookNotifier("http://hook")
        with patch.object(notifier, "_make_request", new_callable=AsyncMock) as mock:
            delivered = await notifier.press("L1", "RACE WINNER: MONZA", "Ana wins!", "WINNER", pilot_name="Ana")

        assert delivered
        payload = mock.await_args.args[0]
        assert payload["channel"] == "press"
        assert payload["league_id"] == "L1"
        assert payload["is_archived"] is False
        assert payload["type"] == "WINNER"
        assert payload["pilot_name"] == "Ana"
        assert "timestamp" in payload

    @pytest.mark.asyncio
    async def test_office_payload(self):
        """Test office payloads target one team and start unread."""
        notifier = WebhookNotifier("http://hook")
        with patch.object(notifier, "_make_request", new_callable=AsyncMock) as mock:
            await notifier.office("t2", "Race Results: Monza", "Ana: P1 (+25 pts)", "RACE_RESULT")

        payload = mock.await_args.args[0]
        assert payload["channel"] == "office"
        assert payload["team_id"] == "t2"
        assert payload["is_read"] is False
        assert payload["title"] == "Race Results: Monza"

    @pytest.mark.asyncio
    async def test_timeout_is_not_raised(self):
        """Test a slow webhook returns False instead of raising."""
        notifier = WebhookNotifier("http://hook", timeout=0.1)
        with patch.object(notifier, "_make_request", new_callable=AsyncMock) as mock:
            mock.side_effect = asyncio.TimeoutError()
            assert await notifier.press("L1", "t", "m", "POLE") is False

    @pytest.mark.asyncio
    async def test_connection_error_is_not_raised(self):
        """Test an unreachable webhook returns False instead of raising."""
        notifier = WebhookNotifier("http://hook")
        with patch.object(notifier, "_make_request", new_callable=AsyncMock) as mock:
            mock.side_effect = aiohttp.ClientError()
            assert await notifier.office("t1", "t", "m", "RACE_RESULT") is False

    @pytest.mark.asyncio
    async def test_close_without_session(self):
        notifier = WebhookNotifier("http://hook")
        await notifier.close()
        assert notifier._session is None

    @pytest.mark.asyncio
    async def test_context_manager_closes_session(self):
        async with WebhookNotifier("http://hook") as notifier:
            session = await notifier._ensure_session()
            assert not session.closed
        assert session.closed


class TestFormatters:
    """Tests for report formatting."""

    def test_qualifying_report(self):
        entries = [
            {"driver_name": "Ana Ruiz", "position": 3, "is_crashed": False},
            {"driver_name": "Ben Ito", "position": 8, "is_crashed": True},
        ]
        assert format_qualifying_report(entries) == "Ana Ruiz: P3\nBen Ito: DNF (Crash)"

    def test_race_report(self):
        entries = [
            {"name": "Ana Ruiz", "pos": "P1", "pts": 25},
            {"name": "Ben Ito", "pos": "DNF", "pts": 0},
        ]
        assert format_race_report(entries, 4_000_000) == (
            "Ana Ruiz: P1 (+25 pts)\nBen Ito: DNF (+0 pts)\nPrize: $4,000,000"
        )
