"""Unit tests for the ingestion scheduler."""
import asyncio
import logging
from unittest.mock import AsyncMock, Mock, patch

from conftest import make_settings
from signage.exceptions import IngestionError
from signage.scheduler import create_scheduler, ingest_calendar
from signage.services.event_cache import EventCache
from signage.services.ingestion import IngestionResult


class TestCreateScheduler:
    def test_weekly_job_scheduled(self, tmp_path):
        scheduler = create_scheduler(make_settings(tmp_path), Mock(spec=EventCache))

        jobs = scheduler.get_jobs()

        assert [job.id for job in jobs] == ["ingest_calendar"]

    def test_skip_parse_disables_ingestion(self, tmp_path):
        scheduler = create_scheduler(make_settings(tmp_path, skip_parse=True), Mock(spec=EventCache))

        assert scheduler.get_jobs() == []


class TestIngestCalendarJob:
    def test_runs_ingestion(self, tmp_path):
        settings = make_settings(tmp_path)
        cache = Mock(spec=EventCache)
        result = IngestionResult(original_event_count=3, structured_event_count=3)

        with patch("signage.scheduler.ingest", AsyncMock(return_value=result)) as ingest:
            asyncio.run(ingest_calendar(settings, cache))

        ingest.assert_awaited_once_with(settings, cache)

    def test_failure_is_logged_not_raised(self, tmp_path, caplog):
        settings = make_settings(tmp_path)

        with patch("signage.scheduler.ingest", AsyncMock(side_effect=IngestionError("feed down"))):
            with caplog.at_level(logging.ERROR, logger="signage.scheduler"):
                asyncio.run(ingest_calendar(settings, Mock(spec=EventCache)))

        assert "feed down" in caplog.text
