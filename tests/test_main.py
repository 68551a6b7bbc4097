"""Tests for ExporterApp startup and poll cycle execution."""

import asyncio

import pytest
from unittest.mock import AsyncMock, Mock

from a2s_exporter.main import ExporterApp
from a2s_exporter.poller import TickReport


VALID_CONFIG = """
frequency_secs: 15
influxdb:
  host: http://localhost:8086
  bucket: games
  organization: acme
  token: t0ken
servers:
  - host: 10.0.0.1
  - host: 10.0.0.2
    port: 27016
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(VALID_CONFIG)
    return str(path)


class TestStartup:
    """Configuration failures stop the process before polling begins."""

    def test_missing_config_exits(self, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            ExporterApp(config_path=str(tmp_path / "absent.yaml"))

        assert exc_info.value.code == 1

    def test_invalid_config_exits(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("frequency_secs: 0\nservers: []\n")

        with pytest.raises(SystemExit) as exc_info:
            ExporterApp(config_path=str(path))

        assert exc_info.value.code == 1

    def test_unparseable_yaml_exits(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("servers: [unclosed\n")

        with pytest.raises(SystemExit) as exc_info:
            ExporterApp(config_path=str(path))

        assert exc_info.value.code == 1

    def test_valid_config_builds_state(self, config_file):
        app = ExporterApp(config_path=config_file, dry_run=True)

        assert [t.identity for t in app.state.targets] == ["10.0.0.1:27015", "10.0.0.2:27016"]
        assert len(app.state.cache) == 0
        assert app.poller.dry_run is True
        assert app.scheduler is None


class TestRunPollCycle:
    """Test suite for ExporterApp.run_poll_cycle."""

    @pytest.mark.asyncio
    async def test_runs_tick_with_app_state(self, config_file):
        app = ExporterApp(config_path=config_file)
        report = TickReport(records=[], batch="", sent=False)
        app.poller = Mock()
        app.poller.run_tick = AsyncMock(return_value=report)

        result = await app.run_poll_cycle()

        assert result is report
        app.poller.run_tick.assert_awaited_once_with(app.state)

    @pytest.mark.asyncio
    async def test_unexpected_error_is_reraised(self, config_file):
        app = ExporterApp(config_path=config_file)
        app.poller = Mock()
        app.poller.run_tick = AsyncMock(side_effect=RuntimeError("boom"))

        with pytest.raises(RuntimeError, match="boom"):
            await app.run_poll_cycle()


class TestServe:
    """Test suite for the scheduled loop."""

    @pytest.mark.asyncio
    async def test_schedules_poll_cycle_and_stops(self, config_file):
        app = ExporterApp(config_path=config_file)
        app.poller = Mock()
        app.poller.run_tick = AsyncMock(return_value=TickReport(records=[], batch=""))

        task = asyncio.create_task(app.serve())
        for _ in range(50):
            if app.poller.run_tick.await_count:
                break
            await asyncio.sleep(0.02)

        job = app.scheduler.get_job('poll_cycle')
        assert job.func == app.run_poll_cycle
        assert job.max_instances == 1
        app.poller.run_tick.assert_awaited_with(app.state)

        app._stop.set()
        await asyncio.wait_for(task, timeout=2)
        assert not app.scheduler.running


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
