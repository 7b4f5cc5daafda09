"""Unit tests for the groups CLI commands."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from typer.testing import CliRunner

from sway_metrics.cli.app import app
from sway_metrics.cli.groups_cmd import _list_impl
from sway_metrics.schemas.metrics import ViewpointGroupSummary

runner = CliRunner()


@pytest.fixture(autouse=True)
def _env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")


class TestListCommand:
    """Tests for `sway-metrics groups list`."""

    def test_lists_groups(self) -> None:
        groups = [ViewpointGroupSummary(id="g1", title="Alpha"), ViewpointGroupSummary(id="g2", title="Beta")]
        with patch("sway_metrics.cli.groups_cmd._list_impl", new_callable=AsyncMock, return_value=groups):
            result = runner.invoke(app, ["groups", "list"])

        assert result.exit_code == 0, result.output
        assert "g1  Alpha" in result.output
        assert "g2  Beta" in result.output
        assert "2 groups" in result.output

    def test_empty(self) -> None:
        with patch("sway_metrics.cli.groups_cmd._list_impl", new_callable=AsyncMock, return_value=[]):
            result = runner.invoke(app, ["groups", "list"])

        assert result.exit_code == 0
        assert "No viewpoint groups with supporters found." in result.output

    def test_data_source_is_forwarded(self) -> None:
        with patch("sway_metrics.cli.groups_cmd._list_impl", new_callable=AsyncMock, return_value=[]) as mock_impl:
            runner.invoke(app, ["groups", "list", "--data-source", "graph"])

        mock_impl.assert_awaited_once_with("graph")


class TestListImpl:
    @pytest.mark.asyncio
    async def test_initializes_and_disposes_engine(self, settings) -> None:
        groups = [ViewpointGroupSummary(id="g1", title="Alpha")]
        with (
            patch("sway_metrics.core.config.get_settings", return_value=settings),
            patch("sway_metrics.core.database.init_engine", return_value=MagicMock()) as mock_init,
            patch("sway_metrics.core.database.dispose_engine", new_callable=AsyncMock) as mock_dispose,
            patch(
                "sway_metrics.services.dashboard_service.get_viewpoint_groups",
                new_callable=AsyncMock,
                return_value=groups,
            ),
        ):
            result = await _list_impl(None)

        assert result == groups
        mock_init.assert_called_once()
        mock_dispose.assert_awaited_once()
