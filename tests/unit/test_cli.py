"""Tests for CLI entry point."""

import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from typer.testing import CliRunner

from fern.jest_client.cli import app
from fern.jest_client.client import DeliveryError
from fern.jest_client.config import ReporterOptions

runner = CliRunner()


@pytest.fixture
def results_file(tmp_path: Path) -> Path:
    """Write a minimal Jest results file."""
    path = tmp_path / "results.json"
    path.write_text(
        json.dumps(
            {
                "startTime": 1700000000000,
                "testResults": [
                    {
                        "testFilePath": "/x/calc.test.ts",
                        "testResults": [
                            {
                                "ancestorTitles": ["Calc"],
                                "title": "adds",
                                "status": "passed",
                            }
                        ],
                    }
                ],
            }
        )
    )
    return path


def make_mock_reporter(test_run: object = None) -> MagicMock:
    """Create a mock reporter whose run completion returns test_run."""
    reporter = MagicMock()
    reporter.on_run_complete = AsyncMock(return_value=test_run)
    reporter.test_connection = AsyncMock(return_value=True)
    return reporter


def test_report_success(results_file: Path) -> None:
    """report loads the results and hands them to the reporter."""
    test_run = MagicMock(id=123, suite_runs=[object()])
    mock_reporter = make_mock_reporter(test_run)

    with patch(
        "fern.jest_client.cli.FernReporter", return_value=mock_reporter
    ) as reporter_cls:
        result = runner.invoke(
            app,
            [
                "report",
                str(results_file),
                "--project-id",
                "calc",
                "--base-url",
                "http://fern.test",
                "--retries",
                "1",
            ],
        )

    assert result.exit_code == 0
    assert "Reported test run 123 (1 suites)" in result.output
    options: ReporterOptions = reporter_cls.call_args.args[0]
    assert options.project_id == "calc"
    assert options.base_url == "http://fern.test"
    assert options.retries == 1
    assert options.fail_on_error is None
    results = mock_reporter.on_run_complete.call_args.args[0]
    assert results.test_results[0].test_file_path == "/x/calc.test.ts"


def test_report_disabled(results_file: Path) -> None:
    """report tells the user when reporting is disabled."""
    with patch(
        "fern.jest_client.cli.FernReporter", return_value=make_mock_reporter(None)
    ):
        result = runner.invoke(app, ["report", str(results_file)])

    assert result.exit_code == 0
    assert "Fern reporting is disabled" in result.output


def test_report_config_file_with_overrides(results_file: Path, tmp_path: Path) -> None:
    """Command line flags override values from the options file."""
    config_file = tmp_path / "fern.yaml"
    config_file.write_text("projectId: from-file\nprojectName: File Name\n")

    with patch(
        "fern.jest_client.cli.FernReporter",
        return_value=make_mock_reporter(MagicMock(id=1, suite_runs=[])),
    ) as reporter_cls:
        result = runner.invoke(
            app,
            [
                "report",
                str(results_file),
                "--config",
                str(config_file),
                "--project-id",
                "from-flag",
                "--fail-on-error",
            ],
        )

    assert result.exit_code == 0
    options: ReporterOptions = reporter_cls.call_args.args[0]
    assert options.project_id == "from-flag"
    assert options.project_name == "File Name"
    assert options.fail_on_error is True


def test_report_missing_results_file(tmp_path: Path) -> None:
    """report exits 1 when the results file doesn't exist."""
    result = runner.invoke(app, ["report", str(tmp_path / "missing.json")])
    assert result.exit_code == 1


def test_report_invalid_results_file(tmp_path: Path) -> None:
    """report exits 1 when the results file is not valid Jest output."""
    path = tmp_path / "results.json"
    path.write_text("[]")

    result = runner.invoke(app, ["report", str(path)])

    assert result.exit_code == 1


def test_report_delivery_failure(results_file: Path) -> None:
    """report exits 1 when the reporter re-raises a delivery failure."""
    mock_reporter = make_mock_reporter()
    mock_reporter.on_run_complete.side_effect = DeliveryError(
        "Failed to report test run: 500", url="http://fern.test", status=500
    )

    with patch("fern.jest_client.cli.FernReporter", return_value=mock_reporter):
        result = runner.invoke(app, ["report", str(results_file), "--fail-on-error"])

    assert result.exit_code == 1


def make_mock_client(healthy: bool = True) -> MagicMock:
    """Create a mock API client whose ping returns healthy."""
    client = MagicMock()
    client.ping = AsyncMock(return_value=healthy)
    return client


def test_ping_healthy() -> None:
    """ping exits 0 when the API is healthy."""
    mock_client = make_mock_client()

    with patch(
        "fern.jest_client.cli.create_fern_client", return_value=mock_client
    ) as create_client:
        result = runner.invoke(app, ["ping", "--base-url", "http://fern.test"])

    assert result.exit_code == 0
    assert "Fern API is healthy" in result.output
    client_options = create_client.call_args.args[1]
    assert client_options.base_url == "http://fern.test"
    mock_client.ping.assert_awaited_once()


def test_ping_unhealthy() -> None:
    """ping exits 1 when the API is not healthy."""
    with patch(
        "fern.jest_client.cli.create_fern_client",
        return_value=make_mock_client(healthy=False),
    ):
        result = runner.invoke(app, ["ping"])

    assert result.exit_code == 1


def test_ping_ignores_disabled_reporting() -> None:
    """ping checks the API even when FERN_ENABLED=false."""
    mock_client = make_mock_client()

    with patch("fern.jest_client.cli.create_fern_client", return_value=mock_client):
        result = runner.invoke(app, ["ping"], env={"FERN_ENABLED": "false"})

    assert result.exit_code == 0
    mock_client.ping.assert_awaited_once()


def test_ping_invalid_timeout() -> None:
    """ping exits 1 when a flag is out of range."""
    result = runner.invoke(app, ["ping", "--timeout", "0"])
    assert result.exit_code == 1


def test_ping_missing_config_file(tmp_path: Path) -> None:
    """ping exits 1 when the options file doesn't exist."""
    result = runner.invoke(app, ["ping", "--config", str(tmp_path / "nope.yaml")])
    assert result.exit_code == 1
