"""Tests for the Typer-based romshelf CLI."""
from __future__ import annotations

import importlib
import json
import sys
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient
from rq.worker import SimpleWorker
from typer.testing import CliRunner

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.ingest.providers.base import MetadataEnvelope, ProviderError  # noqa: E402
from backend.shelf_api import create_app  # noqa: E402
from backend.shelf_api.services import tasks as tasks_module  # noqa: E402
from backend.shelf_api.settings import ShelfSettings  # noqa: E402
from backend.shelf_cli import app as cli_app  # noqa: E402
from backend.shelf_cli import client as client_module  # noqa: E402

cli_app_module = importlib.import_module("backend.shelf_cli.app")

SNES = "Super Nintendo Entertainment System"


class StubProvider:
    name = "stub"

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error

    def search(self, title: str, platform: str | None = None) -> list[MetadataEnvelope]:
        if self.error:
            raise self.error
        return [
            MetadataEnvelope(
                title=title,
                description=f"{title} description",
                cover_art_url="https://images.example/cover.jpg",
                year=1991,
            )
        ]


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def cli_client(tmp_path: Path) -> TestClient:
    """Provide a TestClient and patch the CLI HTTP client factory."""

    db_path = tmp_path / "romshelf.db"
    settings = ShelfSettings(
        database_url=f"sqlite:///{db_path}",
        redis_url="fakeredis://",
    )
    app = create_app(settings=settings)
    app.state.app_state.job_queue.connection.flushall()
    test_client = TestClient(app)

    original_factory = client_module.create_client
    original_app_factory = cli_app_module.create_client

    def _factory(base_url: str, *, timeout: Any = 10.0, transport: Any = None):  # type: ignore[override]
        return test_client

    client_module.create_client = _factory  # type: ignore[assignment]
    cli_app_module.create_client = _factory  # type: ignore[assignment]

    yield test_client

    client_module.create_client = original_factory  # type: ignore[assignment]
    cli_app_module.create_client = original_app_factory  # type: ignore[assignment]


@pytest.fixture()
def rom_dir(tmp_path: Path) -> Path:
    root = tmp_path / "roms"
    root.mkdir()
    (root / "Super Mario World (USA).sfc").write_bytes(b"SMW")
    (root / "Super Mario World (Europe).sfc").write_bytes(b"SMW")
    (root / "F-Zero (USA).sfc").write_bytes(b"FZERO")
    return root


def drain_jobs(client: TestClient) -> None:
    """Process queued jobs for CLI-oriented tests."""

    app_state = client.app.state.app_state
    worker = SimpleWorker([app_state.job_queue.queue], connection=app_state.job_queue.connection)
    worker.work(burst=True)


def _snes_id(cli_client: TestClient) -> int:
    return next(item["id"] for item in cli_client.get("/platforms").json() if item["name"] == SNES)


def _scan(runner: CliRunner, cli_client: TestClient, rom_dir: Path) -> dict:
    result = runner.invoke(
        cli_app,
        [
            "scan",
            "directory",
            str(rom_dir),
            "--server-location",
            "nas",
            "--platform-id",
            str(_snes_id(cli_client)),
        ],
    )
    assert result.exit_code == 0, result.output
    return json.loads(result.output)


def test_cli_health_command_outputs_status(runner: CliRunner, cli_client: TestClient) -> None:
    """The health command should display OK status."""

    result = runner.invoke(cli_app, ["health"])

    assert result.exit_code == 0
    assert "\"status\": \"ok\"" in result.output
    assert "\"metadata_provider\": \"igdb\"" in result.output


def test_cli_config_update_modifies_store(runner: CliRunner, cli_client: TestClient) -> None:
    """Config update command should persist changes and print them."""

    result = runner.invoke(
        cli_app,
        [
            "config",
            "update",
            "-e",
            "SFC",
            "-e",
            ".smc",
            "--dedupe-rescans",
            "--delay-seconds",
            "0",
        ],
    )

    assert result.exit_code == 0
    assert "\"dedupe_rescans\": true" in result.output

    persisted = cli_client.get("/config").json()
    assert persisted["supported_extensions"] == [".sfc", ".smc"]
    assert persisted["default_delay_seconds"] == 0

    shown = runner.invoke(cli_app, ["config", "show"])
    assert json.loads(shown.output) == persisted


def test_cli_config_update_requires_a_field(runner: CliRunner, cli_client: TestClient) -> None:
    result = runner.invoke(cli_app, ["config", "update"])

    assert result.exit_code == 1
    assert "No updates supplied." in result.output


def test_cli_platforms_list(runner: CliRunner, cli_client: TestClient) -> None:
    result = runner.invoke(cli_app, ["platforms", "list"])

    assert result.exit_code == 0
    names = [item["name"] for item in json.loads(result.output)]
    assert SNES in names


def test_cli_scan_directory_and_duplicates(
    runner: CliRunner, cli_client: TestClient, rom_dir: Path
) -> None:
    """scan directory links files and scan duplicates reports identical copies."""

    payload = _scan(runner, cli_client, rom_dir)

    assert len(payload["files_found"]) == 3
    assert sorted(game["title"] for game in payload["games_added"]) == ["F Zero", "Super Mario World"]

    result = runner.invoke(cli_app, ["scan", "duplicates"])
    assert result.exit_code == 0
    report = json.loads(result.output)
    assert report["count"] == 1
    assert {item["game_title"] for item in report["duplicates"][0]["files"]} == {"Super Mario World"}


def test_cli_scan_directory_reports_api_errors(
    runner: CliRunner, cli_client: TestClient, tmp_path: Path
) -> None:
    """A bad root path exits non-zero with the API's detail."""

    result = runner.invoke(
        cli_app,
        [
            "scan",
            "directory",
            str(tmp_path / "missing"),
            "--server-location",
            "nas",
            "--platform-id",
            str(_snes_id(cli_client)),
        ],
    )

    assert result.exit_code == 1
    assert "Request failed (400)" in result.output
    assert "Directory not found" in result.output


def test_cli_metadata_batch_runs_job(
    runner: CliRunner,
    cli_client: TestClient,
    rom_dir: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """scan metadata-batch queues a job the worker completes."""

    monkeypatch.setattr(tasks_module, "build_provider", lambda settings: StubProvider())
    _scan(runner, cli_client, rom_dir)

    result = runner.invoke(
        cli_app,
        ["scan", "metadata-batch", "--batch-size", "1", "--delay-seconds", "0"],
    )

    assert result.exit_code == 0
    accepted = json.loads(result.output)
    assert accepted["total_games"] == 2
    assert accepted["job_id"]

    queued = json.loads(runner.invoke(cli_app, ["jobs", "metrics"]).output)
    assert queued["queue_depth"] == 1

    drain_jobs(cli_client)

    shown = json.loads(runner.invoke(cli_app, ["jobs", "show", accepted["job_id"]]).output)
    assert shown["status"] == "completed"
    assert shown["result"]["updated"] == 2

    logs = runner.invoke(cli_app, ["jobs", "logs", accepted["job_id"], "--limit", "50"])
    assert logs.exit_code == 0
    assert any(entry["message"] == "Job started" for entry in json.loads(logs.output))

    listed = json.loads(runner.invoke(cli_app, ["jobs", "list", "--status", "completed"]).output)
    assert [job["id"] for job in listed] == [accepted["job_id"]]

    metrics = json.loads(runner.invoke(cli_app, ["games", "metrics"]).output)
    assert metrics["enriched"] == 2


def test_cli_metadata_batch_for_selected_games(
    runner: CliRunner,
    cli_client: TestClient,
    rom_dir: Path,
) -> None:
    payload = _scan(runner, cli_client, rom_dir)
    game_id = payload["games_added"][0]["id"]

    result = runner.invoke(cli_app, ["scan", "metadata-batch", "--game-id", str(game_id)])

    assert result.exit_code == 0
    accepted = json.loads(result.output)
    assert accepted["total_games"] == 1
    assert accepted["batch_size"] == 5
    assert accepted["delay"] == 2


def test_cli_games_list_show_and_fetch_metadata(
    runner: CliRunner, cli_client: TestClient, rom_dir: Path
) -> None:
    """games commands browse the catalog and enrich a single entry."""

    _scan(runner, cli_client, rom_dir)
    cli_client.app.state.app_state.provider = StubProvider()

    listed = runner.invoke(cli_app, ["games", "list", "--query", "zero", "--sort", "title_asc"])
    assert listed.exit_code == 0
    listing = json.loads(listed.output)
    assert listing["total"] == 1
    game_id = listing["items"][0]["id"]

    missing = json.loads(runner.invoke(cli_app, ["games", "list", "--missing-metadata"]).output)
    assert missing["total"] == 2

    fetched = runner.invoke(cli_app, ["games", "fetch-metadata", str(game_id)])
    assert fetched.exit_code == 0
    assert json.loads(fetched.output)["description"] == "F Zero description"

    shown = json.loads(runner.invoke(cli_app, ["games", "show", str(game_id)]).output)
    assert shown["year"] == 1991
    assert len(shown["file_locations"]) == 1

    enriched = json.loads(runner.invoke(cli_app, ["games", "list", "--has-metadata"]).output)
    assert [item["id"] for item in enriched["items"]] == [game_id]


def test_cli_games_show_handles_missing_game(runner: CliRunner, cli_client: TestClient) -> None:
    result = runner.invoke(cli_app, ["games", "show", "9999"])

    assert result.exit_code == 1
    assert "Game not found" in result.output


def test_cli_metadata_search(runner: CliRunner, cli_client: TestClient) -> None:
    cli_client.app.state.app_state.provider = StubProvider()

    result = runner.invoke(cli_app, ["metadata", "search", "Contra", "--platform", "NES"])

    assert result.exit_code == 0
    assert json.loads(result.output)["results"][0]["title"] == "Contra"


def test_cli_metadata_search_reports_provider_failure(
    runner: CliRunner, cli_client: TestClient
) -> None:
    cli_client.app.state.app_state.provider = StubProvider(error=ProviderError("IGDB unavailable"))

    result = runner.invoke(cli_app, ["metadata", "search", "Contra"])

    assert result.exit_code == 1
    assert "Request failed (502): IGDB unavailable" in result.output


def test_cli_jobs_list_rejects_unknown_status(runner: CliRunner, cli_client: TestClient) -> None:
    result = runner.invoke(cli_app, ["jobs", "list", "--status", "exploded"])

    assert result.exit_code == 1
    assert "Invalid status value" in result.output


def test_cli_jobs_show_handles_missing_job(
    runner: CliRunner, cli_client: TestClient
) -> None:
    """jobs show should exit with an error when the job is not found."""

    _ = cli_client
    result = runner.invoke(cli_app, ["jobs", "show", "missing-id"])

    assert result.exit_code == 1
    assert "Job not found" in result.output


def test_cli_jobs_logs_handles_missing_job(
    runner: CliRunner, cli_client: TestClient
) -> None:
    """jobs logs should exit with an error when the job is not found."""

    result = runner.invoke(cli_app, ["jobs", "logs", "missing-id"])

    assert result.exit_code == 1
    assert "Job not found" in result.output
