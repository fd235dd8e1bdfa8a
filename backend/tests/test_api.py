"""Contract tests for the ROM Shelf API application factory."""
from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Callable

import pytest
from fastapi.testclient import TestClient
from rq.worker import SimpleWorker

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.ingest.providers.base import (  # noqa: E402
    MetadataEnvelope,
    ProviderAuthError,
    ProviderError,
)
from backend.shelf_api import create_app  # noqa: E402
from backend.shelf_api.schemas import ConfigModel, JobModel  # noqa: E402
from backend.shelf_api.services import tasks as tasks_module  # noqa: E402
from backend.shelf_api.settings import ShelfSettings  # noqa: E402

SNES = "Super Nintendo Entertainment System"


class StubProvider:
    """Metadata provider returning canned envelopes keyed by title."""

    name = "stub"

    def __init__(self, results: dict[str, Any] | None = None, error: Exception | None = None) -> None:
        self.results = results or {}
        self.error = error
        self.calls: list[tuple[str, str | None]] = []

    def search(self, title: str, platform: str | None = None) -> list[MetadataEnvelope]:
        self.calls.append((title, platform))
        if self.error:
            raise self.error
        if title in self.results:
            return list(self.results[title])
        return [
            MetadataEnvelope(
                title=title,
                description=f"{title} description",
                rating=8.5,
                genre="Platform",
                year=1990,
                cover_art_url=f"https://images.example/{title.replace(' ', '_')}.jpg",
                provider_id=1000,
            )
        ]


@pytest.fixture()
def make_client(tmp_path: Path) -> Callable[..., TestClient]:
    """Return a factory building clients over an isolated SQLite database."""

    def _make(**overrides: Any) -> TestClient:
        settings = ShelfSettings(
            database_url=f"sqlite:///{tmp_path / 'romshelf.db'}",
            redis_url="fakeredis://",
            **overrides,
        )
        app = create_app(settings=settings)
        app.state.app_state.job_queue.connection.flushall()
        return TestClient(app)

    return _make


@pytest.fixture()
def client(make_client: Callable[..., TestClient]) -> TestClient:
    return make_client()


@pytest.fixture()
def rom_dir(tmp_path: Path) -> Path:
    """A small library with two regional dumps of one game and an identical copy."""

    root = tmp_path / "roms"
    (root / "hacks").mkdir(parents=True)
    (root / "Super Mario World (USA).sfc").write_bytes(b"SMW-USA")
    (root / "Super Mario World (Europe) [!].sfc").write_bytes(b"SMW-EUR")
    (root / "Donkey Kong Country (USA).sfc").write_bytes(b"DKC")
    (root / "hacks" / "Donkey Kong Country (USA) [copy].sfc").write_bytes(b"DKC")
    (root / "readme.txt").write_text("not a rom")
    return root


def drain_jobs(client: TestClient) -> None:
    """Drain queued jobs using an in-process RQ worker."""

    app_state = client.app.state.app_state
    worker = SimpleWorker([app_state.job_queue.queue], connection=app_state.job_queue.connection)
    worker.work(burst=True)


def platform_id(client: TestClient, name: str = SNES) -> int:
    return next(item["id"] for item in client.get("/platforms").json() if item["name"] == name)


def scan(client: TestClient, root: Path, *, recursive: bool = True, server: str = "nas") -> dict:
    response = client.post(
        "/scan/directory",
        json={
            "directory_path": str(root),
            "server_location": server,
            "platform_id": platform_id(client),
            "recursive": recursive,
        },
    )
    assert response.status_code == 200, response.text
    return response.json()


def test_health_endpoint_reports_ok_status(client: TestClient) -> None:
    """The /health endpoint should respond with an OK status payload."""

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {
        "status": "ok",
        "version": "0.1.0",
        "metadata_provider": "igdb",
        "queue": {"status": "ok", "detail": None},
    }


def test_config_round_trip_normalizes_extensions(client: TestClient) -> None:
    """PUT /config should persist updates with normalized extensions."""

    defaults = ConfigModel.model_validate(client.get("/config").json())
    assert ".sfc" in defaults.supported_extensions
    assert defaults.dedupe_rescans is False
    assert defaults.default_batch_size == 5
    assert defaults.default_delay_seconds == 2

    response = client.put(
        "/config",
        json={"supported_extensions": ["NES", ".Gb"], "dedupe_rescans": True, "default_batch_size": 3},
    )
    assert response.status_code == 200

    persisted = ConfigModel.model_validate(client.get("/config").json())
    assert persisted.supported_extensions == [".gb", ".nes"]
    assert persisted.dedupe_rescans is True
    assert persisted.default_batch_size == 3
    assert persisted.default_delay_seconds == 2


def test_config_update_rejects_invalid_values(client: TestClient) -> None:
    assert client.put("/config", json={"default_batch_size": 0}).status_code == 422
    assert client.put("/config", json={"supported_extensions": []}).status_code == 422


def test_platforms_are_seeded(client: TestClient) -> None:
    """The platform table is seeded with the default consoles."""

    platforms = client.get("/platforms").json()

    assert len(platforms) == 30
    names = {platform["name"] for platform in platforms}
    assert {SNES, "Sony PlayStation", "Arcade"} <= names


def test_scan_directory_creates_games_and_locations(client: TestClient, rom_dir: Path) -> None:
    """Regional dumps collapse into one game with a location per file."""

    body = scan(client, rom_dir)

    assert body["message"] == "Directory scan completed"
    assert len(body["files_found"]) == 4
    assert sorted(game["title"] for game in body["games_added"]) == [
        "Donkey Kong Country",
        "Super Mario World",
    ]
    assert all(game["platform_name"] == SNES for game in body["games_added"])
    assert body["errors"] == []
    assert body["locations_added"] == 4

    smw = next(game for game in body["games_added"] if game["title"] == "Super Mario World")
    detail = client.get(f"/games/{smw['id']}").json()
    assert len(detail["file_locations"]) == 2
    assert {location["server_location"] for location in detail["file_locations"]} == {"nas"}
    assert all(len(location["file_hash"]) == 32 for location in detail["file_locations"])
    assert detail["description"] is None


def test_scan_directory_non_recursive_skips_subdirectories(client: TestClient, rom_dir: Path) -> None:
    body = scan(client, rom_dir, recursive=False)

    assert len(body["files_found"]) == 3
    assert all("hacks" not in path for path in body["files_found"])


def test_scan_directory_validation_errors(client: TestClient, tmp_path: Path, rom_dir: Path) -> None:
    """Unknown platforms, bad roots and invalid payloads are rejected."""

    base = {"directory_path": str(rom_dir), "server_location": "nas", "recursive": False}

    unknown = client.post("/scan/directory", json={**base, "platform_id": 999})
    assert unknown.status_code == 404

    missing_root = client.post(
        "/scan/directory",
        json={**base, "directory_path": str(tmp_path / "nope"), "platform_id": platform_id(client)},
    )
    assert missing_root.status_code == 400
    assert "Directory not found" in missing_root.json()["detail"]

    assert client.post("/scan/directory", json={**base, "platform_id": 0}).status_code == 422
    too_long = {**base, "platform_id": platform_id(client), "server_location": "x" * 101}
    assert client.post("/scan/directory", json=too_long).status_code == 422


def test_rescan_attaches_again_unless_deduplicated(client: TestClient, rom_dir: Path) -> None:
    """Rescanning records every file again by default; the config flag skips them."""

    first = scan(client, rom_dir)
    second = scan(client, rom_dir)

    assert second["games_added"] == []
    assert second["locations_added"] == 4
    assert client.get("/games/metrics").json()["file_locations"] == 8

    client.put("/config", json={"dedupe_rescans": True})
    third = scan(client, rom_dir)

    assert third["locations_added"] == 0
    assert third["locations_skipped"] == 4
    assert client.get("/games/metrics").json()["file_locations"] == 8
    assert len(first["games_added"]) == 2


def test_duplicates_groups_locations_by_hash(client: TestClient, rom_dir: Path) -> None:
    """Identical files are reported together with their game title."""

    scan(client, rom_dir)

    report = client.get("/scan/duplicates").json()

    assert report["count"] == 1
    group = report["duplicates"][0]
    assert len(group["files"]) == 2
    assert {item["game_title"] for item in group["files"]} == {"Donkey Kong Country"}
    assert {item["file_hash"] for item in group["files"]} == {group["hash"]}


def test_games_list_filters_and_metrics(client: TestClient, rom_dir: Path) -> None:
    """The catalog can be searched, filtered and summarized."""

    scan(client, rom_dir)

    listing = client.get("/games", params={"query": "mario", "sort": "title_asc"}).json()
    assert listing["total"] == 1
    assert listing["items"][0]["title"] == "Super Mario World"

    by_platform = client.get("/games", params={"platform_id": platform_id(client, "Arcade")}).json()
    assert by_platform["total"] == 0

    missing = client.get("/games", params={"missing_metadata": True}).json()
    assert missing["total"] == 2

    metrics = client.get("/games/metrics").json()
    assert metrics == {
        "total": 2,
        "platform_counts": {SNES: 2},
        "enriched": 0,
        "missing_metadata": 2,
        "file_locations": 4,
    }

    assert client.get("/games/9999").status_code == 404


def test_metadata_batch_without_candidates_returns_ok(client: TestClient) -> None:
    """Nothing to enrich answers 200 without creating a job."""

    response = client.post("/scan/metadata-batch", json={})

    assert response.status_code == 200
    assert response.json() == {
        "message": "No games need metadata updates",
        "job_id": None,
        "total_games": 0,
        "batch_size": 5,
        "delay": 2,
    }
    assert client.get("/jobs").json() == []


def test_metadata_batch_enriches_games_in_worker(
    client: TestClient, rom_dir: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """The batch job runs in the worker and fills in missing metadata."""

    provider = StubProvider(results={"Donkey Kong Country": []})
    monkeypatch.setattr(tasks_module, "build_provider", lambda settings: provider)
    scan(client, rom_dir)

    response = client.post("/scan/metadata-batch", json={"batch_size": 1, "delay_seconds": 0})

    assert response.status_code == 202
    accepted = response.json()
    assert accepted["message"] == "Batch metadata update started"
    assert accepted["total_games"] == 2
    assert accepted["batch_size"] == 1
    assert accepted["delay"] == 0
    queued = JobModel.model_validate(client.get(f"/jobs/{accepted['job_id']}").json())
    assert queued.status == "queued"
    assert queued.type == "metadata_batch"

    drain_jobs(client)

    job = JobModel.model_validate(client.get(f"/jobs/{accepted['job_id']}").json())
    assert job.status == "completed"
    assert job.progress == 1.0
    assert job.result["processed"] == 2
    assert job.result["updated"] == 1
    assert job.result["batch_sizes"] == [1, 1]
    assert job.result["errors"] == [
        f"Game {job.payload['game_ids'][0]} (Donkey Kong Country): No metadata match"
    ]
    assert {platform for _, platform in provider.calls} == {SNES}

    games = client.get("/games", params={"query": "Super Mario"}).json()["items"]
    assert games[0]["description"] == "Super Mario World description"
    assert games[0]["rating"] == 8.5
    assert games[0]["external_id"] == 1000

    logs = client.get(f"/jobs/{job.id}/logs").json()
    messages = [entry["message"] for entry in logs]
    assert "Batch metadata update completed" in messages
    assert any(entry["level"] == "warning" for entry in logs)


def test_metadata_batch_auth_failure_marks_job_failed(
    client: TestClient, rom_dir: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Rejected credentials abort the job and leave it failed."""

    provider = StubProvider(error=ProviderAuthError("invalid client"))
    monkeypatch.setattr(tasks_module, "build_provider", lambda settings: provider)
    scan(client, rom_dir)

    accepted = client.post("/scan/metadata-batch", json={"delay_seconds": 0}).json()
    drain_jobs(client)

    job = client.get(f"/jobs/{accepted['job_id']}").json()
    assert job["status"] == "failed"
    assert job["result"]["aborted"] is True
    assert job["result"]["processed"] == 1
    assert "Authentication failed" in job["error_message"]
    assert len(provider.calls) == 1


def test_metadata_batch_rejects_when_queue_is_full(
    make_client: Callable[..., TestClient], rom_dir: Path
) -> None:
    """A queue at capacity answers 503 instead of accepting more work."""

    client = make_client(max_queued_jobs=1)
    scan(client, rom_dir)

    first = client.post("/scan/metadata-batch", json={"delay_seconds": 0})
    second = client.post("/scan/metadata-batch", json={"delay_seconds": 0})

    assert first.status_code == 202
    assert second.status_code == 503
    assert "full" in second.json()["detail"]
    assert client.get("/jobs/metrics").json()["queue_depth"] == 1


def test_fetch_metadata_updates_single_game(client: TestClient, rom_dir: Path) -> None:
    """POST /games/{id}/fetch-metadata applies the provider's best match."""

    provider = StubProvider()
    client.app.state.app_state.provider = provider
    game = next(item for item in scan(client, rom_dir)["games_added"] if item["title"] == "Super Mario World")

    response = client.post(f"/games/{game['id']}/fetch-metadata")

    assert response.status_code == 200
    body = response.json()
    assert body["title"] == "Super Mario World"
    assert body["genre"] == "Platform"
    assert body["year"] == 1990
    assert len(body["file_locations"]) == 2
    assert provider.calls == [("Super Mario World", SNES)]


def test_fetch_metadata_error_mapping(client: TestClient, rom_dir: Path) -> None:
    """Missing games and empty results are 404, provider failures 502."""

    game = scan(client, rom_dir)["games_added"][0]

    client.app.state.app_state.provider = StubProvider()
    assert client.post("/games/9999/fetch-metadata").status_code == 404

    client.app.state.app_state.provider = StubProvider(results={game["title"]: []})
    no_match = client.post(f"/games/{game['id']}/fetch-metadata")
    assert no_match.status_code == 404
    assert "No game found" in no_match.json()["detail"]

    client.app.state.app_state.provider = StubProvider(error=ProviderError("IGDB request failed"))
    failed = client.post(f"/games/{game['id']}/fetch-metadata")
    assert failed.status_code == 502
    assert failed.json()["detail"] == "IGDB request failed"


def test_metadata_search_returns_envelopes(client: TestClient) -> None:
    client.app.state.app_state.provider = StubProvider()

    response = client.post("/metadata/search", json={"title": "Contra", "platform": "NES"})

    assert response.status_code == 200
    results = response.json()["results"]
    assert results[0]["title"] == "Contra"
    assert results[0]["provider_id"] == 1000


def test_metadata_search_maps_provider_errors(client: TestClient) -> None:
    client.app.state.app_state.provider = StubProvider(error=ProviderAuthError("bad credentials"))

    response = client.post("/metadata/search", json={"title": "Contra"})

    assert response.status_code == 502
    assert response.json()["detail"] == "bad credentials"


def test_jobs_detail_and_logs_return_404_for_missing_job(client: TestClient) -> None:
    assert client.get("/jobs/missing").status_code == 404
    assert client.get("/jobs/missing/logs").status_code == 404


def test_jobs_list_and_metrics_track_batches(
    client: TestClient, rom_dir: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Finished jobs appear in listings, filters and aggregate metrics."""

    monkeypatch.setattr(tasks_module, "build_provider", lambda settings: StubProvider())
    scan(client, rom_dir)
    client.post("/scan/metadata-batch", json={"delay_seconds": 0})
    drain_jobs(client)

    jobs = client.get("/jobs", params={"status": "completed", "type": "metadata_batch"}).json()
    assert len(jobs) == 1
    assert client.get("/jobs", params={"status": "failed"}).json() == []

    metrics = client.get("/jobs/metrics").json()
    assert metrics["total"] == 1
    assert metrics["status_counts"] == {"completed": 1}
    assert metrics["type_counts"] == {"metadata_batch": 1}
    assert metrics["queue_depth"] == 0
    assert metrics["average_duration_seconds"] >= 0
