"""Command line interface for the ROM Shelf API."""
from __future__ import annotations

import json
from enum import Enum
from typing import List, Optional

import httpx
import typer

from .client import create_client


DEFAULT_API_BASE = "http://localhost:8000"

app = typer.Typer(help="Interact with the ROM Shelf backend service.")
config_app = typer.Typer(help="Manage runtime configuration.")
app.add_typer(config_app, name="config")
platforms_app = typer.Typer(help="Browse known gaming platforms.")
app.add_typer(platforms_app, name="platforms")
scan_app = typer.Typer(help="Scan directories, report duplicates and backfill metadata.")
app.add_typer(scan_app, name="scan")
games_app = typer.Typer(help="Browse the game catalog.")
app.add_typer(games_app, name="games")
metadata_app = typer.Typer(help="Query the configured metadata provider.")
app.add_typer(metadata_app, name="metadata")
jobs_app = typer.Typer(help="Inspect background jobs.")
app.add_typer(jobs_app, name="jobs")


JOB_STATUS_CHOICES = {"queued", "running", "completed", "failed", "cancelled"}


class GameSort(str, Enum):
    updated_desc = "updated_desc"
    updated_asc = "updated_asc"
    title_asc = "title_asc"
    title_desc = "title_desc"
    year_desc = "year_desc"
    year_asc = "year_asc"


def _api_base_option() -> typer.Option:
    return typer.Option(
        DEFAULT_API_BASE,
        "--api-base",
        help="Base URL for the ROM Shelf API service.",
        show_default=True,
        envvar="ROMSHELF_API_BASE",
    )


def _echo_json(response: httpx.Response) -> None:
    typer.echo(json.dumps(response.json(), indent=2, ensure_ascii=False))


def _fail_on_error(response: httpx.Response, not_found: str | None = None) -> None:
    """Exit with the API's error detail instead of a traceback."""

    if response.status_code == 404 and not_found is not None:
        typer.echo(not_found, err=True)
        raise typer.Exit(code=1)
    if response.is_error:
        try:
            detail = response.json().get("detail", response.text)
        except ValueError:
            detail = response.text
        typer.echo(f"Request failed ({response.status_code}): {detail}", err=True)
        raise typer.Exit(code=1)


@app.command()
def health(api_base: str = _api_base_option()) -> None:
    """Call the /health endpoint and pretty-print the response."""

    with create_client(api_base) as client:
        response = client.get("/health")
        response.raise_for_status()
        _echo_json(response)


@config_app.command("show")
def show_config(api_base: str = _api_base_option()) -> None:
    """Display the persisted runtime configuration."""

    with create_client(api_base) as client:
        response = client.get("/config")
        response.raise_for_status()
        _echo_json(response)


@config_app.command("update")
def update_config(
    extensions: Optional[List[str]] = typer.Option(
        None,
        "--extension",
        "-e",
        help="Supported file extension (repeat the flag); replaces the current list.",
    ),
    dedupe_rescans: Optional[bool] = typer.Option(
        None,
        "--dedupe-rescans/--no-dedupe-rescans",
        help="Skip files already recorded with the same server, path and hash.",
        show_default=False,
    ),
    batch_size: Optional[int] = typer.Option(
        None, min=1, max=100, help="Default metadata batch size."
    ),
    delay_seconds: Optional[int] = typer.Option(
        None, min=0, max=3600, help="Default pause between metadata batches."
    ),
    api_base: str = _api_base_option(),
) -> None:
    """Update configuration fields with the provided values."""

    payload: dict[str, object] = {}
    if extensions:
        payload["supported_extensions"] = extensions
    if dedupe_rescans is not None:
        payload["dedupe_rescans"] = dedupe_rescans
    if batch_size is not None:
        payload["default_batch_size"] = batch_size
    if delay_seconds is not None:
        payload["default_delay_seconds"] = delay_seconds

    if not payload:
        typer.echo("No updates supplied.")
        raise typer.Exit(code=1)

    with create_client(api_base) as client:
        response = client.put("/config", json=payload)
        _fail_on_error(response)
        _echo_json(response)


@platforms_app.command("list")
def list_platforms(api_base: str = _api_base_option()) -> None:
    """Display every platform games can be assigned to."""

    with create_client(api_base) as client:
        response = client.get("/platforms")
        response.raise_for_status()
        _echo_json(response)


@scan_app.command("directory")
def scan_directory(
    directory_path: str = typer.Argument(..., help="Root directory to scan."),
    server_location: str = typer.Option(..., help="Label of the storage location being scanned."),
    platform_id: int = typer.Option(..., min=1, help="Platform assigned to discovered games."),
    recursive: bool = typer.Option(
        False,
        "--recursive/--no-recursive",
        help="Descend into subdirectories.",
        show_default=True,
    ),
    api_base: str = _api_base_option(),
) -> None:
    """Scan a directory and link supported files to the catalog."""

    payload = {
        "directory_path": directory_path,
        "server_location": server_location,
        "platform_id": platform_id,
        "recursive": recursive,
    }
    # Hashing large libraries can take minutes.
    with create_client(api_base, timeout=None) as client:
        response = client.post("/scan/directory", json=payload)
        _fail_on_error(response)
        _echo_json(response)


@scan_app.command("duplicates")
def scan_duplicates(api_base: str = _api_base_option()) -> None:
    """Display file locations that share a content hash."""

    with create_client(api_base) as client:
        response = client.get("/scan/duplicates")
        response.raise_for_status()
        _echo_json(response)


@scan_app.command("metadata-batch")
def scan_metadata_batch(
    game_ids: Optional[List[int]] = typer.Option(
        None,
        "--game-id",
        help="Game to enrich (repeat the flag); defaults to every game missing metadata.",
    ),
    batch_size: Optional[int] = typer.Option(None, min=1, max=100, help="Games per batch."),
    delay_seconds: Optional[int] = typer.Option(
        None, min=0, max=3600, help="Pause between batches in seconds."
    ),
    api_base: str = _api_base_option(),
) -> None:
    """Queue a throttled metadata backfill."""

    payload: dict[str, object] = {}
    if game_ids:
        payload["game_ids"] = game_ids
    if batch_size is not None:
        payload["batch_size"] = batch_size
    if delay_seconds is not None:
        payload["delay_seconds"] = delay_seconds

    with create_client(api_base) as client:
        response = client.post("/scan/metadata-batch", json=payload)
        _fail_on_error(response)
        _echo_json(response)


@games_app.command("list")
def list_games(
    page: int = typer.Option(1, min=1, help="Page number starting at 1."),
    page_size: int = typer.Option(25, min=1, max=100, help="Number of games per page."),
    query: Optional[str] = typer.Option(None, help="Optional title search term."),
    platform_id: Optional[int] = typer.Option(None, min=1, help="Filter by platform."),
    missing_metadata: Optional[bool] = typer.Option(
        None,
        "--missing-metadata/--has-metadata",
        help="Filter by presence of a description and cover art.",
        show_default=False,
    ),
    sort: GameSort = typer.Option(
        GameSort.updated_desc,
        help="Sort ordering applied to results.",
        show_default=True,
    ),
    api_base: str = _api_base_option(),
) -> None:
    """Display catalog entries returned by the API."""

    params: dict[str, object] = {"page": page, "page_size": page_size, "sort": sort.value}
    if query:
        params["query"] = query
    if platform_id is not None:
        params["platform_id"] = platform_id
    if missing_metadata is not None:
        params["missing_metadata"] = missing_metadata

    with create_client(api_base) as client:
        response = client.get("/games", params=params)
        response.raise_for_status()
        _echo_json(response)


@games_app.command("show")
def show_game(
    game_id: int = typer.Argument(..., help="Identifier of the game to display."),
    api_base: str = _api_base_option(),
) -> None:
    """Display a single game with its file locations."""

    with create_client(api_base) as client:
        response = client.get(f"/games/{game_id}")
        _fail_on_error(response, not_found="Game not found")
        _echo_json(response)


@games_app.command("metrics")
def game_metrics(api_base: str = _api_base_option()) -> None:
    """Display aggregate catalog statistics."""

    with create_client(api_base) as client:
        response = client.get("/games/metrics")
        response.raise_for_status()
        _echo_json(response)


@games_app.command("fetch-metadata")
def fetch_game_metadata(
    game_id: int = typer.Argument(..., help="Identifier of the game to enrich."),
    api_base: str = _api_base_option(),
) -> None:
    """Fetch metadata for one game right away."""

    with create_client(api_base, timeout=60.0) as client:
        response = client.post(f"/games/{game_id}/fetch-metadata")
        _fail_on_error(response)
        _echo_json(response)


@metadata_app.command("search")
def search_metadata(
    title: str = typer.Argument(..., help="Game title to look up."),
    platform: Optional[str] = typer.Option(None, help="Optional platform name to scope the search."),
    api_base: str = _api_base_option(),
) -> None:
    """Display provider candidates for a title."""

    payload: dict[str, object] = {"title": title}
    if platform:
        payload["platform"] = platform

    with create_client(api_base, timeout=60.0) as client:
        response = client.post("/metadata/search", json=payload)
        _fail_on_error(response)
        _echo_json(response)


@jobs_app.command("list")
def list_jobs(
    limit: int = typer.Option(10, min=1, max=100, help="Number of recent jobs to display."),
    statuses: Optional[List[str]] = typer.Option(
        None,
        "--status",
        help="Filter results to specific job statuses (repeat the flag).",
    ),
    job_type: Optional[str] = typer.Option(
        None,
        "--type",
        help="Filter results to a specific job type.",
    ),
    api_base: str = _api_base_option(),
) -> None:
    """Display recent jobs."""

    params: dict[str, object] = {"limit": limit}
    if statuses:
        normalized_statuses: list[str] = []
        for status in statuses:
            value = status.lower()
            if value not in JOB_STATUS_CHOICES:
                typer.echo(
                    "Invalid status value. Allowed values: "
                    + ", ".join(sorted(JOB_STATUS_CHOICES)),
                    err=True,
                )
                raise typer.Exit(code=1)
            normalized_statuses.append(value)
        params["status"] = normalized_statuses
    if job_type:
        params["type"] = job_type

    with create_client(api_base) as client:
        response = client.get("/jobs", params=params)
        response.raise_for_status()
        _echo_json(response)


@jobs_app.command("metrics")
def job_metrics(api_base: str = _api_base_option()) -> None:
    """Display job aggregates and the current queue depth."""

    with create_client(api_base) as client:
        response = client.get("/jobs/metrics")
        response.raise_for_status()
        _echo_json(response)


@jobs_app.command("show")
def show_job(
    job_id: str = typer.Argument(..., help="Identifier of the job to display."),
    api_base: str = _api_base_option(),
) -> None:
    """Display details for a single job."""

    with create_client(api_base) as client:
        response = client.get(f"/jobs/{job_id}")
        _fail_on_error(response, not_found="Job not found")
        _echo_json(response)


@jobs_app.command("logs")
def job_logs(
    job_id: str = typer.Argument(..., help="Identifier of the job to inspect."),
    limit: int = typer.Option(50, min=1, max=500, help="Maximum number of log entries."),
    api_base: str = _api_base_option(),
) -> None:
    """Display persisted log events for a job."""

    params = {"limit": limit}
    with create_client(api_base) as client:
        response = client.get(f"/jobs/{job_id}/logs", params=params)
        _fail_on_error(response, not_found="Job not found")
        _echo_json(response)
