"""Main CLI entry point for the cms-sync command.

This module provides the Typer application that serves as the entry point
for the cms-sync command-line tool: saving and loading page and globals
documents, batch commits, publishing the draft branch and cache upkeep.
"""

import asyncio
import json
import logging
import os
import sys
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Optional

import typer

from src.cli.errors import ConfigNotFoundError, InputFileError, exit_code_for
from src.cli.models import ExitCode
from src.cli.output import OutputHandler
from src.content_cache import FileContentCache, SqliteContentCache
from src.hosting_client import sanitize_credentials
from src.hosting_client.errors import SyncError
from src.models import ChangeSet, PageChange
from src.storage import (
    DEFAULT_CONFIG_PATH,
    ConfigLoader,
    RemoteBackend,
    StorageAdapter,
    StorageMode,
    SyncConfig,
    build_storage_adapter,
)
from src.sync import PageLoader, SyncOrchestrator

app = typer.Typer(
    name="cms-sync",
    help="""Save, load and publish CMS content stored in a hosted git repository.

QUICK START:
  cms-sync pages                          # List editable pages
  cms-sync load index > index.json        # Fetch the staged copy of a page
  cms-sync save index index.json          # Save it to the draft branch
  cms-sync publish                        # Merge the draft branch into the default branch""",
    add_completion=False,
    rich_markup_mode=None,
    no_args_is_help=True,
)

# Module logger
logger = logging.getLogger(__name__)

DRAFTS_DB_NAME = "drafts.db"


@dataclass
class CLIState:
    """Options shared by every command."""
    config_path: str
    token: Optional[str]
    output: OutputHandler


def _configure_logging(verbosity: int, logdir: Optional[str] = None) -> None:
    """Configure logging based on verbosity level.

    Configures only the 'src' namespace logger to avoid affecting third-party
    libraries. The root logger is left unchanged.

    Args:
        verbosity: Verbosity level (0=WARNING, 1=INFO, 2=DEBUG)
        logdir: Optional directory for log files (creates timestamped log file)
    """
    if verbosity == 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    app_logger = logging.getLogger("src")
    app_logger.setLevel(level)
    app_logger.handlers.clear()

    date_format = "%Y-%m-%d %H:%M:%S"
    formatter = logging.Formatter("%(asctime)s [%(levelname)8s] %(message)s", datefmt=date_format)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    app_logger.addHandler(console_handler)

    if logdir:
        log_path = Path(logdir)
        log_path.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = log_path / f"cms-sync_{timestamp}.log"

        file_formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt=date_format
        )
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(file_formatter)
        app_logger.addHandler(file_handler)

        logger.info(f"Logging to file: {log_file}")


class Workspace:
    """Configuration and the objects built from it, created once per command."""

    def __init__(self, state: CLIState):
        if not os.path.exists(state.config_path):
            raise ConfigNotFoundError(state.config_path)
        self.config: SyncConfig = ConfigLoader.load(state.config_path)
        self.adapter: StorageAdapter = build_storage_adapter(self.config, token=state.token)
        self.cache = FileContentCache(self.config.cache_dir)
        self.loader = PageLoader(self.adapter, self.cache, _fingerprint(self.adapter))

    @property
    def drafts_path(self) -> Path:
        return Path(self.config.cache_dir) / DRAFTS_DB_NAME


def _fingerprint(adapter: StorageAdapter) -> Optional[Callable[[], str]]:
    """Commit fingerprint source, production mode only.

    Local files change without commits, so in development mode the cache is
    bypassed rather than keyed on a remote sha.
    """
    if isinstance(adapter.backend, RemoteBackend):
        return adapter.backend.client.get_latest_commit_sha
    return None


def _run(ctx: typer.Context, action: Callable[[Workspace, OutputHandler], Optional[ExitCode]]) -> None:
    """Run a command body, mapping errors to exit codes."""
    state: CLIState = ctx.obj
    output = state.output
    try:
        workspace = Workspace(state)
        exit_code = action(workspace, output) or ExitCode.SUCCESS
    except typer.Exit:
        raise
    except SyncError as e:
        message = sanitize_credentials(str(e))
        logger.error(message)
        output.error(message)
        raise typer.Exit(exit_code_for(e))
    except Exception as e:
        logger.exception("Unexpected error")
        output.error(f"Unexpected error: {sanitize_credentials(str(e))}")
        raise typer.Exit(ExitCode.GENERAL_ERROR)
    raise typer.Exit(exit_code)


def _read_json(file_path: str) -> Any:
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except FileNotFoundError:
        raise InputFileError(file_path, "file not found")
    except json.JSONDecodeError as e:
        raise InputFileError(file_path, f"invalid JSON: {e}")
    except OSError as e:
        raise InputFileError(file_path, str(e))


def _echo_document(document: Any) -> None:
    typer.echo(json.dumps(document, indent=2, ensure_ascii=False))


def parse_manifest(manifest: Any, file_path: str = "manifest") -> ChangeSet:
    """Build a ChangeSet from a batch manifest.

    Manifest shape:
        {"pages": [{"id": "index", "data": {...}}, ...], "globals": {...}}

    "pageName" is accepted for "id" and "document" for "data".

    Raises:
        InputFileError: If the manifest is malformed or repeats a page id
    """
    if not isinstance(manifest, dict):
        raise InputFileError(file_path, "manifest must be a JSON object")
    pages_raw = manifest.get('pages', [])
    if not isinstance(pages_raw, list):
        raise InputFileError(file_path, "'pages' must be a list")

    pages = []
    for i, item in enumerate(pages_raw):
        if not isinstance(item, dict):
            raise InputFileError(file_path, f"pages[{i}] must be an object")
        page_id = item.get('id', item.get('pageName'))
        document = item.get('data', item.get('document'))
        if not isinstance(page_id, str) or document is None:
            raise InputFileError(file_path, f"pages[{i}] needs an id and data")
        pages.append(PageChange(id=page_id, document=document))

    try:
        return ChangeSet(pages=pages, globals=manifest.get('globals'))
    except ValueError as e:
        raise InputFileError(file_path, str(e))


async def _pending_drafts(db_path: Path) -> Optional[ChangeSet]:
    async with SqliteContentCache(db_path) as drafts:
        return await drafts.pending_changeset()


async def _clear_drafts(db_path: Path) -> None:
    async with SqliteContentCache(db_path) as drafts:
        await drafts.clear_all_drafts()


async def _queue_page_draft(db_path: Path, page_id: str, document: Any) -> None:
    async with SqliteContentCache(db_path) as drafts:
        await drafts.save_page_draft(page_id, document)


@app.callback()
def main_callback(
    ctx: typer.Context,
    config: str = typer.Option(
        DEFAULT_CONFIG_PATH,
        "--config",
        "-c",
        help="Path to the configuration file",
    ),
    token: Optional[str] = typer.Option(
        None,
        "--token",
        help="Bearer token for the hosting API (defaults to GITHUB_TOKEN)",
    ),
    logdir: Optional[str] = typer.Option(
        None,
        "--logdir",
        help="Directory for log files (creates timestamped log file)",
    ),
    verbosity: int = typer.Option(
        0,
        "--verbosity",
        "-v",
        help="Verbosity level: 0=summary, 1=info, 2=debug",
    ),
    no_color: bool = typer.Option(
        False,
        "--no-color",
        help="Disable colored output",
    ),
) -> None:
    """Save, load and publish CMS content stored in a hosted git repository."""
    _configure_logging(verbosity, logdir)
    ctx.obj = CLIState(
        config_path=config,
        token=token,
        output=OutputHandler(verbosity=verbosity, no_color=no_color),
    )


@app.command("save")
def save_command(
    ctx: typer.Context,
    page: str = typer.Argument(..., help="Page id (e.g. index, about-us)"),
    file: str = typer.Argument(..., help="JSON file holding the page document"),
    message: Optional[str] = typer.Option(None, "--message", "-m", help="Commit message"),
) -> None:
    """Save a page document."""
    def action(workspace: Workspace, output: OutputHandler) -> None:
        document = _read_json(file)
        with output.spinner(f"Saving {page}..."):
            result = workspace.loader.save_page(page, document, message)
        output.success(f"Saved {page} to {result.path}")
        if result.mirrored is False:
            output.warning("Could not mirror the save to the draft branch (local file kept)")

    _run(ctx, action)


@app.command("load")
def load_command(
    ctx: typer.Context,
    page: str = typer.Argument(..., help="Page id"),
) -> None:
    """Print the staged copy of a page as JSON."""
    def action(workspace: Workspace, output: OutputHandler) -> Optional[ExitCode]:
        document = workspace.loader.load_page(page)
        if document is None:
            output.error(f"Page {page} not found")
            return ExitCode.GENERAL_ERROR
        _echo_document(document)
        return None

    _run(ctx, action)


@app.command("globals-save")
def globals_save_command(
    ctx: typer.Context,
    file: str = typer.Argument(..., help="JSON file holding the globals document"),
    message: Optional[str] = typer.Option(None, "--message", "-m", help="Commit message"),
) -> None:
    """Save the global-variables document."""
    def action(workspace: Workspace, output: OutputHandler) -> None:
        document = _read_json(file)
        with output.spinner("Saving globals..."):
            result = workspace.loader.save_globals(document, message)
        output.success(f"Saved globals to {result.path}")
        if result.mirrored is False:
            output.warning("Could not mirror the save to the draft branch (local file kept)")

    _run(ctx, action)


@app.command("globals-load")
def globals_load_command(ctx: typer.Context) -> None:
    """Print the global-variables document as JSON."""
    def action(workspace: Workspace, output: OutputHandler) -> Optional[ExitCode]:
        document = workspace.loader.load_globals()
        if document is None:
            output.error("Globals document not found")
            return ExitCode.GENERAL_ERROR
        _echo_document(document)
        return None

    _run(ctx, action)


@app.command("draft")
def draft_command(
    ctx: typer.Context,
    page: str = typer.Argument(..., help="Page id"),
    file: str = typer.Argument(..., help="JSON file holding the page document"),
) -> None:
    """Queue a page document locally for the next `batch --from-drafts`."""
    def action(workspace: Workspace, output: OutputHandler) -> None:
        document = _read_json(file)
        asyncio.run(_queue_page_draft(workspace.drafts_path, page, document))
        output.success(f"Queued draft for {page}")

    _run(ctx, action)


@app.command("batch")
def batch_command(
    ctx: typer.Context,
    manifest: Optional[str] = typer.Argument(None, help="JSON manifest of pages and globals"),
    message: str = typer.Option(..., "--message", "-m", help="Commit message"),
    from_drafts: bool = typer.Option(
        False,
        "--from-drafts",
        help="Commit the locally queued drafts instead of a manifest",
    ),
) -> None:
    """Commit several pages (and optionally globals) as one editorial operation."""
    def action(workspace: Workspace, output: OutputHandler) -> Optional[ExitCode]:
        if from_drafts == (manifest is not None):
            output.error("Give either a manifest or --from-drafts")
            return ExitCode.GENERAL_ERROR

        if from_drafts:
            changeset = asyncio.run(_pending_drafts(workspace.drafts_path)) or ChangeSet()
        else:
            changeset = parse_manifest(_read_json(manifest), manifest)

        result = SyncOrchestrator(workspace.adapter).batch_commit(changeset, message)
        output.print_batch_summary(result)

        if not result.success:
            return ExitCode.GENERAL_ERROR
        if from_drafts and not changeset.is_empty:
            asyncio.run(_clear_drafts(workspace.drafts_path))
        if workspace.adapter.mode is StorageMode.PRODUCTION:
            workspace.cache.invalidate_all()
        return None

    _run(ctx, action)


@app.command("status")
def status_command(ctx: typer.Context) -> None:
    """Show the storage mode and whether the draft branch has unpublished edits."""
    def action(workspace: Workspace, output: OutputHandler) -> None:
        adapter = workspace.adapter
        draft_branch = (
            workspace.config.draft_branch
            if adapter.mode is StorageMode.PRODUCTION or adapter.mirror is not None
            else None
        )
        output.print_status(adapter.mode.value, draft_branch, adapter.has_unpublished_changes())

    _run(ctx, action)


@app.command("publish")
def publish_command(ctx: typer.Context) -> None:
    """Merge the draft branch into the default branch."""
    def action(workspace: Workspace, output: OutputHandler) -> None:
        if workspace.adapter.mode is StorageMode.DEVELOPMENT:
            output.print("Development mode: saves are already live, nothing to publish")
            return

        with output.spinner("Publishing..."):
            merge_sha = workspace.adapter.publish()
        if merge_sha:
            output.success(f"Published as {merge_sha[:8]}")
        else:
            output.success("Nothing to publish: default branch is up to date")

    _run(ctx, action)


@app.command("pages")
def pages_command(ctx: typer.Context) -> None:
    """List editable pages."""
    def action(workspace: Workspace, output: OutputHandler) -> None:
        output.print_pages(workspace.loader.list_pages())

    _run(ctx, action)


@app.command("cache-clear")
def cache_clear_command(ctx: typer.Context) -> None:
    """Remove every cached document and the cached commit fingerprint."""
    def action(workspace: Workspace, output: OutputHandler) -> None:
        workspace.cache.invalidate_all()
        output.success("Cache cleared")

    _run(ctx, action)


def main() -> None:
    """Main entry point for the CLI application."""
    app()


# Allow running as: python -m src.cli.main
if __name__ == "__main__":
    main()
