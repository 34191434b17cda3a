"""Command-line interface for the markblocks conversion and sync tool."""

from __future__ import annotations

import json
import logging
from collections import Counter
from pathlib import Path
from typing import Callable, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .blocks.models import BlockType, Document
from .config import MarkblocksConfig, ensure_config
from .local.repository import LocalRepository
from .storage.client import StorageApiError, create_client
from .sync.converters import ContentConverter
from .sync.service import SyncResult, SyncService

app = typer.Typer(help="Convert Markdown pages to editor blocks and sync them with the content store.")
console = Console()


def _configure_logging(verbose: bool) -> None:
    logger = logging.getLogger("markblocks")
    handler = RichHandler(console=Console(stderr=True), show_path=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.handlers = [handler]
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


def _build_service(
    config: MarkblocksConfig,
    *,
    workspace: Path,
) -> tuple[SyncService, Callable[[], None]]:
    workspace = workspace.resolve()
    converter = ContentConverter()
    repository = LocalRepository(workspace, converter=converter)
    client = create_client(base_url=str(config.storage.base_url), timeout=config.storage.timeout)
    service = SyncService(client, repository)

    def _cleanup() -> None:
        client.close()

    return service, _cleanup


def _format_result(result: SyncResult, *, action: str) -> None:
    table = Table(title=f"Markdown {action.title()} Summary")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Processed pages", str(result.processed_pages))
    table.add_row("Created pages", str(result.created_pages))
    table.add_row("Updated pages", str(result.updated_pages))
    console.print(table)


def _read_text(path: Path) -> str:
    if not path.exists():
        raise typer.BadParameter(f"{path} does not exist")
    return path.read_text(encoding="utf-8")


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to a configuration TOML file",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    _configure_logging(verbose)
    ctx.obj = {"config_path": config_path}


def _resolve_config(
    ctx: typer.Context,
    *,
    base_url: Optional[str],
    content_id: Optional[str],
    workspace: Optional[Path],
) -> tuple[MarkblocksConfig, Optional[str], Path]:
    config_path: Optional[Path] = ctx.obj.get("config_path") if ctx.obj else None
    try:
        config = ensure_config(
            base_url=base_url,
            content_id=content_id,
            workspace=workspace,
            config_path=config_path,
        )
    except RuntimeError as exc:
        raise typer.BadParameter(str(exc)) from exc
    defaults = config.defaults
    return config, defaults.content_id, defaults.workspace or Path.cwd()


# ----------------------------------------------------------------------
# Conversion commands
# ----------------------------------------------------------------------
@app.command()
def parse(
    source: Path = typer.Argument(..., help="Markdown file to convert"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write block JSON here instead of stdout"),
) -> None:
    """Convert a Markdown file into block JSON."""

    document = ContentConverter().markdown_to_document(_read_text(source))
    payload = json.dumps(document.to_dict(), ensure_ascii=False, indent=2)
    if output:
        output.write_text(payload + "\n", encoding="utf-8")
        console.print(f"Wrote {len(document)} block(s) to [bold]{output}[/bold].")
    else:
        typer.echo(payload)


@app.command()
def render(
    source: Path = typer.Argument(..., help="Block JSON file to convert"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write Markdown here instead of stdout"),
) -> None:
    """Convert block JSON back into Markdown."""

    try:
        data = json.loads(_read_text(source))
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"{source} is not valid JSON: {exc}") from exc
    markdown = ContentConverter().document_to_markdown(Document.from_dict(data))
    if output:
        output.write_text(markdown, encoding="utf-8")
        console.print(f"Wrote Markdown to [bold]{output}[/bold].")
    else:
        typer.echo(markdown)


@app.command()
def check(source: Path = typer.Argument(..., help="Markdown file to inspect")) -> None:
    """Report whether a Markdown file survives an editor save unchanged."""

    converter = ContentConverter()
    markdown = _read_text(source)
    document = converter.markdown_to_document(markdown)
    normalized = converter.document_to_markdown(document)

    counts = Counter(block.type.value if isinstance(block.type, BlockType) else block.type for block in document.walk())
    table = Table(title=f"Blocks in {source.name}")
    table.add_column("Type")
    table.add_column("Count", justify="right")
    for block_type, count in sorted(counts.items()):
        table.add_row(block_type, str(count))
    console.print(table)

    if normalized == markdown:
        console.print("[green]Stable:[/green] saving from the editors keeps this file byte-identical.")
        return
    stable = converter.normalize_markdown(normalized) == normalized
    console.print("[yellow]Normalized:[/yellow] the first save rewrites this file.")
    if not stable:
        console.print("[red]Unstable:[/red] repeated saves keep changing the output.")
        raise typer.Exit(code=1)


# ----------------------------------------------------------------------
# Storage commands
# ----------------------------------------------------------------------
@app.command()
def pages(
    ctx: typer.Context,
    content_id: Optional[str] = typer.Option(None, "--content", help="Content space id"),
    base_url: Optional[str] = typer.Option(None, help="Base URL of the storage API"),
) -> None:
    """List the markdown pages stored for a content space."""

    config, resolved_content, workspace = _resolve_config(ctx, base_url=base_url, content_id=content_id, workspace=None)
    service, cleanup = _build_service(config, workspace=workspace)
    try:
        remote_pages = service.client.list_markdown_pages(resolved_content)
    except StorageApiError as exc:
        raise typer.BadParameter(str(exc)) from exc
    finally:
        cleanup()

    table = Table(title="Markdown Pages")
    table.add_column("ID")
    table.add_column("Slug")
    table.add_column("Title")
    table.add_column("Status")
    table.add_column("Version", justify="right")
    for page in remote_pages:
        table.add_row(page.id, page.slug, page.title, page.status, str(page.version or ""))
    console.print(table)


@app.command()
def pull(
    ctx: typer.Context,
    workspace: Optional[Path] = typer.Option(None, "--workspace", "-w", help="Directory receiving the page files"),
    content_id: Optional[str] = typer.Option(None, "--content", help="Content space id"),
    base_url: Optional[str] = typer.Option(None, help="Base URL of the storage API"),
) -> None:
    """Download the markdown pages of a content space into a local workspace."""

    config, resolved_content, resolved_workspace = _resolve_config(
        ctx, base_url=base_url, content_id=content_id, workspace=workspace
    )
    service, cleanup = _build_service(config, workspace=resolved_workspace)
    try:
        result = service.pull(content_id=resolved_content)
    except StorageApiError as exc:
        raise typer.BadParameter(str(exc)) from exc
    finally:
        cleanup()

    console.print(f"Downloaded pages into [bold]{resolved_workspace}[/bold].")
    _format_result(result, action="pull")


@app.command()
def push(
    ctx: typer.Context,
    workspace: Optional[Path] = typer.Option(None, "--workspace", "-w", help="Workspace directory holding page files"),
    content_id: Optional[str] = typer.Option(None, "--content", help="Content space id for new pages"),
    base_url: Optional[str] = typer.Option(None, help="Base URL of the storage API"),
) -> None:
    """Upload local page files, creating or updating pages as needed."""

    config, resolved_content, resolved_workspace = _resolve_config(
        ctx, base_url=base_url, content_id=content_id, workspace=workspace
    )
    if not resolved_workspace.exists():
        raise typer.BadParameter(f"Workspace directory {resolved_workspace} does not exist")

    service, cleanup = _build_service(config, workspace=resolved_workspace)
    try:
        result = service.push(content_id=resolved_content)
    except StorageApiError as exc:
        raise typer.BadParameter(str(exc)) from exc
    finally:
        cleanup()

    console.print("Upload completed successfully.")
    _format_result(result, action="push")


@app.command()
def init(
    directory: Path = typer.Option(
        Path.cwd(),
        "--directory",
        "-d",
        help="Workspace directory that will hold the page",
    ),
    title: str = typer.Option(..., "--title", "-t", help="Title of the new page"),
    content_id: Optional[str] = typer.Option(None, "--content", help="Content space the page belongs to"),
) -> None:
    """Create a new local page file ready to be pushed."""

    repository = LocalRepository(directory.resolve(), converter=ContentConverter())
    page = repository.create_page(title, body=f"# {title}\n\nStart editing your content here.", content_id=content_id)
    console.print(f"Created [bold]{page.path}[/bold].")


def run() -> None:
    """Entry point for console scripts."""

    app()


if __name__ == "__main__":  # pragma: no cover
    run()
