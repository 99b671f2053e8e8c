"""CLI commands for autonews using Typer and Rich.

Implements the operator commands:
- create: Create a job and run it to completion
- process: Run an existing pending job
- status: Show detailed job information
- list: List jobs in a table
- sync: Run one news sync cycle
- health: Show external service status
- serve: Start the API server
"""

import asyncio
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from autonews import validate_dependencies
from autonews.config import settings
from autonews.db import init_database, shutdown
from autonews.errors import JobValidationError
from autonews.orchestrator.pipeline import PipelineRunResult
from autonews.orchestrator.state import COMPLETED, FAILED, PENDING, RUNNING
from autonews.schemas.jobs import JobSpec
from autonews.services.adapters import check_services
from autonews.services.container import Services

app = typer.Typer(name="autonews", help="Turn news topics into narrated summary videos")
console = Console()


def _build_services() -> Services:
    return Services.build(settings)


async def _run_with_status(services: Services, job_id: str, label: str) -> PipelineRunResult:
    with console.status(f"[bold green]{label}") as status:
        def callback_wrapper(message: str, progress: int):
            status.update(f"[bold green]{message} ({progress}%)")

        return await services.pipeline.process(job_id, progress_callback=callback_wrapper)


def _print_result(result: PipelineRunResult) -> None:
    if not result.claimed:
        console.print(f"[yellow]Job {result.job_id} was not pending (status: {result.status})[/yellow]")
        raise typer.Exit(code=1)

    if result.status == COMPLETED:
        console.print(f"[green]✓[/green] Job {result.job_id} completed in {result.total_seconds:.1f}s")
        for stage, seconds in result.timings.items():
            console.print(f"  [dim]{stage}: {seconds:.2f}s[/dim]")
        if result.publication:
            console.print(f"[green]Published:[/green] {result.publication.public_url}")
        if result.publish_error:
            console.print(f"[yellow]Publish failed:[/yellow] {result.publish_error}")
        return

    console.print(f"[red]✗ Job failed:[/red] {result.error}")
    raise typer.Exit(code=1)


@app.command()
def create(
    topic: str = typer.Argument(..., help="News topic to search for"),
    language: str = typer.Option("en", "--language", "-l", help="Article and narration language"),
    target_length: int = typer.Option(150, "--target-length", "-t", help="Summary length (50-1000)"),
    auto_publish: bool = typer.Option(False, "--publish/--no-publish", help="Upload to YouTube when done"),
):
    """Create a job and run the full pipeline in the foreground."""
    try:
        spec = JobSpec.from_input({
            "topic": topic,
            "language": language,
            "target_length": target_length,
            "auto_publish": auto_publish,
        })
    except JobValidationError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)

    validate_dependencies(settings)
    asyncio.run(_create_async(spec))


async def _create_async(spec: JobSpec):
    """Async implementation of create command."""
    await init_database()
    services = _build_services()
    try:
        job = await services.store.create(spec)
        console.print(f"[green]Created job:[/green] {job.id}")
        console.print()
        result = await _run_with_status(services, str(job.id), "Starting pipeline...")
        _print_result(result)
    finally:
        await services.aclose()
        await shutdown()


@app.command()
def process(
    job_id: str = typer.Argument(..., help="Job UUID to process"),
):
    """Run a pending job to completion."""
    validate_dependencies(settings)
    asyncio.run(_process_async(job_id))


async def _process_async(job_id: str):
    """Async implementation of process command."""
    await init_database()
    services = _build_services()
    try:
        job = await services.store.get(job_id)
        if job is None:
            console.print(f"[red]Error:[/red] Job not found: {job_id}")
            raise typer.Exit(code=1)
        result = await _run_with_status(services, job_id, "Processing job...")
        _print_result(result)
    finally:
        await services.aclose()
        await shutdown()


@app.command()
def status(
    job_id: str = typer.Argument(..., help="Job UUID"),
):
    """Show detailed job status and artifacts."""
    asyncio.run(_status_async(job_id))


async def _status_async(job_id: str):
    """Async implementation of status command."""
    await init_database()
    services = _build_services()
    try:
        job = await services.store.get(job_id)
        if job is None:
            console.print(f"[red]Error:[/red] Job not found: {job_id}")
            raise typer.Exit(code=1)
        artifacts = await services.store.get_artifacts(job_id)

        status_color = _get_status_color(job.status)
        info_lines = [
            f"[bold]ID:[/bold] {job.id}",
            f"[bold]Topic:[/bold] {job.topic}",
            f"[bold]Status:[/bold] [{status_color}]{job.status}[/{status_color}]",
            f"[bold]Progress:[/bold] {job.progress}%",
            f"[bold]Language:[/bold] {job.language}",
            f"[bold]Target Length:[/bold] {job.target_length}",
            f"[bold]Auto Publish:[/bold] {'yes' if job.auto_publish else 'no'}",
            f"[bold]Created:[/bold] {job.created_at.strftime('%Y-%m-%d %H:%M:%S')}",
            f"[bold]Updated:[/bold] {job.updated_at.strftime('%Y-%m-%d %H:%M:%S')}",
        ]

        article = artifacts["articles"]
        if article:
            info_lines.append(f"[bold]Article:[/bold] {article.title}")
        summary = artifacts["summaries"]
        if summary:
            info_lines.append(f"[bold]Summary:[/bold] {summary.word_count} words")
        audio = artifacts["audio"]
        if audio:
            info_lines.append(f"[bold]Audio:[/bold] {audio.duration:.1f}s {audio.format}")
        video = artifacts["videos"]
        if video:
            info_lines.append(f"[bold]Video:[/bold] [green]{video.url_mp4}[/green]")

        if job.publication:
            info_lines.append(f"[bold]Published:[/bold] [green]{job.publication['public_url']}[/green]")
        if job.publish_error:
            info_lines.append(f"[bold]Publish Error:[/bold] [yellow]{job.publish_error}[/yellow]")
        if job.status == FAILED and job.error_message:
            info_lines.append(f"[bold]Error:[/bold] [red]{job.error_message}[/red]")

        console.print(Panel("\n".join(info_lines), title="[bold]Job Status[/bold]", border_style="blue"))
    finally:
        await services.aclose()
        await shutdown()


@app.command(name="list")
def list_jobs(
    page: int = typer.Option(1, "--page", "-p", help="Page number"),
    limit: int = typer.Option(20, "--limit", "-n", help="Jobs per page"),
    status_filter: Optional[str] = typer.Option(None, "--status", "-s", help="Only jobs with this status"),
    topic: Optional[str] = typer.Option(None, "--topic", help="Topic substring filter"),
):
    """List jobs, newest first."""
    asyncio.run(_list_async(page, limit, status_filter, topic))


async def _list_async(page: int, limit: int, status_filter: Optional[str], topic: Optional[str]):
    """Async implementation of list command."""
    await init_database()
    services = _build_services()
    try:
        jobs = await services.store.list(
            page=page, limit=limit, filters={"status": status_filter, "topic": topic}
        )
        if not jobs:
            console.print("[yellow]No jobs found[/yellow]")
            return

        table = Table(show_header=True, header_style="bold blue")
        table.add_column("ID", style="dim")
        table.add_column("Topic")
        table.add_column("Status")
        table.add_column("Progress", justify="right")
        table.add_column("Created")

        for job in jobs:
            topic_display = job.topic if len(job.topic) <= 40 else job.topic[:37] + "..."
            status_color = _get_status_color(job.status)
            table.add_row(
                str(job.id)[:8] + "...",
                topic_display,
                f"[{status_color}]{job.status}[/{status_color}]",
                f"{job.progress}%",
                job.created_at.strftime("%Y-%m-%d %H:%M"),
            )

        console.print(table)
    finally:
        await services.aclose()
        await shutdown()


@app.command()
def sync():
    """Run one news sync cycle and wait for the job it creates."""
    validate_dependencies(settings)
    asyncio.run(_sync_async())


async def _sync_async():
    """Async implementation of sync command."""
    await init_database()
    services = _build_services()
    try:
        job_id = await services.controller.trigger_now()
        if job_id is None:
            console.print(f"[red]✗ News sync failed:[/red] {services.controller.stats.last_error}")
            raise typer.Exit(code=1)
        console.print(f"[green]Created job:[/green] {job_id}")
        with console.status("[bold green]Processing synced job..."):
            await services.executor.drain()
        job = await services.store.require(job_id)
        status_color = _get_status_color(job.status)
        console.print(f"Job {job_id}: [{status_color}]{job.status}[/{status_color}]")
        if job.status == FAILED:
            console.print(f"[red]Error:[/red] {job.error_message}")
            raise typer.Exit(code=1)
    finally:
        await services.aclose()
        await shutdown()


@app.command()
def health():
    """Show the status of every external service."""
    asyncio.run(_health_async())


async def _health_async():
    """Async implementation of health command."""
    services = _build_services()
    try:
        statuses = await check_services(services.adapters)
    finally:
        await services.adapters.aclose()

    table = Table(show_header=True, header_style="bold blue")
    table.add_column("Service")
    table.add_column("Status")
    table.add_column("Message", style="dim")
    colors = {"operational": "green", "degraded": "yellow", "down": "red"}
    for name, service_status in statuses.items():
        color = colors.get(service_status.status, "white")
        table.add_row(name, f"[{color}]{service_status.status}[/{color}]", service_status.message or "")
    console.print(table)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address"),
    port: Optional[int] = typer.Option(None, "--port", help="Bind port"),
):
    """Start the API server (automation starts with it when enabled)."""
    import uvicorn

    uvicorn.run(
        "autonews.api.app:app",
        host=host or settings.server.host,
        port=port or settings.server.port,
        reload=False,
    )


def _get_status_color(status: str) -> str:
    """Get Rich color for a job status.

    Color coding:
    - completed: green
    - failed: red
    - running: yellow
    - pending: dim
    """
    if status == COMPLETED:
        return "green"
    elif status == FAILED:
        return "red"
    elif status == RUNNING:
        return "yellow"
    elif status == PENDING:
        return "dim"
    else:
        return "white"
