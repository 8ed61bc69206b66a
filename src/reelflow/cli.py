"""Command-line interface using Typer."""

import asyncio
import json
from typing import Optional
from uuid import UUID

import typer
from rich.console import Console
from rich.table import Table

from reelflow import __version__
from reelflow.domain.enums import JobState, JobType
from reelflow.logging import setup_logging

# Setup logging
setup_logging()

app = typer.Typer(
    name="reelflow",
    help="reelflow - job orchestration and publish scheduling for AI short videos",
    add_completion=False,
)

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"reelflow v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """reelflow - Generate, schedule and publish short-form videos."""
    pass


def _parse_uuid(value: str, label: str) -> UUID:
    try:
        return UUID(value)
    except ValueError:
        console.print(f"[bold red]Invalid {label}: {value}[/bold red]")
        raise typer.Exit(code=1)


def _fmt(value: object) -> str:
    if value is None:
        return "-"
    if hasattr(value, "strftime"):
        return value.strftime("%Y-%m-%d %H:%M")
    return str(value)


@app.command()
def version() -> None:
    """Show the installed version."""
    console.print(f"reelflow v{__version__}")


@app.command("init-db")
def init_db_command(
    create_tables: bool = typer.Option(
        True, "--create-tables/--check-only", help="Create missing tables from the ORM models"
    ),
) -> None:
    """Verify the database connection and create tables for local runs."""
    from reelflow.db.session import init_db

    try:
        init_db(create_tables=create_tables)
    except Exception as e:
        console.print(f"[bold red]Database error: {e}[/bold red]")
        raise typer.Exit(code=1)
    console.print("[bold green]✓ Database ready[/bold green]")


@app.command()
def worker(
    concurrency: Optional[int] = typer.Option(
        None, "--concurrency", "-c", help="Number of workers (defaults to settings)"
    ),
    celery: bool = typer.Option(False, "--celery", help="Start a Celery worker with beat instead"),
) -> None:
    """Run the worker pool until interrupted."""
    if celery:
        import subprocess
        import sys

        console.print("[bold blue]Starting Celery worker...[/bold blue]")
        subprocess.run(
            [sys.executable, "-m", "celery", "-A", "reelflow.worker", "worker", "--beat", "--loglevel=info"],
            check=True,
        )
        return

    from reelflow.jobs.processors import build_context
    from reelflow.jobs.runner import WorkerPool

    async def run() -> None:
        context = build_context()
        pool = WorkerPool(context.queue, context, concurrency=concurrency)
        try:
            await pool.run_forever()
        finally:
            await pool.stop()

    console.print("[bold blue]Starting worker pool...[/bold blue] [dim](Ctrl+C to stop)[/dim]")
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        console.print("[dim]Worker pool stopped[/dim]")


@app.command()
def scheduler(
    once: bool = typer.Option(False, "--once", help="Run both scans once and exit"),
) -> None:
    """Run the scheduler loop (due posts and publishing calendars)."""
    from reelflow.jobs.processors import build_context
    from reelflow.services.scheduler import SchedulerLoop

    context = build_context()
    loop = SchedulerLoop(context.scheduling, context.orchestrator, context.settings)

    if once:
        posts = asyncio.run(loop.scan_posts())
        calendars = context.scheduling.process_due_calendars()

        table = Table(title="Scheduler Scan")
        table.add_column("Scan", style="cyan")
        table.add_column("Counts")
        table.add_row("posts", ", ".join(f"{k}={v}" for k, v in posts.items()))
        table.add_row("calendars", ", ".join(f"{k}={v}" for k, v in calendars.items()))
        console.print(table)
        return

    async def run() -> None:
        loop.start()
        try:
            await asyncio.Event().wait()
        finally:
            await loop.stop()

    console.print("[bold blue]Starting scheduler...[/bold blue] [dim](Ctrl+C to stop)[/dim]")
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        console.print("[dim]Scheduler stopped[/dim]")


@app.command()
def enqueue(
    job_type: JobType = typer.Argument(..., help="Job type"),
    payload: str = typer.Option("{}", "--payload", "-p", help="JSON payload"),
    priority: int = typer.Option(0, "--priority", help="Higher runs sooner"),
    delay: float = typer.Option(0, "--delay", "-d", help="Seconds before the job is visible"),
    max_attempts: Optional[int] = typer.Option(None, "--max-attempts", help="Attempts before dead-lettering"),
) -> None:
    """Add a job to the queue."""
    from reelflow.services.job_queue import JobQueue

    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        console.print(f"[bold red]Invalid JSON payload: {e}[/bold red]")
        raise typer.Exit(code=1)
    if not isinstance(data, dict):
        console.print("[bold red]Payload must be a JSON object[/bold red]")
        raise typer.Exit(code=1)

    job_id = JobQueue().enqueue(
        job_type, data, priority=priority, delay=delay, max_attempts=max_attempts
    )
    console.print(f"[green]Job enqueued: {job_id}[/green]")


@app.command()
def status(
    job_id: str = typer.Argument(..., help="The job ID to check"),
) -> None:
    """Check the status of a job."""
    from reelflow.services.job_queue import JobQueue

    job = JobQueue().get(_parse_uuid(job_id, "job ID"))
    if job is None:
        console.print(f"[bold red]Job not found: {job_id}[/bold red]")
        raise typer.Exit(code=1)

    state_style = {
        JobState.COMPLETED: "green",
        JobState.DEAD: "red",
        JobState.CANCELLED: "dim",
    }.get(job.state, "yellow")

    table = Table(title=f"Job {job.id}", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Type", job.job_type.value)
    table.add_row("State", f"[{state_style}]{job.state.value}[/{state_style}]")
    table.add_row("Attempts", f"{job.attempts}/{job.max_attempts}")
    table.add_row("Priority", str(job.priority))
    table.add_row("Enqueued", _fmt(job.enqueued_at))
    table.add_row("Available", _fmt(job.available_at))
    table.add_row("Finished", _fmt(job.finished_at))
    table.add_row("Payload", json.dumps(job.payload)[:80])
    if job.last_error:
        table.add_row("Last error", f"[red]{job.last_error[:200]}[/red]")
    console.print(table)


@app.command()
def jobs(
    state: Optional[JobState] = typer.Option(None, "--state", "-s", help="Filter by state"),
    job_type: Optional[JobType] = typer.Option(None, "--type", "-t", help="Filter by job type"),
    limit: int = typer.Option(20, "--limit", "-n", help="Number of jobs to show"),
) -> None:
    """List recent jobs and queue statistics."""
    from reelflow.services.job_queue import JobQueue

    queue = JobQueue()
    found = queue.list_jobs(state=state, job_type=job_type, limit=limit)

    stats = queue.stats()
    console.print(" ".join(f"[cyan]{k}[/cyan]={v}" for k, v in stats.items()))

    if not found:
        console.print("[dim]No jobs found[/dim]")
        return

    table = Table(title="Jobs")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Type", style="cyan")
    table.add_column("State", style="green")
    table.add_column("Attempts")
    table.add_column("Priority")
    table.add_column("Enqueued")
    table.add_column("Error")

    for job in found:
        table.add_row(
            str(job.id)[:8] + "...",
            job.job_type.value,
            job.state.value,
            f"{job.attempts}/{job.max_attempts}",
            str(job.priority),
            _fmt(job.enqueued_at),
            (job.last_error or "")[:40],
        )

    console.print(table)


@app.command()
def due(
    limit: int = typer.Option(50, "--limit", "-n", help="Number of posts to show"),
) -> None:
    """List scheduled posts that are due for publishing."""
    from reelflow.jobs.processors import build_context

    posts = build_context().scheduling.list_due_posts(limit=limit)
    if not posts:
        console.print("[dim]No posts are due[/dim]")
        return

    table = Table(title="Due Scheduled Posts")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Video", style="cyan")
    table.add_column("Platforms")
    table.add_column("Scheduled")

    for post in posts:
        table.add_row(
            str(post["id"])[:8] + "...",
            str(post["video_id"])[:8] + "...",
            ", ".join(post["platforms"]),
            _fmt(post["scheduled_at"]),
        )

    console.print(table)


@app.command("cancel-job")
def cancel_job(
    job_id: str = typer.Argument(..., help="The queued job to cancel"),
) -> None:
    """Cancel a queued job."""
    from reelflow.services.job_queue import JobQueue

    if JobQueue().cancel(_parse_uuid(job_id, "job ID")):
        console.print(f"[green]Job cancelled: {job_id}[/green]")
    else:
        console.print("[bold yellow]Job not found or no longer queued[/bold yellow]")
        raise typer.Exit(code=1)


@app.command("generate-next")
def generate_next(
    series_id: str = typer.Argument(..., help="Series to extend"),
    platform: Optional[list[str]] = typer.Option(
        None, "--platform", "-p", help="Publish the new video to this platform (repeatable)"
    ),
) -> None:
    """Enqueue generation of the next video in a series."""
    from reelflow.errors import EntityNotFoundError
    from reelflow.jobs.processors import build_context

    try:
        job_id = build_context().scheduling.trigger_generate_next(
            _parse_uuid(series_id, "series ID"), platform or None
        )
    except EntityNotFoundError as e:
        console.print(f"[bold red]{e}[/bold red]")
        raise typer.Exit(code=1)
    console.print(f"[green]Generation enqueued: {job_id}[/green]")


@app.command()
def health() -> None:
    """Check the health of the running API."""
    import httpx

    from reelflow.config import settings

    url = f"http://{settings.api_host}:{settings.api_port}/health/ready"

    try:
        response = httpx.get(url, timeout=10)
        data = response.json()
    except httpx.RequestError as e:
        console.print(f"[bold red]Cannot connect to API: {e}[/bold red]")
        console.print("[dim]Is the API server running?[/dim]")
        raise typer.Exit(code=1)

    table = Table(title="Service Health")
    table.add_column("Component", style="cyan")
    table.add_column("Status")

    table.add_row("Database", "✓" if data.get("database") else "✗")
    for component, healthy in (data.get("components") or {}).items():
        table.add_row(component, "✓" if healthy else "✗")

    console.print(table)

    if data.get("ready"):
        console.print("[bold green]All services healthy![/bold green]")
    else:
        console.print("[bold yellow]Some services unhealthy[/bold yellow]")
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
