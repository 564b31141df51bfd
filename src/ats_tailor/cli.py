"""CLI interface using typer + rich."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from ats_tailor.cache.ttl_cache import TTLCache
from ats_tailor.clients.llm_client import get_provider
from ats_tailor.clients.scraper import HttpJobScraper
from ats_tailor.config import AppConfig, load_config
from ats_tailor.errors import TailorError
from ats_tailor.export import DocxRenderer
from ats_tailor.insights import SessionInsights
from ats_tailor.logging.usage_store import UsageStore
from ats_tailor.models.resume import TailoredResumeContent
from ats_tailor.models.session import ResumeSession
from ats_tailor.parsers.jd_parser import load_jd_file
from ats_tailor.parsers.resume_parser import parse_resume
from ats_tailor.pipeline.orchestrator import SessionOrchestrator
from ats_tailor.store.session_store import SqliteSessionStore

app = typer.Typer(
    name="ats-tailor",
    help="Tailor a résumé to a job posting with ATS scoring.",
    no_args_is_help=True,
)
console = Console()

PHASE_LABELS = {
    "scrape": "Fetching job posting",
    "analyze_job": "Analyzing job description",
    "extract_profile": "Extracting contact details and roles",
    "match": "Matching résumé against the job",
    "tailor": "Tailoring résumé",
}


def build_orchestrator(
    config: AppConfig,
    *,
    provider_name: str | None = None,
    on_phase=None,
) -> SessionOrchestrator:
    return SessionOrchestrator(
        SqliteSessionStore(config.store.resolved_db_path),
        get_provider(config.llm, provider_name),
        config=config,
        scraper=HttpJobScraper(timeout=config.llm.timeout),
        usage_store=UsageStore(config.store.resolved_usage_db_path),
        on_phase=on_phase,
    )


@app.command()
def run(
    resume: Path = typer.Option(..., "--resume", help="Base résumé (PDF/DOCX/TXT/MD)"),
    jd: Path = typer.Option(None, "--jd", help="Job description text file"),
    url: str = typer.Option(None, "--url", help="Job posting URL (instead of --jd)"),
    provider: str = typer.Option(None, "--provider", "-p", help="anthropic or openai"),
    docx: Path = typer.Option(None, "--docx", help="Write the tailored résumé to this .docx"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """Run the full pipeline: analyze the job, then tailor the résumé."""
    if (jd is None) == (url is None):
        console.print("[red]Pass exactly one of --jd or --url[/red]")
        raise typer.Exit(1)
    if not resume.exists():
        console.print(f"[red]Résumé file not found: {resume}[/red]")
        raise typer.Exit(1)
    if verbose:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    config = load_config()
    try:
        parsed = parse_resume(resume)
        jd_text = load_jd_file(jd) if jd is not None else None
    except TailorError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1) from exc

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Starting...", total=None)

        def on_phase(phase: str, detail: str) -> None:
            label = PHASE_LABELS.get(phase, phase)
            progress.update(task, description=f"{label} {detail}".strip())

        orchestrator = build_orchestrator(config, provider_name=provider, on_phase=on_phase)

        async def _run() -> ResumeSession:
            session = await orchestrator.create_session()
            await orchestrator.upload_resume(
                session.id, parsed.text, file_name=parsed.file_name, file_type=parsed.file_type
            )
            await orchestrator.analyze_job(session.id, url=url, text=jd_text)
            await orchestrator.tailor(session.id)
            if docx is not None:
                await orchestrator.complete_session(session.id, DocxRenderer(docx))
            return await orchestrator.get_session(session.id)

        try:
            session = asyncio.run(_run())
        except TailorError as exc:
            progress.stop()
            console.print(f"[red]{exc.kind}: {exc}[/red]")
            if exc.session is not None:
                console.print(f"[dim]Session {exc.session.id} ({exc.session.status.value})[/dim]")
            raise typer.Exit(1) from exc

    _print_session(session)
    if docx is not None:
        console.print(f"[green]DOCX saved: {docx}[/green]")


@app.command()
def show(
    session_id: str = typer.Argument(help="Session ID"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw session JSON"),
) -> None:
    """Show a stored session."""
    config = load_config()
    session = SqliteSessionStore(config.store.resolved_db_path).get(session_id)
    if session is None:
        console.print(f"[red]Session not found: {session_id}[/red]")
        raise typer.Exit(1)
    if as_json:
        console.print_json(session.model_dump_json(by_alias=True))
        return
    _print_session(session)


@app.command()
def stats() -> None:
    """Show session insights and token usage."""
    config = load_config()
    store = SqliteSessionStore(config.store.resolved_db_path)
    insights = SessionInsights(store, TTLCache(config.cache.insights_ttl_seconds))
    summary = insights.summary()

    table = Table(title="Sessions")
    table.add_column("Status")
    table.add_column("Count", justify="right")
    for status, count in summary.status_counts.items():
        table.add_row(status, str(count))
    console.print(table)

    average = "-" if summary.average_match_score is None else f"{summary.average_match_score:.1f}"
    console.print(f"Average match score: {average}")
    if summary.top_missing_keywords:
        console.print("Most often missing keywords:")
        for item in summary.top_missing_keywords:
            console.print(f"  - {item.keyword} ({item.count})")

    totals = UsageStore(config.store.resolved_usage_db_path).get_totals()
    console.print(
        Panel(
            f"Stages: {totals['total_stages']} | "
            f"Tokens: {totals['total_input_tokens']:,} in / {totals['total_output_tokens']:,} out | "
            f"Cost: ${totals['total_cost_usd']:.4f} | "
            f"Success: {totals['success_rate']:.0f}%",
            title="Usage",
        )
    )


def _print_session(session: ResumeSession) -> None:
    header = f"Session {session.id} | status: {session.status.value}"
    if session.match_score is not None:
        header += f" | match score: {session.match_score}"
    console.print(Panel(header, title="ats-tailor"))

    if session.last_error is not None:
        console.print(
            f"[red]Last error in {session.last_error.stage.value}: "
            f"{session.last_error.kind} - {session.last_error.message}[/red]"
        )
    if session.job_analysis is not None:
        job = session.job_analysis
        console.print(f"[bold]{job.title}[/bold] {job.company}".strip())
        if job.low_confidence:
            console.print("[yellow]Low-confidence job analysis (short or generic posting)[/yellow]")
    if session.tailored_content is not None:
        _print_content(session.tailored_content)


def _print_content(content: TailoredResumeContent) -> None:
    table = Table(title="Score breakdown")
    table.add_column("Category")
    table.add_column("Earned", justify="right")
    table.add_column("Possible", justify="right")
    for key, category in content.score_breakdown.categories().items():
        table.add_row(key, str(category.earned), str(category.possible))
    console.print(table)
    console.print(f"ATS score: {content.ats_score} | core score: {content.core_score}")

    console.print(Panel(content.summary or "(empty)", title=content.contact.title))
    for entry in content.experience:
        console.print(f"[bold]{entry.title}[/bold] | {entry.company} | {entry.duration}")
        for bullet in entry.achievements:
            console.print(f"  - {bullet}")

    if content.coverage_report.missing_keywords:
        console.print(
            "[dim]Missing keywords: " + ", ".join(content.coverage_report.missing_keywords) + "[/dim]"
        )
    if content.warnings:
        console.print("\n[yellow]Warnings:[/yellow]")
        for warning in content.warnings:
            console.print(f"  - {warning}")
