"""Interactive CLI for the fact-check system using Typer and Rich."""

import asyncio
import sys
import time
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from factcheck_system.config.settings import settings
from factcheck_system.config.logging import get_logger

# Initialize CLI app
app = typer.Typer(
    help="Fact-check CLI - claim extraction and evidence-based verification",
    add_completion=False,
)

console = Console()

logger = get_logger("cli")

_VERDICT_STYLES = {
    "Support": "green",
    "Partially Support": "yellow",
    "Unclear": "dim",
    "Contradict": "red",
    "Refute": "bold red",
}


@app.command()
def status() -> None:
    """
    Display system status and configuration.

    Shows API configuration, scheduler budgets, evidence settings and logging.
    """
    logger.info("Displaying system status")

    table = Table(title="Fact-Check System Status", show_header=True, header_style="bold magenta")
    table.add_column("Component", style="cyan", width=20)
    table.add_column("Status", style="green", width=15)
    table.add_column("Details", style="yellow")

    python_version = f"Python {sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"
    table.add_row("Environment", "✓ Ready", python_version)

    api_status = "✓ Configured" if settings.gemini_api_key else "⚠ Not Configured"
    table.add_row(
        "Gemini API",
        api_status,
        f"classify: {settings.classification_model}, verify: {settings.verification_model}",
    )
    table.add_row(
        "Scheduler",
        "✓ Active",
        f"RPM: {settings.max_rpm}, TPM: {settings.max_tpm:,}, "
        f"retries: {settings.max_retries}",
    )
    table.add_row(
        "Evidence",
        "✓ Active",
        f"{settings.evidence_sentences_per_source} sentences x "
        f"{settings.max_sources_per_claim} sources, {settings.embedding_model}",
    )
    table.add_row("Logging", "✓ Active", f"Level: {settings.log_level}, Format: {settings.log_format}")

    console.print(table)


def _require_api_key() -> None:
    if not settings.gemini_api_key:
        console.print("[red]✗[/red] GEMINI_API_KEY not configured in environment")
        logger.error("Gemini API key missing")
        raise typer.Exit(1)


def _read_input(text: Optional[str], file: Optional[Path]) -> str:
    if file is not None:
        return file.read_text(encoding="utf-8")
    if text:
        return text
    console.print("[red]✗[/red] Provide TEXT or --file")
    raise typer.Exit(1)


@app.command()
def extract(
    text: Optional[str] = typer.Argument(None, help="Text to extract claims from"),
    file: Optional[Path] = typer.Option(
        None, "--file", "-f", exists=True, dir_okay=False, help="Read text from a file"
    ),
    opinions: bool = typer.Option(
        False, "--opinions", help="Also label Not Verifiable sentences by opinion polarity"
    ),
) -> None:
    """
    Extract verifiable claims from text.

    Shows every sentence with its category and the final claim selected for it.
    """
    from factcheck_system.agents.sifters.claims.claim_extraction_agent import (
        ClaimExtractionAgent,
    )

    content = _read_input(text, file)
    _require_api_key()
    start_time = time.time()

    async def run():
        agent = ClaimExtractionAgent()
        extraction = await agent.extract_claims(content)
        summary = await agent.analyze_opinions(extraction) if opinions else None
        return extraction, summary

    result, summary = asyncio.run(run())

    elapsed = time.time() - start_time

    table = Table(title="Sentences", show_header=True, header_style="bold magenta")
    table.add_column("#", style="dim", width=4)
    table.add_column("Category", style="cyan", width=20)
    table.add_column("Sentence")
    table.add_column("Final claim", style="green")

    for processed in result.processed:
        marker = f"{processed.sentence.index}"
        if processed.sentence.is_derived:
            marker += f"←{processed.sentence.parent_index}"
        table.add_row(
            marker,
            processed.category.value,
            processed.sentence.text,
            processed.final_claim or "[dim]-[/dim]",
        )

    console.print(table)
    console.print(
        f"\n[green]✓[/green] {len(result.claims)} claims from "
        f"{len(result.sentences)} sentences in {elapsed:.2f}s"
    )

    if summary is not None:
        _print_opinions(summary)


def _print_opinions(summary) -> None:
    if not summary.total:
        console.print("[dim]No opinion sentences found[/dim]")
        return

    table = Table(title="Opinion Polarity", show_header=True, header_style="bold magenta")
    table.add_column("Label", style="cyan")
    table.add_column("Count", justify="right")
    table.add_column("Share", justify="right")
    for label, count in summary.counts.items():
        table.add_row(label, str(count), f"{summary.percentages[label]}%")
    console.print(table)


@app.command()
def verify(
    claim: str = typer.Argument(..., help="Claim to verify"),
    sources: list[Path] = typer.Argument(
        ..., exists=True, dir_okay=False, help="Source documents (plain text files)"
    ),
) -> None:
    """
    Verify one claim against local source documents.
    """
    from factcheck_system.agents.sifters.verification.verdict_aggregator import (
        VerdictAggregator,
    )
    from factcheck_system.data_management.schemas import SourceDocument

    documents = [
        SourceDocument(source_id=path.name, content=path.read_text(encoding="utf-8"))
        for path in sources
    ]

    _require_api_key()
    result = asyncio.run(VerdictAggregator().verify_claim(claim, documents))

    style = _VERDICT_STYLES.get(result.verdict.value, "white")
    score = "n/a" if result.trust_score is None else str(result.trust_score)
    body = f"[{style}]{result.verdict.value}[/{style}] (trust score: {score})\n\n{result.reason}"
    if result.references:
        body += "\n\n" + "\n".join(f"• {ref}" for ref in result.references)

    console.print(Panel(body, title=claim[:80], border_style=style))


@app.command()
def version() -> None:
    """Display version information."""
    console.print("[bold]Fact-Check System[/bold]")
    console.print("Version: 0.1.0")


if __name__ == "__main__":
    app()
