"""CLI for pedal-elo."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Annotated, TypeVar

import structlog
import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.markdown import Markdown

from pedal_elo import __version__
from pedal_elo.core.config import DEFAULT_REMOTE_URL, AppConfig, load_config
from pedal_elo.core.errors import PedalEloError
from pedal_elo.core.progress import VoteProgress
from pedal_elo.core.random_source import create_random_source
from pedal_elo.models import MatchRecord
from pedal_elo.pipeline import open_session
from pedal_elo.ranking import INITIAL_RATING, round_half_away_from_zero
from pedal_elo.services.analysis import (
    biggest_upsets,
    brand_report,
    most_contested,
    ranked_entries,
    recent_history,
)
from pedal_elo.services.catalogue import refresh_catalogue
from pedal_elo.services.match import BattlePool, MatchService, Matchup
from pedal_elo.services.reporting import analysis_report, leaderboard_table
from pedal_elo.services.simulation import SimulatedCrowd, simulate_votes

T = TypeVar("T")

# Spread of the hidden ratings used by `simulate`
SIMULATED_RATING_SPREAD = 800.0

load_dotenv()

# Configure structlog
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

app = typer.Typer(
    name="pedal-elo",
    help="Pedal Elo - Rank guitar pedals by crowd-sourced pairwise votes",
    add_completion=False,
)
console = Console()

ConfigOption = Annotated[
    Path | None, typer.Option("--config", "-c", help="Path to config YAML file")
]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-V", help="Verbose output")]
BrandOption = Annotated[
    list[str] | None,
    typer.Option("--brand", "-b", help="Restrict to a brand (repeatable)"),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"pedal-elo v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option("--version", "-v", callback=version_callback, is_eager=True),
    ] = None,
) -> None:
    """Pedal Elo CLI."""


def _configure_logging(verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _execute(
    config_path: Path | None,
    verbose: bool,
    command: Callable[[AppConfig], Awaitable[T]],
) -> T:
    """Load config, run an async command and map failures to exit code 1."""
    _configure_logging(verbose)
    try:
        config = load_config(config_path)
        return asyncio.run(command(config))
    except typer.Exit:
        raise
    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    except PedalEloError as e:
        console.print(f"[red]{e}")
        raise typer.Exit(1) from e
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    except Exception as e:
        console.print(f"[red]Unexpected error:[/red] {e}")
        if verbose:
            console.print_exception()
        raise typer.Exit(1) from e


def _apply_brands(session: MatchService, brands: list[str] | None) -> None:
    if not brands:
        return
    known = {brand for brand, _ in session.brands()}
    unknown = sorted(set(brands) - known)
    if unknown:
        console.print(f"[yellow]Unknown brands ignored:[/yellow] {', '.join(unknown)}")
    selected = [b for b in brands if b in known]
    if not selected:
        console.print("[red]Error:[/red] none of the requested brands are in the catalogue")
        raise typer.Exit(1)
    session.set_brand_filter(selected)


def _print_matchup(session: MatchService, pair: Matchup, show_ids: bool = False) -> None:
    console.print(f"[bold]Matchup[/bold] ({pair.mode})")
    for label, side in zip("ab", pair, strict=True):
        pedal = session.get_pedal(side.id)
        console.print(
            f"  {label}) {pedal.name} [dim]({pedal.brand})[/dim]  "
            f"Elo {round_half_away_from_zero(side.rating)}, {side.matches} matches"
        )
        if show_ids:
            console.print(f"     id: {side.id}")


def _print_record(record: MatchRecord) -> None:
    w, lo = record.winner, record.loser
    console.print(f"[green]Vote recorded[/green] (+{record.delta})")
    console.print(
        f"  {w.name}: {round_half_away_from_zero(w.elo_before)}"
        f" -> {round_half_away_from_zero(w.elo_after)}"
    )
    console.print(
        f"  {lo.name}: {round_half_away_from_zero(lo.elo_before)}"
        f" -> {round_half_away_from_zero(lo.elo_after)}"
    )
    if record.is_upset:
        console.print("[bold magenta]Upset![/bold magenta]")


async def _vote_loop(
    session: MatchService,
    rounds: int | None,
    battle: BattlePool | None = None,
) -> int:
    """Prompt for votes until the voter quits or ``rounds`` votes are cast.

    Pedals just voted on stay in the session's recently shown set, so they
    sit out the following matchups. An empty answer quits.

    Returns:
        Number of votes cast.
    """
    cast = 0
    pair = session.next_battle_matchup(battle) if battle else session.next_matchup()
    while pair is not None and (rounds is None or cast < rounds):
        console.print()
        _print_matchup(session, pair)
        # Prompt on a worker thread so queued writes keep flushing
        try:
            answer = await asyncio.to_thread(
                typer.prompt, "Pick a or b (s = skip, q = quit)", default="q", show_default=False
            )
        except typer.Abort:
            break
        choice = answer.strip().lower()
        if choice == "q":
            break
        if choice == "s":
            pair = session.skip(battle)
            continue
        if choice not in ("a", "b"):
            console.print("[yellow]Enter a, b, s or q.[/yellow]")
            continue

        winner, loser = (pair.a, pair.b) if choice == "a" else (pair.b, pair.a)
        if battle is not None:
            record = session.battle_vote(battle, winner.id, loser.id)
        else:
            record = session.vote(winner.id, loser.id)
        _print_record(record)
        cast += 1
        pair = session.next_battle_matchup(battle) if battle else session.next_matchup()

    if pair is None:
        console.print("[yellow]Not enough pedals to build a matchup.[/yellow]")
    return cast


@app.command()
def matchup(
    brand: BrandOption = None,
    config_path: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Show the next pair of pedals to vote on."""

    async def _run(config: AppConfig) -> None:
        async with open_session(config) as session:
            _apply_brands(session, brand)
            pair = session.next_matchup()
            if pair is None:
                console.print("[yellow]Not enough pedals to build a matchup.[/yellow]")
                raise typer.Exit(1)

            _print_matchup(session, pair, show_ids=True)
            a, b = pair.ids
            console.print(f"\nVote with: pedal-elo vote '{a}' '{b}'")

    _execute(config_path, verbose, _run)


@app.command()
def vote(
    winner_id: Annotated[str, typer.Argument(help="Id of the preferred pedal")],
    loser_id: Annotated[str, typer.Argument(help="Id of the other pedal")],
    config_path: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Record a vote and update both ratings."""

    async def _run(config: AppConfig) -> None:
        async with open_session(config) as session:
            record = session.vote(winner_id, loser_id)

        _print_record(record)

    _execute(config_path, verbose, _run)


@app.command()
def play(
    rounds: Annotated[
        int | None, typer.Option("--rounds", "-n", min=1, help="Stop after this many votes")
    ] = None,
    brand: BrandOption = None,
    config_path: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Vote on matchups interactively in a single session."""

    async def _run(config: AppConfig) -> None:
        async with open_session(config) as session:
            _apply_brands(session, brand)
            cast = await _vote_loop(session, rounds)
            total_votes = session.total_votes
        console.print(f"\nVotes recorded: {cast} ({total_votes} in total)")

    _execute(config_path, verbose, _run)


@app.command()
def battle(
    brand_a: Annotated[str, typer.Argument(help="First brand")],
    brand_b: Annotated[str, typer.Argument(help="Second brand")],
    rounds: Annotated[
        int | None, typer.Option("--rounds", "-n", min=1, help="Stop after this many votes")
    ] = None,
    config_path: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Vote on a head-to-head between two brands, rated in its own pool."""
    if brand_a == brand_b:
        console.print("[red]Error:[/red] a battle needs two different brands")
        raise typer.Exit(1)

    async def _run(config: AppConfig) -> None:
        async with open_session(config) as session:
            known = {b for b, _ in session.brands()}
            unknown = [b for b in (brand_a, brand_b) if b not in known]
            if unknown:
                console.print(f"[red]Error:[/red] unknown brand: {', '.join(unknown)}")
                raise typer.Exit(1)

            pool = await session.open_battle(brand_a, brand_b)
            console.print(
                f"[bold]{brand_a} vs {brand_b}[/bold] "
                f"({pool.snapshot.total_votes} battle votes so far)"
            )
            cast = await _vote_loop(session, rounds, battle=pool)
        console.print(f"\nVotes recorded: {cast} ({pool.snapshot.total_votes} in this battle)")

    _execute(config_path, verbose, _run)


@app.command()
def leaderboard(
    top: Annotated[int, typer.Option("--top", "-n", min=1, help="Rows to show")] = 20,
    brand: BrandOption = None,
    config_path: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Show ranked pedals, best first."""

    async def _run(config: AppConfig) -> None:
        async with open_session(config) as session:
            _apply_brands(session, brand)
            ranked = ranked_entries(session.leaderboard())
            total_votes = session.total_votes

        if not ranked:
            console.print("[yellow]No votes yet.[/yellow]")
            return
        console.print(f"[bold]{total_votes} votes[/bold], {len(ranked)} pedals ranked\n")
        console.print(leaderboard_table(ranked[:top]))

    _execute(config_path, verbose, _run)


@app.command()
def analysis(
    config_path: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Show brand standings, contested pedals, upsets and recent votes."""

    async def _run(config: AppConfig) -> None:
        async with open_session(config) as session:
            ranked = ranked_entries(session.leaderboard())
            report = analysis_report(
                ranked=ranked,
                brands=brand_report(ranked),
                contested=most_contested(ranked),
                upsets=biggest_upsets(session.history),
                recent=recent_history(session.history),
                total_votes=session.total_votes,
            )
        console.print(Markdown(report))

    _execute(config_path, verbose, _run)


@app.command()
def reset(
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
    config_path: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Reset every rating and clear the match history."""
    if not yes:
        typer.confirm("Reset all ratings and history?", abort=True)

    async def _run(config: AppConfig) -> None:
        async with open_session(config) as session:
            session.reset()
            count = len(session.pedals)
        console.print(f"[green]Reset {count} pedals to {INITIAL_RATING:.0f}.[/green]")

    _execute(config_path, verbose, _run)


@app.command()
def simulate(
    votes: Annotated[int, typer.Option("--votes", "-n", min=1, help="Votes to cast")] = 500,
    seed: Annotated[int | None, typer.Option("--seed", help="Random seed")] = None,
    top: Annotated[int, typer.Option("--top", min=1, help="Rows to show")] = 15,
    config_path: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Run a simulated crowd against an in-memory store."""

    async def _run(config: AppConfig) -> None:
        if seed is not None:
            config = config.model_copy(update={"seed": seed})
        rng = create_random_source(config.seed)

        async with open_session(config, dry_run=True) as session:
            true_ratings = {
                p.id: INITIAL_RATING + (rng.random() - 0.5) * SIMULATED_RATING_SPREAD
                for p in session.pedals
            }
            crowd = SimulatedCrowd(true_ratings, rng)
            with VoteProgress(console).track_votes(votes) as advance:
                records = await simulate_votes(session, crowd, votes, on_vote=advance)
            ranked = ranked_entries(session.leaderboard())

        upsets = sum(1 for r in records if r.is_upset)
        console.print(f"\n[bold]{len(records)} votes[/bold], {upsets} upsets\n")
        console.print(leaderboard_table(ranked[:top]))

    _execute(config_path, verbose, _run)


@app.command("fetch-catalogue")
def fetch_catalogue(
    dest: Annotated[Path, typer.Argument(help="Where to write the catalogue JSON")],
    url: Annotated[str, typer.Option("--url", help="Catalogue URL")] = DEFAULT_REMOTE_URL,
    verbose: VerboseOption = False,
) -> None:
    """Download the pedal catalogue for offline use."""
    _configure_logging(verbose)
    written = asyncio.run(refresh_catalogue(dest, url))
    if not written:
        console.print(f"[red]Error:[/red] could not fetch {url}; {dest} left untouched")
        raise typer.Exit(1)
    console.print(f"[green]Catalogue saved to {dest}[/green]")


@app.command()
def validate(
    config_path: Annotated[Path, typer.Argument(help="Path to config YAML file")],
) -> None:
    """Validate a configuration file without running.

    Args:
        config_path: Path to YAML configuration file.
    """
    try:
        config = load_config(config_path)
        console.print("[green]Configuration is valid![/green]")
        console.print(f"  Storage backend: {config.storage.backend}")
        console.print(f"  Catalogue: {config.catalogue.local_path or config.catalogue.remote_url}")
        console.print(
            f"  Bootstrap threshold: {config.matchmaking.bootstrap_spread_threshold}"
        )
        console.print(f"  Recently shown capacity: {config.matchmaking.recent_capacity}")
        console.print(f"  Seed: {config.seed}")

    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    except PedalEloError as e:
        console.print(f"[red]{e}")
        raise typer.Exit(1) from e


@app.command()
def info() -> None:
    """Show tool information and example commands."""
    console.print("[bold]Pedal Elo[/bold]")
    console.print(f"Version: {__version__}\n")

    console.print("[bold]Example Commands:[/bold]")
    console.print("  # Show the next matchup")
    console.print("  uv run pedal-elo matchup\n")

    console.print("  # Only Boss and MXR pedals")
    console.print("  uv run pedal-elo matchup --brand Boss --brand MXR\n")

    console.print("  # Record a vote")
    console.print("  uv run pedal-elo vote WINNER_ID LOSER_ID\n")

    console.print("  # Vote interactively, ten rounds")
    console.print("  uv run pedal-elo play --rounds 10\n")

    console.print("  # Brand battle")
    console.print("  uv run pedal-elo battle Boss MXR\n")

    console.print("  # Top 10")
    console.print("  uv run pedal-elo leaderboard --top 10\n")

    console.print("  # Dry run with a simulated crowd")
    console.print("  uv run pedal-elo simulate --votes 1000 --seed 7\n")

    console.print("  # Validate config")
    console.print("  uv run pedal-elo validate config.yaml")


if __name__ == "__main__":
    app()
