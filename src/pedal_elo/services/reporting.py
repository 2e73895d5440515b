"""Report rendering services for pedal-elo."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime

from tabulate import tabulate

from pedal_elo.core.slug import SlugGenerator
from pedal_elo.models import MatchRecord
from pedal_elo.ranking import round_half_away_from_zero
from pedal_elo.services.analysis import BrandSummary, LeaderboardEntry

_TABLE_FORMAT = "github"
_NAME_LENGTH = 32


def _label(text: str) -> str:
    return SlugGenerator(_NAME_LENGTH).truncate(text)


def _percent(wins: int, matches: int) -> str:
    if matches == 0:
        return "-"
    return f"{round_half_away_from_zero(100 * wins / matches)}%"


def _timestamp(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000, tz=UTC).strftime("%Y-%m-%d %H:%M")


def leaderboard_table(entries: Iterable[LeaderboardEntry]) -> str:
    """Render ranked entries as a table.

    Args:
        entries: Entries with ranks assigned (see ``ranked_entries``).

    Returns:
        Table text.
    """
    rows = [
        (
            e.rank,
            _label(e.pedal.name),
            e.pedal.brand,
            round_half_away_from_zero(e.record.rating),
            e.record.wins,
            e.record.losses,
            _percent(e.record.wins, e.record.matches),
        )
        for e in entries
    ]
    headers = ("#", "Pedal", "Brand", "Elo", "W", "L", "Win %")
    return tabulate(rows, headers=headers, tablefmt=_TABLE_FORMAT)


def brand_table(summaries: Iterable[BrandSummary]) -> str:
    rows = [
        (
            s.brand,
            s.count,
            s.avg_rating,
            _label(s.top_pedal.name),
            _percent(s.wins, s.matches),
        )
        for s in summaries
    ]
    headers = ("Brand", "Pedals", "Avg Elo", "Top pedal", "Win %")
    return tabulate(rows, headers=headers, tablefmt=_TABLE_FORMAT)


def contested_table(entries: Iterable[LeaderboardEntry]) -> str:
    rows = [
        (
            _label(e.pedal.name),
            e.pedal.brand,
            e.record.matches,
            _percent(e.record.wins, e.record.matches),
        )
        for e in entries
    ]
    return tabulate(rows, headers=("Pedal", "Brand", "Matches", "Win %"), tablefmt=_TABLE_FORMAT)


def history_table(history: Iterable[MatchRecord]) -> str:
    """Render match records, flagging upsets."""
    rows = [
        (
            _timestamp(r.ts),
            _label(r.winner.name),
            _label(r.loser.name),
            f"+{r.delta}",
            round_half_away_from_zero(r.elo_gap),
            "upset" if r.is_upset else "",
        )
        for r in history
    ]
    headers = ("When", "Winner", "Loser", "Delta", "Gap", "")
    return tabulate(rows, headers=headers, tablefmt=_TABLE_FORMAT)


def analysis_report(
    ranked: list[LeaderboardEntry],
    brands: list[BrandSummary],
    contested: list[LeaderboardEntry],
    upsets: list[MatchRecord],
    recent: list[MatchRecord],
    total_votes: int,
) -> str:
    """Assemble the full analysis report as markdown.

    Empty sections are replaced by a short note instead of an empty table.
    """
    sections = [
        ("Brand standings", brand_table(brands) if brands else None),
        ("Most contested", contested_table(contested) if contested else None),
        ("Biggest upsets", history_table(upsets) if upsets else None),
        ("Recent votes", history_table(recent) if recent else None),
    ]

    lines = [
        "# Pedal Elo analysis",
        "",
        f"{total_votes} votes, {len(ranked)} pedals ranked.",
    ]
    for title, body in sections:
        lines.extend(["", f"## {title}", "", body or "_Not enough data yet._"])
    return "\n".join(lines)
