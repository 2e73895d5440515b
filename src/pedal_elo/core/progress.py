"""Progress tracking utilities for long-running vote loops."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
)


class VoteProgress:
    """Progress bar for simulated vote runs."""

    def __init__(self, console: Console | None = None) -> None:
        """Initialize progress tracker.

        Args:
            console: Optional console instance. If None, creates a new one.
        """
        self.console = console or Console()

    @contextmanager
    def track_votes(
        self, total: int, description: str = "Simulating votes"
    ) -> Iterator[Callable[[Any], None]]:
        """Show a progress bar while votes are cast.

        Args:
            total: Number of votes expected.
            description: Description of the operation.

        Yields:
            Callback to invoke once per vote; its argument is ignored.
        """
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TaskProgressColumn(),
            console=self.console,
        ) as progress:
            task = progress.add_task(f"[green]{description}...", total=total)

            def advance(_: Any) -> None:
                progress.update(task, advance=1)

            yield advance
