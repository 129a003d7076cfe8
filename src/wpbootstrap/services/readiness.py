"""Bounded fixed-interval readiness polling."""

import time
from typing import Callable

from wpbootstrap.errors import DependencyTimeoutError
from wpbootstrap.errors_catalog import actionable_error


class ReadinessPoller:
    """Blocks until a probe succeeds or the attempt bound is exhausted."""

    def __init__(
        self,
        logger,
        console,
        max_attempts: int,
        interval_seconds: float,
        sleep=time.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if interval_seconds < 0:
            raise ValueError("interval_seconds must not be negative")
        self.logger = logger
        self.console = console
        self.max_attempts = max_attempts
        self.interval_seconds = interval_seconds
        self.sleep = sleep

    def wait(self, probe: Callable[[], bool], label: str) -> int:
        """Return the attempt number on which ``probe`` first succeeded."""
        title = label[:1].upper() + label[1:]
        self.console.print(f"[yellow]Waiting for {label} to be ready...[/yellow]")

        for attempt in range(1, self.max_attempts + 1):
            if probe():
                self.console.print(f"[green]{title} is ready.[/green]")
                self.logger.debug("%s ready after %s attempt(s)", label, attempt)
                return attempt

            self.logger.debug("%s not ready (attempt %s/%s)", label, attempt, self.max_attempts)
            if attempt < self.max_attempts:
                self.sleep(self.interval_seconds)

        raise DependencyTimeoutError(
            actionable_error("dependency_timeout", label=title, attempts=str(self.max_attempts)),
            attempts=self.max_attempts,
        )
