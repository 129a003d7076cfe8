"""Shared run loop for the bootstrap agents."""

import logging
from typing import List, Optional, Sequence

from rich.console import Console

from .errors import BootstrapError
from .services.command_runner import CommandRunner

console = Console(stderr=True)
logger = logging.getLogger("wpbootstrap")


class BootstrapAgent:
    """Runs a linear sequence of idempotent stages, then hands off to the server.

    Subclasses implement ``bootstrap``. Any ``BootstrapError`` aborts startup
    with exit code 1; on success the process image is replaced and ``run``
    does not return.
    """

    ROLE = "bootstrap"
    DEFAULT_COMMAND: List[str] = []

    def __init__(
        self,
        server_command: Sequence[str] = (),
        command_runner: Optional[CommandRunner] = None,
    ):
        self.server_command = list(server_command) or list(self.DEFAULT_COMMAND)
        self.command_runner = command_runner or CommandRunner(logger=logger)
        self.current_step_name: Optional[str] = None

    def _run_step(self, name: str, callback, *args, **kwargs):
        self.current_step_name = name
        logger.debug("Step started: %s", name)
        result = callback(*args, **kwargs)
        logger.debug("Step finished: %s", name)
        self.current_step_name = None
        return result

    def bootstrap(self):
        raise NotImplementedError

    def hand_off_command(self) -> List[str]:
        return list(self.server_command)

    def run(self) -> int:
        try:
            logger.info("Starting %s bootstrap...", self.ROLE)
            self.bootstrap()
            self.current_step_name = "hand_off"
            self.command_runner.exec_replace(self.hand_off_command())
            return 0

        except KeyboardInterrupt:
            console.print("[bold red]Bootstrap interrupted.[/bold red]")
            logger.info("Bootstrap interrupted")
            return 1
        except BootstrapError as exc:
            failed_step = self.current_step_name or "startup"
            console.print(f"[bold red]Error ({failed_step}):[/bold red] {exc}")
            logger.error("%s bootstrap failed during %s: %s", self.ROLE, failed_step, exc)
            return 1
        except Exception as exc:
            console.print(f"[bold red]Unexpected error:[/bold red] {exc}")
            logger.exception("Unexpected error")
            return 1
