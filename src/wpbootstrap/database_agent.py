"""Database bootstrap agent: first-run provisioning of MariaDB/MySQL."""

import os
import time
from typing import List, Optional, Sequence

from .constants import (
    DEFAULT_DATA_DIR,
    DEFAULT_DB_SERVER_COMMAND,
    DEFAULT_MYSQL_SYSTEM_USER,
    DEFAULT_TRANSIENT_SOCKET,
    PROVISIONED_MARKER,
    SHUTDOWN_TIMEOUT,
    TRANSIENT_MAX_ATTEMPTS,
    TRANSIENT_POLL_INTERVAL,
)
from .core import BootstrapAgent, console, logger
from .errors import ProvisioningError
from .models import DatabaseSettings
from .services.command_runner import CommandRunner
from .services.mysql import MySQLService, TransientServer
from .services.readiness import ReadinessPoller
from .services.state import MarkerService


class DatabaseBootstrapAgent(BootstrapAgent):
    ROLE = "database"
    DEFAULT_COMMAND = DEFAULT_DB_SERVER_COMMAND

    def __init__(
        self,
        settings: DatabaseSettings,
        server_command: Sequence[str] = (),
        data_dir: str = DEFAULT_DATA_DIR,
        socket_path: str = DEFAULT_TRANSIENT_SOCKET,
        system_user: str = DEFAULT_MYSQL_SYSTEM_USER,
        max_attempts: int = TRANSIENT_MAX_ATTEMPTS,
        poll_interval: float = TRANSIENT_POLL_INTERVAL,
        shutdown_timeout: float = SHUTDOWN_TIMEOUT,
        command_runner: Optional[CommandRunner] = None,
        hostname: Optional[str] = None,
        sleep=time.sleep,
    ):
        super().__init__(server_command=server_command, command_runner=command_runner)
        self.settings = settings
        self.data_dir = data_dir
        self.system_user = system_user
        self.shutdown_timeout = shutdown_timeout

        self.mysql_service = MySQLService(
            logger=logger,
            console=console,
            command_runner=self.command_runner,
            data_dir=data_dir,
            socket_path=socket_path,
            system_user=system_user,
            hostname=hostname,
        )
        self.marker_service = MarkerService(
            marker_file=os.path.join(data_dir, PROVISIONED_MARKER),
            logger=logger,
        )
        self.poller = ReadinessPoller(
            logger=logger,
            console=console,
            max_attempts=max_attempts,
            interval_seconds=poll_interval,
            sleep=sleep,
        )

    def is_provisioned(self) -> bool:
        return self.marker_service.is_completed()

    def bootstrap(self):
        if self.is_provisioned():
            console.print("[dim]Database already provisioned; skipping setup.[/dim]")
            logger.info("Marker %s present, skipping provisioning", self.marker_service.marker_file)
            return

        if not self.mysql_service.system_schema_present():
            self._run_step("initialize_data_dir", self.mysql_service.initialize_data_dir)
        else:
            logger.info("Data directory already initialized at %s", self.data_dir)

        self._run_step("provision", self.provision)
        self._run_step(
            "mark_provisioned",
            self.marker_service.mark_completed,
            "provisioned",
            details={"database": self.settings.database, "user": self.settings.user},
        )
        console.print("[green]Database configuration complete.[/green]")

    def provision(self):
        """Provision through a socket-only server that is always stopped before returning."""
        command = self.mysql_service.transient_server_command()
        with TransientServer(self.command_runner, command, logger) as server:
            self.poller.wait(lambda: self._probe_transient(server), "temporary database server")
            self.mysql_service.apply_provisioning(self.settings)

            console.print("[blue]Stopping temporary database server...[/blue]")
            self.mysql_service.shutdown(self.settings)
            server.wait_stopped(self.shutdown_timeout)

    def _probe_transient(self, server: TransientServer) -> bool:
        exit_code = server.exit_code()
        if exit_code is not None:
            raise ProvisioningError(
                f"Temporary database server exited during startup with code {exit_code}. "
                "Check the server log for data directory or permission errors."
            )
        return self.mysql_service.socket_probe(self.settings)

    def hand_off_command(self) -> List[str]:
        cmd = list(self.server_command)
        if cmd and os.path.basename(cmd[0]) == "mysqld":
            has_user = any(arg == "--user" or arg.startswith("--user=") for arg in cmd[1:])
            if not has_user:
                cmd.append(f"--user={self.system_user}")
        return cmd
