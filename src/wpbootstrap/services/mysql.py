"""MariaDB/MySQL provisioning for the database bootstrap agent."""

import os
import socket
import subprocess
from typing import Callable, Dict, List, Optional

from wpbootstrap.constants import (
    DB_CHARSET,
    DB_COLLATION,
    DEFAULT_MYSQL_SYSTEM_USER,
    SYSTEM_SCHEMA_DIR,
)
from wpbootstrap.errors import ProvisioningError
from wpbootstrap.errors_catalog import actionable_error
from wpbootstrap.models import DatabaseSettings


def quote_literal(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("'", "''")
    return f"'{escaped}'"


def quote_identifier(name: str) -> str:
    escaped = name.replace("`", "``")
    return f"`{escaped}`"


def account(user: str, host: str) -> str:
    return f"{quote_literal(user)}@{quote_literal(host)}"


class TransientServer:
    """Owns the socket-only server process used during first-run provisioning.

    Leaving the ``with`` block always reaps the child: a process still running
    at that point (failure path) is terminated, then killed after
    ``kill_grace_seconds``.
    """

    def __init__(
        self,
        command_runner,
        command: List[str],
        logger,
        kill_grace_seconds: float = 10.0,
    ):
        self.command_runner = command_runner
        self.command = command
        self.logger = logger
        self.kill_grace_seconds = kill_grace_seconds
        self.process: Optional[subprocess.Popen] = None

    def __enter__(self):
        self.process = self.command_runner.start(self.command)
        self.logger.debug("Temporary server started with pid %s", self.process.pid)
        return self

    def __exit__(self, exc_type, exc, tb):
        if self.process is None or self.process.poll() is not None:
            return False

        self.logger.warning("Terminating temporary database server (pid %s)", self.process.pid)
        self.process.terminate()
        try:
            self.process.wait(timeout=self.kill_grace_seconds)
        except subprocess.TimeoutExpired:
            self.logger.warning("Temporary database server ignored SIGTERM; killing it.")
            self.process.kill()
            self.process.wait()
        return False

    def exit_code(self) -> Optional[int]:
        if self.process is None:
            return None
        return self.process.poll()

    def wait_stopped(self, timeout: float):
        try:
            self.process.wait(timeout=timeout)
        except subprocess.TimeoutExpired as exc:
            raise ProvisioningError(
                actionable_error("transient_shutdown_failed", seconds=f"{timeout:g}")
            ) from exc


class MySQLService:
    """Builds and runs the engine, client and admin commands."""

    def __init__(
        self,
        logger,
        console,
        command_runner,
        data_dir: str,
        socket_path: str,
        system_user: str = DEFAULT_MYSQL_SYSTEM_USER,
        hostname: Optional[str] = None,
    ):
        self.logger = logger
        self.console = console
        self.command_runner = command_runner
        self.data_dir = data_dir
        self.socket_path = socket_path
        self.system_user = system_user
        self.hostname = hostname or socket.gethostname()
        self.root_auth_env: Optional[Dict[str, str]] = None

    def system_schema_present(self) -> bool:
        return os.path.isdir(os.path.join(self.data_dir, SYSTEM_SCHEMA_DIR))

    def initialize_data_dir(self):
        self.console.print("[blue]Initializing database data directory...[/blue]")
        self.logger.info("Initializing data directory %s", self.data_dir)
        self.command_runner.run(
            [
                "mysql_install_db",
                f"--user={self.system_user}",
                f"--datadir={self.data_dir}",
                "--skip-test-db",
                "--auth-root-authentication-method=normal",
            ],
            check=True,
            capture_output=True,
        )

    def transient_server_command(self) -> List[str]:
        return [
            "mysqld",
            f"--user={self.system_user}",
            f"--datadir={self.data_dir}",
            "--skip-networking",
            f"--socket={self.socket_path}",
        ]

    def build_provisioning_sql(self, settings: DatabaseSettings) -> List[str]:
        statements: List[str] = []

        if settings.root_password:
            statements.append(
                f"ALTER USER {account('root', 'localhost')} "
                f"IDENTIFIED BY {quote_literal(settings.root_password)};"
            )

        for host in dict.fromkeys(("localhost", self.hostname)):
            statements.append(f"DROP USER IF EXISTS {account('', host)};")

        # install_db seeds passwordless root for every loopback name; only localhost stays.
        for host in dict.fromkeys(("%", "127.0.0.1", "::1", self.hostname)):
            if host != "localhost":
                statements.append(f"DROP USER IF EXISTS {account('root', host)};")

        schema = quote_identifier(settings.database)
        app_account = account(settings.user, "%")
        statements.extend(
            [
                f"CREATE DATABASE IF NOT EXISTS {schema} "
                f"CHARACTER SET {DB_CHARSET} COLLATE {DB_COLLATION};",
                f"CREATE USER IF NOT EXISTS {app_account} "
                f"IDENTIFIED BY {quote_literal(settings.password)};",
                f"GRANT ALL PRIVILEGES ON {schema}.* TO {app_account};",
                "FLUSH PRIVILEGES;",
            ]
        )
        return statements

    def _socket_client(self) -> List[str]:
        return ["mysql", f"--socket={self.socket_path}", "--user=root"]

    def _root_env(self, settings: DatabaseSettings) -> Optional[Dict[str, str]]:
        if settings.root_password:
            return {"MYSQL_PWD": settings.root_password}
        return None

    def socket_probe(self, settings: DatabaseSettings) -> bool:
        """Check the socket as root, with no password first, then the configured one.

        A data directory whose marker was removed may already carry the rotated
        root secret; whichever credential works is reused for provisioning.
        """
        candidates = [None]
        if settings.root_password:
            candidates.append(self._root_env(settings))

        for env in candidates:
            result = self.command_runner.run(
                self._socket_client() + ["-e", "SELECT 1"],
                check=False,
                capture_output=True,
                extra_env=env,
            )
            if result.returncode == 0:
                self.root_auth_env = env
                return True
        return False

    def apply_provisioning(self, settings: DatabaseSettings):
        self.console.print("[blue]Provisioning database accounts and schema...[/blue]")
        if not settings.root_password:
            self.logger.warning(
                "DB_ROOT_PASSWORD is not set; the root account keeps socket-only access "
                "without a password."
            )

        sql = "\n".join(self.build_provisioning_sql(settings)) + "\n"
        result = self.command_runner.run(
            self._socket_client() + ["--batch"],
            check=False,
            capture_output=True,
            input_text=sql,
            extra_env=self.root_auth_env,
        )
        if result.returncode != 0:
            reason = (result.stderr or "").strip() or f"mysql exited with {result.returncode}"
            raise ProvisioningError(actionable_error("provisioning_failed", reason=reason))

        self.logger.info(
            "Schema '%s' and account '%s' provisioned", settings.database, settings.user
        )

    def shutdown(self, settings: DatabaseSettings):
        """Ask the transient server to stop, authenticating with the rotated secret."""
        result = self.command_runner.run(
            ["mysqladmin", f"--socket={self.socket_path}", "--user=root", "shutdown"],
            check=False,
            capture_output=True,
            extra_env=self._root_env(settings),
        )
        if result.returncode != 0:
            reason = (result.stderr or "").strip() or f"mysqladmin exited with {result.returncode}"
            raise ProvisioningError(actionable_error("provisioning_failed", reason=reason))


def tcp_probe(
    command_runner, host: str, port: int, user: str, password: str, database: str
) -> Callable[[], bool]:
    """Probe a remote server with the application account's own credential.

    A successful probe also proves the account can reach its schema.
    """
    cmd = [
        "mysql",
        "--protocol=TCP",
        f"--host={host}",
        f"--port={port}",
        f"--user={user}",
        "--connect-timeout=5",
        database,
        "-e",
        "SELECT 1",
    ]

    def probe() -> bool:
        result = command_runner.run(
            cmd,
            check=False,
            capture_output=True,
            extra_env={"MYSQL_PWD": password},
        )
        return result.returncode == 0

    return probe
