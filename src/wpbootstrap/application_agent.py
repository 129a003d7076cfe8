"""Application bootstrap agent: WordPress first-run preparation."""

import os
import time
from typing import Optional, Sequence

import requests

from .constants import (
    CONFIG_FILE,
    CONFIG_FILE_MODE,
    DEFAULT_DOWNLOAD_URL,
    DEFAULT_WEB_LOG_DIR,
    DEFAULT_WEB_ROOT,
    DEFAULT_WEB_SERVER_COMMAND,
    DEFAULT_WEB_USER,
    DEFAULT_WP_CLI,
    DIR_MODE,
    EXTERNAL_MAX_ATTEMPTS,
    EXTERNAL_POLL_INTERVAL,
    FILE_MODE,
    UPLOADS_DIR,
)
from .core import BootstrapAgent, console, logger
from .models import WordPressSettings
from .services.archive import ArchiveService
from .services.command_runner import CommandRunner
from .services.core_files import CoreFilesService
from .services.download import DownloadService
from .services.filesystem import FileSystemService
from .services.mysql import tcp_probe
from .services.readiness import ReadinessPoller
from .services.validation import ValidationService
from .services.wp_cli import WPCLIService
from .services.wp_config import WordPressConfigService


class ApplicationBootstrapAgent(BootstrapAgent):
    ROLE = "wordpress"
    DEFAULT_COMMAND = DEFAULT_WEB_SERVER_COMMAND

    def __init__(
        self,
        settings: WordPressSettings,
        server_command: Sequence[str] = (),
        web_root: str = DEFAULT_WEB_ROOT,
        web_user: str = DEFAULT_WEB_USER,
        log_dir: Optional[str] = DEFAULT_WEB_LOG_DIR,
        wp_cli: str = DEFAULT_WP_CLI,
        download_url: str = DEFAULT_DOWNLOAD_URL,
        allow_insecure_http: bool = False,
        max_attempts: int = EXTERNAL_MAX_ATTEMPTS,
        poll_interval: float = EXTERNAL_POLL_INTERVAL,
        command_runner: Optional[CommandRunner] = None,
        requests_module=requests,
        sleep=time.sleep,
    ):
        super().__init__(server_command=server_command, command_runner=command_runner)
        self.settings = settings
        self.web_root = web_root
        self.web_user = web_user
        self.log_dir = log_dir
        self.config_path = os.path.join(web_root, CONFIG_FILE)

        self.filesystem_service = FileSystemService(logger=logger, console=console)
        self.validation_service = ValidationService(allow_insecure_http=allow_insecure_http)
        self.core_files_service = CoreFilesService(
            logger=logger,
            console=console,
            download_service=DownloadService(
                validation_service=self.validation_service,
                logger=logger,
                console=console,
                requests_module=requests_module,
            ),
            archive_service=ArchiveService(),
            download_url=download_url,
        )
        self.config_service = WordPressConfigService(logger=logger, console=console)
        self.wp_cli_service = WPCLIService(
            logger=logger,
            console=console,
            command_runner=self.command_runner,
            web_root=web_root,
            wp_cli=wp_cli,
        )
        self.poller = ReadinessPoller(
            logger=logger,
            console=console,
            max_attempts=max_attempts,
            interval_seconds=poll_interval,
            sleep=sleep,
        )

    def config_present(self) -> bool:
        return os.path.isfile(self.config_path)

    def bootstrap(self):
        changed = False

        if not self.core_files_service.core_present(self.web_root):
            self._run_step(
                "fetch_core",
                self.core_files_service.fetch,
                self.web_root,
                self.settings.version,
                self.settings.core_sha256,
            )
            changed = True

        self._run_step("wait_for_database", self.wait_for_database)

        if not self.config_present():
            self._run_step(
                "write_config",
                self.config_service.write,
                self.config_path,
                self.settings,
            )
            changed = True
        else:
            console.print("[dim]Using existing wp-config.php.[/dim]")

        if not self._run_step("check_installed", self.wp_cli_service.is_installed):
            self._run_step("install", self.wp_cli_service.install, self.settings)
            changed = True
        else:
            logger.info("WordPress already installed")

        if changed:
            self._run_step("normalize_permissions", self.normalize_permissions)

        if self.log_dir:
            self._run_step("prepare_log_dir", self.prepare_log_dir)

        console.print(f"[bold green]WordPress ready at {self.settings.site_url}[/bold green]")

    def wait_for_database(self):
        probe = tcp_probe(
            self.command_runner,
            host=self.settings.db_host,
            port=self.settings.db_port,
            user=self.settings.db_user,
            password=self.settings.db_password,
            database=self.settings.db_name,
        )
        self.poller.wait(probe, f"database at {self.settings.db_address}")

    def normalize_permissions(self):
        """Tighten the tree; the config file mode is applied last so it survives."""
        logger.info("Normalizing permissions under %s", self.web_root)
        self.filesystem_service.set_tree_owner(self.web_root, self.web_user)
        self.filesystem_service.set_tree_permissions(
            self.web_root,
            dir_mode=DIR_MODE,
            file_mode=FILE_MODE,
        )
        self.filesystem_service.ensure_dir(
            os.path.join(self.web_root, UPLOADS_DIR),
            DIR_MODE,
            owner=self.web_user,
        )
        if self.config_present():
            self.filesystem_service.set_permissions(self.config_path, CONFIG_FILE_MODE)

    def prepare_log_dir(self):
        self.filesystem_service.ensure_dir(self.log_dir, DIR_MODE, owner=self.web_user)
