"""WP-CLI wrapper for install state queries and the one-time install."""

import os
from typing import List

from wpbootstrap.errors import ProvisioningError
from wpbootstrap.errors_catalog import actionable_error
from wpbootstrap.models import WordPressSettings


class WPCLIService:
    """All WP-CLI access goes through here; callers never build flags."""

    def __init__(self, logger, console, command_runner, web_root: str, wp_cli: str = "wp"):
        self.logger = logger
        self.console = console
        self.command_runner = command_runner
        self.web_root = web_root
        self.wp_cli = wp_cli

    def _base_cmd(self) -> List[str]:
        cmd = [self.wp_cli, f"--path={self.web_root}"]
        if os.geteuid() == 0:
            cmd.append("--allow-root")
        return cmd

    def is_installed(self) -> bool:
        result = self.command_runner.run(
            self._base_cmd() + ["core", "is-installed"],
            check=False,
            capture_output=True,
        )
        return result.returncode == 0

    def install(self, settings: WordPressSettings):
        self.console.print(f"[blue]Installing WordPress at {settings.site_url}...[/blue]")
        result = self.command_runner.run(
            self._base_cmd()
            + [
                "core",
                "install",
                f"--url={settings.site_url}",
                f"--title={settings.site_title}",
                f"--admin_user={settings.admin_user}",
                f"--admin_email={settings.admin_email}",
                "--prompt=admin_password",
                "--skip-email",
            ],
            check=False,
            capture_output=True,
            input_text=settings.admin_password + "\n",
        )
        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            if stderr:
                self.logger.error(stderr)
            raise ProvisioningError(actionable_error("install_failed", url=settings.site_url))

        self.console.print("[green]WordPress installed.[/green]")
