"""Subprocess execution and process hand-off for wpbootstrap."""

import logging
import os
import subprocess
from typing import Dict, List, Optional

from wpbootstrap.errors import BootstrapError


class CommandRunner:
    """Runs external commands with consistent error handling."""

    def __init__(self, logger, default_timeout: Optional[float] = None, exec_module=os):
        self.logger = logger
        self.default_timeout = default_timeout
        self.exec_module = exec_module

    @staticmethod
    def _child_env(extra_env: Optional[Dict[str, str]]) -> Optional[Dict[str, str]]:
        if not extra_env:
            return None
        env = dict(os.environ)
        env.update(extra_env)
        return env

    def run(
        self,
        cmd: List[str],
        check: bool = True,
        capture_output: bool = False,
        timeout: Optional[float] = None,
        input_text: Optional[str] = None,
        extra_env: Optional[Dict[str, str]] = None,
    ) -> subprocess.CompletedProcess:
        cmd_str = " ".join(cmd)
        self.logger.debug("Executing: %s", cmd_str)

        effective_timeout = timeout if timeout is not None else self.default_timeout

        try:
            result = subprocess.run(
                cmd,
                text=True,
                capture_output=capture_output,
                timeout=effective_timeout,
                input=input_text,
                env=self._child_env(extra_env),
            )
        except FileNotFoundError as exc:
            raise BootstrapError(
                f"Required command not found: {cmd[0]}. Is it installed in this image?"
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise BootstrapError(
                f"Command timed out after {effective_timeout}s: {cmd_str}"
            ) from exc
        except OSError as exc:
            raise BootstrapError(f"Failed to execute command: {cmd_str}. {exc}") from exc

        if capture_output and result.stdout:
            self.logger.debug("Command output: %s", result.stdout.strip())

        if result.returncode == 0:
            return result

        stderr = (result.stderr or "").strip() if capture_output else ""
        message = f"Command failed ({result.returncode}): {cmd_str}"
        if stderr:
            message = f"{message}\n{stderr}"

        if check:
            raise BootstrapError(message)

        self.logger.debug(message)
        return result

    def start(
        self,
        cmd: List[str],
        extra_env: Optional[Dict[str, str]] = None,
    ) -> subprocess.Popen:
        """Launch a background child; the caller owns and must reap it."""
        cmd_str = " ".join(cmd)
        self.logger.debug("Starting: %s", cmd_str)
        try:
            return subprocess.Popen(cmd, env=self._child_env(extra_env))
        except FileNotFoundError as exc:
            raise BootstrapError(
                f"Required command not found: {cmd[0]}. Is it installed in this image?"
            ) from exc
        except OSError as exc:
            raise BootstrapError(f"Failed to start command: {cmd_str}. {exc}") from exc

    def exec_replace(self, cmd: List[str]):
        """Replace the current process image with ``cmd``.

        The server becomes the container's foreground process, so stop signals
        go to it directly. Returns only when ``exec_module`` is a test double.
        """
        if not cmd:
            raise BootstrapError("No server command given to hand off to.")

        self.logger.info("Handing off to: %s", " ".join(cmd))
        handlers = logging.getLogger().handlers + list(getattr(self.logger, "handlers", []))
        for handler in handlers:
            handler.flush()

        try:
            self.exec_module.execvp(cmd[0], cmd)
        except FileNotFoundError as exc:
            raise BootstrapError(f"Server command not found: {cmd[0]}") from exc
        except OSError as exc:
            raise BootstrapError(f"Could not exec {cmd[0]}: {exc}") from exc
