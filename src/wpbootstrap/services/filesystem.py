"""Filesystem helpers for wpbootstrap."""

import logging
import os
import pwd
import shutil
from typing import Optional

from rich.console import Console

from wpbootstrap.errors import BootstrapError


class FileSystemService:
    """Encapsulates ownership and permission side effects."""

    def __init__(self, logger: logging.Logger, console: Console, os_module=os):
        self.logger = logger
        self.console = console
        self.os = os_module

    def is_root(self) -> bool:
        return self.os.geteuid() == 0

    def lookup_user(self, user: str):
        try:
            return pwd.getpwnam(user)
        except KeyError:
            self.logger.warning("User '%s' does not exist; ownership left unchanged.", user)
            return None

    def set_permissions(self, path: str, mode: int):
        try:
            self.os.chmod(path, mode)
        except OSError as exc:
            self.logger.warning("Could not set permissions on %s: %s", path, exc)

    def set_owner(self, path: str, user: str):
        if not self.is_root():
            self.logger.debug("Not running as root; skipping chown of %s", path)
            return

        try:
            shutil.chown(path, user=user, group=self._primary_group(user))
        except (OSError, LookupError) as exc:
            self.logger.warning("Could not change owner of %s to %s: %s", path, user, exc)

    def set_tree_owner(self, root: str, user: str):
        if not self.is_root() or not os.path.exists(root):
            return
        if self.lookup_user(user) is None:
            return

        self.set_owner(root, user)
        for current_root, dirs, files in os.walk(root):
            for name in dirs + files:
                path = os.path.join(current_root, name)
                if not os.path.islink(path):
                    self.set_owner(path, user)

    def set_tree_permissions(self, root: str, dir_mode: int, file_mode: int):
        if not os.path.exists(root):
            return

        self.set_permissions(root, dir_mode)
        for current_root, dirs, files in os.walk(root):
            for directory in dirs:
                path = os.path.join(current_root, directory)
                if not os.path.islink(path):
                    self.set_permissions(path, dir_mode)
            for file_name in files:
                path = os.path.join(current_root, file_name)
                if not os.path.islink(path):
                    self.set_permissions(path, file_mode)

    def ensure_dir(self, path: str, mode: int, owner: Optional[str] = None):
        try:
            os.makedirs(path, exist_ok=True)
        except OSError as exc:
            raise BootstrapError(f"Could not create directory {path}: {exc}") from exc
        self.set_permissions(path, mode)
        if owner:
            self.set_owner(path, owner)

    def _primary_group(self, user: str):
        entry = pwd.getpwnam(user)
        return entry.pw_gid
