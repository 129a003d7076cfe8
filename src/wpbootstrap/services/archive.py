"""Zip handling for the WordPress core archive."""

import os
import shutil
import zipfile
from pathlib import Path
from typing import List, Tuple

from wpbootstrap.errors import BootstrapError

SYMLINK_FILE_TYPE = 0o120000


class ArchiveService:
    """Unpacks release archives without trusting their member paths."""

    @staticmethod
    def _target_for(base: Path, member: zipfile.ZipInfo) -> Path:
        target = (base / member.filename.replace("\\", "/")).resolve()
        if target != base and base not in target.parents:
            raise BootstrapError(
                f"Unsafe ZIP entry `{member.filename}` resolves outside {base}; "
                "extraction aborted."
            )
        if (member.external_attr >> 16) & 0o170000 == SYMLINK_FILE_TYPE:
            raise BootstrapError(
                f"Unsafe ZIP entry `{member.filename}` is a symbolic link; extraction aborted."
            )
        return target

    def safe_extract_zip(self, zip_path: str, destination_dir: str) -> int:
        """Extract ``zip_path`` after every member has been checked. Returns the file count."""
        base = Path(destination_dir).resolve()

        try:
            with zipfile.ZipFile(zip_path) as archive:
                plan: List[Tuple[zipfile.ZipInfo, Path]] = [
                    (member, self._target_for(base, member)) for member in archive.infolist()
                ]

                extracted = 0
                for member, target in plan:
                    if member.is_dir():
                        target.mkdir(parents=True, exist_ok=True)
                        continue
                    target.parent.mkdir(parents=True, exist_ok=True)
                    with archive.open(member) as src, open(target, "wb") as dst:
                        shutil.copyfileobj(src, dst)
                    extracted += 1
        except zipfile.BadZipFile as exc:
            raise BootstrapError(f"Invalid ZIP archive: {zip_path}") from exc

        return extracted

    def merge_tree(self, source_dir: str, destination_dir: str) -> int:
        """Move everything under ``source_dir`` into ``destination_dir``.

        Existing destination files win, so content already on a mounted volume
        (themes, plugins, uploads) is never overwritten. Returns the number of
        files moved.
        """
        moved = 0
        os.makedirs(destination_dir, exist_ok=True)
        for item in os.listdir(source_dir):
            src_path = os.path.join(source_dir, item)
            dst_path = os.path.join(destination_dir, item)

            if os.path.isdir(src_path) and not os.path.islink(src_path):
                if os.path.exists(dst_path):
                    moved += self.merge_tree(src_path, dst_path)
                else:
                    shutil.move(src_path, dst_path)
                    moved += sum(len(files) for _, _, files in os.walk(dst_path))
                continue

            if not os.path.exists(dst_path):
                shutil.move(src_path, dst_path)
                moved += 1
        return moved
