"""HTTP downloads with progress reporting and checksum verification."""

import hashlib
import os
from typing import Optional

from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TransferSpeedColumn,
)

from wpbootstrap import __version__
from wpbootstrap.errors import BootstrapError

CHUNK_SIZE = 64 * 1024


class DownloadService:
    """Streams a remote file into place.

    Data is written to ``<dest>.part`` and renamed only after the transfer
    and the optional SHA-256 check succeed, so ``dest_path`` either holds a
    complete file or does not exist.
    """

    def __init__(self, validation_service, logger, console, requests_module, timeout: float = 60.0):
        self.validation_service = validation_service
        self.logger = logger
        self.console = console
        self.requests = requests_module
        self.timeout = timeout

    def _progress(self) -> Progress:
        return Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            DownloadColumn(),
            TransferSpeedColumn(),
            console=self.console,
            transient=True,
        )

    def _discard(self, path: str):
        try:
            os.remove(path)
        except FileNotFoundError:
            pass

    def download_file(
        self,
        url: str,
        dest_path: str,
        description: str = "download",
        expected_sha256: Optional[str] = None,
    ) -> str:
        """Fetch ``url`` to ``dest_path`` and return the SHA-256 of what was received."""
        self.validation_service.enforce_https_policy(url, description, self.logger, self.console)
        self.logger.info("Fetching %s from %s", description, url)

        os.makedirs(os.path.dirname(dest_path) or ".", exist_ok=True)
        partial_path = f"{dest_path}.part"
        digest = hashlib.sha256()
        received = 0

        try:
            with self.requests.get(
                url,
                stream=True,
                timeout=self.timeout,
                headers={"User-Agent": f"wpbootstrap/{__version__}"},
            ) as response:
                response.raise_for_status()
                total = int(response.headers.get("Content-Length", 0)) or None

                with self._progress() as progress, open(partial_path, "wb") as out:
                    task = progress.add_task(f"[cyan]{description}", total=total)
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if not chunk:
                            continue
                        out.write(chunk)
                        digest.update(chunk)
                        received += len(chunk)
                        progress.update(task, advance=len(chunk))
        except self.requests.RequestException as exc:
            self._discard(partial_path)
            raise BootstrapError(f"Download failed for {description}: {exc}") from exc

        actual_sha256 = digest.hexdigest()
        if expected_sha256 and actual_sha256 != expected_sha256:
            self._discard(partial_path)
            raise BootstrapError(
                f"Checksum mismatch for {description}. Expected {expected_sha256}, "
                f"but got {actual_sha256}."
            )

        os.replace(partial_path, dest_path)
        self.logger.info(
            "Received %s bytes for %s (sha256 %s)", received, description, actual_sha256
        )
        return actual_sha256
