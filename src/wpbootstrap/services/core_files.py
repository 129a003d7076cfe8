"""WordPress core retrieval."""

import os
import tempfile

from wpbootstrap.constants import CORE_ENTRY_FILE, DEFAULT_DOWNLOAD_URL
from wpbootstrap.errors import BootstrapError


class CoreFilesService:
    """Fetches the distributable core into the web root when it is missing."""

    ARCHIVE_ROOT = "wordpress"

    def __init__(
        self,
        logger,
        console,
        download_service,
        archive_service,
        download_url: str = DEFAULT_DOWNLOAD_URL,
    ):
        self.logger = logger
        self.console = console
        self.download_service = download_service
        self.archive_service = archive_service
        self.download_url = download_url.rstrip("/")

    def core_present(self, web_root: str) -> bool:
        return os.path.isfile(os.path.join(web_root, CORE_ENTRY_FILE))

    def archive_url(self, version: str) -> str:
        if version == "latest":
            return f"{self.download_url}/latest.zip"
        return f"{self.download_url}/wordpress-{version}.zip"

    def fetch(self, web_root: str, version: str = "latest", expected_sha256=None) -> int:
        url = self.archive_url(version)
        self.console.print(f"[blue]Downloading WordPress core ({version})...[/blue]")

        with tempfile.TemporaryDirectory(prefix="wpbootstrap-core-") as staging:
            zip_path = os.path.join(staging, "wordpress.zip")
            extract_dir = os.path.join(staging, "extract")
            os.makedirs(extract_dir)

            self.download_service.download_file(
                url,
                zip_path,
                description="WordPress core",
                expected_sha256=expected_sha256,
            )
            self.archive_service.safe_extract_zip(zip_path, extract_dir)

            core_dir = os.path.join(extract_dir, self.ARCHIVE_ROOT)
            if not os.path.isfile(os.path.join(core_dir, CORE_ENTRY_FILE)):
                raise BootstrapError(
                    f"Downloaded archive does not contain "
                    f"{self.ARCHIVE_ROOT}/{CORE_ENTRY_FILE}: {url}"
                )

            moved = self.archive_service.merge_tree(core_dir, web_root)

        self.logger.info("Placed %s core file(s) into %s", moved, web_root)
        self.console.print("[green]WordPress core in place.[/green]")
        return moved
