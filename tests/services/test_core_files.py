import io
import zipfile

import pytest
from rich.console import Console

from wpbootstrap.errors import BootstrapError
from wpbootstrap.services.archive import ArchiveService
from wpbootstrap.services.core_files import CoreFilesService


class DummyLogger:
    def info(self, *_args, **_kwargs):
        return None


class FakeDownloadService:
    def __init__(self, members):
        self.members = members
        self.calls = []

    def download_file(self, url, dest_path, description="", expected_sha256=None):
        self.calls.append((url, expected_sha256))
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as zip_file:
            for name, content in self.members.items():
                zip_file.writestr(name, content)
        with open(dest_path, "wb") as file_obj:
            file_obj.write(buffer.getvalue())


def _service(download_service):
    return CoreFilesService(
        logger=DummyLogger(),
        console=Console(record=True),
        download_service=download_service,
        archive_service=ArchiveService(),
    )


def test_archive_url_honours_version_pin():
    service = _service(FakeDownloadService({}))

    assert service.archive_url("latest") == "https://wordpress.org/latest.zip"
    assert service.archive_url("6.4.3") == "https://wordpress.org/wordpress-6.4.3.zip"


def test_fetch_places_core_without_clobbering_volume_content(tmp_path):
    web_root = tmp_path / "html"
    (web_root / "wp-content" / "themes" / "mine").mkdir(parents=True)
    (web_root / "wp-content" / "themes" / "mine" / "style.css").write_text("keep", encoding="utf-8")

    download = FakeDownloadService(
        {
            "wordpress/wp-load.php": "<?php // core",
            "wordpress/index.php": "<?php",
            "wordpress/wp-content/themes/mine/style.css": "core copy",
        }
    )
    service = _service(download)

    assert service.core_present(str(web_root)) is False
    service.fetch(str(web_root), version="6.4.3", expected_sha256="ab" * 32)

    assert service.core_present(str(web_root)) is True
    assert (web_root / "index.php").exists()
    assert (web_root / "wp-content" / "themes" / "mine" / "style.css").read_text(
        encoding="utf-8"
    ) == "keep"
    assert download.calls == [("https://wordpress.org/wordpress-6.4.3.zip", "ab" * 32)]


def test_fetch_rejects_archive_without_core_entry(tmp_path):
    service = _service(FakeDownloadService({"something/else.php": "<?php"}))

    with pytest.raises(BootstrapError, match="does not contain wordpress/wp-load.php"):
        service.fetch(str(tmp_path / "html"))
