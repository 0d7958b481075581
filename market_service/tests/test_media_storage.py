from __future__ import annotations

from pathlib import Path

import pytest

from market_service.app.errors import ValidationError
from market_service.app.services.media_storage import LocalMediaStorage


def test_save_writes_file_under_upload_dir(tmp_path: Path) -> None:
    storage = LocalMediaStorage(str(tmp_path / "uploads"))

    url = storage.save("Photo.JPG", b"data")

    assert url.startswith("/uploads/")
    assert url.endswith(".jpg")
    stored = tmp_path / "uploads" / url.rsplit("/", 1)[1]
    assert stored.read_bytes() == b"data"


@pytest.mark.parametrize("filename,data", [("run.exe", b"x"), ("a.png", b""), ("noext", b"x")])
def test_save_rejects_unsupported_uploads(tmp_path: Path, filename: str, data: bytes) -> None:
    storage = LocalMediaStorage(str(tmp_path))

    with pytest.raises(ValidationError):
        storage.save(filename, data)
