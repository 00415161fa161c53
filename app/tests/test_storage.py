"""
Tests for local blob storage and upload validation
"""
import pytest

from app.core.errors import ValidationFailed
from app.services.storage import IncomingFile, LocalBlobStorage, validate_image


def test_store_and_delete(tmp_path):
    storage = LocalBlobStorage(str(tmp_path), "/uploads")
    url = storage.store(IncomingFile(filename="Shot.PNG", content_type="image/png", data=b"png"))

    assert url.startswith("/uploads/") and url.endswith(".png")
    path = tmp_path / url.rsplit("/", 1)[1]
    assert path.read_bytes() == b"png"

    storage.delete(url)
    assert not path.exists()
    storage.delete(url)


def test_delete_refuses_paths_outside_root(tmp_path):
    outside = tmp_path / "keep.txt"
    outside.write_text("keep")
    storage = LocalBlobStorage(str(tmp_path / "uploads"), "/uploads")

    storage.delete("/uploads/../keep.txt")
    storage.delete("/elsewhere/keep.txt")
    assert outside.exists()


def test_validate_image():
    validate_image(IncomingFile(filename="a.jpg", content_type="image/jpeg", data=b"x"))
    with pytest.raises(ValidationFailed):
        validate_image(IncomingFile(filename="a.exe", content_type="image/png", data=b"x"))
    with pytest.raises(ValidationFailed):
        validate_image(IncomingFile(filename="a.png", content_type="application/octet-stream", data=b"x"))
