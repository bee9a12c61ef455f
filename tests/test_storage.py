from __future__ import annotations

from pathlib import Path

import pytest

from tiffconvertx.exceptions import CollaboratorError, ValidationError
from tiffconvertx.storage import FileSystemStorage, ObjectLocation


def test_store_then_fetch(tmp_path: Path) -> None:
    storage = FileSystemStorage(tmp_path)
    location = ObjectLocation("bucket", "nested/key.pdf")

    assert storage.store(location, b"%PDF-1.4", "application/pdf") == location
    assert (tmp_path / "bucket" / "nested" / "key.pdf").read_bytes() == b"%PDF-1.4"
    assert storage.fetch(location) == b"%PDF-1.4"


def test_store_leaves_no_temporary_files(tmp_path: Path) -> None:
    storage = FileSystemStorage(tmp_path)
    storage.store(ObjectLocation("b", "a.jpg"), b"\xff\xd8", "image/jpeg")
    storage.store(ObjectLocation("b", "a.jpg"), b"\xff\xd8\xff", "image/jpeg")

    assert [path.name for path in (tmp_path / "b").iterdir()] == ["a.jpg"]
    assert (tmp_path / "b" / "a.jpg").read_bytes() == b"\xff\xd8\xff"


def test_fetch_missing_object(tmp_path: Path) -> None:
    with pytest.raises(CollaboratorError) as excinfo:
        FileSystemStorage(tmp_path).fetch(ObjectLocation("b", "missing.tiff"))
    assert excinfo.value.kind == "not_found"
    assert "b/missing.tiff" in excinfo.value.message


def test_keys_cannot_escape_root(tmp_path: Path) -> None:
    storage = FileSystemStorage(tmp_path / "root")
    with pytest.raises(CollaboratorError) as excinfo:
        storage.store(ObjectLocation("b", "../../outside.pdf"), b"x", "application/pdf")
    assert excinfo.value.kind == "invalid_key"
    assert not (tmp_path / "outside.pdf").exists()


@pytest.mark.parametrize(
    "bucket, key, message",
    [
        ("", "k", "Bucket name cannot be empty"),
        ("b", "  ", "Object key cannot be empty"),
    ],
)
def test_location_validation(bucket: str, key: str, message: str) -> None:
    with pytest.raises(ValidationError, match=message):
        ObjectLocation(bucket, key).validate()


def test_location_str() -> None:
    assert str(ObjectLocation("scans", "2024/a.tiff")) == "scans/2024/a.tiff"
