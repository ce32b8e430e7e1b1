import os
import time
from io import BytesIO

import pytest
from PIL import Image

from billshare.errors import NotFound, ValidationError
from billshare.services.uploads import ReceiptStorage


def png_bytes(size=(2400, 1000), mode="RGBA") -> bytes:
    buffer = BytesIO()
    Image.new(mode, size, color=(200, 200, 200, 255) if mode == "RGBA" else "white").save(buffer, format="PNG")
    return buffer.getvalue()


def test_save_resizes_and_converts_to_jpeg(tmp_path):
    storage = ReceiptStorage(tmp_path, max_file_size=5 * 1024 * 1024)

    stored = storage.save(png_bytes(), "image/png", "receipt.png")

    assert stored.file_name == f"receipt_{stored.id}.jpg"
    assert stored.file_path == f"/uploads/{stored.file_name}"
    assert stored.original_name == "receipt.png"
    with Image.open(tmp_path / stored.file_name) as img:
        assert img.format == "JPEG"
        assert img.size == (1200, 500)


def test_small_images_are_not_enlarged(tmp_path):
    storage = ReceiptStorage(tmp_path, max_file_size=5 * 1024 * 1024)

    stored = storage.save(png_bytes((300, 400), "RGB"), "image/png")

    with Image.open(tmp_path / stored.file_name) as img:
        assert img.size == (300, 400)


def test_rejects_non_images_and_large_files(tmp_path):
    storage = ReceiptStorage(tmp_path, max_file_size=100)

    with pytest.raises(ValidationError):
        storage.save(b"%PDF-1.4", "application/pdf")
    with pytest.raises(ValidationError):
        storage.save(png_bytes(), "image/png")

    roomy = ReceiptStorage(tmp_path, max_file_size=1024)
    with pytest.raises(ValidationError):
        roomy.save(b"not really an image", "image/jpeg")


def test_info_read_delete(tmp_path):
    storage = ReceiptStorage(tmp_path, max_file_size=5 * 1024 * 1024)
    stored = storage.save(png_bytes((100, 100), "RGB"), "image/png")

    assert storage.info(stored.id).size == stored.size
    assert storage.read(stored.id)[:2] == b"\xff\xd8"

    storage.delete(stored.id)

    with pytest.raises(NotFound):
        storage.info(stored.id)
    with pytest.raises(NotFound):
        storage.delete(stored.id)
    with pytest.raises(NotFound):
        storage.read("../../etc/passwd")


def test_cleanup_old_files(tmp_path):
    storage = ReceiptStorage(tmp_path, max_file_size=5 * 1024 * 1024)
    old = storage.save(png_bytes((50, 50), "RGB"), "image/png")
    fresh = storage.save(png_bytes((50, 50), "RGB"), "image/png")
    ten_days_ago = time.time() - 10 * 24 * 3600
    os.utime(tmp_path / old.file_name, (ten_days_ago, ten_days_ago))

    deleted = storage.cleanup_old_files(max_age_days=7)

    assert deleted == 1
    assert not (tmp_path / old.file_name).exists()
    assert (tmp_path / fresh.file_name).exists()


def test_decompression_bomb_is_a_validation_error(tmp_path, monkeypatch):
    storage = ReceiptStorage(tmp_path, max_file_size=5 * 1024 * 1024)
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)

    with pytest.raises(ValidationError):
        storage.save(png_bytes((640, 480), "RGB"), "image/png")

    assert list(tmp_path.iterdir()) == []
