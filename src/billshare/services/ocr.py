from __future__ import annotations

from io import BytesIO
from typing import Protocol

import pytesseract
from PIL import Image, UnidentifiedImageError

from billshare.errors import OcrFailed
from billshare.logging import get_logger


class OcrProvider(Protocol):
    def recognize(self, image: bytes) -> str: ...


class TesseractOcr:
    """Plain Tesseract recognition; the image is used as stored."""

    def __init__(self, languages: str = "eng", psm: int = 6) -> None:
        self.languages = languages
        self.config = f"--psm {psm}"
        self._log = get_logger(__name__)

    def recognize(self, image: bytes) -> str:
        try:
            with Image.open(BytesIO(image)) as img:
                text = pytesseract.image_to_string(img, lang=self.languages, config=self.config)
        except UnidentifiedImageError as exc:
            raise OcrFailed("The stored file is not a readable image.") from exc
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError) as exc:
            self._log.error("ocr.failed", error=str(exc))
            raise OcrFailed("Text recognition is unavailable, add items manually.") from exc

        self._log.info("ocr.done", chars=len(text))
        return text
