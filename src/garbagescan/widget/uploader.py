"""Uploader capability: file intake, preview source, and basic image checks.

Turns a multipart form file into a :class:`Selection`. Rejections are
reported through :class:`UploaderError`, one kind per failure, before the
widget's own validation runs.
"""

from __future__ import annotations

import io
import logging
from enum import StrEnum
from fractions import Fraction
from typing import TYPE_CHECKING

from PIL import Image

from garbagescan.widget.media import file_extension
from garbagescan.widget.outcome import Selection

if TYPE_CHECKING:
    from fastapi import UploadFile

    from garbagescan.config import Settings

logger = logging.getLogger(__name__)


class UploaderErrorKind(StrEnum):
    ACCEPT_TYPE = "accept_type"
    MAX_FILE_SIZE = "max_file_size"
    UNREADABLE = "unreadable"
    RESOLUTION = "resolution"


UPLOADER_ERROR_MESSAGES: dict[UploaderErrorKind, str] = {
    UploaderErrorKind.ACCEPT_TYPE: "Tipo de ficheiro não suportado pelo carregador.",
    UploaderErrorKind.MAX_FILE_SIZE: "O ficheiro excede o tamanho máximo aceite pelo carregador.",
    UploaderErrorKind.UNREADABLE: "A imagem está corrompida ou não pode ser lida.",
    UploaderErrorKind.RESOLUTION: "A resolução da imagem não é válida.",
}


class UploaderError(Exception):
    """Raised when the uploader rejects a picked file."""

    def __init__(self, kind: UploaderErrorKind) -> None:
        super().__init__(UPLOADER_ERROR_MESSAGES[kind])
        self.kind = kind


class ImageUploader:
    """Reads uploaded files and applies the uploader's own checks."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    async def read(self, upload: UploadFile | None) -> Selection | None:
        """Build a selection from a form upload.

        At most one byte more than the largest configured size limit is
        read, so an oversize file is never held in full.

        Returns:
            None for an empty selection. A selection without payload when
            the file could not be read.

        Raises:
            UploaderError: If the file fails one of the uploader checks.
        """
        if upload is None or not upload.filename:
            return None

        try:
            payload = await upload.read(self.read_limit + 1)
        except OSError:
            logger.warning("Could not read uploaded file %s", upload.filename, exc_info=True)
            return Selection(filename=upload.filename, media_type=upload.content_type, payload=None)

        selection = Selection(filename=upload.filename, media_type=upload.content_type, payload=payload)
        self.check(selection)
        return selection

    @property
    def read_limit(self) -> int:
        settings = self._settings
        return max(settings.max_file_size, settings.uploader_max_file_size or 0)

    def check(self, selection: Selection) -> None:
        """Run the uploader checks on a readable selection."""
        if selection.payload is None:
            return

        settings = self._settings
        accept = settings.uploader_accept_types
        if accept is not None and file_extension(selection.filename) not in accept:
            raise UploaderError(UploaderErrorKind.ACCEPT_TYPE)

        max_size = settings.uploader_max_file_size
        if max_size is not None and selection.size > max_size:
            raise UploaderError(UploaderErrorKind.MAX_FILE_SIZE)

        # Oversize files are left for the widget to report, without decoding.
        if selection.size > settings.max_file_size:
            return

        width, height = self._decode_dimensions(selection.payload)
        if not self._resolution_ok(width, height):
            logger.info("Rejected %s: resolution %sx%s", selection.filename, width, height)
            raise UploaderError(UploaderErrorKind.RESOLUTION)

    # -- Internal -----------------------------------------------------------

    @staticmethod
    def _decode_dimensions(payload: bytes) -> tuple[int, int]:
        try:
            with Image.open(io.BytesIO(payload)) as image:
                width, height = image.size
                image.verify()
        except Image.DecompressionBombError:
            raise UploaderError(UploaderErrorKind.RESOLUTION) from None
        except (OSError, SyntaxError, ValueError):
            raise UploaderError(UploaderErrorKind.UNREADABLE) from None
        return width, height

    def _resolution_ok(self, width: int, height: int) -> bool:
        settings = self._settings
        if width * height > settings.max_image_pixels:
            return False

        target_w, target_h = settings.resolution_width, settings.resolution_height
        if target_w is None or target_h is None:
            return True

        if settings.resolution_type == "absolute":
            return (width, height) == (target_w, target_h)
        if settings.resolution_type == "less":
            return width <= target_w and height <= target_h
        if settings.resolution_type == "more":
            return width >= target_w and height >= target_h
        return Fraction(width, height) == Fraction(target_w, target_h)
