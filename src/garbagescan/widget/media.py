"""Media-type inference and client-side validation of a selection."""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from garbagescan.config import Settings
    from garbagescan.widget.outcome import Selection

EXTENSION_MEDIA_TYPES: dict[str, str] = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
    "gif": "image/gif",
    "bmp": "image/bmp",
}

# Declared types that carry no information about the image format.
_GENERIC_MEDIA_TYPES = {"", "application/octet-stream"}

UNREADABLE_MESSAGE = "Não foi possível ler a imagem selecionada."
UNSUPPORTED_TYPE_MESSAGE = "Formato não suportado. Usa uma imagem {extensions}."
OVERSIZE_MESSAGE = "A imagem excede o limite de {limit} MB."


class SelectionRejected(Exception):
    """Raised when a selection fails the widget's own validation."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


def file_extension(filename: str) -> str:
    """Return the lower-cased extension of *filename* without the dot."""
    return PurePosixPath(filename).suffix.lstrip(".").lower()


def infer_media_type(filename: str) -> str | None:
    """Map a filename extension to its media type, if recognised."""
    return EXTENSION_MEDIA_TYPES.get(file_extension(filename))


def accepted_media_types(extensions: list[str]) -> set[str]:
    return {EXTENSION_MEDIA_TYPES[ext] for ext in extensions if ext in EXTENSION_MEDIA_TYPES}


def validate_selection(selection: Selection, settings: Settings) -> Selection:
    """Check a readable selection against the size and type limits.

    The declared media type is replaced by the one inferred from the
    filename when it is missing or generic.

    Returns:
        The selection, with its media type resolved.

    Raises:
        SelectionRejected: If the file is unreadable, too large, or of a
            media type outside the accepted set.
    """
    if selection.payload is None:
        raise SelectionRejected(UNREADABLE_MESSAGE)

    media_type = (selection.media_type or "").split(";")[0].strip().lower()
    if media_type in _GENERIC_MEDIA_TYPES:
        media_type = infer_media_type(selection.filename) or ""

    if selection.size > settings.max_file_size:
        raise SelectionRejected(OVERSIZE_MESSAGE.format(limit=f"{settings.max_file_size / 1_048_576:g}"))

    if media_type not in accepted_media_types(settings.accepted_types):
        extensions = ", ".join(ext.upper() for ext in settings.accepted_types)
        raise SelectionRejected(UNSUPPORTED_TYPE_MESSAGE.format(extensions=extensions))

    return selection.with_media_type(media_type)
