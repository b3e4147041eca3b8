"""Widget state types: the current selection and the request outcome."""

from __future__ import annotations

import base64
from dataclasses import dataclass, replace
from enum import StrEnum

from garbagescan.widget.media import EXTENSION_MEDIA_TYPES


class OutcomeStatus(StrEnum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class Selection:
    """A single picked image.

    ``payload`` is None when the file reference could not be read.
    ``media_type`` is the declared type, or the one inferred from the
    filename extension once the selection has been validated.
    """

    filename: str
    media_type: str | None
    payload: bytes | None

    @property
    def size(self) -> int:
        return len(self.payload) if self.payload is not None else 0

    @property
    def data_url(self) -> str | None:
        """Preview of the image as a ``data:`` URL.

        Only built for known image media types; anything else has no preview.
        """
        if self.payload is None or self.media_type not in EXTENSION_MEDIA_TYPES.values():
            return None
        encoded = base64.b64encode(self.payload).decode("ascii")
        return f"data:{self.media_type};base64,{encoded}"

    def with_media_type(self, media_type: str) -> Selection:
        return replace(self, media_type=media_type)


# ---------------------------------------------------------------------------
# RequestOutcome variant
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Idle:
    status: OutcomeStatus = OutcomeStatus.IDLE


@dataclass(frozen=True)
class Loading:
    status: OutcomeStatus = OutcomeStatus.LOADING


@dataclass(frozen=True)
class Success:
    """Classification result as displayed to the user."""

    label: str
    description: str | None = None
    status: OutcomeStatus = OutcomeStatus.SUCCESS


@dataclass(frozen=True)
class Failure:
    """A terminal error for the current attempt."""

    message: str
    status: OutcomeStatus = OutcomeStatus.FAILURE


RequestOutcome = Idle | Loading | Success | Failure

IDLE = Idle()
LOADING = Loading()
