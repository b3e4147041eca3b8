"""Pydantic response schemas for the GarbageScan API."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from garbagescan.widget.outcome import Failure, OutcomeStatus, Success

if TYPE_CHECKING:
    from garbagescan.widget.controller import ClassifyWidget
    from garbagescan.widget.outcome import RequestOutcome, Selection


class OutcomeModel(BaseModel):
    """The current outcome of the widget."""

    status: OutcomeStatus
    label: str | None = Field(default=None, description="Classification label (success only)")
    description: str | None = Field(default=None, description="Additional result text (success only)")
    message: str | None = Field(default=None, description="Error message (failure only)")

    @classmethod
    def from_outcome(cls, outcome: RequestOutcome) -> OutcomeModel:
        if isinstance(outcome, Success):
            return cls(status=outcome.status, label=outcome.label, description=outcome.description)
        if isinstance(outcome, Failure):
            return cls(status=outcome.status, message=outcome.message)
        return cls(status=outcome.status)


class SelectionModel(BaseModel):
    """Summary of the selected image (the payload itself is not echoed)."""

    filename: str
    media_type: str | None
    size: int = Field(description="Payload size in bytes")

    @classmethod
    def from_selection(cls, selection: Selection) -> SelectionModel:
        return cls(filename=selection.filename, media_type=selection.media_type, size=selection.size)


class WidgetStateResponse(BaseModel):
    """Full widget state."""

    selection: SelectionModel | None
    outcome: OutcomeModel
    upload_enabled: bool

    @classmethod
    def from_widget(cls, widget: ClassifyWidget) -> WidgetStateResponse:
        selection = widget.selection
        return cls(
            selection=SelectionModel.from_selection(selection) if selection is not None else None,
            outcome=OutcomeModel.from_outcome(widget.outcome),
            upload_enabled=widget.upload_enabled,
        )


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    endpoint: str
    response_contract: str
    in_flight: bool


class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str
