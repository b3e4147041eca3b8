"""Response contracts of the classification endpoint.

The endpoint answers either with a plain-text label or with a JSON object.
The two are mutually exclusive; which one applies is a deployment setting.
Both are parsed into an explicit variant and mapped to a ``Success``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, assert_never

from pydantic import BaseModel, ConfigDict, field_validator

from garbagescan.widget.outcome import Success

DEFAULT_TITLE = "Resultado da Classificação"
DEFAULT_DESCRIPTION = "Item classificado com sucesso."

ResponseContract = Literal["text", "json"]


@dataclass(frozen=True)
class TextLabel:
    """Plain-text response: the body is the label."""

    text: str


class JsonClassification(BaseModel):
    """JSON response: every field is optional."""

    model_config = ConfigDict(extra="ignore")

    title: str | None = None
    label: str | None = None
    description: str | None = None
    confidence: float | None = None

    @field_validator("title", "label", "description", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> str | None:
        return None if value is None else str(value)

    @field_validator("confidence", mode="before")
    @classmethod
    def _numeric_only(cls, value: Any) -> float | None:
        if isinstance(value, bool) or not isinstance(value, int | float):
            return None
        return float(value)


ClassificationResponse = TextLabel | JsonClassification


def to_success(response: ClassificationResponse) -> Success:
    """Build the displayed result for a parsed response."""
    if isinstance(response, TextLabel):
        return Success(label=response.text)
    if isinstance(response, JsonClassification):
        title = response.title if response.title is not None else response.label
        if response.description is not None:
            description = response.description
        elif response.confidence is not None:
            description = f"Confiança: {response.confidence * 100:.1f}%"
        else:
            description = DEFAULT_DESCRIPTION
        return Success(label=title if title is not None else DEFAULT_TITLE, description=description)
    assert_never(response)
