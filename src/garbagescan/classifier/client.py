"""HTTP client for the external classification endpoint."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Protocol

import httpx
from pydantic import ValidationError

from garbagescan.classifier.contracts import (
    ClassificationResponse,
    JsonClassification,
    TextLabel,
)
from garbagescan.widget.media import UNREADABLE_MESSAGE

if TYPE_CHECKING:
    from garbagescan.config import Settings
    from garbagescan.widget.outcome import Selection

logger = logging.getLogger(__name__)

EMPTY_RESPONSE_MESSAGE = "Resposta vazia do servidor de classificação."
INVALID_RESPONSE_MESSAGE = "Resposta inválida do servidor de classificação."
TRANSPORT_ERROR_MESSAGE = "Falha na ligação ao servidor de classificação: {error}"


class ClassificationError(Exception):
    """Raised when a classification request does not produce a result."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ImageClassifier(Protocol):
    """Protocol for anything that can classify a selected image."""

    async def classify(self, selection: Selection) -> ClassificationResponse:
        """Send the image and return the parsed response.

        Args:
            selection: A validated selection with payload and media type.

        Returns:
            The response in the configured contract.

        Raises:
            ClassificationError: On transport failure, non-2xx status, or an
                unusable body.
        """
        ...


class ClassificationClient:
    """Posts images as multipart form data and parses the reply."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._settings = settings
        self._client = httpx.AsyncClient(timeout=settings.request_timeout, transport=transport)

    @property
    def endpoint(self) -> str:
        return self._settings.predict_url

    async def classify(self, selection: Selection) -> ClassificationResponse:
        """POST the raw image bytes and parse the response body."""
        if selection.payload is None:
            raise ClassificationError(UNREADABLE_MESSAGE)

        files = {
            self._settings.upload_field: (
                selection.filename,
                selection.payload,
                selection.media_type or "application/octet-stream",
            )
        }
        logger.info("Classifying %s (%d bytes) via %s", selection.filename, selection.size, self.endpoint)
        try:
            response = await self._client.post(self.endpoint, files=files)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning("Classification request failed: %s", exc)
            raise ClassificationError(TRANSPORT_ERROR_MESSAGE.format(error=exc)) from exc

        if not response.is_success:
            body = response.text.strip()
            logger.warning("Classification endpoint returned HTTP %s", response.status_code)
            raise ClassificationError(body or f"HTTP {response.status_code}")

        return self._parse(response)

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    # -- Internal -----------------------------------------------------------

    def _parse(self, response: httpx.Response) -> ClassificationResponse:
        """Parse a 2xx body in the configured contract.

        A JSON body that is not an object (a list, a bare string, a number)
        is rejected rather than shown with the default title and description
        that the older front end fell back to.
        """
        if self._settings.response_contract == "text":
            text = response.text.strip()
            if not text:
                raise ClassificationError(EMPTY_RESPONSE_MESSAGE)
            return TextLabel(text=text)

        try:
            data = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            raise ClassificationError(INVALID_RESPONSE_MESSAGE) from None
        if not isinstance(data, dict):
            raise ClassificationError(INVALID_RESPONSE_MESSAGE)
        try:
            return JsonClassification.model_validate(data)
        except ValidationError:
            raise ClassificationError(INVALID_RESPONSE_MESSAGE) from None
