"""Upload-classify widget: UI state and its event handlers.

State changes only happen on the event loop. The outbound request is the
only operation that suspends; it runs as a task so the handlers themselves
never wait on the network.

Each selection change, selection error and reset starts a new generation.
The pending request of the previous generation is cancelled, and a result
that still arrives for it is dropped.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from garbagescan.classifier.client import ClassificationError
from garbagescan.classifier.contracts import to_success
from garbagescan.widget.media import SelectionRejected, validate_selection
from garbagescan.widget.outcome import IDLE, LOADING, Failure, RequestOutcome, Selection
from garbagescan.widget.uploader import UPLOADER_ERROR_MESSAGES, UploaderErrorKind

if TYPE_CHECKING:
    from garbagescan.classifier.client import ImageClassifier
    from garbagescan.config import Settings

logger = logging.getLogger(__name__)


class ClassifyWidget:
    """Holds the selected image and the outcome of its classification."""

    def __init__(self, classifier: ImageClassifier, settings: Settings) -> None:
        self._classifier = classifier
        self._settings = settings
        self._selection: Selection | None = None
        self._outcome: RequestOutcome = IDLE
        self._generation: int = 0
        self._pending: asyncio.Task[RequestOutcome] | None = None

    @property
    def selection(self) -> Selection | None:
        return self._selection

    @property
    def outcome(self) -> RequestOutcome:
        return self._outcome

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def in_flight(self) -> bool:
        """Whether the current request has not completed yet."""
        return self._pending is not None and not self._pending.done()

    @property
    def upload_enabled(self) -> bool:
        """The upload trigger is offered only while nothing is selected."""
        return self._selection is None

    # -- Event handlers -----------------------------------------------------

    def on_selection_changed(self, selection: Selection | None) -> asyncio.Task[RequestOutcome] | None:
        """Replace the selection and, if it validates, start classifying it.

        Must be called from a running event loop.

        Returns:
            The request task, or None when no request was issued.
        """
        self._start_generation()
        self._selection = selection
        if selection is None:
            return None

        try:
            selection = validate_selection(selection, self._settings)
        except SelectionRejected as exc:
            logger.info("Rejected %s: %s", selection.filename, exc.message)
            self._outcome = Failure(exc.message)
            return None

        self._selection = selection
        self._outcome = LOADING
        self._pending = asyncio.create_task(self._request(selection, self._generation))
        return self._pending

    def on_selection_error(self, kind: UploaderErrorKind) -> RequestOutcome:
        """Show the message for a file the uploader refused."""
        self._start_generation()
        self._outcome = Failure(UPLOADER_ERROR_MESSAGES[kind])
        logger.info("Uploader rejected selection: %s", kind)
        return self._outcome

    def reset(self) -> None:
        """Clear selection and outcome, even while a request is pending."""
        self._start_generation()
        self._selection = None
        logger.debug("Widget reset (generation %d)", self._generation)

    async def wait_settled(self) -> RequestOutcome:
        """Wait for the pending request, if any, and return the outcome."""
        if self._pending is not None:
            await asyncio.wait({self._pending})
        return self._outcome

    async def shutdown(self) -> None:
        """Cancel the pending request, if any, and wait for it to finish."""
        pending = self._pending
        self._start_generation()
        if pending is not None:
            await asyncio.gather(pending, return_exceptions=True)

    # -- Internal -----------------------------------------------------------

    def _start_generation(self) -> None:
        self._generation += 1
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None
        self._outcome = IDLE

    async def _request(self, selection: Selection, generation: int) -> RequestOutcome:
        try:
            response = await self._classifier.classify(selection)
        except ClassificationError as exc:
            outcome: RequestOutcome = Failure(exc.message)
        else:
            outcome = to_success(response)

        if generation != self._generation:
            logger.debug("Discarding result for stale generation %d", generation)
            return outcome

        logger.info("Classification of %s finished: %s", selection.filename, outcome.status)
        self._outcome = outcome
        return outcome
