"""JSON API route definitions."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Request, UploadFile, status

from garbagescan.api.dependencies import get_settings_from_request, get_uploader, get_widget, verify_api_key
from garbagescan.api.schemas import ErrorResponse, HealthResponse, WidgetStateResponse
from garbagescan.widget.uploader import UploaderError

if TYPE_CHECKING:
    from garbagescan.widget.outcome import RequestOutcome

router = APIRouter(prefix="/api/v1", dependencies=[Depends(verify_api_key)])


async def submit_upload(request: Request, upload: UploadFile | None) -> asyncio.Task[RequestOutcome] | None:
    """Pass an uploaded file through the uploader into the widget.

    Returns:
        The classification task when a request was started.
    """
    widget = get_widget(request)
    try:
        selection = await get_uploader(request).read(upload)
    except UploaderError as exc:
        widget.on_selection_error(exc.kind)
        return None
    return widget.on_selection_changed(selection)


@router.get(
    "/state",
    response_model=WidgetStateResponse,
    summary="Current widget state",
)
async def get_state(request: Request) -> WidgetStateResponse:
    """Return the selection summary, the outcome and whether upload is enabled."""
    return WidgetStateResponse.from_widget(get_widget(request))


@router.post(
    "/selection",
    response_model=WidgetStateResponse,
    responses={status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse}},
    summary="Select an image and classify it",
)
async def change_selection(
    request: Request,
    file: UploadFile | None = None,
    wait: bool = True,
) -> WidgetStateResponse:
    """Replace the selection with the uploaded image (or clear it when none is sent).

    With ``wait`` the response is sent once the classification completes;
    otherwise it reports the loading state right away.
    """
    task = await submit_upload(request, file)
    widget = get_widget(request)
    if task is not None and wait:
        await widget.wait_settled()
    return WidgetStateResponse.from_widget(widget)


@router.post(
    "/reset",
    response_model=WidgetStateResponse,
    summary="Clear selection and outcome",
)
async def reset(request: Request) -> WidgetStateResponse:
    """Reset the widget, abandoning any pending request."""
    widget = get_widget(request)
    widget.reset()
    return WidgetStateResponse.from_widget(widget)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
)
async def health(request: Request) -> HealthResponse:
    """Return service health status."""
    settings = get_settings_from_request(request)
    return HealthResponse(
        status="ok",
        endpoint=settings.predict_url,
        response_contract=settings.response_contract,
        in_flight=get_widget(request).in_flight,
    )
