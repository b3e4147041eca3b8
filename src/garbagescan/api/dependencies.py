"""Request dependencies: app-state accessors and API key authentication."""

from __future__ import annotations

import secrets
from typing import TYPE_CHECKING, Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

if TYPE_CHECKING:
    from garbagescan.config import Settings
    from garbagescan.widget.controller import ClassifyWidget
    from garbagescan.widget.uploader import ImageUploader

_bearer_scheme = HTTPBearer(auto_error=False)


def get_settings_from_request(request: Request) -> Settings:
    settings: Settings = request.app.state.settings
    return settings


def get_widget(request: Request) -> ClassifyWidget:
    widget: ClassifyWidget = request.app.state.widget
    return widget


def get_uploader(request: Request) -> ImageUploader:
    uploader: ImageUploader = request.app.state.uploader
    return uploader


async def verify_api_key(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer_scheme)],
) -> None:
    """Check the Bearer token against the configured API key.

    Without GARBAGESCAN_API_KEY every request passes. Only the JSON API
    depends on this; the HTML page stays open.
    """
    api_key = get_settings_from_request(request).api_key
    if api_key is None:
        return

    if credentials is None or not secrets.compare_digest(credentials.credentials.encode(), api_key.encode()):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
            headers={"WWW-Authenticate": "Bearer"},
        )
