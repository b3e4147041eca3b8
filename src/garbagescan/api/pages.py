"""HTML page: upload form, preview, loading indicator and result card."""

from __future__ import annotations

from html import escape
from typing import TYPE_CHECKING

from fastapi import APIRouter, Request, UploadFile, status
from fastapi.responses import HTMLResponse, RedirectResponse

from garbagescan.api.dependencies import get_settings_from_request, get_widget
from garbagescan.api.routes import submit_upload
from garbagescan.widget.outcome import Failure, Idle, Loading, Success

if TYPE_CHECKING:
    from garbagescan.config import Settings
    from garbagescan.widget.controller import ClassifyWidget

router = APIRouter(include_in_schema=False)

PAGE_TITLE = "Garbage Classification"
LOADING_REFRESH_SECONDS = 1

_PAGE = """<!doctype html>
<html lang="pt">
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  {refresh}
  <title>{title}</title>
  <style>
    body{{ margin:0; font-family:Arial, sans-serif; background:#f3f4f6; }}
    .app-card{{ max-width:500px; margin:40px auto; padding:20px; text-align:center; background:#fff; border-radius:12px; }}
    h1{{ font-size:2rem; margin-bottom:30px; color:#7c3aed; }}
    .btn{{ padding:12px 24px; font-size:1rem; border:none; border-radius:8px; cursor:pointer; }}
    .btn-upload{{ background:#7c3aed; color:#fff; }}
    .btn-reset{{ margin-top:20px; background:#bfdbfe; color:#1e3a8a; }}
    .preview img{{ width:100%; border-radius:10px; margin-top:10px; }}
    .loading{{ margin-top:20px; font-size:1.2rem; color:#6b7280; }}
    .card{{ margin-top:20px; padding:20px; border:1px solid #e5e7eb; border-radius:12px; background:#f9fafb; text-align:left; }}
    .card.error h2{{ color:#b91c1c; }}
  </style>
</head>
<body>
  <div class="app-card">
    <h1>{title}</h1>
    {body}
  </div>
</body>
</html>
"""


def _accept_attribute(settings: Settings) -> str:
    return ",".join(f".{ext}" for ext in settings.accepted_types)


def render_page(widget: ClassifyWidget, settings: Settings) -> str:
    """Render the widget state as a full HTML document."""
    parts: list[str] = []

    if widget.upload_enabled:
        parts.append(
            '<form method="post" action="/upload" enctype="multipart/form-data">'
            f'<input type="file" name="image" accept="{escape(_accept_attribute(settings))}" required /> '
            '<button class="btn btn-upload" type="submit">📷 Upload Image</button>'
            "</form>"
        )

    selection = widget.selection
    if selection is not None and selection.data_url is not None:
        preview = escape(selection.data_url)
        parts.append(f'<div class="preview"><img src="{preview}" alt="{escape(selection.filename)}" /></div>')

    outcome = widget.outcome
    if isinstance(outcome, Loading):
        parts.append('<div class="loading">⏳ A processar...</div>')
    elif isinstance(outcome, Success):
        description = f"<p>{escape(outcome.description)}</p>" if outcome.description else ""
        parts.append(f'<div class="card"><h2>{escape(outcome.label)}</h2>{description}</div>')
    elif isinstance(outcome, Failure):
        parts.append(f'<div class="card error"><h2>Erro</h2><p>{escape(outcome.message)}</p></div>')

    if selection is not None or not isinstance(outcome, Idle):
        parts.append(
            '<form method="post" action="/reset"><button class="btn btn-reset" type="submit">🔄 Reset</button></form>'
        )

    refresh = (
        f'<meta http-equiv="refresh" content="{LOADING_REFRESH_SECONDS}" />' if isinstance(outcome, Loading) else ""
    )
    return _PAGE.format(title=escape(PAGE_TITLE), refresh=refresh, body="\n    ".join(parts))


@router.get("/", response_class=HTMLResponse)
async def index(request: Request) -> HTMLResponse:
    return HTMLResponse(render_page(get_widget(request), get_settings_from_request(request)))


@router.post("/upload")
async def upload(request: Request, image: UploadFile | None = None) -> RedirectResponse:
    """Hand the picked file to the widget and go back to the page without waiting."""
    await submit_upload(request, image)
    return RedirectResponse("/", status_code=status.HTTP_303_SEE_OTHER)


@router.post("/reset")
async def reset(request: Request) -> RedirectResponse:
    get_widget(request).reset()
    return RedirectResponse("/", status_code=status.HTTP_303_SEE_OTHER)
