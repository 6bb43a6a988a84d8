"""Response helpers shared by the page routes."""
from pathlib import Path
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse, Response
from fastapi.templating import Jinja2Templates

from anime_explorer.config import AJAX_HEADER, AJAX_HEADER_VALUE, GENRES

TEMPLATES_DIR = Path(__file__).parent / "templates"
STATIC_DIR = Path(__file__).parent / "static"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
templates.env.globals["genres"] = GENRES


def is_script_request(request: Request) -> bool:
    """True when the request came from in-page script rather than navigation."""
    return request.headers.get(AJAX_HEADER) == AJAX_HEADER_VALUE


def render_page(request: Request, name: str, context: dict[str, Any], status_code: int = 200) -> Response:
    """Render a full HTML page."""
    context.setdefault("user", None)
    return templates.TemplateResponse(request, name, context, status_code=status_code)


def json_or_page(request: Request, name: str, payload: dict[str, Any], user=None) -> Response:
    """JSON for script-driven requests, otherwise the rendered page."""
    if is_script_request(request):
        return JSONResponse(payload)
    return render_page(request, name, {**payload, "user": user})
