from __future__ import annotations

from enum import Enum
from pathlib import Path

from fastapi import Request
from fastapi.templating import Jinja2Templates

from server.formgate.csrf import CSRF_FIELD_NAME, get_csrf_guard
from server.formgate.page import Page

_TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"

templates = Jinja2Templates(directory=str(_TEMPLATE_DIR))


class View(Enum):
    FORM = "index.html"
    RESULT = "result.html"


def template_context(request: Request, page: Page, **extra):
    settings = request.app.state.settings
    return {
        "page": page,
        "base_path": settings.base_path,
        "csrf_field": CSRF_FIELD_NAME,
        "csp_nonce": getattr(request.state, "csp_nonce", ""),
        **extra,
    }


def render(request: Request, view: View, page: Page, *, status_code: int = 200):
    response = templates.TemplateResponse(
        request,
        view.value,
        template_context(request, page),
        status_code=status_code,
    )
    get_csrf_guard(request).attach(response, request)
    return response
