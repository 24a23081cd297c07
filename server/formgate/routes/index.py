from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from starlette.concurrency import run_in_threadpool

from server.formgate.config import Settings
from server.formgate.csrf import get_csrf_guard, require_csrf
from server.formgate.page import Page
from server.formgate.recaptcha import VerificationError
from server.formgate.web import View, render

log = logging.getLogger(__name__)

router = APIRouter()

RECAPTCHA_FIELD = "g-recaptcha-response"


def _client_ip(request: Request, settings: Settings) -> str | None:
    if settings.trust_proxy:
        forwarded = request.headers.get("x-forwarded-for", "")
        if forwarded:
            return forwarded.split(",")[0].strip()
    client = request.client
    return client.host if client else None


def _new_page(request: Request) -> Page:
    settings: Settings = request.app.state.settings
    page = Page(title=settings.page_title, csrf_token=get_csrf_guard(request).issue(request))
    page.set_data({"clientKey": settings.recaptcha_client_key})
    return page


def _form_value(form, name: str) -> str:
    value = form.get(name)
    return value if isinstance(value, str) else ""


@router.get("/")
def index(request: Request):
    return render(request, View.FORM, _new_page(request))


@router.post("/", dependencies=[Depends(require_csrf)])
async def submit(request: Request):
    settings: Settings = request.app.state.settings
    page = _new_page(request)

    try:
        form = await request.form()
    except Exception as exc:
        page.add_error(f"ParseForm error: {exc}")
        return render(request, View.FORM, page)

    token = _form_value(form, RECAPTCHA_FIELD)
    if not token:
        page.add_error(f"{RECAPTCHA_FIELD} is missing")
        return render(request, View.FORM, page)

    verifier = request.app.state.verifier
    try:
        outcome = await run_in_threadpool(verifier.verify, token, remote_ip=_client_ip(request, settings))
    except VerificationError as exc:
        page.add_error(str(exc))
        return render(request, View.FORM, page)

    if not outcome.success:
        page.add_error("reCAPTCHA is not valid")
        return render(request, View.FORM, page)

    page.set_data(
        {
            "postTitle": _form_value(form, "title"),
            "postPayload": _form_value(form, "payload"),
        }
    )
    return render(request, View.RESULT, page)


def unmapped_method(request: Request):
    settings: Settings = request.app.state.settings
    log.info("Unmapped HTTP method %s on %s", request.method, request.url.path)
    return RedirectResponse(f"{settings.base_path}/?error", status_code=303)


# Plain route without a method list: every method GET and POST do not claim lands here.
router.add_route("/", unmapped_method, include_in_schema=False)
