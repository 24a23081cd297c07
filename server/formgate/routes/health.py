from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from server.formgate.config import Settings

router = APIRouter()


@router.get("/healthz")
def healthz():
    return {"ok": True}


@router.get("/readyz")
def readyz(request: Request):
    settings: Settings = request.app.state.settings

    if not settings.recaptcha_server_key:
        raise HTTPException(status_code=503, detail="FORMGATE_RECAPTCHA_SERVER_KEY missing")
    if not settings.recaptcha_client_key:
        raise HTTPException(status_code=503, detail="FORMGATE_RECAPTCHA_CLIENT_KEY missing")

    return {"ok": True}
