import logging
import re
import time
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel

from .config import EXAMPLE_SECRET, NO_CACHE_HEADERS, OTP_LENGTH, TIME_STEP
from .errors import CodeGenerationError, InvalidCharacterError, MissingSecretError
from .page import render_page
from .totp_utils import generate_totp_with_validity

logger = logging.getLogger(__name__)

JSON_MEDIA_TYPE = "application/json; charset=utf-8"
HTML_MEDIA_TYPE = "text/html; charset=utf-8"

# JS \s also covers the BOM (U+FEFF); Python's does not
_WHITESPACE = re.compile(r"[\s\ufeff]+")

app = FastAPI(title="TOTP Code Service")


# ---------- Response Models ----------

class TokenResponse(BaseModel):
    token: str
    remaining: int
    serverTime: int


class MissingSecretResponse(BaseModel):
    error: str
    usage: str
    example: str


class InvalidSecretResponse(BaseModel):
    error: str
    message: str


# ---------- Helpers ----------

def extract_secret(raw_path: str) -> str:
    """
    Turn the (already URL-decoded) path into a candidate secret
    by removing every whitespace character.

    Raises:
        MissingSecretError if nothing is left.
    """
    secret = _WHITESPACE.sub("", raw_path)
    if not secret:
        raise MissingSecretError()
    return secret


def _now() -> int:
    return int(time.time())


def _origin(request: Request) -> str:
    return f"{request.url.scheme}://{request.url.netloc}"


def _json(content: BaseModel, status_code: int = 200) -> JSONResponse:
    headers = dict(NO_CACHE_HEADERS)
    headers["Access-Control-Allow-Origin"] = "*"
    return JSONResponse(
        status_code=status_code,
        content=content.model_dump(),
        headers=headers,
        media_type=JSON_MEDIA_TYPE,
    )


def _html(body: str) -> HTMLResponse:
    return HTMLResponse(content=body, headers=dict(NO_CACHE_HEADERS), media_type=HTML_MEDIA_TYPE)


# ---------- Health check ----------

@app.get("/_health")
def health():
    return {"status": "ok"}


# ---------- TOTP: GET /{secret}[?format=json] ----------
# Registered last so /_health is matched first; the path pattern also matches "/".
# "_" is outside the Base32 alphabet, so /_health never shadows a secret.

@app.get(
    "/{secret_path:path}",
    response_class=HTMLResponse,
    responses={
        200: {"model": TokenResponse, "description": "Current code (format=json) or the widget page"},
        400: {"model": InvalidSecretResponse, "description": "Missing or malformed secret"},
    },
)
def totp(request: Request, secret_path: str, format: Optional[str] = None):
    """
    Return the current TOTP code for the Base32 secret in the path,
    as JSON when ?format=json is given and as the widget page otherwise.
    """
    as_json = format == "json"

    try:
        secret = extract_secret(secret_path)
    except MissingSecretError as e:
        if as_json:
            origin = _origin(request)
            return _json(
                status_code=400,
                content=MissingSecretResponse(
                    error=str(e),
                    usage=f"{origin}/YOUR_SECRET_KEY?format=json",
                    example=f"{origin}/{EXAMPLE_SECRET}?format=json",
                ),
            )
        return _html(render_page())

    # One clock reading per request
    now = _now()

    try:
        code, remaining = generate_totp_with_validity(
            secret, now_seconds=now, time_step=TIME_STEP, digits=OTP_LENGTH
        )
    except (InvalidCharacterError, CodeGenerationError) as e:
        logger.info("Rejected secret: %s", e.__class__.__name__)
        if as_json:
            return _json(
                status_code=400,
                content=InvalidSecretResponse(error="Invalid secret key format", message=str(e)),
            )
        return _html(render_page(secret=secret, server_time=now, error=str(e)))

    if as_json:
        return _json(TokenResponse(token=code, remaining=remaining, serverTime=now))

    return _html(render_page(secret=secret, token=code, remaining=remaining, server_time=now))
