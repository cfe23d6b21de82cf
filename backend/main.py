from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from records import PrescriptionStore, SQLitePrescriptionDB
from rxlens_core import ClientInputError, PrescriptionPipeline, RxLensError
from rxlens_services import (
    GeminiClient,
    build_care_plan,
    identity_provider_from_env,
    medication_info,
)

_ENV_KEY_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _load_local_env_file(path: Path) -> None:
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError:
        return
    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        if not _ENV_KEY_RE.fullmatch(key):
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
            value = value[1:-1]
        os.environ.setdefault(key, value)


def _bootstrap_local_env() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    for candidate in (repo_root / ".env", repo_root / "backend/.env"):
        if candidate.exists():
            _load_local_env_file(candidate)


def _configure_logging() -> None:
    level = (os.getenv("RXLENS_LOG_LEVEL") or "INFO").strip().upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger("httpx").setLevel(logging.WARNING)


_bootstrap_local_env()
_configure_logging()
logger = logging.getLogger(__name__)


class AnalyzePrescriptionRequest(BaseModel):
    image: str | None = None
    # Accepted for client compatibility; the caller identity comes from the bearer token.
    userId: str | None = None


class GeminiProxyRequest(BaseModel):
    prompt: str | None = None
    type: str | None = None
    image: str | None = None


class RxLensApp:
    def __init__(self) -> None:
        db_path = os.getenv(
            "RXLENS_DB_PATH",
            str((Path(__file__).resolve().parent / "rxlens.sqlite")),
        )
        self.db = SQLitePrescriptionDB(db_path)
        self.store = PrescriptionStore(self.db)
        self.identity = identity_provider_from_env()
        self.gemini = GeminiClient.from_env()
        self.pipeline = PrescriptionPipeline(
            identity=self.identity,
            client=self.gemini,
            store=self.store,
        )


container = RxLensApp()
app = FastAPI(title="RxLens Backend")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
}


@app.middleware("http")
async def cors_headers(request: Request, call_next):
    """Answer every preflight with an empty 200 body and stamp CORS headers on all responses.

    Starlette's CORSMiddleware replies to preflights with an "OK" body and only
    for requests carrying Origin/Access-Control-Request-Method, so it does not
    fit browser clients that expect the empty preflight.
    """
    if request.method == "OPTIONS":
        return Response(status_code=200, headers=CORS_HEADERS)
    response = await call_next(request)
    response.headers.update(CORS_HEADERS)
    return response


@app.exception_handler(RxLensError)
async def rxlens_error_handler(request: Request, exc: RxLensError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": "Invalid request body"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    # Runs outside the http middleware stack, so CORS headers are added here.
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"}, headers=CORS_HEADERS)


@app.get("/health")
def health() -> dict[str, Any]:
    return {"ok": True}


@app.post("/analyze-prescription")
def analyze_prescription(
    payload: AnalyzePrescriptionRequest,
    authorization: str | None = Header(default=None),
):
    outcome = container.pipeline.handle(authorization=authorization, image=payload.image)
    return outcome.as_response()


@app.post("/gemini-ai")
def gemini_ai(
    payload: GeminiProxyRequest,
    authorization: str | None = Header(default=None),
):
    container.pipeline.resolve_identity(authorization)
    prompt = (payload.prompt or "").strip() or None
    image = (payload.image or "").strip() or None
    if not prompt and not image:
        raise ClientInputError("Request must include either a prompt or an image")
    vision = (payload.type or "").strip().lower() == "vision" and image is not None
    if not vision and not prompt:
        raise ClientInputError("A prompt is required unless type is vision")
    result = container.gemini.complete(prompt=prompt, image=image, vision=vision)
    return {"result": result or "No response generated"}


@app.get("/prescriptions")
def list_prescriptions(authorization: str | None = Header(default=None)):
    identity = container.pipeline.authenticate(authorization)
    return {"prescriptions": container.store.list_prescriptions(identity.user_id)}


@app.get("/prescriptions/{prescription_id}")
def get_prescription(prescription_id: str, authorization: str | None = Header(default=None)):
    identity = container.pipeline.authenticate(authorization)
    return container.store.get_prescription(user_id=identity.user_id, prescription_id=prescription_id)


@app.get("/prescriptions/{prescription_id}/care-plan")
def get_care_plan(prescription_id: str, authorization: str | None = Header(default=None)):
    identity = container.pipeline.authenticate(authorization)
    analysis = container.store.get_analysis(user_id=identity.user_id, prescription_id=prescription_id)
    return {"prescriptionId": prescription_id, **build_care_plan(analysis)}


@app.get("/medications/{name}/info")
def get_medication_info(name: str, authorization: str | None = Header(default=None)):
    container.pipeline.authenticate(authorization)
    return medication_info(name)
