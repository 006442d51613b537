from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Load .env before anything reads settings or configures logging.
_HERE = Path(__file__).resolve()
load_dotenv(_HERE.parents[1] / ".env", override=False)

from .analyzer import analyze  # noqa: E402
from .errors import AnalysisError  # noqa: E402
from .logger import get_logger  # noqa: E402
from .models import AnalysisReport, AnalyzeRequest, Domain, ErrorResponse  # noqa: E402

logger = get_logger(__name__)

app = FastAPI(title="SiteAudit Analysis Agent", version="0.1.0")


def _cors_allow_origins() -> list[str]:
    raw = os.getenv("SITEAUDIT_CORS_ORIGINS", "").strip()
    if not raw:
        return ["http://localhost:3000"]
    return [o.strip() for o in raw.split(",") if o.strip()]


# For local dev, this defaults to allowing http://localhost:3000.
# In production, set SITEAUDIT_CORS_ORIGINS to the dashboard origins.
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_allow_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


@app.exception_handler(AnalysisError)
async def _analysis_error_handler(request: Request, exc: AnalysisError) -> JSONResponse:
    logger.warning(
        "analysis_failed",
        path=request.url.path,
        error_type=type(exc).__name__,
        error=exc.message,
        status_code=exc.status_code,
    )
    return _error(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', 'invalid')}" for err in exc.errors()
    )
    logger.warning("analysis_failed", path=request.url.path, error_type="RequestValidationError", error=details)
    return _error(400, f"Invalid request: {details}")


@app.exception_handler(Exception)
async def _unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("analysis_failed", path=request.url.path, error_type=type(exc).__name__, error=str(exc), exc_info=exc)
    return _error(500, "Internal server error during analysis")


def _report_response(report: AnalysisReport) -> JSONResponse:
    return JSONResponse(content=report.model_dump(mode="json", by_alias=True))


def _run(domain: Domain, url: str | None) -> JSONResponse:
    return _report_response(analyze(AnalyzeRequest.model_construct(url=url or "", domain=domain)))


@app.get("/healthz")
def healthz():
    return {"ok": True}


@app.get("/api/analysis/seo")
def seo_endpoint(url: str | None = None):
    return _run("seo", url)


@app.get("/api/analysis/privacy")
def privacy_endpoint(url: str | None = None):
    return _run("privacy", url)


@app.get("/api/analysis/media")
def media_endpoint(url: str | None = None):
    return _run("media", url)


@app.post("/analyze")
def analyze_endpoint(req: AnalyzeRequest):
    return _report_response(analyze(req))
