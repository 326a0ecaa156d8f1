# ================================
# FILE: main.py
# ================================
import sys, logging
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from formgate.audit import configure_audit_file, iso_now
from formgate.config import SERVICE_NAME, VERSION, get_settings
from formgate.pipeline import SubmissionPipeline
from formgate.routes_submit import router as submit_router, get_pipeline

logging.basicConfig(stream=sys.stdout, level=logging.INFO, format="%(levelname)s:%(name)s:%(message)s")
for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
    logging.getLogger(name).setLevel(logging.INFO)

settings = get_settings()
if settings.log_file:
    configure_audit_file(settings.log_file)

app = FastAPI(title="formgate - contact form admission service", version=VERSION)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Accept", "X-Requested-With"],
)

app.include_router(submit_router)

ENDPOINTS = {
    "GET /": "Health check and service information",
    "POST /submit": "Form submission endpoint",
}


@app.get("/", tags=["ops"])
def health(pipeline: SubmissionPipeline = Depends(get_pipeline)):
    return JSONResponse({
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": VERSION,
        "timestamp": iso_now(),
        "endpoints": {"submit": "/submit", "health": "/"},
        "delivery_configured": pipeline.delivery_configured,
        "rate_limiter": pipeline.rate_limiter.stats(),
    }, headers={"Cache-Control": "no-store"})


@app.get("/ping", tags=["ops"])
def ping():
    return {"pong": True}


@app.exception_handler(StarletteHTTPException)
async def http_error(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return JSONResponse({
            "status": "error",
            "message": "Endpoint not found",
            "available_endpoints": ENDPOINTS,
            "timestamp": iso_now(),
        }, status_code=404)
    return JSONResponse({
        "status": "error",
        "message": str(exc.detail),
        "timestamp": iso_now(),
    }, status_code=exc.status_code, headers=getattr(exc, "headers", None))


if __name__ == "__main__":
    import uvicorn
    log = logging.getLogger("uvicorn.error")
    log.info("formgate starting: form endpoint http://%s:%d/submit", settings.host, settings.port)
    if settings.log_file:
        log.info("audit log: %s", settings.log_file)
    uvicorn.run(app, host=settings.host, port=settings.port)
