# ================================
# FILE: formgate/routes_submit.py
# ================================
import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response
from starlette.concurrency import run_in_threadpool

from formgate.audit import REQUEST_FAILED, AuditLog, iso_now
from formgate.config import FormSettings, get_settings
from formgate.email_io import DeliveryClient
from formgate.pipeline import EmailDefaults, RejectReason, SubmissionPipeline
from formgate.rate_limiter import RateLimiter
from formgate.utils import client_ip, is_form_content

log = logging.getLogger("uvicorn.error").getChild("routes_submit")
router = APIRouter(tags=["forms"])

NOT_ALLOWED = ("GET", "PUT", "DELETE", "PATCH")

__PIPELINE: SubmissionPipeline | None = None


def build_pipeline(settings: FormSettings) -> SubmissionPipeline:
    delivery = None
    if settings.delivery_configured:
        delivery = DeliveryClient(
            api_key=settings.resend_api_key,
            api_url=settings.resend_api_url,
            timeout=settings.resend_timeout_secs,
        )
    return SubmissionPipeline(
        rate_limiter=RateLimiter(settings.rate_limits(), sweep_interval=settings.rate_limit_sweep_secs),
        delivery=delivery,
        email=EmailDefaults(
            from_email=settings.from_email,
            to_email=settings.to_email,
            reply_to=settings.reply_to_email,
            subject_prefix=settings.subject_prefix,
        ),
        rules=settings.validation_rules(),
        honeypot_fields=settings.honeypot_fields,
        audit=AuditLog(),
    )


def get_pipeline() -> SubmissionPipeline:
    global __PIPELINE
    if __PIPELINE is None:
        __PIPELINE = build_pipeline(get_settings())
    return __PIPELINE


def _error(status_code: int, message: str, **extra) -> JSONResponse:
    body = {"status": "error", "message": message, **extra, "timestamp": iso_now()}
    return JSONResponse(body, status_code=status_code)


async def _read_fields(request: Request) -> dict:
    if is_form_content(request.headers.get("content-type")):
        form = await request.form()
        return {k: v for k, v in form.items() if isinstance(v, str)}

    raw = await request.body()
    if not raw.strip():
        return {}
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("Request body must be a JSON object")
    return data


@router.post("/submit")
async def submit(
    request: Request,
    pipeline: SubmissionPipeline = Depends(get_pipeline),
    settings: FormSettings = Depends(get_settings),
):
    ip = client_ip(request, settings.trust_proxy_headers)

    try:
        fields = await _read_fields(request)
    except json.JSONDecodeError as e:
        pipeline.audit.event(REQUEST_FAILED, None, ip, error="JSON parse error", message=str(e))
        return _error(400, "Invalid JSON in request body", error=str(e))
    except (ValueError, UnicodeDecodeError) as e:
        pipeline.audit.event(REQUEST_FAILED, None, ip, error="Malformed request body", message=str(e))
        return _error(400, "Malformed request body", error=str(e))

    result = await run_in_threadpool(pipeline.process, fields, ip, request.headers.get("user-agent"))
    log.info("[submit] id=%s ip=%s state=%s", result.submission_id, ip, result.state.value)

    if result.reject_reason == RejectReason.RATE_LIMITED:
        violations = [{"window": v.window, "count": v.count, "limit": v.limit} for v in result.rate.violations]
        resp = _error(429, "Rate limit exceeded. Please try again later.",
                      violations=violations, retry_after=result.rate.retry_after)
        resp.headers["Retry-After"] = str(result.rate.retry_after)
        return resp
    if result.reject_reason == RejectReason.VALIDATION:
        return _error(422, "Validation failed", errors=result.validation.errors)
    if result.reject_reason == RejectReason.INTERNAL_ERROR:
        return _error(500, "Internal server error")

    body = {
        "status": "success",
        "message": "Form submission received",
        "id": result.submission_id,
        "timestamp": iso_now(),
    }
    if result.trapped:
        # indistinguishable from a real success
        body["email_sent"] = pipeline.delivery_configured
    else:
        body["email_sent"] = result.email_sent
        if result.email_error:
            body["email_error"] = result.email_error
    return JSONResponse(body, status_code=200)


async def method_not_allowed(request: Request):
    return _error(405, f"Method {request.method} not allowed for /submit endpoint", allowed_methods=["POST"])



# plain OPTIONS without CORS preflight headers; real preflights are answered by the CORS middleware
@router.options("/submit", include_in_schema=False)
async def submit_options():
    return Response(status_code=200)


router.add_api_route("/submit", method_not_allowed, methods=list(NOT_ALLOWED), include_in_schema=False)
