"""Activity fetch and export endpoints."""

import time

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import Response

from api.dependencies import get_activity_cache, verify_api_key
from api.logging import RequestLog, log_request
from api.models.responses import ActivityRequest, ActivityResponse, ErrorCodes
from core.cache import ActivityCache
from core.dates import InputError
from core.validation import resolve_date_range
from services.reports import activity_workbook_bytes
from services.timesheet import TimesheetResult, collect_activity

router = APIRouter(prefix="/v1")


def get_client_ip(request: Request) -> str:
    """Extract client IP from request, handling proxies."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def _run_request(
    request: Request, body: ActivityRequest, cache: ActivityCache, endpoint: str
) -> TimesheetResult:
    """
    Validate, fetch and distribute, logging the request either way.

    Caller-input problems become 400s; anything else a 500.
    """
    start_time = time.time()

    request_log = RequestLog(
        endpoint=endpoint,
        method="POST",
        client_ip=get_client_ip(request),
        start_date=body.start_date,
        end_date=body.end_date,
        distribution_mode=body.mode,
        providers=",".join(body.providers) if body.providers else None,
    )

    try:
        days = resolve_date_range(body.start_date, body.end_date, body.working_days_only)
        result = await collect_activity(
            days,
            cache,
            mode=body.mode,
            force_refresh=body.force_refresh,
            provider_names=body.providers,
        )

        request_log.status_code = 200
        request_log.days_returned = len(result.days)
        request_log.cache_hits = sum(
            1 for day in result.days for from_cache in day.sources.values() if from_cache
        )
        if result.summary.message:
            request_log.details.append(("distribution", result.summary.message))
        return result

    except InputError as e:
        request_log.status_code = 400
        request_log.error_code = ErrorCodes.INVALID_REQUEST
        request_log.error_message = str(e)
        request_log.details.append(("validation_error", str(e)))

        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "Invalid activity request",
                "code": ErrorCodes.INVALID_REQUEST,
                "details": [str(e)],
            },
        )

    except Exception as e:
        # Unexpected errors
        request_log.status_code = 500
        request_log.error_code = ErrorCodes.INTERNAL_ERROR
        request_log.error_message = str(e)

        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "Internal server error",
                "code": ErrorCodes.INTERNAL_ERROR,
                "details": [],
            },
        )

    finally:
        request_log.processing_time_ms = int((time.time() - start_time) * 1000)
        # Always log the request
        try:
            log_request(request_log)
        except Exception:
            # Don't fail the request if logging fails
            pass


@router.post("/activity", response_model=ActivityResponse)
async def fetch_activity_endpoint(
    request: Request,
    body: ActivityRequest,
    cache: ActivityCache = Depends(get_activity_cache),
    _api_key: str = Depends(verify_api_key),
):
    """
    Fetch per-day activity for a date range.

    Returns the distributed days plus the distribution summary a renderer
    should show alongside them.
    """
    result = await _run_request(request, body, cache, "/v1/activity")
    return {
        "days": [day.to_dict() for day in result.days],
        "distribution": result.summary.to_dict(),
        "cache": result.cache_stats.to_dict(),
    }


@router.post("/activity/export")
async def export_activity_endpoint(
    request: Request,
    body: ActivityRequest,
    cache: ActivityCache = Depends(get_activity_cache),
    _api_key: str = Depends(verify_api_key),
):
    """Same as /v1/activity, returned as an Excel workbook."""
    result = await _run_request(request, body, cache, "/v1/activity/export")
    excel_bytes = activity_workbook_bytes(result.days, result.summary)
    filename = f"activity_{body.start_date}_{body.end_date or body.start_date}.xlsx"
    return Response(
        content=excel_bytes,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
