import logging

from fastapi import APIRouter, HTTPException

from app.models.review import AssistantReply, ErrorDetail, ReviewSubmission
from app.services import orchestrator
from app.services.errors import (
    ErrorKind,
    OrchestratorError,
    RunFailedError,
    TransportError,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/reviews", tags=["reviews"])

_STATUS_CODES = {
    ErrorKind.CONFIGURATION: 503,
    ErrorKind.TRANSPORT: 502,
    ErrorKind.RUN_FAILED: 502,
    ErrorKind.EMPTY_RESPONSE: 502,
    ErrorKind.POLL_TIMEOUT: 504,
    ErrorKind.IN_FLIGHT: 409,
}


def _to_http_exception(exc: OrchestratorError) -> HTTPException:
    detail = ErrorDetail(error=exc.kind.value, message=str(exc), hint=exc.hint)
    if isinstance(exc, TransportError):
        detail.stage = exc.stage.value
    elif isinstance(exc, RunFailedError):
        detail.status = exc.status
    return HTTPException(
        status_code=_STATUS_CODES[exc.kind],
        detail=detail.model_dump(exclude_none=True),
    )


@router.post("/analyze", response_model=AssistantReply)
def analyze(submission: ReviewSubmission):
    """
    Send a product review to the configured OpenAI assistant and return its analysis.

    Blocks until the assistant run finishes; the route is synchronous so the
    polling loop runs in the server threadpool.
    """
    try:
        return orchestrator.analyze_review(submission)
    except OrchestratorError as exc:
        logger.error("Review analysis failed (%s): %s", exc.kind.value, exc)
        raise _to_http_exception(exc) from exc
