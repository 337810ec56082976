import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable

import httpx

from app.config import settings
from app.models.review import AssistantReply, ReviewSubmission
from app.services.assistants_client import AssistantsClient
from app.services.errors import (
    ConfigurationError,
    EmptyResponseError,
    PollTimeoutError,
    RunFailedError,
    Stage,
)
from app.services.single_flight import SingleFlight

logger = logging.getLogger(__name__)

_PROMPT_PATH = Path(__file__).parent.parent / "prompts" / "review_prompt.txt"
_PROMPT_TEMPLATE = _PROMPT_PATH.read_text(encoding="utf-8")

NO_NOTES_PLACEHOLDER = "None provided"


class RunStatus(str, Enum):
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    REQUIRES_ACTION = "requires_action"
    CANCELLING = "cancelling"
    CANCELLED = "cancelled"
    FAILED = "failed"
    COMPLETED = "completed"
    INCOMPLETE = "incomplete"
    EXPIRED = "expired"


_PENDING = frozenset({RunStatus.QUEUED.value, RunStatus.IN_PROGRESS.value})


@dataclass(frozen=True)
class Credentials:
    api_key: str
    assistant_id: str


@dataclass(frozen=True)
class PollPolicy:
    interval_seconds: float = 1.0
    max_wait_seconds: float | None = None
    max_attempts: int | None = None

    def exhausted(self, attempts: int, elapsed: float) -> bool:
        if self.max_attempts is not None and attempts >= self.max_attempts:
            return True
        if self.max_wait_seconds is not None and elapsed >= self.max_wait_seconds:
            return True
        return False


def build_prompt(submission: ReviewSubmission) -> str:
    return _PROMPT_TEMPLATE.format(
        product_title=submission.product_title,
        product_description=submission.product_description,
        stars=submission.stars,
        additional_notes=submission.additional_notes or NO_NOTES_PLACEHOLDER,
        customer_reviews_url=submission.customer_reviews_url,
    )


def extract_reply_text(messages: dict[str, Any]) -> str:
    """Return the value of the first text block of the first assistant-authored message.

    Malformed entries are skipped; anything short of a non-empty text value
    raises EmptyResponseError.
    """
    data = messages.get("data")
    entries = data if isinstance(data, list) else []
    assistant_message = next(
        (m for m in entries if isinstance(m, dict) and m.get("role") == "assistant"),
        None,
    )
    if assistant_message is None:
        raise EmptyResponseError()

    content = assistant_message.get("content")
    blocks = content if isinstance(content, list) else []
    text = next(
        (b["text"] for b in blocks if isinstance(b, dict) and isinstance(b.get("text"), dict)),
        None,
    )
    value = text.get("value") if text is not None else None
    if not isinstance(value, str) or not value:
        raise EmptyResponseError()
    return value


class ReviewOrchestrator:
    """Drives one review submission through the thread/run/poll/messages sequence."""

    def __init__(
        self,
        base_url: str = "https://api.openai.com/v1",
        beta: str = "assistants=v2",
        timeout: float = 30.0,
        policy: PollPolicy | None = None,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.base_url = base_url
        self.beta = beta
        self.timeout = timeout
        self.policy = policy or PollPolicy()
        self._transport = transport
        self._sleep = sleep
        self._clock = clock
        self._now = now

    def submit(self, submission: ReviewSubmission, credentials: Credentials) -> AssistantReply:
        """
        Send a review to the assistant and wait for its answer.

        Raises:
            ConfigurationError: API key or assistant id is missing. No request is made.
            TransportError: a remote call returned a non-success response.
            RunFailedError: the run ended in any status other than completed.
            EmptyResponseError: the completed run produced no assistant text.
            PollTimeoutError: the poll policy bound was reached.
        """
        if not credentials.api_key or not credentials.assistant_id:
            raise ConfigurationError()

        prompt = build_prompt(submission)

        with AssistantsClient(
            credentials.api_key,
            base_url=self.base_url,
            beta=self.beta,
            timeout=self.timeout,
            transport=self._transport,
        ) as client:
            thread = client.create_thread(prompt)
            thread_id = client.require_id(Stage.CREATE_THREAD, thread)
            run = client.create_run(thread_id, credentials.assistant_id)
            run_id = client.require_id(Stage.CREATE_RUN, run)
            logger.info("Started run %s on thread %s", run_id, thread_id)

            status = self._wait_for_run(client, thread_id, run_id, run.get("status"))
            if status != RunStatus.COMPLETED.value:
                logger.warning("Run %s ended with status '%s'", run_id, status)
                raise RunFailedError(status)

            messages = client.list_messages(thread_id)
            content = extract_reply_text(messages)

        return AssistantReply(content=content, timestamp=self._now())

    def _wait_for_run(self, client: AssistantsClient, thread_id: str, run_id: str, status: Any) -> str:
        attempts = 0
        started = self._clock()

        while isinstance(status, str) and status in _PENDING:
            elapsed = self._clock() - started
            if self.policy.exhausted(attempts, elapsed):
                raise PollTimeoutError(attempts, elapsed)
            self._sleep(self.policy.interval_seconds)
            status = client.retrieve_run(thread_id, run_id).get("status")
            attempts += 1
            logger.debug("Run %s status after %d checks: %s", run_id, attempts, status)

        return str(status)


_orchestrator: ReviewOrchestrator | None = None
_in_flight = SingleFlight()


def _get_orchestrator() -> ReviewOrchestrator:
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = ReviewOrchestrator(
            base_url=settings.openai_base_url,
            beta=settings.openai_beta,
            timeout=settings.request_timeout,
            policy=PollPolicy(
                interval_seconds=settings.poll_interval_seconds,
                max_wait_seconds=settings.poll_max_wait_seconds,
                max_attempts=settings.poll_max_attempts,
            ),
        )
    return _orchestrator


def analyze_review(submission: ReviewSubmission) -> AssistantReply:
    """Analyze a review with the configured assistant, one identical submission at a time."""
    credentials = Credentials(
        api_key=settings.openai_api_key,
        assistant_id=settings.openai_assistant,
    )
    with _in_flight.claim(submission.fingerprint()):
        reply = _get_orchestrator().submit(submission, credentials)
    logger.info(
        "Analysis ready for '%s' | chars=%d",
        submission.product_title,
        len(reply.content),
    )
    return reply
