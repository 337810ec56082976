from enum import Enum


class ErrorKind(str, Enum):
    CONFIGURATION = "configuration"
    TRANSPORT = "transport"
    RUN_FAILED = "run_failed"
    EMPTY_RESPONSE = "empty_response"
    POLL_TIMEOUT = "poll_timeout"
    IN_FLIGHT = "in_flight"


class Stage(str, Enum):
    """Remote call that a transport failure belongs to."""

    CREATE_THREAD = "create_thread"
    CREATE_RUN = "create_run"
    POLL_RUN = "poll_run"
    FETCH_MESSAGES = "fetch_messages"


_STAGE_ACTIONS = {
    Stage.CREATE_THREAD: "create thread",
    Stage.CREATE_RUN: "create run",
    Stage.POLL_RUN: "check run status",
    Stage.FETCH_MESSAGES: "get messages",
}


class OrchestratorError(Exception):
    """Base class for every failure that ends a review submission."""

    kind: ErrorKind
    hint = "Check the server logs and try submitting the review again."


class ConfigurationError(OrchestratorError):
    kind = ErrorKind.CONFIGURATION
    hint = (
        "Make sure you have set both OPENAI_API_KEY and OPENAI_ASSISTANT "
        "in your .env file."
    )

    def __init__(
        self,
        message: str = "Missing OpenAI API key or Assistant ID in environment variables",
    ):
        super().__init__(message)


class TransportError(OrchestratorError):
    kind = ErrorKind.TRANSPORT

    def __init__(self, stage: Stage, status_code: int | None = None, reason: str | None = None):
        self.stage = stage
        self.status_code = status_code
        cause = status_code if status_code is not None else reason or "network error"
        super().__init__(f"Failed to {_STAGE_ACTIONS[stage]}: {cause}")


class RunFailedError(OrchestratorError):
    kind = ErrorKind.RUN_FAILED

    def __init__(self, status: str):
        self.status = status
        super().__init__(f"Run failed with status: {status}")


class EmptyResponseError(OrchestratorError):
    kind = ErrorKind.EMPTY_RESPONSE

    def __init__(self, message: str = "No response received from assistant"):
        super().__init__(message)


class PollTimeoutError(OrchestratorError):
    kind = ErrorKind.POLL_TIMEOUT
    hint = "The assistant is taking too long. Try again later."

    def __init__(self, attempts: int, elapsed: float):
        self.attempts = attempts
        self.elapsed = elapsed
        super().__init__(
            f"Run did not finish after {attempts} status checks ({elapsed:.1f}s)"
        )


class SubmissionInFlightError(OrchestratorError):
    kind = ErrorKind.IN_FLIGHT
    hint = "Wait for the current analysis to finish before resubmitting."

    def __init__(self, message: str = "This review is already being analyzed"):
        super().__init__(message)
