import hashlib
from datetime import datetime
from typing import Annotated

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    TypeAdapter,
    field_validator,
)

_http_url = TypeAdapter(HttpUrl)


def _check_http_url(value: str) -> str:
    # Validate only; the prompt carries the URL exactly as the user typed it.
    _http_url.validate_python(value)
    return value


class ReviewSubmission(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_title: str
    product_description: str
    stars: int = Field(default=1, ge=1, le=5)
    additional_notes: str = ""
    customer_reviews_url: Annotated[str, AfterValidator(_check_http_url)]

    @field_validator("product_title", "product_description", "customer_reviews_url")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value

    def fingerprint(self) -> str:
        """Stable identity of the submission, used to reject duplicates in flight."""
        payload = self.model_dump_json().encode("utf-8")
        return hashlib.sha256(payload).hexdigest()


class AssistantReply(BaseModel):
    content: str
    timestamp: datetime


class ErrorDetail(BaseModel):
    error: str
    message: str
    hint: str
    stage: str | None = None
    status: str | None = None
