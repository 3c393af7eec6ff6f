"""Request and response models for the service layer."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from data_agent.orchestrator.types import ExchangeRequest


class ChatMessage(BaseModel):
    """A single conversation message."""

    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    """Body of ``POST /chat``.

    Field names follow the browser client's camelCase wire format; snake_case
    names are accepted too.
    """

    model_config = ConfigDict(populate_by_name=True)

    messages: list[ChatMessage] = Field(default_factory=list)
    is_mobile: bool = Field(default=False, alias="isMobile")
    include_metadata: bool = Field(default=True, alias="includeMetadata")
    model: str | None = None
    column_messages: dict[str, list[ChatMessage]] = Field(
        default_factory=dict, alias="columnMessages"
    )

    def to_exchange_request(self) -> ExchangeRequest:
        """Convert to the orchestrator's request type."""
        return ExchangeRequest(
            messages=[message.model_dump() for message in self.messages],
            model=self.model,
            is_mobile=self.is_mobile,
            include_metadata=self.include_metadata,
            column_messages={
                column: [message.model_dump() for message in messages]
                for column, messages in self.column_messages.items()
            },
        )


class ErrorResponse(BaseModel):
    """Error body for requests rejected before streaming starts."""

    error: str


class HealthResponse(BaseModel):
    """Service health."""

    status: str
    components: dict[str, str]
    checked_at: datetime
