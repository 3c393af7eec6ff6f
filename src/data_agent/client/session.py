"""Client-side chat session: explicit history with save/load.

A session holds the conversation shown to the user. Single-model sessions
keep one history; fan-out sessions keep one history per column so every
column continues its own conversation.
"""

from pathlib import Path
from typing import Any, Literal

import orjson
from pydantic import BaseModel, Field

from data_agent.client.blocks import ChainOfThoughtBlock, DisplayBlock, blocks_to_text
from data_agent.client.reducer import StreamState
from data_agent.telemetry import get_logger

log = get_logger(__name__)

VISUALIZATION_PLACEHOLDER = "[visualization response]"


class SharedContext(BaseModel):
    """Context carried over from a shared report into a follow-up question."""

    original_question: str
    sql_queries: str = ""

    def prefix(self) -> str:
        """Text prepended to the first follow-up question."""
        queries = f"\nSQL queries used:\n{self.sql_queries}" if self.sql_queries else ""
        return (
            "[Context from shared report]\n"
            f"Original question: {self.original_question}\n"
            f"{queries}\n\n"
            "[Follow-up question]\n"
        )


class SessionMessage(BaseModel):
    """One message in a session history."""

    role: Literal["user", "assistant"]
    content: str = ""
    blocks: tuple[DisplayBlock, ...] = ()

    def to_api(self) -> dict[str, str]:
        """Render as a ChatRequest message."""
        if self.role == "user":
            return {"role": "user", "content": self.content}
        return {"role": "assistant", "content": blocks_to_text(self.blocks) or VISUALIZATION_PLACEHOLDER}


class ChatSession(BaseModel):
    """Conversation state owned by one client session.

    Attributes:
        model: Model, pipeline or fan-out id sent with each request.
        is_mobile: Request single-column reports.
        include_metadata: Request data-source metadata in system prompts.
        history: Messages of a single-model conversation.
        columns: Per-column histories of a fan-out conversation.
        shared_context: Context applied to the next question only.
    """

    model: str | None = None
    is_mobile: bool = False
    include_metadata: bool = True
    history: list[SessionMessage] = Field(default_factory=list)
    columns: dict[str, list[SessionMessage]] = Field(default_factory=dict)
    shared_context: SharedContext | None = None

    def prepare_question(self, text: str) -> str:
        """Apply (and consume) the shared-report prefix."""
        if self.shared_context is None:
            return text
        content = self.shared_context.prefix() + text
        self.shared_context = None
        return content

    def build_request(self, question: str) -> dict[str, Any]:
        """Build the ChatRequest body for ``question``.

        ``question`` should already have gone through ``prepare_question``.
        """
        user = {"role": "user", "content": question}
        body: dict[str, Any] = {
            "messages": [message.to_api() for message in self.history] + [user],
            "isMobile": self.is_mobile,
            "includeMetadata": self.include_metadata,
        }
        if self.model:
            body["model"] = self.model
        if self.columns:
            body["columnMessages"] = {
                column: [message.to_api() for message in messages] + [user]
                for column, messages in self.columns.items()
            }
        return body

    def record(self, question: str, states: dict[str | None, StreamState]) -> None:
        """Append a finished exchange to the history.

        Args:
            question: The user message as sent.
            states: Final reducer state per column, as returned by the consumer.
        """
        user = SessionMessage(role="user", content=question)
        column_states = {column: state for column, state in states.items() if column is not None}
        if column_states:
            for column, state in column_states.items():
                messages = self.columns.setdefault(column, [])
                messages.append(user)
                messages.append(SessionMessage(role="assistant", blocks=state.blocks))
            return

        self.history.append(user)
        state = states.get(None)
        if state is not None:
            self.history.append(SessionMessage(role="assistant", blocks=state.blocks))

    def sql_queries(self) -> list[str]:
        """Every query shown in the session's chain-of-thought blocks."""
        queries: list[str] = []
        messages = list(self.history)
        for column_messages in self.columns.values():
            messages.extend(column_messages)
        for message in messages:
            for block in message.blocks:
                if isinstance(block, ChainOfThoughtBlock):
                    queries.extend(block.sql_statements)
        return queries

    def save(self, path: Path | str) -> None:
        """Write the session to ``path`` as JSON."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(orjson.dumps(self.model_dump(mode="json"), option=orjson.OPT_INDENT_2))
        log.debug("session_saved", path=str(path), messages=len(self.history))

    @classmethod
    def load(cls, path: Path | str) -> "ChatSession":
        """Read a session written by ``save``.

        Raises:
            FileNotFoundError: If ``path`` does not exist.
            pydantic.ValidationError: If the file is not a valid session.
        """
        data = orjson.loads(Path(path).read_bytes())
        session = cls.model_validate(data)
        log.debug("session_loaded", path=str(path), messages=len(session.history))
        return session
