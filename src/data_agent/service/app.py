"""FastAPI service application."""

import asyncio
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse, Response, StreamingResponse

from data_agent.config import (
    DatasetCatalogue,
    load_access_policy,
    load_dataset_catalogue,
    load_model_catalogue,
    settings,
)
from data_agent.config.dataset_loader import DatasetEntry, DatasetSummary
from data_agent.documents.models import DocumentInfo, DocumentRecord
from data_agent.documents.store import DocumentStore, DocumentStoreError, utcnow
from data_agent.governance.models import AccessPolicy
from data_agent.llm_client.claude import AnthropicStreamClient
from data_agent.llm_client.models import ModelCatalogue
from data_agent.llm_client.types import ModelProvider
from data_agent.mcp.gateway import MCPConnectionError, MCPGatewayAdapter
from data_agent.orchestrator.cancellation import CancellationToken
from data_agent.orchestrator.prompts import load_metadata
from data_agent.orchestrator.routing import run_exchange
from data_agent.orchestrator.types import ExchangeRequest, ExchangeServices
from data_agent.protocol.emitter import EventEmitter
from data_agent.security import sanitize_error_message
from data_agent.service.database import AsyncSessionLocal, init_db
from data_agent.service.models import ChatRequest, HealthResponse
from data_agent.telemetry import (
    CLIENT_DISCONNECTED,
    DOCUMENTS_PURGED,
    MCP_CONNECT_FAILED,
    MCP_DISCONNECTED,
    REQUEST_RECEIVED,
    REQUEST_REJECTED,
    STREAM_CLOSED,
    STREAM_OPENED,
    TraceContext,
    get_logger,
)
from data_agent.tools.registry import ToolRegistry
from data_agent.tools.synthetic import register_synthetic_tools

log = get_logger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

# Builds the per-request MCP adapter; tests pass a fake.
AdapterFactory = Callable[[ToolRegistry, AccessPolicy], MCPGatewayAdapter]


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def create_app(
    provider: ModelProvider | None = None,
    store: DocumentStore | None = None,
    adapter_factory: AdapterFactory | None = None,
    policy: AccessPolicy | None = None,
    catalogue: ModelCatalogue | None = None,
    metadata: str | None = None,
    datasets: DatasetCatalogue | None = None,
) -> FastAPI:
    """Build the service application.

    Every collaborator left as None is created from settings when the app
    starts.

    Args:
        provider: Model provider. Defaults to an AnthropicStreamClient built
            on first use.
        store: Document store. Defaults to the SQLAlchemy store on
            ``settings.database_url``.
        adapter_factory: Builds the MCP adapter for one request.
        policy: Access policy. Defaults to ``load_access_policy()``.
        catalogue: Model catalogue. Defaults to ``load_model_catalogue()``.
        metadata: Data-source metadata for system prompts. Defaults to the
            contents of ``settings.metadata_path`` if it exists.
        datasets: Dataset catalogue. Defaults to ``load_dataset_catalogue()``.

    Returns:
        Configured FastAPI application.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan management."""
        state = app.state
        log.info("service_starting")

        if state.store is None:
            await init_db()
            state.store = DocumentStore(AsyncSessionLocal, settings.document_retention_days)
            log.info("database_initialized", url=settings.database_url.split("@")[-1])
            try:
                await state.store.purge_expired()
            except DocumentStoreError as e:
                log.warning(DOCUMENTS_PURGED, error=sanitize_error_message(e))

        if state.policy is None:
            state.policy = load_access_policy()
        if state.catalogue is None:
            state.catalogue = load_model_catalogue()
        if state.metadata is None:
            state.metadata = load_metadata()
        if state.datasets is None:
            state.datasets = load_dataset_catalogue()

        log.info("service_ready", port=settings.service_port)

        yield

        log.info("service_shutting_down")
        pending = list(state.exchanges)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        log.info("service_stopped")

    app = FastAPI(
        title="Data Agent Service",
        description="Streaming tool-use data agent",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.provider = provider
    app.state.store = store
    app.state.adapter_factory = adapter_factory or MCPGatewayAdapter
    app.state.policy = policy
    app.state.catalogue = catalogue
    app.state.metadata = metadata
    app.state.datasets = datasets
    app.state.exchanges = set()

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Report malformed requests as 400 with the error body the client expects."""
        details = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        )
        log.info(REQUEST_REJECTED, path=request.url.path, reason="invalid_body", details=details)
        return _error(400, f"Invalid request: {details}")

    # ========================================================================
    # Health Check
    # ========================================================================

    @app.get("/health", response_model=HealthResponse)
    async def health_check() -> HealthResponse:
        """Service health check endpoint."""
        state = app.state
        has_provider = state.provider is not None or bool(settings.llm_api_key)
        return HealthResponse(
            status="healthy",
            components={
                "database": "connected" if state.store is not None else "disconnected",
                "model_provider": "configured" if has_provider else "missing_api_key",
                "tool_provider": settings.mcp_server_url,
            },
            checked_at=utcnow(),
        )

    # ========================================================================
    # Chat Endpoint (Main Entry Point)
    # ========================================================================

    @app.post("/chat", response_model=None)
    async def chat(body: ChatRequest) -> Response:
        """Run one exchange and stream its frames as server-sent events.

        Failures before streaming starts are HTTP errors; after that every
        failure is an in-band ``error`` frame.
        """
        trace_ctx = TraceContext.new_trace()
        log.info(
            REQUEST_RECEIVED,
            trace_id=trace_ctx.trace_id,
            model=body.model,
            message_count=len(body.messages),
            is_mobile=body.is_mobile,
        )

        if not body.messages:
            log.info(REQUEST_REJECTED, trace_id=trace_ctx.trace_id, reason="no_messages")
            return _error(400, "No messages provided")

        state = app.state
        registry = ToolRegistry()
        register_synthetic_tools(registry)
        adapter = state.adapter_factory(registry, state.policy)
        try:
            await adapter.initialize()
        except MCPConnectionError as e:
            message = sanitize_error_message(e)
            log.error(MCP_CONNECT_FAILED, trace_id=trace_ctx.trace_id, error=message)
            return _error(500, f"Failed to connect to tool provider: {message}")

        try:
            provider = _get_provider(app)
        except ValueError as e:
            await adapter.shutdown()
            log.error("model_provider_unavailable", trace_id=trace_ctx.trace_id, error=str(e))
            return _error(500, sanitize_error_message(e))

        services = ExchangeServices.from_settings(
            provider,
            registry,
            state.catalogue,
            state.policy,
            store=state.store,
            metadata=state.metadata,
        )
        emitter = EventEmitter(trace_ctx)
        token = CancellationToken()
        task = asyncio.create_task(
            _run(body.to_exchange_request(), services, emitter, token, trace_ctx, adapter)
        )
        state.exchanges.add(task)
        task.add_done_callback(state.exchanges.discard)

        return StreamingResponse(
            _stream(emitter, token, trace_ctx),
            media_type="text/event-stream",
            headers=SSE_HEADERS,
        )

    # ========================================================================
    # Datasets
    # ========================================================================

    @app.get("/datasets", response_model=list[DatasetSummary])
    async def list_datasets() -> list[DatasetSummary]:
        """List configured datasets with their example questions."""
        return app.state.datasets.summaries()

    @app.get("/datasets/{url_path}", response_model=None)
    async def get_dataset(url_path: str) -> DatasetEntry | Response:
        """Return one dataset, including its metadata notes."""
        dataset = app.state.datasets.get(url_path)
        if dataset is None:
            return _error(404, "Dataset not found")
        return dataset

    # ========================================================================
    # Shared Documents
    # ========================================================================

    @app.get("/share/{doc_id}", response_model=None)
    async def get_share(doc_id: str) -> Response:
        """Serve a saved document as HTML."""
        record = await _load_record(app, doc_id)
        if isinstance(record, Response):
            return record
        return HTMLResponse(record.content)

    @app.get("/share/{doc_id}/info", response_model=None)
    async def get_share_info(doc_id: str) -> Any:
        """Return a saved document's metadata."""
        record = await _load_record(app, doc_id)
        if isinstance(record, Response):
            return record
        return DocumentInfo.from_record(record)

    return app


def _get_provider(app: FastAPI) -> ModelProvider:
    """Return the app's provider, creating the default one on first use.

    Raises:
        ValueError: If no API key is configured.
    """
    if app.state.provider is None:
        app.state.provider = AnthropicStreamClient()
    return app.state.provider


async def _load_record(app: FastAPI, doc_id: str) -> DocumentRecord | Response:
    store: DocumentStore | None = app.state.store
    if store is None:
        return _error(503, "Document storage unavailable")
    try:
        record = await store.get(doc_id)
    except DocumentStoreError as e:
        log.error("share_lookup_failed", document_id=doc_id, error=sanitize_error_message(e))
        return _error(500, "Failed to load share")
    if record is None:
        return _error(404, "Share not found or expired")
    return record


async def _run(
    request: ExchangeRequest,
    services: ExchangeServices,
    emitter: EventEmitter,
    token: CancellationToken,
    trace_ctx: TraceContext,
    adapter: MCPGatewayAdapter,
) -> None:
    """Run the exchange, then release the request's tool connection."""
    try:
        await run_exchange(request, services, emitter, token, trace_ctx)
    finally:
        await emitter.close()
        try:
            await adapter.shutdown()
        except Exception as e:
            log.warning(MCP_DISCONNECTED, trace_id=trace_ctx.trace_id, error=sanitize_error_message(e))


async def _stream(
    emitter: EventEmitter, token: CancellationToken, trace_ctx: TraceContext
) -> AsyncIterator[bytes]:
    """Relay SSE records until the sequence ends.

    If the response is torn down first (client disconnected), the exchange's
    token is cancelled so in-flight model and tool calls stop.
    """
    log.info(STREAM_OPENED, trace_id=trace_ctx.trace_id)
    completed = False
    try:
        async for record in emitter.sse():
            yield record
        completed = True
    finally:
        if not completed:
            log.info(CLIENT_DISCONNECTED, trace_id=trace_ctx.trace_id)
            token.cancel(CLIENT_DISCONNECTED)
        log.info(STREAM_CLOSED, trace_id=trace_ctx.trace_id, completed=completed)


app = create_app()
