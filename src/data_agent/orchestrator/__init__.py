"""Orchestrator module: the exchange state machine and its strategies.

This module provides the conversation loop (stream a turn, run its tools,
repeat), the two-phase pipeline, fan-out over columns, and the routing that
picks one of them for a request.
"""

from data_agent.orchestrator.cancellation import CancellationToken, ExchangeCancelled
from data_agent.orchestrator.executor import execute_exchange, run_standalone
from data_agent.orchestrator.fanout import run_fanout
from data_agent.orchestrator.pipeline import TwoPhasePipeline, build_collected_data
from data_agent.orchestrator.retry import RetryPolicy, RetryState
from data_agent.orchestrator.routing import run_exchange, run_route
from data_agent.orchestrator.turn import TurnExecutor
from data_agent.orchestrator.types import (
    ExchangeContext,
    ExchangeRequest,
    ExchangeResult,
    ExchangeServices,
    ExchangeState,
    ExchangeTimeoutError,
    MaxTurnsExceededError,
    OrchestratorError,
    RetryExhaustedError,
    TurnOutput,
)

__all__ = [
    # Public API
    "run_exchange",
    "run_route",
    "run_standalone",
    "execute_exchange",
    "run_fanout",
    "TwoPhasePipeline",
    "build_collected_data",
    "TurnExecutor",
    # Types
    "ExchangeState",
    "ExchangeContext",
    "ExchangeRequest",
    "ExchangeResult",
    "ExchangeServices",
    "TurnOutput",
    # Retry and cancellation
    "RetryPolicy",
    "RetryState",
    "CancellationToken",
    "ExchangeCancelled",
    # Errors
    "OrchestratorError",
    "RetryExhaustedError",
    "MaxTurnsExceededError",
    "ExchangeTimeoutError",
]
