"""Governance module: access policy models for tool execution."""

from data_agent.governance.models import AccessPolicy

__all__ = ["AccessPolicy"]
