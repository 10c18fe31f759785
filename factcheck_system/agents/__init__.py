"""Agent implementations for the fact-check system."""

from factcheck_system.agents.base_agent import BaseAgent

__all__ = ["BaseAgent"]
