"""Sifter agents that turn raw text into checked claims."""

from factcheck_system.agents.sifters.base_sifter import BaseSifter

__all__ = ["BaseSifter"]
