"""Fact-check system: claim extraction and evidence-based verification."""

__version__ = "0.1.0"
