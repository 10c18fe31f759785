"""Shared utilities: structured logging and oracle JSON parsing."""
