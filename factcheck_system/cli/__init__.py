"""Command-line interface for the fact-check system."""
