"""Configuration: settings, logging and prompt templates."""
