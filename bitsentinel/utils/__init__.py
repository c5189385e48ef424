"""Shared helpers: structured logging and timestamp conversion."""
