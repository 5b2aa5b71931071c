"""Shared helpers: logging setup, redaction, retry."""
