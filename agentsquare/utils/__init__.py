"""Shared utilities: paths, network address resolution and redaction."""
