"""Command-line interface for AgentSquare."""
