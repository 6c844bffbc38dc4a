"""FastAPI application, routes and middleware for AgentSquare."""
