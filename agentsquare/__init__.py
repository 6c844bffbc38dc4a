"""AgentSquare: chat with image-generation agent personas."""

__version__ = "0.1.0"
