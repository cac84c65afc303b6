"""vibesafu - permission gate for shell commands run by AI coding agents."""

__version__ = "0.3.0"
