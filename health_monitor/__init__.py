"""LLMFeed health monitor: outreach decision and dispatch engine."""

__version__ = "0.1.0"
