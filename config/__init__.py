"""Configuration package."""

from config.settings import settings, Settings, LLMProvider, AnalysisQueueBackend

__all__ = ["settings", "Settings", "LLMProvider", "AnalysisQueueBackend"]
