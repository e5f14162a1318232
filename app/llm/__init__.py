"""LLM module for text generation."""

from app.llm.llm_adapter import LLMDisabledError, LLMError, LLMRateLimitError, generate_text

__all__ = ["generate_text", "LLMDisabledError", "LLMError", "LLMRateLimitError"]
