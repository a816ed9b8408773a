"""
LLM Module

Gemini access for the live anatomy classifier and reasoning synthesizer.
"""
from .gemini_client import GeminiClient, GeminiConfig, GeminiModel, GeminiResponse

__all__ = [
    "GeminiClient",
    "GeminiConfig",
    "GeminiModel",
    "GeminiResponse",
]
