"""Shared application-layer utilities."""

from src.application.shared.llm_helpers import ask_model, generate_with_retry

__all__ = ["ask_model", "generate_with_retry"]
