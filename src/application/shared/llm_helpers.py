"""LLM helpers: retry wrapper for secondary-model calls."""

import asyncio

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.domain.ports.llm import LLMMessage, LLMPort, LLMResponse


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((TimeoutError, ConnectionError, OSError)),
    reraise=True,
)
async def _generate_impl(
    llm: LLMPort,
    messages: list[LLMMessage],
    model: str,
    temperature: float,
) -> LLMResponse:
    """Internal: generate with retry."""
    return await llm.generate(
        messages=messages,
        model=model,
        temperature=temperature,
    )


async def generate_with_retry(
    llm: LLMPort,
    messages: list[LLMMessage],
    model: str,
    temperature: float = 0.7,
) -> LLMResponse:
    """Generate with retry on timeout/connection errors."""
    return await _generate_impl(llm, messages, model, temperature)


async def ask_model(
    llm: LLMPort,
    prompt: str,
    model: str,
    system: str | None = None,
    timeout: float | None = None,
    temperature: float = 0.3,
) -> str:
    """Single-prompt completion, bounded by ``timeout`` seconds. Returns stripped text.

    Raises TimeoutError when the bound is exceeded.
    """
    messages = [LLMMessage(role="user", content=prompt)]
    if system:
        messages.insert(0, LLMMessage(role="system", content=system))
    call = generate_with_retry(llm, messages, model, temperature)
    response = await (asyncio.wait_for(call, timeout) if timeout else call)
    return response.content.strip()
