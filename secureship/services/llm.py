"""LLM completion client: send a system and user prompt to a local LLM (Ollama) and return its text."""

import json
import logging
import time
from typing import TYPE_CHECKING

import httpx

if TYPE_CHECKING:
    from secureship.core.config import Settings

logger = logging.getLogger(__name__)


class LlmServiceError(Exception):
    """Raised when the completion cannot be obtained (Ollama unreachable, timeout, bad status or body)."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        self.message = message
        self.cause = cause
        super().__init__(message)


def _generation_options(settings: "Settings") -> dict[str, float | int]:
    """Deterministic sampling options so the same diff yields the same answer."""
    return {
        "temperature": settings.OLLAMA_TEMPERATURE,
        "top_p": settings.OLLAMA_TOP_P,
        "repeat_penalty": settings.OLLAMA_REPEAT_PENALTY,
        "seed": settings.OLLAMA_SEED,
    }


async def complete(system_prompt: str, user_prompt: str, settings: "Settings") -> str:
    """
    Run one non-streaming completion against Ollama and return the generated text.

    Raises LlmServiceError on connection failure, timeout, non-200 status, or a
    body without a text response.
    """
    url = f"{settings.OLLAMA_BASE_URL.rstrip('/')}/api/generate"
    payload = {
        "model": settings.OLLAMA_MODEL,
        "system": system_prompt,
        "prompt": user_prompt,
        "stream": False,
        "options": _generation_options(settings),
    }
    timeout = httpx.Timeout(settings.OLLAMA_REQUEST_TIMEOUT_SEC)
    start = time.perf_counter()

    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.post(url, json=payload)
    except httpx.ConnectError as e:
        _log_failure(start, settings)
        raise LlmServiceError(
            "Ollama is unreachable. Ensure Ollama is running and OLLAMA_BASE_URL is correct.",
            cause=e,
        ) from e
    except httpx.TimeoutException as e:
        _log_failure(start, settings)
        raise LlmServiceError(
            "Ollama request timed out. Try increasing OLLAMA_REQUEST_TIMEOUT_SEC.",
            cause=e,
        ) from e
    except httpx.HTTPError as e:
        _log_failure(start, settings)
        raise LlmServiceError("Ollama request failed.", cause=e) from e
    elapsed = time.perf_counter() - start

    if response.status_code != 200:
        raise LlmServiceError(
            f"Ollama returned status {response.status_code}. Check that the model is pulled (e.g. ollama pull {settings.OLLAMA_MODEL})."
        )

    try:
        body = response.json()
    except json.JSONDecodeError as e:
        raise LlmServiceError("Ollama response body is not valid JSON.", cause=e) from e

    log_extra: dict[str, float | int | str] = {
        "llm_latency_seconds": elapsed,
        "model": settings.OLLAMA_MODEL,
    }
    eval_duration_ns = body.get("eval_duration") if isinstance(body, dict) else None
    if eval_duration_ns is not None:
        log_extra["eval_duration_nanoseconds"] = eval_duration_ns
    logger.info("LLM completion request completed", extra=log_extra)

    text = body.get("response") if isinstance(body, dict) else None
    if not isinstance(text, str):
        raise LlmServiceError("Ollama response missing 'response' text.")
    return text


def _log_failure(start: float, settings: "Settings") -> None:
    logger.info(
        "LLM completion request failed",
        extra={
            "llm_latency_seconds": time.perf_counter() - start,
            "model": settings.OLLAMA_MODEL,
            "status": "error",
        },
    )
