"""
LLM Client for the Wonderland Account Assistant.

Centralized Gemini call handler with:
- Retry logic via tenacity
- Cost/token tracking via TraceStore
- Native Gemini function calling (single round: the orchestrator executes
  the selected account action itself)
- Proper error handling (no bare excepts)
"""

from __future__ import annotations

import logging
import time
from typing import Any, Sequence

import httpx
from google.genai.errors import ClientError as GenaiClientError, ServerError as GenaiServerError
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    before_sleep_log,
)

from config.settings import PROJECT_ID, VERTEX_LOCATION, MODEL_PRO, get_credentials
from core.tracing import TraceStore, get_tracer, estimate_tokens
from models.schemas import LLMCallResult, Message, MessageRole, ToolCall

logger = logging.getLogger(__name__)


# =============================================================================
# Singleton Client Cache (avoid creating new client per call)
# =============================================================================

_client_cache: dict[str, Any] = {}


def _get_client():
    """Return a cached genai.Client instance (created once, reused)."""
    if "client" not in _client_cache:
        from google import genai
        _client_cache["client"] = genai.Client(
            vertexai=True, project=PROJECT_ID, location=VERTEX_LOCATION,
            credentials=get_credentials(),
        )
        logger.info("Created singleton genai.Client for project=%s", PROJECT_ID)
    return _client_cache["client"]


# =============================================================================
# Retry configuration
# =============================================================================

RETRYABLE_EXCEPTIONS = (
    ConnectionError,
    TimeoutError,
    GenaiServerError,
    httpx.RemoteProtocolError,
    httpx.ReadError,
    httpx.ConnectError,
    httpx.TimeoutException,
)


def _is_retryable(exception: BaseException) -> bool:
    """Check if an exception is retryable (rate limit or transient error)."""
    if isinstance(exception, RETRYABLE_EXCEPTIONS):
        return True
    # ClientError covers 429 (retryable) but also 400/403 (not retryable)
    if isinstance(exception, GenaiClientError):
        status = getattr(exception, "code", 0) or getattr(exception, "status", 0)
        return status == 429
    msg = str(exception).lower()
    return any(kw in msg for kw in ("resource exhausted", "rate limit", "peer closed connection"))


# =============================================================================
# Content building
# =============================================================================

def _build_contents(messages: Sequence[Message]) -> list[Any]:
    """Convert chat history into Gemini contents (assistant → model role)."""
    from google.genai import types

    contents = []
    for msg in messages:
        if not msg.content:
            continue
        role = "model" if msg.role == MessageRole.ASSISTANT else "user"
        contents.append(types.Content(role=role, parts=[types.Part(text=msg.content)]))
    return contents


def _response_text(response: Any) -> str:
    """Join text parts of the first candidate; pure function-call responses yield ''."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates or not candidates[0].content or not candidates[0].content.parts:
        return ""
    return "".join(part.text for part in candidates[0].content.parts if getattr(part, "text", None))


def _response_tool_calls(response: Any) -> list[ToolCall]:
    calls: list[ToolCall] = []
    for candidate in getattr(response, "candidates", None) or []:
        if not candidate.content or not candidate.content.parts:
            continue
        for part in candidate.content.parts:
            fc = getattr(part, "function_call", None)
            if fc and fc.name:
                calls.append(ToolCall(name=fc.name, args=dict(fc.args) if fc.args else {}))
    return calls


# =============================================================================
# Core LLM Call
# =============================================================================

@retry(
    retry=retry_if_exception(_is_retryable),
    stop=stop_after_attempt(5),
    wait=wait_exponential(multiplier=2, min=2, max=30),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
def _call_gemini(
    contents: Any,
    model: str,
    temperature: float,
    max_tokens: int,
    system_instruction: str | None = None,
    tools: list[Any] | None = None,
    thinking_budget: int | None = None,
) -> Any:
    """
    Raw Gemini API call with retry. Returns the raw response object.

    Args:
        thinking_budget: Thinking token budget for gemini-2.5 models.
            0 = disable thinking, >0 = limit thinking tokens, None = model default.
    """
    from google.genai import types

    client = _get_client()

    config_kwargs: dict[str, Any] = {
        "temperature": temperature,
        "max_output_tokens": max_tokens,
    }
    if system_instruction:
        config_kwargs["system_instruction"] = system_instruction
    if thinking_budget is not None:
        config_kwargs["thinking_config"] = types.ThinkingConfig(thinking_budget=thinking_budget)
    if tools:
        config_kwargs["tools"] = tools
        # The orchestrator executes the chosen action; never let the SDK call Python functions
        config_kwargs["automatic_function_calling"] = types.AutomaticFunctionCallingConfig(disable=True)

    config = types.GenerateContentConfig(**config_kwargs)

    return client.models.generate_content(
        model=model,
        contents=contents,
        config=config,
    )


def _invoke(
    contents: Any,
    prompt_text: str,
    model: str,
    temperature: float,
    max_tokens: int,
    agent_name: str,
    tracer: TraceStore | None,
    system_instruction: str | None = None,
    tools: list[Any] | None = None,
    thinking_budget: int | None = None,
) -> LLMCallResult:
    if tracer is None:
        tracer = get_tracer()

    with tracer.trace_llm_call(agent_name, model, prompt_text) as ctx:
        start_time = time.time()
        try:
            response = _call_gemini(
                contents=contents,
                model=model,
                temperature=temperature,
                max_tokens=max_tokens,
                system_instruction=system_instruction,
                tools=tools,
                thinking_budget=thinking_budget,
            )
        except Exception as e:
            # Retries exhausted on a transient error: let the caller's boundary handle it
            if _is_retryable(e):
                raise
            logger.error("LLM call failed for %s: %s", agent_name, e, exc_info=True)
            tracer.record(agent_name, "ERROR", str(e)[:200])
            return LLMCallResult(
                text=f"[LLM ERROR: {type(e).__name__}: {e}]",
                model=model,
                agent_name=agent_name,
                success=False,
                error=str(e),
            )

        result_text = _response_text(response)
        tool_calls = _response_tool_calls(response) if tools else []
        ctx["response_text"] = result_text

        usage = getattr(response, "usage_metadata", None)
        if usage is not None:
            ctx["tokens_in"] = getattr(usage, "prompt_token_count", 0) or ctx["tokens_in"]
            ctx["tokens_out"] = getattr(usage, "candidates_token_count", 0) or 0
        else:
            ctx["tokens_out"] = estimate_tokens(result_text)

        if not result_text and not tool_calls:
            logger.warning("Empty response for %s (candidates may be empty or blocked)", agent_name)

        return LLMCallResult(
            text=result_text,
            model=model,
            tokens_in=ctx["tokens_in"],
            tokens_out=ctx["tokens_out"],
            duration_ms=int((time.time() - start_time) * 1000),
            agent_name=agent_name,
            success=bool(result_text or tool_calls),
            error=None if (result_text or tool_calls) else "Empty response",
            tool_calls=tool_calls,
        )


def call_llm(
    prompt: str | None = None,
    messages: Sequence[Message] | None = None,
    system_instruction: str | None = None,
    model: str = MODEL_PRO,
    temperature: float = 0.1,
    max_tokens: int = 4096,
    agent_name: str = "LLM",
    tracer: TraceStore | None = None,
    thinking_budget: int | None = None,
) -> LLMCallResult:
    """
    Call Vertex AI Gemini with tracing and retry.

    Args:
        prompt: Single-turn prompt text (used when `messages` is not given)
        messages: Conversation history to send as multi-turn contents
        system_instruction: System prompt (persona + rules)
        model: Model name
        temperature: Sampling temperature
        max_tokens: Maximum output tokens
        agent_name: Caller name (for tracing)
        tracer: TraceStore instance (uses context-local one if not provided)
        thinking_budget: Thinking token budget (0 disables thinking on flash models)

    Returns:
        LLMCallResult with text and metadata. Non-retryable API errors are
        returned as success=False rather than raised.
    """
    if messages is not None:
        contents = _build_contents(messages)
        prompt_text = "\n".join(m.content for m in messages)
    else:
        contents = prompt or ""
        prompt_text = contents
    return _invoke(
        contents, prompt_text, model, temperature, max_tokens, agent_name, tracer,
        system_instruction=system_instruction, thinking_budget=thinking_budget,
    )


def call_llm_for_action(
    messages: Sequence[Message],
    tools: list[Any],
    system_instruction: str | None = None,
    model: str = MODEL_PRO,
    temperature: float = 0.1,
    max_tokens: int = 4096,
    agent_name: str = "AccountActions",
    tracer: TraceStore | None = None,
    thinking_budget: int | None = None,
) -> LLMCallResult:
    """
    Ask Gemini to pick one of the declared account tools.

    Returns the model's text (possibly empty) and any function calls in
    `LLMCallResult.tool_calls`. Nothing is executed here.
    """
    contents = _build_contents(messages)
    prompt_text = "\n".join(m.content for m in messages)
    return _invoke(
        contents, prompt_text, model, temperature, max_tokens, agent_name, tracer,
        system_instruction=system_instruction, tools=tools, thinking_budget=thinking_budget,
    )


# =============================================================================
# Result Validation Utility
# =============================================================================

def require_success(
    result: LLMCallResult,
    agent_name: str = "",
    tracer: TraceStore | None = None,
) -> LLMCallResult:
    """Validate that an LLM call succeeded. Raises RuntimeError on failure."""
    if not result.success:
        name = agent_name or result.agent_name
        if tracer:
            tracer.record(name, "LLM_FAIL", result.error or "Unknown error")
        raise RuntimeError(f"LLM call failed for {name}: {result.error}")
    return result
