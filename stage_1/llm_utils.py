"""
LLM Utilities - client factory and resilient chat completion wrapper
"""

import time
from typing import Any, List, Optional

from openai import OpenAI

import config
from workflow.errors import UpstreamToolError

_client: Optional[OpenAI] = None


def get_client() -> OpenAI:
    """
    Shared OpenAI-compatible client configured from config.py.

    Raises:
        UpstreamToolError: If no API key is configured
    """
    global _client
    if _client is None:
        if not config.LLM_API_KEY:
            raise UpstreamToolError(
                "llm",
                "API key not found. Set DEEPSEEK_API_KEY or OPENAI_API_KEY in a .env file or in your environment.",
            )
        _client = OpenAI(api_key=config.LLM_API_KEY, base_url=config.LLM_BASE_URL)
    return _client


def call_chat_completion(
    client: OpenAI,
    messages: List[dict],
    model: Optional[str] = None,
    timeout: Optional[int] = None,
    max_retries: int = 2,
    debug: bool = False,
    **kwargs
) -> Any:
    """
    Chat completion with timeout and exponential-backoff retry.

    Args:
        client: OpenAI client instance
        messages: Role-structured chat messages
        model: Model name (default: config.LLM_MODEL)
        timeout: Request timeout in seconds
        max_retries: Retry attempts after the first call
        debug: Enable debug output
        **kwargs: Passed to chat.completions.create (temperature, max_tokens...)

    Raises:
        UpstreamToolError: If all attempts fail
    """
    model = model or config.LLM_MODEL
    timeout = timeout or config.LLM_TIMEOUT
    last_error = None

    for attempt in range(max_retries + 1):
        try:
            return client.chat.completions.create(
                model=model,
                messages=messages,
                timeout=timeout,
                **kwargs
            )
        except Exception as e:
            last_error = e
            if attempt < max_retries:
                wait_time = 2 ** attempt
                if debug:
                    print(f"    [DEBUG] LLM call failed (attempt {attempt + 1}/{max_retries + 1}): {e}")
                    print(f"    [DEBUG] Retrying in {wait_time} seconds...")
                time.sleep(wait_time)

    raise UpstreamToolError("llm", f"call failed after {max_retries + 1} attempts: {last_error}")


def response_text(response: Any) -> str:
    """Text content of the first choice"""
    choices = getattr(response, "choices", None) or []
    if not choices:
        raise UpstreamToolError("llm", "API returned an empty response")
    content = choices[0].message.content
    if not content:
        raise UpstreamToolError("llm", "no code content was generated")
    return content
