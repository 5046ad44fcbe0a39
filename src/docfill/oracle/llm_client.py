"""Multi-provider LLM client using LiteLLM.

Supports OpenAI, Anthropic, Gemini, Ollama and any other LiteLLM-compatible
provider behind one interface. Calls can carry prior conversation turns so
the model keeps continuity across a collection session. Includes retry
logic, cost tracking, async support and a sliding-window rate limiter.
"""

import asyncio
import collections
import json
import logging
import re
import time
from collections.abc import Sequence

import litellm

from docfill.conversation import Turn

logger = logging.getLogger(__name__)

# Suppress LiteLLM's verbose logging
litellm.suppress_debug_info = True

_EMPTY_RESPONSE_PAUSE = 1.0
_MAX_RATE_LIMIT_WAIT = 60.0


class _RateLimiter:
    """Sliding-window limiter shared by sync and async calls."""

    def __init__(self, rpm: int):
        self.rpm = rpm
        self._window = 60.0
        self._timestamps: collections.deque[float] = collections.deque()
        self._async_lock = asyncio.Lock()

    def _delay_needed(self) -> float:
        now = time.monotonic()
        cutoff = now - self._window
        while self._timestamps and self._timestamps[0] < cutoff:
            self._timestamps.popleft()
        if len(self._timestamps) < self.rpm:
            return 0.0
        return max(0.0, self._window - (now - self._timestamps[0]) + 0.1)

    def wait_sync(self) -> None:
        if self.rpm <= 0:
            return
        delay = self._delay_needed()
        if delay:
            logger.debug(f"Rate limiter: sleeping {delay:.1f}s ({self.rpm} RPM)")
            time.sleep(delay)
        self._timestamps.append(time.monotonic())

    async def wait_async(self) -> None:
        if self.rpm <= 0:
            return
        async with self._async_lock:
            delay = self._delay_needed()
            if delay:
                logger.debug(f"Rate limiter: sleeping {delay:.1f}s ({self.rpm} RPM)")
                await asyncio.sleep(delay)
            self._timestamps.append(time.monotonic())


class LLMClient:
    """LLM client with retry logic, cost tracking, and rate limiting."""

    def __init__(
        self,
        model: str,
        max_retries: int = 3,
        rate_limit_retries: int = 8,
        rate_limit_base_wait: float = 5.0,
        rpm: int = 40,
        timeout: int = 60,
        temperature: float = 0.1,
        system_message: str = "",
    ):
        self.model = model
        self.max_retries = max_retries
        self.rate_limit_retries = rate_limit_retries
        self.rate_limit_base_wait = rate_limit_base_wait
        self.timeout = timeout
        self.temperature = temperature
        self.system_message = system_message
        self.total_cost_usd = 0.0
        self.total_input_tokens = 0
        self.total_output_tokens = 0
        self._limiter = _RateLimiter(rpm)

    def _build_messages(
        self,
        prompt: str,
        system_message: str | None,
        history: Sequence[Turn] = (),
    ) -> list[dict]:
        effective_system = system_message or self.system_message
        messages = []
        if effective_system:
            messages.append({"role": "system", "content": effective_system})
        messages.extend({"role": t.role, "content": t.content} for t in history)
        messages.append({"role": "user", "content": prompt})
        return messages

    def _completion_kwargs(self, messages: list[dict], json_mode: bool) -> dict:
        kwargs = {
            "model": self.model,
            "messages": messages,
            "timeout": self.timeout,
            "temperature": self.temperature,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        return kwargs

    def _track_usage(self, response: object) -> None:
        usage = response.usage
        if usage:
            self.total_input_tokens += usage.prompt_tokens or 0
            self.total_output_tokens += usage.completion_tokens or 0
        try:
            cost = litellm.completion_cost(completion_response=response)
        except Exception as e:
            # Unknown/local models have no pricing entry
            logger.debug(f"Cost lookup failed for {self.model}: {e}")
            cost = None
        if cost:
            self.total_cost_usd += cost

    def _rate_limit_wait(self, hits: int, exc: Exception) -> float:
        if hits > self.rate_limit_retries:
            raise RuntimeError(
                f"Rate limited {hits} times, giving up. "
                f"Consider a higher rate tier or a different model."
            ) from exc
        wait = min(self.rate_limit_base_wait * (2 ** (hits - 1)), _MAX_RATE_LIMIT_WAIT)
        logger.warning(f"Rate limited, waiting {wait:.0f}s (hit {hits}/{self.rate_limit_retries})")
        return wait

    def call(
        self,
        prompt: str,
        system_message: str | None = None,
        history: Sequence[Turn] = (),
        json_mode: bool = False,
    ) -> str:
        """Call the LLM and return the text response."""
        kwargs = self._completion_kwargs(
            self._build_messages(prompt, system_message, history), json_mode
        )
        last_error = None
        rate_limit_hits = 0
        error_retries = 0

        while error_retries < self.max_retries:
            self._limiter.wait_sync()
            try:
                response = litellm.completion(**kwargs)
                self._track_usage(response)
                text = response.choices[0].message.content or ""
                if text.strip():
                    return text
                error_retries += 1
                last_error = "Empty response"
                logger.warning(f"Empty response (attempt {error_retries}/{self.max_retries})")
                time.sleep(_EMPTY_RESPONSE_PAUSE)

            except litellm.RateLimitError as exc:
                rate_limit_hits += 1
                time.sleep(self._rate_limit_wait(rate_limit_hits, exc))
                last_error = "Rate limit exceeded"

            except litellm.Timeout:
                error_retries += 1
                logger.warning(f"Timeout (attempt {error_retries}/{self.max_retries})")
                last_error = "Request timed out"

            except KeyboardInterrupt:
                raise
            except Exception as e:
                error_retries += 1
                logger.warning(f"LLM call failed: {e} (attempt {error_retries}/{self.max_retries})")
                last_error = str(e)
                if error_retries < self.max_retries:
                    time.sleep(1)

        raise RuntimeError(f"LLM call failed after {error_retries} attempts: {last_error}")

    def call_json(
        self,
        prompt: str,
        system_message: str | None = None,
        history: Sequence[Turn] = (),
    ) -> dict:
        """Call the LLM in JSON mode and parse the response."""
        text = self.call(prompt, system_message=system_message, history=history, json_mode=True)
        return parse_llm_json(text)

    async def acall(
        self,
        prompt: str,
        system_message: str | None = None,
        history: Sequence[Turn] = (),
        json_mode: bool = False,
    ) -> str:
        """Async version of call(). Cancellation propagates immediately."""
        kwargs = self._completion_kwargs(
            self._build_messages(prompt, system_message, history), json_mode
        )
        last_error = None
        rate_limit_hits = 0
        error_retries = 0

        while error_retries < self.max_retries:
            await self._limiter.wait_async()
            try:
                response = await litellm.acompletion(**kwargs)
                self._track_usage(response)
                text = response.choices[0].message.content or ""
                if text.strip():
                    return text
                error_retries += 1
                last_error = "Empty response"
                logger.warning(f"Empty response (attempt {error_retries}/{self.max_retries})")
                await asyncio.sleep(_EMPTY_RESPONSE_PAUSE)

            except litellm.RateLimitError as exc:
                rate_limit_hits += 1
                await asyncio.sleep(self._rate_limit_wait(rate_limit_hits, exc))
                last_error = "Rate limit exceeded"

            except asyncio.CancelledError:
                raise
            except litellm.Timeout:
                error_retries += 1
                logger.warning(f"Timeout (attempt {error_retries}/{self.max_retries})")
                last_error = "Request timed out"

            except KeyboardInterrupt:
                raise
            except Exception as e:
                error_retries += 1
                logger.warning(f"LLM call failed: {e} (attempt {error_retries}/{self.max_retries})")
                last_error = str(e)
                if error_retries < self.max_retries:
                    await asyncio.sleep(1)

        raise RuntimeError(f"LLM call failed after {error_retries} attempts: {last_error}")

    async def acall_json(
        self,
        prompt: str,
        system_message: str | None = None,
        history: Sequence[Turn] = (),
    ) -> dict:
        """Async version of call_json()."""
        text = await self.acall(prompt, system_message=system_message, history=history, json_mode=True)
        return parse_llm_json(text)


def parse_llm_json(text: str) -> dict:
    """Parse a JSON object from an LLM response.

    Strips markdown code fences and any prose before or after the first
    balanced ``{...}`` block.

    Raises:
        ValueError: If no JSON object can be recovered
    """
    text = re.sub(r"^```(?:json)?\s*\n?", "", text.strip())
    text = re.sub(r"\n?```\s*$", "", text.strip())

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        parsed = None
    if isinstance(parsed, dict):
        return parsed

    start = text.find("{")
    if start != -1:
        depth = 0
        in_string = False
        escaped = False
        for j in range(start, len(text)):
            ch = text[j]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    try:
                        candidate = json.loads(text[start : j + 1])
                    except json.JSONDecodeError:
                        break
                    if isinstance(candidate, dict):
                        return candidate
                    break

    raise ValueError(f"Could not parse JSON from LLM response: {text[:200]}...")
