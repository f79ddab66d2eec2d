# formula_guru/llm_client.py
import logging
import random
import threading
import time
import traceback
from typing import Any, Callable, Dict, Optional, TypeVar

from openai import APITimeoutError, OpenAI, RateLimitError

from formula_guru.settings import LLM_TIMEOUT, OPENAI_MODEL, OPENAI_TEMPERATURE

T = TypeVar("T")

logger = logging.getLogger("formula_guru")


class MaxRetryErrorsException(Exception):
    pass


class RateLimitWindow:
    """
    Process-wide pause shared by every vision call.

    A rate limit or timeout pushes `resume_at` forward (jittered, doubling up
    to `max_pause`); other requests sleep until then instead of piling on.
    Each success halves the next pause.
    """

    def __init__(self, initial_pause: float = 30.0, max_pause: float = 600.0):
        self._lock = threading.Lock()
        self.resume_at = 0.0
        self.pause = initial_pause
        self.max_pause = max_pause

    def wait(self) -> None:
        while True:
            with self._lock:
                remaining = self.resume_at - time.monotonic()
            if remaining <= 0:
                return
            time.sleep(min(remaining, 1.0))

    def push(self) -> float:
        with self._lock:
            delay = random.uniform(self.pause * 0.95, self.pause * 1.35)
            self.pause = min(self.pause * 2, self.max_pause)
            self.resume_at = max(self.resume_at, time.monotonic() + delay)
            return delay

    def relax(self) -> None:
        with self._lock:
            self.pause = max(1.0, self.pause * 0.5)


RATE_LIMIT_WINDOW = RateLimitWindow()


def is_rate_limited(e: Exception) -> bool:
    if isinstance(e, RateLimitError):
        return True
    msg = str(e)
    return "429" in msg or "rate limit" in msg.lower()


def is_timeout(e: Exception) -> bool:
    if isinstance(e, (APITimeoutError, TimeoutError)):
        return True
    return "timed out" in repr(e).lower()


def call_with_retries_sync(
    fn: Callable[[], T],
    *,
    retries: int = 1,
    window: RateLimitWindow = RATE_LIMIT_WINDOW,
    log: Callable[[str], None] | None = None,
) -> T:
    """Run `fn` up to `retries` times inside the shared rate-limit window."""
    last_error: Exception | None = None

    for attempt in range(1, retries + 1):
        window.wait()
        started = time.time()
        try:
            result = fn()
        except Exception as e:
            last_error = e
            if is_rate_limited(e) or is_timeout(e):
                note = f"try {attempt}/{retries} rate limited or timed out, pausing ~{window.push():.1f}s"
            else:
                note = f"try {attempt}/{retries} failed"
            if log:
                log(f"{note} after {time.time() - started:.2f}s: {e}\n{traceback.format_exc()}")
            continue
        window.relax()
        return result

    raise MaxRetryErrorsException(f"Vision call failed after {retries} tries.") from last_error


class VisionLlmClient:
    """
    OpenAI chat completions for one photo + one prompt:

        text = client.analyze(system_prompt, user_text, data_url)

    Returns the raw message text (expected to be a JSON object). Transport
    failures surface as MaxRetryErrorsException.
    """

    def __init__(
        self,
        model_name: str = OPENAI_MODEL,
        *,
        api_key: str | None = None,
        temperature: float = OPENAI_TEMPERATURE,
        timeout: float | None = LLM_TIMEOUT,
        client: Any = None,
    ):
        self.model_name = model_name
        self.temperature = temperature
        self.usage: Dict[str, int] = {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0}

        if client is None:
            # retries are ours (shared window), not the SDK's
            options: Dict[str, Any] = {"max_retries": 0}
            if api_key:
                options["api_key"] = api_key
            if timeout is not None:
                options["timeout"] = timeout
            client = OpenAI(**options)
        self._client = client

    def _record_usage(self, resp: Any) -> None:
        usage = getattr(resp, "usage", None)
        if usage is None:
            return
        for key in self.usage:
            self.usage[key] += getattr(usage, key, 0) or 0

    def _vision_messages(self, system_prompt: str, user_text: str, image_data_url: str) -> list:
        return [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": [
                {"type": "text", "text": user_text},
                {"type": "image_url", "image_url": {"url": image_data_url}},
            ]},
        ]

    def _analyze_once(self, system_prompt: str, user_text: str, image_data_url: str) -> str:
        resp = self._client.chat.completions.create(
            model=self.model_name,
            messages=self._vision_messages(system_prompt, user_text, image_data_url),
            temperature=self.temperature,
            response_format={"type": "json_object"},
        )
        self._record_usage(resp)

        choices = getattr(resp, "choices", None) or []
        if not choices:
            return ""
        return (getattr(choices[0].message, "content", "") or "").strip()

    def analyze(self, system_prompt: str, user_text: str, image_data_url: str, *, retries: int = 1) -> str:
        return call_with_retries_sync(
            lambda: self._analyze_once(system_prompt, user_text, image_data_url),
            retries=retries,
            log=lambda msg: logger.warning(f"[VISION] {msg}"),
        )
