"""
Inkwell Backend — Google Gemini Content Generator
===================================================

What:  Concrete ContentGenerator drafting blog posts with Google Gemini.
Why:   Gemini's free tier covers the expected generation volume.
How:   Sends a tone/length-aware prompt, parses TITLE/CONTENT sections from
       the reply, with retry, a circuit breaker and a hard timeout.
Who:   Instantiated once at import; called by POST /api/posts/generate.

Resilience Strategy:
    1. Tenacity retry with exponential backoff + jitter for transient failures
    2. Circuit breaker so a Gemini outage fails fast instead of piling up calls
    3. asyncio.wait_for bounds the whole call, retries included, by
       GENERATION_TIMEOUT seconds

Failure Mapping:
    ResourceExhausted (quota)             → RateLimitExceededError (429)
    PermissionDenied / Unauthenticated    → LLMServiceError (503), not retried
    ServiceUnavailable / InternalServer /
    DeadlineExceeded / network errors     → retried, then LLMServiceError (503)
    Timeout                               → LLMServiceError (503)
    Circuit open                          → CircuitBreakerOpenError (503)

    Quota exhaustion does not count as a circuit breaker failure: Gemini is
    up, we are just over budget.
"""

import asyncio
import logging
import re
import time
import uuid
from typing import Callable, Optional

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential_jitter,
    retry_if_exception_type,
    before_sleep_log,
)

from inkwell.config import settings
from inkwell.exceptions import (
    CircuitBreakerOpenError,
    LLMServiceError,
    RateLimitExceededError,
)
from inkwell.services.llm_base import ContentGenerator, GeneratedContent, GenerationOptions

logger = logging.getLogger(__name__)

# Errors worth another attempt: the same request may succeed a second later
TRANSIENT_ERRORS = (
    google_exceptions.ServiceUnavailable,
    google_exceptions.InternalServerError,
    google_exceptions.DeadlineExceeded,
    ConnectionError,
    TimeoutError,
)

# Errors that no retry will fix
CREDENTIAL_ERRORS = (
    google_exceptions.PermissionDenied,
    google_exceptions.Unauthenticated,
)


# ══════════════════════════════════════════════════════════════════════════
# Circuit Breaker Implementation
# ══════════════════════════════════════════════════════════════════════════

class CircuitBreaker:
    """
    Implements the circuit breaker pattern to prevent cascade failures.

    State Machine:
        CLOSED (normal operation)
            → On failure: increment failure_count
            → When failure_count >= threshold: transition to OPEN

        OPEN (rejecting all requests)
            → All calls raise CircuitBreakerOpenError immediately
            → After recovery_timeout seconds: transition to HALF_OPEN

        HALF_OPEN (testing recovery)
            → Allow ONE request through
            → On success: transition to CLOSED (reset failure_count)
            → On failure: transition back to OPEN (reset timer)

    Not thread-safe; all callers run on the single uvicorn event loop.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: int = 60,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            failure_threshold: Consecutive failures before opening circuit
            recovery_timeout: Seconds to wait before testing recovery
            clock: Current time in seconds; injectable for tests
        """
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time: Optional[float] = None
        self._clock = clock

    def can_execute(self) -> bool:
        """
        Check if a request is allowed through the circuit breaker.

        Raises:
            CircuitBreakerOpenError if circuit is OPEN and recovery timeout hasn't elapsed.
        """
        if self.state == self.CLOSED:
            return True

        if self.state == self.OPEN:
            elapsed = self._clock() - (self.last_failure_time or 0)
            if elapsed >= self.recovery_timeout:
                logger.info(
                    "Circuit breaker transitioning to HALF_OPEN after %.1fs",
                    elapsed,
                )
                self.state = self.HALF_OPEN
                return True
            remaining = max(1, int(self.recovery_timeout - elapsed))
            raise CircuitBreakerOpenError(recovery_time=remaining)

        # HALF_OPEN: allow the test request through
        return True

    def record_success(self) -> None:
        if self.state == self.HALF_OPEN:
            logger.info("Circuit breaker transitioning to CLOSED (service recovered)")
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time = None

    def record_failure(self) -> None:
        """Record a failed call. May trigger CLOSED → OPEN transition."""
        self.failure_count += 1
        self.last_failure_time = self._clock()

        if self.state == self.HALF_OPEN:
            logger.warning("Circuit breaker returning to OPEN (test request failed)")
            self.state = self.OPEN
        elif self.failure_count >= self.failure_threshold:
            logger.warning(
                "Circuit breaker OPENING after %d consecutive failures",
                self.failure_count,
            )
            self.state = self.OPEN


# ══════════════════════════════════════════════════════════════════════════
# Gemini Service
# ══════════════════════════════════════════════════════════════════════════

_LENGTH_GUIDE = {
    "short": "300-500 words",
    "medium": "600-900 words",
    "long": "1200-1600 words",
}

_TONE_GUIDE = {
    "casual": "friendly and conversational, as if talking to a friend",
    "professional": "clear, confident and informative, suitable for a business audience",
    "academic": "precise and well-structured, with careful reasoning and formal vocabulary",
}

_SECTION_PATTERN = re.compile(
    r"^\s*TITLE:\s*(?P<title>.+?)\s*\n+\s*CONTENT:\s*(?P<content>.+)$",
    re.DOTALL | re.IGNORECASE,
)


def parse_generation(text: str) -> GeneratedContent:
    """
    Split a model reply into title and body.

    Expected shape is "TITLE: ...\\nCONTENT:\\n...". A reply that ignores
    the format falls back to first line = title, remainder = content.

    Raises:
        LLMServiceError: the reply is empty or has no body.
    """
    text = (text or "").strip()
    match = _SECTION_PATTERN.match(text)
    if match:
        title = match.group("title").strip().strip("#*").strip()
        content = match.group("content").strip()
    else:
        first, _, rest = text.partition("\n")
        title = first.strip().strip("#*").strip()
        content = rest.strip()

    if not title or not content:
        raise LLMServiceError(
            message="AI service returned an unusable response. Please try again.",
            context={"reply_length": len(text)},
        )
    return GeneratedContent(title=title[:200], content=content)


class GeminiService(ContentGenerator):
    """
    Google Gemini implementation of ContentGenerator.

    Error Handling Chain:
        API call fails with a transient error → tenacity retries
        → All retries fail → record circuit breaker failure → LLMServiceError
        → Threshold reached → future calls rejected instantly (OPEN)
        → Recovery timeout → one test call allowed (HALF_OPEN)

    Args:
        timeout: Seconds allowed for one generate() call, retries included
        circuit_breaker: Breaker instance; built from settings when omitted
    """

    PROMPT_TEMPLATE = """You are an experienced blog writer. Write an original blog post about:

{topic}

Requirements:
1. Tone: {tone_guide}
2. Length: {length_guide}
3. Use short paragraphs separated by blank lines
4. Do not include HTML, scripts or links
5. Reply in exactly this format and nothing else:

TITLE: <a compelling title under 100 characters>
CONTENT:
<the full post>"""

    def __init__(
        self,
        timeout: Optional[float] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
    ):
        # The SDK keeps auth in module-level state
        if settings.gemini_configured:
            genai.configure(api_key=settings.gemini_api_key)

        self.model = genai.GenerativeModel(settings.gemini_model)
        self.timeout = timeout if timeout is not None else settings.generation_timeout
        self.circuit_breaker = circuit_breaker or CircuitBreaker(
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )

        logger.info(
            "GeminiService initialized with model=%s, timeout=%.0fs, "
            "circuit_breaker(threshold=%d, recovery=%ds)",
            settings.gemini_model,
            self.timeout,
            self.circuit_breaker.failure_threshold,
            self.circuit_breaker.recovery_timeout,
        )

    def build_prompt(self, topic: str, options: GenerationOptions) -> str:
        return self.PROMPT_TEMPLATE.format(
            topic=topic,
            tone_guide=_TONE_GUIDE.get(options.tone, _TONE_GUIDE["professional"]),
            length_guide=_LENGTH_GUIDE.get(options.length, _LENGTH_GUIDE["medium"]),
        )

    async def generate(self, topic: str, options: GenerationOptions) -> GeneratedContent:
        """
        Draft a post about `topic` with Gemini.

        Flow:
            1. Refuse immediately if no API key is configured
            2. Check circuit breaker → may raise CircuitBreakerOpenError
            3. Call Gemini with retry, bounded by self.timeout
            4. Record success/failure in circuit breaker
            5. Parse TITLE/CONTENT out of the reply
        """
        request_id = str(uuid.uuid4())[:8]

        if not settings.gemini_configured:
            logger.warning("[%s] Generation requested but GEMINI_API_KEY is not set", request_id)
            raise LLMServiceError(context={"request_id": request_id, "reason": "not_configured"})

        self.circuit_breaker.can_execute()

        logger.info(
            "[%s] Starting Gemini generation (tone=%s, length=%s, topic=%d chars)",
            request_id,
            options.tone,
            options.length,
            len(topic),
        )

        prompt = self.build_prompt(topic, options)
        try:
            text = await asyncio.wait_for(
                self._call_gemini_with_retry(prompt, request_id),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            self.circuit_breaker.record_failure()
            logger.error("[%s] Gemini generation timed out after %.1fs", request_id, self.timeout)
            raise LLMServiceError(
                message="AI service timed out. Please try again later.",
                context={"request_id": request_id, "timeout": self.timeout},
            )
        except google_exceptions.ResourceExhausted as e:
            logger.warning("[%s] Gemini quota exhausted: %s", request_id, str(e))
            raise RateLimitExceededError(
                retry_after=1,
                message="AI service rate limit reached. Please try again later.",
                context={"request_id": request_id, "upstream": "gemini"},
            )
        except CREDENTIAL_ERRORS as e:
            self.circuit_breaker.record_failure()
            logger.error("[%s] Gemini rejected our credentials: %s", request_id, str(e))
            raise LLMServiceError(context={"request_id": request_id, "error_type": type(e).__name__})
        except TRANSIENT_ERRORS as e:
            self.circuit_breaker.record_failure()
            logger.error("[%s] All Gemini retries exhausted: %s", request_id, str(e))
            raise LLMServiceError(
                message="AI content generation failed after multiple attempts. Please try again later.",
                retry_after=self.circuit_breaker.recovery_timeout,
                context={"request_id": request_id, "attempts": settings.retry_max_attempts},
            )
        except google_exceptions.GoogleAPICallError as e:
            self.circuit_breaker.record_failure()
            logger.error("[%s] Gemini API error: %s", request_id, str(e))
            raise LLMServiceError(context={"request_id": request_id, "error_type": type(e).__name__})
        except Exception as e:
            self.circuit_breaker.record_failure()
            logger.error("[%s] Unexpected Gemini error: %s", request_id, str(e), exc_info=True)
            raise LLMServiceError(
                message="An unexpected error occurred during content generation.",
                context={"request_id": request_id, "error_type": type(e).__name__},
            )

        self.circuit_breaker.record_success()
        return parse_generation(text)

    @retry(
        retry=retry_if_exception_type(TRANSIENT_ERRORS),
        stop=stop_after_attempt(settings.retry_max_attempts),
        # wait = min(max_wait, min_wait * 2^attempt + jitter)
        wait=wait_exponential_jitter(
            initial=settings.retry_min_wait,
            max=settings.retry_max_wait,
            jitter=1,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _call_gemini_with_retry(self, prompt: str, request_id: str) -> str:
        """
        The actual API call. Only this is retried; the breaker check and the
        timeout sit outside it.
        """
        start_time = time.time()
        try:
            response = await self.model.generate_content_async(prompt)
            text = response.text.strip() if response.text else ""
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.warning(
                "[%s] Gemini API call failed after %.0fms: %s",
                request_id,
                duration_ms,
                str(e),
            )
            raise

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "[%s] Gemini generation completed in %.0fms, %d chars",
            request_id,
            duration_ms,
            len(text),
        )
        return text

    async def health_check(self) -> bool:
        """
        True when an API key is configured and the circuit is not open.

        Listing models would cost a network round trip on every health probe;
        the breaker already reflects recent call outcomes.
        """
        return settings.gemini_configured and self.circuit_breaker.state != CircuitBreaker.OPEN

    @property
    def status(self) -> str:
        """Health endpoint label: available, not_configured, circuit_open."""
        if not settings.gemini_configured:
            return "not_configured"
        if self.circuit_breaker.state == CircuitBreaker.OPEN:
            return "circuit_open"
        return "available"


# ── Singleton Instance ────────────────────────────────────────────────────
# Shared so the circuit breaker state spans all requests.
gemini_service = GeminiService()


def get_content_generator() -> ContentGenerator:
    """FastAPI dependency; overridden in tests with a fake generator."""
    return gemini_service
