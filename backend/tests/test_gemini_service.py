"""
Inkwell Backend — Gemini Service Unit Tests (Mocked)
======================================================

What:  GeminiService with the Google SDK patched out. No network calls.

What we test:
    ✅ Successful generation is parsed into title and content
    ✅ Transient errors are retried, then surface as LLMServiceError
    ✅ Quota exhaustion surfaces as RateLimitExceededError and is not retried
    ✅ Timeout surfaces as LLMServiceError
    ✅ Circuit breaker opens after consecutive failures and recovers
"""

import asyncio
from typing import Optional
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from google.api_core import exceptions as google_exceptions

from inkwell.exceptions import (
    CircuitBreakerOpenError,
    LLMServiceError,
    RateLimitExceededError,
    UpstreamUnavailableError,
)
from inkwell.services.gemini_service import CircuitBreaker, GeminiService, parse_generation
from inkwell.services.llm_base import GenerationOptions


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def make_service(model, timeout: float = 5.0, breaker: Optional[CircuitBreaker] = None) -> GeminiService:
    with patch("inkwell.services.gemini_service.genai"):
        service = GeminiService(timeout=timeout, circuit_breaker=breaker)
    service.model = model
    return service


def model_returning(text: str) -> MagicMock:
    response = MagicMock()
    response.text = text
    model = MagicMock()
    model.generate_content_async = AsyncMock(return_value=response)
    return model


def model_raising(error: Exception) -> MagicMock:
    model = MagicMock()
    model.generate_content_async = AsyncMock(side_effect=error)
    return model


OPTIONS = GenerationOptions(tone="casual", length="short")


class TestCircuitBreaker:

    def test_initial_state_is_closed(self):
        cb = CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        assert cb.state == "closed"
        assert cb.failure_count == 0

    def test_stays_closed_under_threshold(self):
        cb = CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        for _ in range(4):
            cb.record_failure()
        assert cb.state == "closed"
        assert cb.can_execute()

    def test_open_circuit_rejects_calls(self):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=60)
        cb.record_failure()
        with pytest.raises(CircuitBreakerOpenError):
            cb.can_execute()

    def test_half_open_after_recovery_timeout(self):
        clock = FakeClock()
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=60, clock=clock)
        cb.record_failure()
        clock.now += 60
        assert cb.can_execute()
        assert cb.state == "half_open"

    def test_failed_probe_reopens(self):
        clock = FakeClock()
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=60, clock=clock)
        cb.record_failure()
        clock.now += 60
        cb.can_execute()
        cb.record_failure()
        assert cb.state == "open"

    def test_success_closes_and_resets(self):
        cb = CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        cb.record_failure()
        cb.record_success()
        assert cb.state == "closed"
        assert cb.failure_count == 0


class TestParseGeneration:

    def test_title_and_content_sections(self):
        result = parse_generation("TITLE: Growing Tomatoes\nCONTENT:\nStart with good soil.\n\nWater daily.")
        assert result.title == "Growing Tomatoes"
        assert result.content == "Start with good soil.\n\nWater daily."

    def test_unformatted_reply_falls_back_to_first_line(self):
        result = parse_generation("# Growing Tomatoes\nStart with good soil.")
        assert result.title == "Growing Tomatoes"
        assert result.content == "Start with good soil."

    @pytest.mark.parametrize("text", ["", "   ", "Only a title"])
    def test_unusable_reply(self, text):
        with pytest.raises(LLMServiceError):
            parse_generation(text)


class TestGeminiServiceMocked:

    @pytest.mark.asyncio
    async def test_generate_success(self):
        model = model_returning("TITLE: Urban Gardens\nCONTENT:\nPlants everywhere.")
        service = make_service(model)

        result = await service.generate("Urban gardening", OPTIONS)

        assert result.title == "Urban Gardens"
        assert result.content == "Plants everywhere."
        prompt = model.generate_content_async.call_args.args[0]
        assert "Urban gardening" in prompt
        assert "300-500 words" in prompt
        assert service.circuit_breaker.state == "closed"

    @pytest.mark.asyncio
    async def test_transient_errors_are_retried_then_fail(self):
        model = model_raising(google_exceptions.ServiceUnavailable("down"))
        service = make_service(model)

        with pytest.raises(LLMServiceError) as exc_info:
            await service.generate("Urban gardening", OPTIONS)

        assert isinstance(exc_info.value, UpstreamUnavailableError)
        # RETRY_MAX_ATTEMPTS=2 in the test environment
        assert model.generate_content_async.await_count == 2
        assert service.circuit_breaker.failure_count == 1

    @pytest.mark.asyncio
    async def test_quota_exhaustion_maps_to_rate_limit(self):
        model = model_raising(google_exceptions.ResourceExhausted("quota"))
        service = make_service(model)

        with pytest.raises(RateLimitExceededError):
            await service.generate("Urban gardening", OPTIONS)

        assert model.generate_content_async.await_count == 1
        assert service.circuit_breaker.failure_count == 0

    @pytest.mark.asyncio
    async def test_bad_credentials_are_not_retried(self):
        model = model_raising(google_exceptions.PermissionDenied("API key not valid"))
        service = make_service(model)

        with pytest.raises(LLMServiceError):
            await service.generate("Urban gardening", OPTIONS)
        assert model.generate_content_async.await_count == 1

    @pytest.mark.asyncio
    async def test_timeout(self):
        async def slow(*args, **kwargs):
            await asyncio.sleep(5)

        model = MagicMock()
        model.generate_content_async = AsyncMock(side_effect=slow)
        service = make_service(model, timeout=0.05)

        with pytest.raises(LLMServiceError) as exc_info:
            await service.generate("Urban gardening", OPTIONS)
        assert exc_info.value.message == "AI service timed out. Please try again later."

    @pytest.mark.asyncio
    async def test_circuit_opens_after_repeated_failures(self):
        model = model_raising(google_exceptions.InternalServerError("boom"))
        breaker = CircuitBreaker(failure_threshold=2, recovery_timeout=60)
        service = make_service(model, breaker=breaker)

        for _ in range(2):
            with pytest.raises(LLMServiceError):
                await service.generate("Urban gardening", OPTIONS)
        calls_before = model.generate_content_async.await_count

        with pytest.raises(CircuitBreakerOpenError):
            await service.generate("Urban gardening", OPTIONS)
        assert model.generate_content_async.await_count == calls_before
        assert service.status == "circuit_open"

    @pytest.mark.asyncio
    async def test_health_check_reflects_circuit(self):
        service = make_service(model_returning("x"))
        assert await service.health_check() is True
        for _ in range(service.circuit_breaker.failure_threshold):
            service.circuit_breaker.record_failure()
        assert await service.health_check() is False
