"""
Inkwell Backend — Abstract Content Generator Interface
========================================================

What:  Abstract base class for AI blog-content generation.
Why:   Routes depend on this contract, not on a provider SDK. Tests swap in a
       fake via app.dependency_overrides; another provider can replace Gemini
       without touching the posts router.
How:   Concrete implementations inherit from ContentGenerator and implement
       generate() and health_check().
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class GenerationOptions:
    tone: str = "professional"
    length: str = "medium"


@dataclass(frozen=True)
class GeneratedContent:
    title: str
    content: str


class ContentGenerator(ABC):
    """
    Abstract interface for topic → draft post generation.

    Contract:
        - generate() returns a non-empty title and content
        - Implementations handle their own retry logic and timeouts
        - Upstream quota exhaustion surfaces as RateLimitExceededError
        - Every other upstream failure surfaces as UpstreamUnavailableError
          (LLMServiceError or CircuitBreakerOpenError)
    """

    @abstractmethod
    async def generate(self, topic: str, options: GenerationOptions) -> GeneratedContent:
        """
        Draft a blog post about `topic`.

        Args:
            topic:   Trimmed topic, 5-200 characters
            options: Tone and length, already validated

        Raises:
            RateLimitExceededError: upstream quota exhausted
            LLMServiceError: failure, timeout, or bad credentials
            CircuitBreakerOpenError: too many recent failures
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """
        True if the provider is reachable. Does not consume generation quota.
        Called by the health check endpoint.
        """
        ...
