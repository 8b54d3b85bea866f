"""
PicHealth API — Abstract LLM Service Interface
===============================================

What:  Contract every multimodal model client implements.
Why:   OCR and insight services only need "prompt (+ image) in, text out".
       Keeping that behind an ABC lets tests inject a fake and lets the
       provider change without touching the pipeline.
How:   Concrete clients subclass LLMService and implement generate() and
       health_check().

Contract:
    - Output is untrusted free text. Callers always run it through the
      response extractor; nothing here promises JSON.
    - Implementations own their retry policy and wrap provider errors in
      LLMServiceError. Callers add no retries of their own.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ImageInput:
    """Decoded image bytes plus their MIME type."""

    data: bytes
    mime_type: str


class LLMService(ABC):
    """
    Abstract interface for the generative model behind OCR and insights.

    Implementations:
        - GeminiService: Google Gemini (default)
    """

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        image: Optional[ImageInput] = None,
        temperature: Optional[float] = None,
    ) -> str:
        """
        Send a prompt, optionally with one image, and return the model's text.

        Args:
            prompt:      Instruction text.
            image:       Image to analyze, or None for text-only prompts.
            temperature: Sampling temperature; None uses the provider default.

        Returns:
            The response text (may be empty).

        Raises:
            LLMServiceError: The call failed after the client's own retries.
            CircuitBreakerOpenError: Too many recent failures; call rejected.
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """True if the provider is reachable. Must not consume generation quota."""
        ...
