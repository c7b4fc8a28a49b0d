"""
QuickGen Backend: Abstract Text Generation Interface
====================================================

What:  The contract CreationService relies on for text generation.
How:   Concrete providers subclass LLMService and implement generate().
       GeminiService is the production implementation; tests pass mocks.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class GenerationRequest:
    """
    Opaque request descriptor for one completion.

    Attributes:
        prompt:            Single user message
        max_output_tokens: Output-length bound
        temperature:       Sampling temperature
        model:             Provider model identifier (None = provider default)
    """
    prompt: str
    max_output_tokens: int
    temperature: float = 0.7
    model: Optional[str] = None


class LLMService(ABC):
    """
    Abstract interface for text generation providers.

    Contract:
        - generate() returns the text of the first completion
        - rate-limit retries happen inside the implementation
        - every provider failure surfaces as VendorError
    """

    @abstractmethod
    async def generate(
        self,
        request: GenerationRequest,
        fallback_message: str = "Request failed. Please try again.",
    ) -> str:
        """
        Generate text for a single prompt.

        Returns:
            str: Text of the first completion (never None).

        Raises:
            VendorError: RATE_LIMITED once retries are exhausted, otherwise
                UPSTREAM or TRANSPORT on the first failure.
        """
        ...
