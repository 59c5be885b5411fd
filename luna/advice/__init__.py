"""Daily wellness advice for Luna.

Modules:
    provider — AdviceProvider ABC and the Gemini REST implementation
    gateway  — One remote fetch per calendar day, menu-only refresh
"""

from luna.advice.gateway import AdviceGateway, AdviceState
from luna.advice.provider import AdviceProvider, GeminiAdviceProvider

__all__ = ["AdviceGateway", "AdviceProvider", "AdviceState", "GeminiAdviceProvider"]
