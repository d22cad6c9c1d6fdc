"""
Token estimation.

Approximates token counts from text where no provider usage data exists.
"""

import math
from dataclasses import dataclass

# One token is roughly three quarters of a word.
WORDS_PER_TOKEN = 0.75


@dataclass(frozen=True)
class TokenUsage:
    """Estimated token count for a piece of generated text."""
    word_count: int

    @property
    def total_tokens(self) -> int:
        """Estimated tokens, rounded up."""
        if self.word_count == 0:
            return 0
        return math.ceil(self.word_count / WORDS_PER_TOKEN)


def estimate_tokens(text: str) -> TokenUsage:
    """Estimate token usage of text by whitespace word count.

    Args:
        text: Prompt or completion text

    Returns:
        TokenUsage for the text
    """
    return TokenUsage(word_count=len((text or "").split()))
