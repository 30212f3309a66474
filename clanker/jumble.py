from __future__ import annotations

import random
from typing import Optional, Sequence

PLACEHOLDER = "..."
DEFAULT_WORD_COUNT = 24


def scramble_word(word: str, rng: random.Random) -> str:
    """Shuffle the interior letters of a word; the first and last stay put."""
    if len(word) <= 3:
        return word
    middle = list(word[1:-1])
    rng.shuffle(middle)
    return word[0] + "".join(middle) + word[-1]


def generate(pool: Sequence[str], word_count: int = DEFAULT_WORD_COUNT, rng: Optional[random.Random] = None) -> str:
    """
    Build a jumbled phrase from a word pool.

    Samples ``word_count`` words with replacement, scrambles about half of the
    longer ones, shuffles the order and joins them with single spaces. An
    empty pool yields PLACEHOLDER.
    """
    if not pool:
        return PLACEHOLDER
    rng = rng or random.Random()

    sampled = [pool[rng.randrange(len(pool))] for _ in range(word_count)]
    words = [w if len(w) <= 3 or rng.random() < 0.5 else scramble_word(w, rng) for w in sampled]
    rng.shuffle(words)
    return " ".join(words)
