"""Heuristic token counting for mixed CJK and Latin text."""

import math
import re
from typing import Iterable

_CJK_PATTERN = re.compile(r"[一-龥]")
_WORD_PATTERN = re.compile(r"[a-zA-Z]+")

CJK_WEIGHT = 2.0
WORD_WEIGHT = 1.3
OTHER_WEIGHT = 0.5


def estimate_tokens(text: str) -> int:
    """Estimate the token count of ``text``.

    CJK ideographs count 2 each and every run of ASCII letters counts 1.3
    regardless of its length. Characters that are neither CJK nor part of a
    letter run count 0.5 each.

    >>> estimate_tokens("")
    0
    >>> estimate_tokens("你好hello")
    6
    """
    if not text:
        return 0

    cjk = len(_CJK_PATTERN.findall(text))
    word_runs = _WORD_PATTERN.findall(text)
    letters = sum(len(run) for run in word_runs)
    other = len(text) - cjk - letters

    return math.ceil(cjk * CJK_WEIGHT + len(word_runs) * WORD_WEIGHT + other * OTHER_WEIGHT)


def estimate_message_tokens(messages: Iterable) -> int:
    """Sum token counts of messages, estimating any that lack a cached count."""
    total = 0
    for message in messages:
        tokens = getattr(message, "tokens", None)
        if tokens is None:
            tokens = estimate_tokens(getattr(message, "content", "") or "")
        total += tokens
    return total
