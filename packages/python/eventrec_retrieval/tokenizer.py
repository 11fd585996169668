from __future__ import annotations

import re
from typing import List

_TOKEN_SPLIT = re.compile(r"[^a-z0-9]+")
MIN_TOKEN_LEN = 3


def tokenize(text: str | None) -> List[str]:
    """
    Keyword tokenizer shared by the signal learner (query-time) and the feature
    extractor (candidate-time) so both sides produce the same vocabulary.

    Lowercases, splits on non-alphanumeric runs and drops tokens of length <= 2.
    Order is preserved and duplicates are kept; callers that need a set dedupe.
    """
    if not text or not isinstance(text, str):
        return []
    return [t for t in _TOKEN_SPLIT.split(text.lower()) if len(t) >= MIN_TOKEN_LEN]
