"""Raw textarea/file input → distinct tokens + duplicates."""

from __future__ import annotations

from collections import Counter

from balance_checker.models import ParsedInput


def parse_tokens(raw: str) -> ParsedInput:
    """Split on newlines, then commas; trim; drop empties; dedup in first-seen order."""
    counts: Counter[str] = Counter()
    tokens: list[str] = []
    duplicates: list[str] = []
    for line in raw.split("\n"):
        if not line.strip():
            continue
        for fragment in line.split(","):
            token = fragment.strip()
            if not token:
                continue
            counts[token] += 1
            if counts[token] == 1:
                tokens.append(token)
            elif counts[token] == 2:
                duplicates.append(token)
    return ParsedInput(tokens=tokens, duplicates=duplicates)
