"""
Action picker ranking: order candidates by where the query first appears in their name.
"""

import re
import html
import unicodedata
from typing import Callable, List, Optional, Sequence, TypeVar

T = TypeVar("T")


def normalize_text(text: str) -> str:
    """Strip accents and case so 'Éxport' matches 'export'."""
    decomposed = unicodedata.normalize("NFD", text or "")
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.lower()


def fuzzy_score(text: str, query: str) -> Optional[int]:
    """Index of the first occurrence of `query` in `text` (both normalized), or None."""
    index = normalize_text(text).find(normalize_text(query))
    return index if index > -1 else None


def rank_candidates(query: str, candidates: Sequence[T],
                    key: Callable[[T], str] = str) -> List[T]:
    """
    Return the candidates whose text contains `query`, earliest match first.

    Ties keep their input order. An empty query matches everything.
    """
    scored = []
    for position, item in enumerate(candidates):
        score = fuzzy_score(key(item), query)
        if score is not None:
            scored.append((score, position, item))
    scored.sort(key=lambda s: (s[0], s[1]))
    return [item for _, _, item in scored]


def highlight(text: str, query: str) -> str:
    """HTML-escape `text` and wrap case-insensitive occurrences of `query` in <mark>."""
    if not query:
        return html.escape(text)
    pattern = re.compile(re.escape(query), re.IGNORECASE)
    parts = []
    last = 0
    for match in pattern.finditer(text):
        parts.append(html.escape(text[last:match.start()]))
        parts.append(f"<mark>{html.escape(match.group(0))}</mark>")
        last = match.end()
    parts.append(html.escape(text[last:]))
    return "".join(parts)
