"""Free-text image search over title, description and tags.

PostgreSQL ranks with ``ts_rank`` over ``to_tsvector(search_text)``. Other
backends (SQLite in development and tests) fall back to a lexical scorer.
Both match any query term and order by relevance, then newest first.
"""

import re
from typing import List, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from pinboard.metadata import Image

TEXT_SEARCH_CONFIG = "english"
_TOKEN_PATTERN = re.compile(r"[^\W_]+")


def tokenize_query(text_query: str) -> Tuple[str, List[str]]:
    """Return the normalized query and its distinct lowercase word tokens."""
    normalized = " ".join(str(text_query or "").strip().lower().split())
    if not normalized:
        return "", []
    tokens: List[str] = []
    seen = set()
    for token in _TOKEN_PATTERN.findall(normalized):
        if token in seen:
            continue
        seen.add(token)
        tokens.append(token)
    return normalized, tokens


def lexical_score(text_value: str, normalized_query: str, query_tokens: List[str]) -> float:
    """Count words starting with a query token, plus a bonus for the whole phrase."""
    words = _TOKEN_PATTERN.findall(str(text_value or "").lower())
    if not words:
        return 0.0
    score = 0.0
    for token in query_tokens:
        score += sum(1 for word in words if word.startswith(token))
    if score and len(query_tokens) > 1 and normalized_query in text_value:
        score += 0.5
    return score


class ImageSearch:
    """Run one ranked, paginated search."""

    def __init__(self, db: Session):
        self.db = db

    def _uses_postgres(self) -> bool:
        return self.db.get_bind().dialect.name == "postgresql"

    def run(self, text_query: str, *, offset: int, limit: int) -> Tuple[List[Image], int]:
        normalized, tokens = tokenize_query(text_query)
        if not tokens:
            return [], 0
        if self._uses_postgres():
            return self._run_postgres(tokens, offset=offset, limit=limit)
        return self._run_lexical(normalized, tokens, offset=offset, limit=limit)

    def _run_postgres(self, tokens: List[str], *, offset: int, limit: int) -> Tuple[List[Image], int]:
        document = func.to_tsvector(TEXT_SEARCH_CONFIG, Image.search_text)
        ts_query = func.to_tsquery(TEXT_SEARCH_CONFIG, " | ".join(tokens))
        base = self.db.query(Image).filter(document.op("@@")(ts_query))
        total = base.count()
        images = base.order_by(
            func.ts_rank(document, ts_query).desc(),
            Image.created_at.desc(),
        ).offset(offset).limit(limit).all()
        return images, total

    def _run_lexical(
        self,
        normalized: str,
        tokens: List[str],
        *,
        offset: int,
        limit: int,
    ) -> Tuple[List[Image], int]:
        candidates = self.db.query(Image).filter(
            or_(*[Image.search_text.contains(token, autoescape=True) for token in tokens])
        ).all()

        scored = []
        for image in candidates:
            score = lexical_score(image.search_text, normalized, tokens)
            if score > 0:
                scored.append((score, image.created_at, image))
        scored.sort(key=lambda item: (item[0], item[1]), reverse=True)

        page = [image for _, _, image in scored[offset: offset + limit]]
        return page, len(scored)
