"""
Feed Text Search

Ranks public videos against a free-text query over the video title and the
uploader's channel name.

PostgreSQL:
-----------
Uses full-text search: both fields are turned into a weighted tsvector on
the fly (title = weight A, channel name = weight B) and ranked with
``ts_rank`` against ``plainto_tsquery``:

    setweight(to_tsvector('english', title), 'A')
      || setweight(to_tsvector('english', owner_channel_name), 'B')
    @@ plainto_tsquery('english', :q)

Stemming means "cooking" finds "cook", stop words are ignored.

Other dialects (SQLite in tests):
---------------------------------
Falls back to a weighted substring score: each query term found in the
title adds 2, found in the channel name adds 1. Rows scoring 0 are excluded.
"""

import re

from sqlalchemy import ColumnElement, Float, case, cast, func, literal, literal_column

from vidtube.models.video import Video

# Caps the number of terms the fallback scorer expands into CASE expressions
MAX_QUERY_TERMS = 8

SUPPORTED_LANGUAGES = {"english", "simple", "spanish", "french", "german"}

TITLE_WEIGHT = 2
CHANNEL_WEIGHT = 1

LIKE_ESCAPE = "\\"


def escape_like(term: str) -> str:
    """Make LIKE wildcards in a term match literally."""
    return (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


class FeedSearch:
    """
    Build the relevance score and match predicate for a feed query.

    Usage:
    ------
        search = FeedSearch(db.bind.dialect.name)
        score = search.score(q)
        stmt = stmt.where(search.matches(q)).order_by(score.desc())
    """

    def __init__(self, dialect_name: str, language: str = "english"):
        if language not in SUPPORTED_LANGUAGES:
            raise ValueError(f"Unsupported text search language: {language}")
        self.dialect_name = dialect_name
        self.language = language

    @property
    def uses_fulltext(self) -> bool:
        return self.dialect_name == "postgresql"

    @staticmethod
    def terms(query_text: str) -> list[str]:
        """Lower-cased word terms, de-duplicated, order kept."""
        seen: list[str] = []
        for term in re.findall(r"\w+", query_text.lower()):
            if term not in seen:
                seen.append(term)
        return seen[:MAX_QUERY_TERMS]

    # ---- PostgreSQL full-text ----

    def _regconfig(self):
        return literal_column(f"'{self.language}'::regconfig")

    def _document(self) -> ColumnElement:
        title = func.setweight(func.to_tsvector(self._regconfig(), Video.title), "A")
        channel = func.setweight(
            func.to_tsvector(self._regconfig(), Video.owner_channel_name), "B"
        )
        return title.op("||")(channel)

    def _tsquery(self, query_text: str) -> ColumnElement:
        return func.plainto_tsquery(self._regconfig(), query_text)

    # ---- Fallback substring scoring ----

    def _substring_score(self, query_text: str) -> ColumnElement:
        score: ColumnElement = literal(0)
        title = func.lower(Video.title)
        channel = func.lower(Video.owner_channel_name)
        for term in self.terms(query_text):
            pattern = f"%{escape_like(term)}%"
            score = score + case((title.like(pattern, escape=LIKE_ESCAPE), TITLE_WEIGHT), else_=0)
            score = score + case((channel.like(pattern, escape=LIKE_ESCAPE), CHANNEL_WEIGHT), else_=0)
        return score

    # ---- Public API ----

    def score(self, query_text: str) -> ColumnElement:
        """Relevance expression; higher is better."""
        if self.uses_fulltext:
            return func.ts_rank(self._document(), self._tsquery(query_text))
        return cast(self._substring_score(query_text), Float)

    def matches(self, query_text: str) -> ColumnElement[bool]:
        if self.uses_fulltext:
            return self._document().op("@@")(self._tsquery(query_text))
        return self._substring_score(query_text) > 0
