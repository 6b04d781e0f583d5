"""
Query Rules - Per-query overrides evaluated before the normal pipeline.

Some questions need special handling for a given document: a wider search,
a lower score threshold, or a fixed answer. Instead of comparing strings
inside the retriever and generator, those cases are listed as data:

    [
        {"phrase": "who is asked to do what", "top_k": 10, "min_score": 0.5,
         "answer": "Sri P. K. Hatibaruah ... is directed to vacate ..."}
    ]

The table is read from data/query_rules.json when it exists, otherwise the
defaults in config.py are used. A rule matches when the normalized query
equals its phrase exactly.
"""

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path

from doc_tutor.config import DEFAULT_QUERY_RULES, QUERY_RULES_FILE

logger = logging.getLogger(__name__)


def normalize_query(text: str) -> str:
    """Lower-case, collapse runs of whitespace and trim."""
    return re.sub(r"\s+", " ", text.lower()).strip()


@dataclass(frozen=True)
class QueryRule:
    """
    One override entry.

    Attributes:
        phrase: Normalized query text this rule applies to
        top_k: Replacement top-k for the search, if any
        min_score: Replacement score threshold, if any
        answer: Canned answer returned instead of calling the model, if any
    """

    phrase: str
    top_k: int | None = None
    min_score: float | None = None
    answer: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "QueryRule":
        phrase = data.get("phrase")
        if not isinstance(phrase, str) or not normalize_query(phrase):
            raise ValueError(f"Rule needs a non-empty phrase: {data!r}")

        top_k = data.get("top_k")
        min_score = data.get("min_score")
        answer = data.get("answer")
        return cls(
            phrase=normalize_query(phrase),
            top_k=int(top_k) if top_k is not None else None,
            min_score=float(min_score) if min_score is not None else None,
            answer=str(answer) if answer else None,
        )


class QueryRuleBook:
    """
    Lookup table of query rules keyed by normalized phrase.

    Example:
        rules = QueryRuleBook.load()
        rule = rules.match("Who is  asked to do WHAT")
        if rule and rule.answer:
            print(rule.answer)
    """

    def __init__(self, rules: list[QueryRule] | None = None):
        self._rules = {rule.phrase: rule for rule in rules or []}

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self):
        return iter(self._rules.values())

    def match(self, query: str) -> QueryRule | None:
        return self._rules.get(normalize_query(query))

    def search_params(self, query: str, top_k: int, min_score: float) -> tuple[int, float]:
        """Effective (top_k, min_score) for a query after applying its rule."""
        rule = self.match(query)
        if rule is None:
            return top_k, min_score
        return (
            rule.top_k if rule.top_k is not None else top_k,
            rule.min_score if rule.min_score is not None else min_score,
        )

    @classmethod
    def from_dicts(cls, entries: list[dict]) -> "QueryRuleBook":
        return cls([QueryRule.from_dict(entry) for entry in entries])

    @classmethod
    def load(cls, path: str | Path | None = None) -> "QueryRuleBook":
        """
        Load rules from a JSON file, falling back to the built-in defaults.

        A missing file is normal. A malformed one is logged and ignored.
        """
        path = Path(path or QUERY_RULES_FILE)
        if path.exists():
            try:
                entries = json.loads(path.read_text(encoding="utf-8"))
                if not isinstance(entries, list):
                    raise ValueError("rule file must contain a JSON list")
                book = cls.from_dicts(entries)
                logger.info("Loaded %d query rules from %s", len(book), path)
                return book
            except (OSError, ValueError, TypeError, AttributeError) as e:
                logger.error("Ignoring invalid query rule file %s: %s", path, e)

        return cls.from_dicts(DEFAULT_QUERY_RULES)
