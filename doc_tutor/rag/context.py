"""
Context - Turns retrieved passages into the text block sent to the LLM.

Each passage becomes a labelled excerpt:

    [Excerpt (Similarity: 0.8731)]
    The tenant shall vacate the premises within ...

Excerpts keep the index order and are separated by a blank line.
"""

import re
from collections.abc import Sequence

from doc_tutor.rag.retriever import SearchMatch

_EXCERPT_HEADER = "[Excerpt (Similarity: {score:.4f})]"
_EXCERPT_RE = re.compile(r"^\[Excerpt \(Similarity: (\d+\.\d{4})\)\]\n", re.MULTILINE)


def assemble_context(matches: Sequence[SearchMatch]) -> str | None:
    """
    Build the context block, or None when there is nothing to ground on.

    None is what makes the generator answer with the
    "no relevant information" message.
    """
    if not matches:
        return None
    return "\n\n".join(
        f"{_EXCERPT_HEADER.format(score=match.score)}\n{match.text}" for match in matches
    )


def parse_context(block: str | None) -> list[tuple[float, str]]:
    """
    Split a context block back into (score, text) pairs, in order.

    Scores come back at the 4-decimal precision they were written with.
    """
    if not block:
        return []

    headers = list(_EXCERPT_RE.finditer(block))
    excerpts = []
    for i, header in enumerate(headers):
        end = headers[i + 1].start() if i + 1 < len(headers) else len(block)
        text = block[header.end():end]
        if i + 1 < len(headers):
            # Drop the blank-line separator before the next header
            text = text[:-2] if text.endswith("\n\n") else text
        excerpts.append((float(header.group(1)), text))
    return excerpts


def format_result(match: SearchMatch) -> dict:
    """The match as returned to clients, with the score shown above the text."""
    result = match.to_dict()
    result["text"] = f"[Similarity Score: {match.score:.4f}]\n{match.text}"
    return result
