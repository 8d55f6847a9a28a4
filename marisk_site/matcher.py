"""
marisk_site/matcher.py
-----------------------------------------------------------------------------
Chat answer lookup and FAQ suggestions.

Matching is deliberately simple and deterministic:

1. Case-insensitive exact match against stored questions.
2. Otherwise, case-insensitive containment in either direction (the stored
   question appears inside the input, or the input inside the stored
   question).

In both passes the first FAQ in insertion order wins.  When nothing matches,
the ``chat_no_answer`` string of the requested locale is used, then
:data:`DEFAULT_NO_ANSWER`.
"""

from __future__ import annotations

import random
from collections.abc import Sequence

from marisk_site.schema import FaqEntry
from marisk_site.store import DataStore

DEFAULT_NO_ANSWER = "Sorry, I don't know the answer."
NO_ANSWER_KEY = "chat_no_answer"
SUGGESTION_COUNT = 5


def match_answer(faqs: Sequence[FaqEntry], question: str) -> str | None:
    """
    Find the stored answer for ``question``.

    Returns
    -------
    str | None : The answer of the best match, or ``None``.  An empty
                 question never matches.
    """
    lower = question.lower()
    if not lower:
        return None

    for faq in faqs:
        if faq.question.lower() == lower:
            return faq.answer

    for faq in faqs:
        stored = faq.question.lower()
        # A blank stored question would be "contained" in every input.
        if stored and (stored in lower or lower in stored):
            return faq.answer

    return None


def resolve_answer(store: DataStore, question: str, lang: str) -> str:
    """Answer ``question``, falling back to the localised no-answer text."""
    answer = match_answer(store.list_faqs(), question)
    if answer:
        return answer
    text = store.get_locale(lang).get(NO_ANSWER_KEY)
    if isinstance(text, str) and text:
        return text
    return DEFAULT_NO_ANSWER


def sample_questions(
    faqs: Sequence[FaqEntry],
    count: int = SUGGESTION_COUNT,
    rng: random.Random | None = None,
) -> list[str]:
    """
    Pick up to ``count`` distinct FAQs uniformly at random.

    Questions are returned in draw order.  Duplicate question texts stored
    as separate FAQs can both appear, since sampling is by position.
    """
    rng = rng or random
    picks = rng.sample(range(len(faqs)), min(count, len(faqs)))
    return [faqs[i].question for i in picks]
