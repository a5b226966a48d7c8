"""Heuristic classification of raw user text into a coarse intent."""

from __future__ import annotations

from enum import Enum

OBSERVATION_MIN_CHARS = 51


class InputType(str, Enum):
    """Coarse intent categories used to pick a system prompt."""

    QUESTION = "question"
    REQUEST = "request"
    OBSERVATION = "observation"
    UNKNOWN = "unknown"


def detect_input_type(text: str) -> InputType:
    """Classify text by shape only.

    Rules, first match wins: empty text is ``unknown``; a trailing ``?`` is a
    ``question``; more than 50 characters is an ``observation``; anything else
    is a ``request``. Length is ``len(text)``, i.e. Unicode code points, so a
    50-character string of multi-byte letters is still a request.
    """

    if not text:
        return InputType.UNKNOWN
    if text.endswith("?"):
        return InputType.QUESTION
    if len(text) >= OBSERVATION_MIN_CHARS:
        return InputType.OBSERVATION
    return InputType.REQUEST
