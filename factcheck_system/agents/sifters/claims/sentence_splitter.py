"""Sentence splitting for English and Hindi (Devanagari) content.

Language detection is a character-ratio heuristic: text counts as Hindi when
more than 15% of its letters are Devanagari, or when it holds at least 20
Devanagari characters. Hindi text splits on the danda (U+0964) as well as on
``. ! ?``; English text splits on terminal punctuation followed by whitespace
and a capital letter.
"""

import re

from loguru import logger

from factcheck_system.data_management.schemas import Sentence


MAX_SENTENCE_LENGTH = 500

_DEVANAGARI = re.compile(r"[\u0900-\u097F]")
_LETTER = re.compile(r"[\u0900-\u097Fa-zA-Z]")
_HINDI_BOUNDARY = re.compile(r"(?<=[\u0964.!?])\s+")
_ENGLISH_BOUNDARY = re.compile(r"(?<=\S[.!?])\s+(?=[A-Z])")
_HINDI_PUNCTUATION = re.compile(r"[\u0964.!?\s]")
_NO_WORDS = re.compile(r"^[\s\d\W]+$")


def contains_devanagari(text: str) -> bool:
    """Return True if text holds any Devanagari character."""
    return _DEVANAGARI.search(text) is not None


def is_hindi_text(text: str) -> bool:
    """
    Detect whether text is primarily Hindi (Devanagari script).

    Args:
        text: Raw text

    Returns:
        True if the Devanagari share is high enough to use Hindi splitting
    """
    devanagari_count = len(_DEVANAGARI.findall(text))
    if devanagari_count == 0:
        return False

    letter_count = len(_LETTER.findall(text))
    if letter_count == 0:
        return devanagari_count >= 5

    return devanagari_count / letter_count > 0.15 or devanagari_count >= 20


def _split_hindi(text: str) -> list[str]:
    parts = (part.strip() for part in _HINDI_BOUNDARY.split(text))
    return [
        part for part in parts
        if 0 < len(part) < MAX_SENTENCE_LENGTH and _HINDI_PUNCTUATION.sub("", part)
    ]


def _split_english(text: str) -> list[str]:
    parts = (part.strip() for part in _ENGLISH_BOUNDARY.split(text))
    return [
        part for part in parts
        if 0 < len(part) < MAX_SENTENCE_LENGTH and not _NO_WORDS.match(part)
    ]


def split_into_sentences(text: str) -> list[str]:
    """
    Split text into sentences, auto-detecting Hindi.

    Empty fragments, fragments of MAX_SENTENCE_LENGTH characters or more, and
    fragments made only of digits and symbols are dropped.

    Args:
        text: Raw text

    Returns:
        Sentence strings in document order
    """
    if not text or not text.strip():
        return []

    if is_hindi_text(text):
        logger.debug("Detected Hindi text, using Hindi sentence splitting")
        return _split_hindi(text)
    return _split_english(text)


def to_sentences(texts: list[str], start_index: int = 0) -> list[Sentence]:
    """Wrap sentence strings as indexed Sentence records."""
    return [
        Sentence(text=text, index=start_index + offset)
        for offset, text in enumerate(texts)
    ]
