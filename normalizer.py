"""
normalizer.py — Content normalization for extracted document text.

Cleans raw text, counts words, estimates reading time, sniffs the real
document type when the caller only declared the generic default, and
bounds very long documents before they reach the analyzers.
"""

import math
import re
from dataclasses import dataclass
from enum import Enum

from errors import InsufficientContent


class DocumentType(str, Enum):
    TERMS    = "terms"
    PRIVACY  = "privacy"
    LEGAL    = "legal"
    NDA      = "nda"
    CONTRACT = "contract"
    EULA     = "eula"
    COOKIES  = "cookies"

    @classmethod
    def coerce(cls, value) -> "DocumentType":
        """Map a caller-supplied string (or None) onto a known type; unknowns become TERMS."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return cls.TERMS


@dataclass(frozen=True)
class NormalizedDocument:
    raw_text:             str
    cleaned_text:         str
    word_count:           int            # of the full cleaned document
    reading_time_minutes: int
    document_type:        DocumentType
    truncated:            bool = False   # long-content guard fired


WORDS_PER_MINUTE  = 200
LONG_CONTENT_WORDS = 3000
LONG_CONTENT_KEEP  = 0.7

# Declared type "terms" is overridden by the first marker found, in this order.
TYPE_MARKERS = (
    ("privacy",          DocumentType.PRIVACY),
    ("non-disclosure",   DocumentType.NDA),
    ("end user license", DocumentType.EULA),
    ("end-user license", DocumentType.EULA),
    ("cookie",           DocumentType.COOKIES),
)

_UNSAFE_CHARS = re.compile(r"[^\w\s.,;:!?'\"()\[\]\-/&%$@#*+=§‘’“”]")
_BLANK_LINES  = re.compile(r"\n\s*\n")
_WHITESPACE   = re.compile(r"\s+")
_SENTENCE_END = re.compile(r"[.!?]+")


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────

def count_words(text: str) -> int:
    return len(text.split())


def reading_time(word_count: int) -> int:
    return math.ceil(word_count / WORDS_PER_MINUTE)


def clean_text(text: str) -> str:
    text = _UNSAFE_CHARS.sub(" ", text or "")
    text = _BLANK_LINES.sub("\n", text)
    return _WHITESPACE.sub(" ", text).strip()


def sniff_document_type(text: str, declared=DocumentType.TERMS) -> DocumentType:
    declared = DocumentType.coerce(declared)
    if declared is not DocumentType.TERMS:
        return declared
    t = text.lower()
    for marker, doc_type in TYPE_MARKERS:
        if marker in t:
            return doc_type
    return declared


def truncate_long_content(text: str) -> str:
    """Keep the first 70% of sentences of an over-long document."""
    sentences = [s.strip() for s in _SENTENCE_END.split(text) if s.strip()]
    keep = max(1, int(len(sentences) * LONG_CONTENT_KEEP))
    return ". ".join(sentences[:keep])


# ─────────────────────────────────────────────────────────────────────────────
# Main entry point
# ─────────────────────────────────────────────────────────────────────────────

def normalize(raw_text: str, document_type=DocumentType.TERMS,
              min_words: int = 0, min_chars: int = 0) -> NormalizedDocument:
    """
    Clean and measure a document.

    min_words / min_chars are the caller's minimum-content rules (pasted
    text requires 100 words, uploaded files 100 characters). Content that
    is empty or below them raises InsufficientContent.
    """
    cleaned = clean_text(raw_text)
    words = count_words(cleaned)
    if not cleaned or words < min_words or len(cleaned) < min_chars:
        raise InsufficientContent()

    truncated = words > LONG_CONTENT_WORDS
    return NormalizedDocument(
        raw_text=raw_text,
        cleaned_text=truncate_long_content(cleaned) if truncated else cleaned,
        word_count=words,
        reading_time_minutes=reading_time(words),
        document_type=sniff_document_type(cleaned, document_type),
        truncated=truncated,
    )
