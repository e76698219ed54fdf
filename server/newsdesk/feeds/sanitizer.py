"""
Text Sanitizer

Strips HTML and entity artifacts from scraped feed text.

clean() is idempotent: it runs a single cleaning pass until the text stops
changing, so clean(clean(x)) == clean(x). It is applied when an item is
ingested and again when articles are serialized for the UI.
"""
from __future__ import annotations

import html
import logging
import re
import warnings

from bs4 import BeautifulSoup, MarkupResemblesLocatorWarning

logger = logging.getLogger(__name__)

# Upper bound on cleaning passes; real feed text settles in two or three.
MAX_PASSES = 8

_TAG = re.compile(r"</?[A-Za-z!][^<>]*>")
_DANGLING_TAG = re.compile(r"<[a-zA-Z/!][^<>]*$")
_ATTRIBUTE_VALUE = r"""\s*=\s*(?:"[^"]*"?|'[^']*'?|[^\s>]+)"""
_ANCHOR_REMNANT = re.compile(r"\ba\s+href" + _ATTRIBUTE_VALUE, re.IGNORECASE)
_ATTRIBUTE = re.compile(
    r"\b(?:href|src|target|rel|class|style|alt|title|width|height|border|align)"
    + _ATTRIBUTE_VALUE,
    re.IGNORECASE,
)
# Entity names html.unescape leaves alone when the semicolon is missing.
_BARE_ENTITY = re.compile(
    r"&(?:nbsp|amp|quot|apos|lt|gt|rsquo|lsquo|rdquo|ldquo|ndash|mdash|hellip"
    r"|#\d+|#x[0-9a-fA-F]+);?",
    re.IGNORECASE,
)
_QUOTE_RUN = re.compile(r"([\"'])\1+")
_EMPTY_QUOTES = re.compile(r"(?<!\w)\"\s*\"(?!\w)")
# A ">" with whitespace on both sides is a comparison, not markup.
_STRAY_BRACKET = re.compile(r"(?<!\w)/>|(?<![\w\s])>|(?<=\s)>(?!\s)|<(?![\w\s])")
_WHITESPACE = re.compile(r"\s+")


def _unescape(text: str) -> str:
    """Decode entities until none are left (handles &amp;quot; and friends)."""
    for _ in range(MAX_PASSES):
        decoded = html.unescape(text)
        if decoded == text:
            break
        text = decoded
    return text


def _strip_tags(text: str) -> str:
    if "<" not in text:
        return text
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", MarkupResemblesLocatorWarning)
        soup = BeautifulSoup(text, "html.parser")
    return soup.get_text(separator=" ")


def _clean_once(text: str) -> str:
    text = _unescape(text)
    text = text.replace("\xa0", " ")
    text = _strip_tags(text)
    text = _TAG.sub(" ", text)
    text = _DANGLING_TAG.sub(" ", text)
    text = _ANCHOR_REMNANT.sub(" ", text)
    text = _ATTRIBUTE.sub(" ", text)
    text = _BARE_ENTITY.sub(" ", text)
    text = _STRAY_BRACKET.sub(" ", text)
    text = _EMPTY_QUOTES.sub(" ", text)
    text = _QUOTE_RUN.sub(r"\1", text)
    return _WHITESPACE.sub(" ", text).strip()


def clean(text: str | None) -> str:
    """
    Return plain text with markup, entities and whitespace runs removed.

    Examples:
        >>> clean("Sensex &amp; Nifty <b>rally</b>")
        'Sensex & Nifty rally'
        >>> clean('Read more a href="https://x.in" target="_blank">here')
        'Read more here'
        >>> clean(None)
        ''
    """
    if not text:
        return ""

    current = text
    for _ in range(MAX_PASSES):
        cleaned = _clean_once(current)
        if cleaned == current:
            return cleaned
        current = cleaned

    logger.debug("Sanitizer did not settle", extra={"preview": text[:80]})
    return current
