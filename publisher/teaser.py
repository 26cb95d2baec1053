"""Teaser (excerpt) generation from rendered post HTML.

Truncation keeps the markup that wraps the surviving text, so a teaser of
``<p>One <em>two</em> three</p>`` cut after two words is still valid HTML.
"""

from __future__ import annotations

import logging
import re
from collections import OrderedDict
from dataclasses import dataclass

from bs4 import BeautifulSoup, Comment, Doctype, NavigableString

from posts.models import TeaserTruncationMode

logger = logging.getLogger(__name__)

ELLIPSIS = "…"

_WORD = re.compile(r"\S+")
_SENTENCE_END = re.compile(r"[.!?]+(?=\s|$)")

# Strings that never render as visible text
_HIDDEN_PARENTS = ("script", "style", "template")

# Result cache size; keys are caller supplied
_CACHE_SIZE = 256


@dataclass(frozen=True)
class TeaserResult:
    content: str
    did_truncate: bool


def _cut_offset(text: str, remaining: int, mode: TeaserTruncationMode) -> tuple[int, int]:
    """Return ``(offset, units_used)`` for cutting *text* within *remaining* units.

    ``offset`` is ``-1`` when the whole text fits.
    """
    if mode == TeaserTruncationMode.LENGTH:
        if len(text) <= remaining:
            return -1, len(text)
        return remaining, remaining

    pattern = _WORD if mode == TeaserTruncationMode.WORD else _SENTENCE_END
    ends = [m.end() for m in pattern.finditer(text)]
    if len(ends) < remaining:
        return -1, len(ends)
    offset = ends[remaining - 1]
    if offset >= len(text.rstrip()):
        return -1, remaining
    return offset, remaining


class TeaserGenerator:
    """Derive short excerpts from post HTML under a truncation policy."""

    def __init__(self, cache_size: int = _CACHE_SIZE) -> None:
        self._cache: OrderedDict[str, TeaserResult] = OrderedDict()
        self._cache_size = cache_size

    def generate_teaser(
        self,
        truncation_mode: TeaserTruncationMode,
        truncation_length: int,
        html: str,
        cache_key: str,
        slug: str,
        language_code: str,
        log_warnings: bool = True,
    ) -> TeaserResult:
        """Truncate *html* to *truncation_length* characters, words or sentences.

        Parameters
        ----------
        truncation_mode:
            Unit to count in.
        truncation_length:
            Number of units to keep.  Non-positive values disable truncation.
        html:
            Rendered post body.
        cache_key:
            Results are memoized per key; pass a fresh key to force regeneration.
        slug, language_code:
            Identify the post in warnings.
        log_warnings:
            Emit warnings for empty input.
        """
        cached = self._cache.get(cache_key)
        if cached is not None:
            self._cache.move_to_end(cache_key)
            return cached

        if not html or not html.strip():
            if log_warnings:
                logger.warning(
                    "Empty content for teaser of %s (lang=%s)", slug, language_code
                )
            result = TeaserResult(content="", did_truncate=False)
        elif truncation_length <= 0:
            result = TeaserResult(content=html, did_truncate=False)
        else:
            result = self._truncate(
                html, truncation_length, TeaserTruncationMode(truncation_mode)
            )

        self._cache[cache_key] = result
        if len(self._cache) > self._cache_size:
            self._cache.popitem(last=False)
        return result

    def _truncate(
        self, html: str, length: int, mode: TeaserTruncationMode
    ) -> TeaserResult:
        soup = BeautifulSoup(html, "html.parser")
        remaining = length
        last: NavigableString | None = None
        cut_node: NavigableString | None = None

        for node in soup.find_all(string=True):
            if isinstance(node, (Comment, Doctype)) or node.parent.name in _HIDDEN_PARENTS:
                continue
            text = str(node)
            if not text.strip():
                continue
            if remaining <= 0:
                # Budget ran out exactly at the end of the previous text node
                cut_node = NavigableString(str(last).rstrip() + ELLIPSIS)
                last.replace_with(cut_node)
                break
            offset, used = _cut_offset(text, remaining, mode)
            remaining -= used
            if offset >= 0:
                cut_node = NavigableString(text[:offset].rstrip() + ELLIPSIS)
                node.replace_with(cut_node)
                break
            last = node

        if cut_node is None:
            return TeaserResult(content=html, did_truncate=False)

        for string in list(cut_node.find_all_next(string=True)):
            string.extract()
        for tag in list(cut_node.find_all_next()):
            if not getattr(tag, "decomposed", False):
                tag.decompose()

        return TeaserResult(content=str(soup).strip(), did_truncate=True)
