"""Rewrite ``url(...)`` references inside CSS text.

The scanner only locates occurrences; the rewriter rebuilds the output from
the untouched text between them plus one replacement per occurrence, so
everything outside a match is carried over exactly as it was.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from .signer import LinkSigner, RewriteTarget
from .urls import is_data_uri, is_fetchable, is_fragment, resolve

logger = logging.getLogger(__name__)

# url(x), url('x'), url("x"); a quoted value ends at its matching quote
_URL_TOKEN = re.compile(
    r"""(?<![\w-])url\(\s*(?:(?P<quote>["'])(?P<quoted>.*?)(?P=quote)|(?P<bare>[^"'()\s]*))\s*\)""",
    re.IGNORECASE | re.DOTALL,
)


@dataclass(frozen=True)
class CSSUrl:
    start: int
    end: int
    value: str
    quote: str = ""


def scan_urls(css: str) -> List[CSSUrl]:
    """Return every ``url(...)`` occurrence in ``css``, left to right."""
    tokens = []
    for match in _URL_TOKEN.finditer(css):
        if match.group("quote"):
            value, quote = match.group("quoted"), match.group("quote")
        else:
            value, quote = match.group("bare"), ""
        tokens.append(CSSUrl(match.start(), match.end(), value, quote))
    return tokens


def _css_string(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


class CSSRewriter:
    def __init__(self, signer: LinkSigner):
        self.signer = signer

    def rewrite(self, base: str, css: str, report=None) -> str:
        """Point every fetchable ``url()`` in ``css`` at the signed image endpoint.

        Args:
            base: Absolute URL the stylesheet's relative references resolve against.
            css: Raw CSS text.
            report: Optional ``RewriteReport`` collecting rewritten/skipped counts.
        """
        tokens = scan_urls(css)
        if not tokens:
            return css

        out = []
        pos = 0
        for token in tokens:
            out.append(css[pos:token.start])
            replacement = self._replace(base, token, report)
            out.append(replacement if replacement is not None else css[token.start:token.end])
            pos = token.end
        out.append(css[pos:])
        return "".join(out)

    def _replace(self, base: str, token: CSSUrl, report) -> Optional[str]:
        value = token.value.strip()
        if not value or is_data_uri(value) or is_fragment(value):
            return None
        try:
            absolute = resolve(base, value)
        except ValueError as e:
            logger.warning("skipping css url %r on %s: %s", value, base, e)
            if report is not None:
                report.skip(value, "css", str(e))
            return None
        if not is_fetchable(absolute):
            return None
        if report is not None:
            report.rewritten += 1
        return f"url({_css_string(self.signer.link_for(absolute, RewriteTarget.STYLESHEET_RESOURCE))})"
