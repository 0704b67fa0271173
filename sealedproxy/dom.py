"""Sanitize a parsed page and route its references through our endpoints.

Each pass collects the elements it targets before touching any of them, so
removals and replacements never happen under a live iterator.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

from bs4 import BeautifulSoup
from bs4.builder import ParserRejectedMarkup

from .css import CSSRewriter
from .errors import DocumentParseError, FetchError
from .fetcher import RemoteFetcher
from .signer import LinkSigner, RewriteTarget
from .urls import is_data_uri, is_fetchable, is_fragment, resolve

logger = logging.getLogger(__name__)

PARSER = "html.parser"

REMOVED_TAGS = ("script", "iframe", "frame", "frameset", "object", "embed", "applet")
URL_ATTRS = ("href", "src", "action", "formaction", "xlink:href")

# element -> attributes fetched by the browser as media
MEDIA_ATTRS = {
    "img": ("src", "srcset"),
    "source": ("src", "srcset"),
    "video": ("src", "poster"),
    "audio": ("src",),
    "track": ("src",),
}

_STYLE_CLOSE = re.compile(r"</(style)", re.IGNORECASE)


@dataclass
class SkippedReference:
    reference: str
    kind: str
    reason: str


@dataclass
class RewriteReport:
    rewritten: int = 0
    removed: int = 0
    skipped: List[SkippedReference] = field(default_factory=list)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    def skip(self, reference: str, kind: str, reason: str) -> None:
        self.skipped.append(SkippedReference(reference, kind, reason))


def _rel_values(tag) -> List[str]:
    rel = tag.get("rel") or []
    if isinstance(rel, str):
        rel = rel.split()
    return [r.lower() for r in rel]


class DocumentRewriter:
    def __init__(
        self,
        signer: LinkSigner,
        fetcher: RemoteFetcher,
        css_rewriter: Optional[CSSRewriter] = None,
    ):
        self.signer = signer
        self.fetcher = fetcher
        self.css = css_rewriter or CSSRewriter(signer)

    def parse(self, document: Union[str, bytes], encoding: Optional[str] = None) -> BeautifulSoup:
        try:
            return BeautifulSoup(document, PARSER, from_encoding=encoding if isinstance(document, bytes) else None)
        except ParserRejectedMarkup as e:
            raise DocumentParseError(f"could not parse document: {e}") from e

    def process(
        self,
        base: str,
        document: Union[str, bytes, BeautifulSoup],
        encoding: Optional[str] = None,
    ) -> Tuple[str, RewriteReport]:
        """Sanitize ``document`` and rewrite its references against ``base``.

        Args:
            base: Absolute URL of the page; relative references resolve against it.
            document: Markup (text or bytes) or an already-parsed tree.
            encoding: Declared charset when ``document`` is bytes.

        Returns:
            The serialized markup and a report of what was rewritten or skipped.
        """
        soup = document if isinstance(document, BeautifulSoup) else self.parse(document, encoding)
        report = RewriteReport()

        base = self._take_base(soup, base)
        self._remove_scripts(soup, report)
        self._remove_refresh(soup, report)
        self._strip_handlers(soup)
        self._disable_forms(soup)
        self._rewrite_anchors(soup, base, report)
        self._rewrite_media(soup, base, report)
        self._rewrite_style_attrs(soup, base, report)
        # inline styles before links, so stylesheets inlined below are not rewritten twice
        self._rewrite_styles(soup, base, report)
        self._rewrite_links(soup, base, report)

        logger.info(
            "rewrote %s: %d references, %d removed, %d skipped",
            base,
            report.rewritten,
            report.removed,
            report.skipped_count,
        )
        return str(soup), report

    def _take_base(self, soup: BeautifulSoup, base: str) -> str:
        """Return the document's effective base URL and drop every ``<base>``.

        Left in place, a ``<base>`` would make the browser resolve our own
        ``/proxy`` and ``/image/`` paths against the remote host.
        """
        bases = soup.find_all("base")
        declared = next((b["href"] for b in bases if b.get("href")), None)
        for tag in bases:
            tag.decompose()
        if declared is None:
            return base
        try:
            resolved = resolve(base, declared)
        except ValueError as e:
            logger.warning("ignoring <base href=%r> on %s: %s", declared, base, e)
            return base
        return resolved if is_fetchable(resolved) else base

    def _remove_scripts(self, soup: BeautifulSoup, report: RewriteReport) -> None:
        for tag in soup.find_all(list(REMOVED_TAGS)):
            # an <embed> inside an <object> already went with its parent
            if tag.decomposed:
                continue
            tag.decompose()
            report.removed += 1

    def _remove_refresh(self, soup: BeautifulSoup, report: RewriteReport) -> None:
        for meta in soup.find_all("meta", attrs={"http-equiv": True}):
            if meta["http-equiv"].strip().lower() == "refresh":
                meta.decompose()
                report.removed += 1

    def _strip_handlers(self, soup: BeautifulSoup) -> None:
        # onclick=..., href="javascript:..."
        for tag in soup.find_all(True):
            for attr in list(tag.attrs):
                name = attr.lower()
                if name.startswith("on"):
                    del tag[attr]
                elif name in URL_ATTRS:
                    value = tag[attr]
                    if isinstance(value, str) and value.strip().lower().startswith("javascript:"):
                        del tag[attr]

    def _disable_forms(self, soup: BeautifulSoup) -> None:
        # disabled alone does not stop submission, so there is nowhere to submit to either
        for form in soup.find_all("form"):
            form["disabled"] = "disabled"
            if form.has_attr("action"):
                del form["action"]
        for tag in soup.find_all(formaction=True):
            del tag["formaction"]

    def _page_link(self, base: str, value: str, report: RewriteReport, kind: str) -> Optional[str]:
        if is_fragment(value) or is_data_uri(value):
            return None
        try:
            absolute = resolve(base, value)
        except ValueError as e:
            logger.warning("skipping %s %r on %s: %s", kind, value, base, e)
            report.skip(value, kind, str(e))
            return None
        if not is_fetchable(absolute):
            return None
        report.rewritten += 1
        return self.signer.link_for(absolute, RewriteTarget.PAGE)

    def _rewrite_anchors(self, soup: BeautifulSoup, base: str, report: RewriteReport) -> None:
        for a in soup.find_all("a", href=True):
            link = self._page_link(base, a["href"], report, "anchor")
            if link is not None:
                a["href"] = link

    def _rewrite_media(self, soup: BeautifulSoup, base: str, report: RewriteReport) -> None:
        for tag in soup.find_all(list(MEDIA_ATTRS)):
            for attr in MEDIA_ATTRS[tag.name]:
                value = tag.get(attr)
                if value is None or not value.strip() or is_data_uri(value):
                    continue

                # srcset: only the first candidate URL is proxied; the tail is kept as written.
                # "a.jpg, b.jpg 2x": the comma ends the candidate, it is not part of the URL
                if attr == "srcset":
                    fields = value.split(None, 1)
                    ref = fields[0].rstrip(",")
                    tail = fields[0][len(ref):]
                    if len(fields) > 1:
                        tail += " " + fields[1]
                    if not ref:
                        continue
                else:
                    ref, tail = value, ""

                try:
                    absolute = resolve(base, ref)
                except ValueError as e:
                    logger.warning("skipping %s %r on %s: %s", tag.name, ref, base, e)
                    report.skip(ref, tag.name, str(e))
                    continue
                if not is_fetchable(absolute):
                    continue

                tag[attr] = self.signer.link_for(absolute, RewriteTarget.IMAGE) + tail
                report.rewritten += 1

    def _rewrite_style_attrs(self, soup: BeautifulSoup, base: str, report: RewriteReport) -> None:
        for tag in soup.find_all(style=True):
            tag["style"] = self.css.rewrite(base, tag["style"], report)

    def _rewrite_styles(self, soup: BeautifulSoup, base: str, report: RewriteReport) -> None:
        for style in soup.find_all("style"):
            style.string = self.css.rewrite(base, style.get_text(), report)

    def _rewrite_links(self, soup: BeautifulSoup, base: str, report: RewriteReport) -> None:
        links = soup.find_all("link")
        for link in links:
            href = link.get("href")
            if href is None:
                continue
            rel = _rel_values(link)
            if "stylesheet" in rel and "alternate" in rel:
                # inlining would make an opt-in sheet active
                link.decompose()
                report.removed += 1
            elif "stylesheet" in rel:
                self._inline_stylesheet(soup, link, base, href, report)
            else:
                rewritten = self._page_link(base, href, report, "link")
                if rewritten is not None:
                    link["href"] = rewritten

    def _inline_stylesheet(self, soup: BeautifulSoup, link, base: str, href: str, report: RewriteReport) -> None:
        try:
            url = resolve(base, href)
            if not is_fetchable(url):
                raise ValueError(f"unsupported scheme in {url!r}")
            resource = self.fetcher.fetch(url)
        except (ValueError, FetchError) as e:
            # an unreachable stylesheet must not be fetched by the browser directly either
            logger.warning("dropping stylesheet %r on %s: %s", href, base, e)
            report.skip(href, "stylesheet", str(e))
            link.decompose()
            return

        # relative references in a stylesheet are relative to the stylesheet itself
        css = self.css.rewrite(resource.final_url, resource.text, report)
        style = soup.new_tag("style")
        if link.get("media"):
            style["media"] = link["media"]
        style.string = _STYLE_CLOSE.sub(r"<\\/\1", css)
        link.replace_with(style)
