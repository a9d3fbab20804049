#!/usr/bin/env python3
"""
Content injection for the daily fact page.

Locates the fact region (<div id="content">) and the "last updated" stamp
(<span id="last-updated">) by parsing the markup, then splices new text in by
source offset so everything outside the two regions is kept byte-for-byte.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from html.parser import HTMLParser
from typing import List, Optional

CONTENT_ID = "content"
TIMESTAMP_ID = "last-updated"
FALLBACK_CLASS = "text-lg text-gray-700 leading-relaxed"
INDENT = "    "

_BODY_CLOSE_RE = re.compile(r"</body\s*>", re.IGNORECASE)
_LEADING_WS_RE = re.compile(r"[ \t]*")


class ContentPath(str, Enum):
    REPLACED = "replaced"
    FALLBACK_BODY = "fallback_body"      # inserted before </body>
    FALLBACK_APPEND = "fallback_append"  # no </body>, appended at the end


@dataclass
class Region:
    tag: str
    start_tag: str
    start: int
    inner_start: int
    inner_end: int
    end: int
    end_tag: str = ""


@dataclass
class InjectionResult:
    html: str
    content_path: ContentPath
    timestamp_updated: bool

    @property
    def used_fallback(self) -> bool:
        return self.content_path is not ContentPath.REPLACED


# =========================
# Region lookup
# =========================
class _RegionLocator(HTMLParser):
    """Finds the first element with a given id and its balanced closing tag."""

    def __init__(self, document: str, element_id: str):
        super().__init__(convert_charrefs=True)
        self.document = document
        self.element_id = element_id
        self.region: Optional[Region] = None
        self._line_starts = _line_starts(document)
        self._tag: Optional[str] = None
        self._start = 0
        self._inner_start = 0
        self._start_tag = ""
        self._depth = 0
        self._done = False

    def _offset(self) -> int:
        lineno, col = self.getpos()
        return self._line_starts[lineno - 1] + col

    def handle_starttag(self, tag, attrs):
        if self._done:
            return
        if self._tag is None:
            if dict(attrs).get("id") != self.element_id:
                return
            raw = self.get_starttag_text() or ""
            self._tag = tag
            self._start = self._offset()
            self._start_tag = raw
            self._inner_start = self._start + len(raw)
            self._depth = 1
        elif tag == self._tag:
            self._depth += 1

    def handle_startendtag(self, tag, attrs):
        # <div id="content"/> has no inner span to replace; nested self-closing
        # tags never change the depth.
        return

    def handle_endtag(self, tag):
        if self._done or self._tag is None or tag != self._tag:
            return
        self._depth -= 1
        if self._depth:
            return
        inner_end = self._offset()
        close = self.document.find(">", inner_end)
        end = len(self.document) if close < 0 else close + 1
        self.region = self.make_region(inner_end, end)
        self._done = True

    def make_region(self, inner_end: int, end: int) -> Region:
        return Region(
            tag=self._tag,
            start_tag=self._start_tag,
            start=self._start,
            inner_start=self._inner_start,
            inner_end=inner_end,
            end=end,
            end_tag=self.document[inner_end:end],
        )


def _line_starts(text: str) -> List[int]:
    starts = [0]
    pos = text.find("\n")
    while pos >= 0:
        starts.append(pos + 1)
        pos = text.find("\n", pos + 1)
    return starts


def _close_tag_re(tag: str):
    return re.compile(rf"</{re.escape(tag)}\s*>", re.IGNORECASE)


def _is_balanced(text: str, tag: str) -> bool:
    opened = len(re.findall(rf"<{re.escape(tag)}\b", text, re.IGNORECASE))
    return opened == len(_close_tag_re(tag).findall(text))


def _rendered_bounds(document: str, tag: str, start: int, inner_start: int):
    """
    Bounds of a region previously written by render_content_region whose fact
    has unbalanced <tag>/</tag> markup, or None.

    A stray closer in the fact ends the parsed element early and a stray opener
    keeps it open past its real end, so for those facts the written layout
    (<p> line, then the closing tag on its own line) marks the end instead.
    """
    indent = _line_indent(document, start)
    opener = "\n" + indent + INDENT + "<p>"
    if not document.startswith(opener, inner_start):
        return None
    payload_start = inner_start + len(opener)
    closer = re.compile(r"</p>\n" + re.escape(indent) + rf"(</{re.escape(tag)}\s*>)", re.IGNORECASE)
    m = closer.search(document, payload_start)
    if m is None or _is_balanced(document[payload_start:m.start()], tag):
        return None
    return m.start(1), m.end(1)


def find_region(document: str, element_id: str) -> Optional[Region]:
    """
    Return the first element with id=element_id, or None if it is absent or
    has no closing tag at all.

    The end is the balanced closing tag. If the element is still open at the
    end of the document, the first closing tag after it is used, the same span
    a non-greedy <tag ...>.*?</tag> match would take.
    """
    locator = _RegionLocator(document, element_id)
    locator.feed(document)
    locator.close()
    if locator._tag is None:
        return None

    bounds = _rendered_bounds(document, locator._tag, locator._start, locator._inner_start)
    if bounds is not None:
        return locator.make_region(*bounds)
    if locator.region is not None:
        return locator.region

    m = _close_tag_re(locator._tag).search(document, locator._inner_start)
    if m is None:
        return None
    return locator.make_region(m.start(), m.end())


def _line_indent(document: str, offset: int) -> str:
    line_start = document.rfind("\n", 0, offset) + 1
    return _LEADING_WS_RE.match(document, line_start).group(0)


# =========================
# Formatting
# =========================
def format_timestamp(now: datetime) -> str:
    """Long local date plus 12-hour clock, e.g. 'October 5, 2026, 09:05:03 AM'."""
    return f"{now:%B} {now.day}, {now:%Y, %I:%M:%S %p}"


def render_content_region(region: Region, fact: str, indent: str = "") -> str:
    end_tag = region.end_tag or f"</{region.tag}>"
    return f"{region.start_tag}\n{indent}{INDENT}<p>{fact}</p>\n{indent}{end_tag}"


def render_fallback_region(fact: str, content_id: str = CONTENT_ID,
                           css_class: str = FALLBACK_CLASS) -> str:
    return f'<div id="{content_id}" class="{css_class}"><p>{fact}</p></div>'


# =========================
# Injection
# =========================
def inject_content(document: str, fact: str, content_id: str = CONTENT_ID,
                   fallback_class: str = FALLBACK_CLASS):
    """Replace the content region, or insert one before </body> if it is missing."""
    region = find_region(document, content_id)
    if region is not None:
        indent = _line_indent(document, region.start)
        replacement = render_content_region(region, fact, indent)
        return document[:region.start] + replacement + document[region.end:], ContentPath.REPLACED

    block = render_fallback_region(fact, content_id, fallback_class) + "\n"
    closers = list(_BODY_CLOSE_RE.finditer(document))
    if closers:
        at = closers[-1].start()
        logging.warning(f'No element with id="{content_id}" found; inserted a new one before </body>.')
        return document[:at] + block + document[at:], ContentPath.FALLBACK_BODY

    logging.warning(f'No element with id="{content_id}" and no </body> found; appended a new one.')
    return document + block, ContentPath.FALLBACK_APPEND


def inject_timestamp(document: str, now: datetime, timestamp_id: str = TIMESTAMP_ID):
    region = find_region(document, timestamp_id)
    if region is None:
        logging.warning(f'No element with id="{timestamp_id}" found; timestamp left unchanged.')
        return document, False
    stamp = format_timestamp(now)
    return document[:region.inner_start] + stamp + document[region.inner_end:], True


def inject(document: str, new_fact: str, now: datetime,
           content_id: str = CONTENT_ID,
           timestamp_id: str = TIMESTAMP_ID,
           fallback_class: str = FALLBACK_CLASS) -> InjectionResult:
    """
    Put new_fact into the content region and refresh the timestamp.

    Pure text in, text out. The fact is inserted as-is (no escaping). Running it
    again with the same fact reproduces the same content region bytes.
    """
    html, path = inject_content(document, new_fact, content_id, fallback_class)
    html, stamped = inject_timestamp(html, now, timestamp_id)
    return InjectionResult(html=html, content_path=path, timestamp_updated=stamped)
