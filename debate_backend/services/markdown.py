"""
Chat-style inline markdown for block text.

Supports ``*bold*``, ``_italic_``, ``~strike~``, ```code```, bare http(s)
links, bullet and numbered list lines, and ``>`` quotes. Parsing never
raises; anything unrecognised stays plain text.
"""

import html
import re
from dataclasses import dataclass, field
from typing import List, Optional

_BOLD = re.compile(r"\*([^*]+)\*")
_ITALIC = re.compile(r"_([^_]+)_")
_STRIKE = re.compile(r"~([^~]+)~")
_CODE = re.compile(r"`([^`]+)`")
_URL = re.compile(r"https?://\S+")
_NEXT_SPECIAL = re.compile(r"[*_~`]|https?://")

_BULLET = re.compile(r"^[*-]\s+(.+)$")
_NUMBERED = re.compile(r"^\d+\.\s+(.+)$")
_QUOTE = re.compile(r"^>\s*(.+)$")

_NESTING = (
    (_BOLD, "bold"),
    (_ITALIC, "italic"),
    (_STRIKE, "strikethrough"),
)


@dataclass
class ParsedElement:
    type: str
    content: str
    url: Optional[str] = None
    children: List["ParsedElement"] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = {"type": self.type, "content": self.content}
        if self.url is not None:
            data["url"] = self.url
        if self.children:
            data["children"] = [child.to_dict() for child in self.children]
        return data


def _append_text(elements: List[ParsedElement], text: str) -> None:
    if elements and elements[-1].type == "text":
        elements[-1].content += text
    else:
        elements.append(ParsedElement("text", text))


def parse_inline(text: str) -> List[ParsedElement]:
    elements: List[ParsedElement] = []
    remaining = text

    while remaining:
        matched = False
        for pattern, kind in _NESTING:
            match = pattern.match(remaining)
            if match:
                inner = match.group(1)
                elements.append(ParsedElement(kind, inner, children=parse_inline(inner)))
                remaining = remaining[match.end():]
                matched = True
                break
        if matched:
            continue

        match = _CODE.match(remaining)
        if match:
            elements.append(ParsedElement("code", match.group(1)))
            remaining = remaining[match.end():]
            continue

        match = _URL.match(remaining)
        if match:
            elements.append(ParsedElement("link", match.group(0), url=match.group(0)))
            remaining = remaining[match.end():]
            continue

        nxt = _NEXT_SPECIAL.search(remaining, 1)
        if nxt is None:
            if remaining.strip() or elements:
                _append_text(elements, remaining)
            break
        # An unmatched marker is literal text.
        _append_text(elements, remaining[:nxt.start()])
        remaining = remaining[nxt.start():]

    return elements


def parse_line(line: str) -> ParsedElement:
    trimmed = line.strip()

    match = _BULLET.match(trimmed)
    if match:
        return ParsedElement("list", "bullet", children=parse_inline(match.group(1)))

    match = _NUMBERED.match(trimmed)
    if match:
        return ParsedElement("list", "numbered", children=parse_inline(match.group(1)))

    match = _QUOTE.match(trimmed)
    if match:
        return ParsedElement("quote", match.group(1), children=parse_inline(match.group(1)))

    return ParsedElement("line", line, children=parse_inline(line))


def parse_markdown(text) -> List[ParsedElement]:
    if not text or not isinstance(text, str):
        return []
    return [parse_line(line) for line in text.split("\n")]


def _inline_html(elements: List[ParsedElement]) -> str:
    return "".join(_element_html(element) for element in elements)


def _element_html(element: ParsedElement) -> str:
    inner = _inline_html(element.children) if element.children else html.escape(element.content)
    if element.type == "bold":
        return f"<strong>{inner}</strong>"
    if element.type == "italic":
        return f"<em>{inner}</em>"
    if element.type == "strikethrough":
        return f"<del>{inner}</del>"
    if element.type == "code":
        return f"<code>{html.escape(element.content)}</code>"
    if element.type == "link":
        url = html.escape(element.url or element.content, quote=True)
        return f'<a href="{url}" target="_blank" rel="noopener noreferrer">{html.escape(element.content)}</a>'
    if element.type == "list":
        inner = _inline_html(element.children)
        if element.content == "bullet":
            return f"<li>{inner}</li>"
        return f'<li data-type="numbered">{inner}</li>'
    if element.type == "quote":
        return f"<blockquote>{inner}</blockquote>"
    if element.type == "line":
        return _inline_html(element.children)
    return inner


def elements_to_html(elements: List[ParsedElement]) -> str:
    """Debug rendering: one top-level element per line, joined with ``<br>``."""
    return "<br>".join(_element_html(element) for element in elements)
