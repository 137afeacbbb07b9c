"""
OFX Document Parser

Structural parser for OFX/QFX files. Handles both SGML-style OFX 1.x (leaf
elements without closing tags) and XML-style OFX 2.x, producing a tree of
nested dicts. Repeated child elements become lists, so any container may be
either a single aggregate or a list of them.

Only structure is handled here; statements and transactions are pulled out
of the tree by ``statements.extract_statements``.
"""

import html
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterator

logger = logging.getLogger(__name__)

_OFX_START = re.compile(r"<OFX[\s>]", re.IGNORECASE)
_TOKEN = re.compile(
    r"<!--.*?-->"
    r"|<\?.*?\?>"
    r"|<(?P<close>/?)(?P<name>[A-Za-z][A-Za-z0-9_.]*)(?:\s[^>]*)?>",
    re.DOTALL,
)
_SGML_HEADER_LINE = re.compile(r"^\s*([A-Z0-9_]+)\s*:\s*(.*?)\s*$")
_XML_PI_ATTR = re.compile(r'([A-Z0-9_]+)\s*=\s*"([^"]*)"')

Element = dict[str, Any]


@dataclass
class OFXParseFailure:
    """Structural or content failure while reading an OFX file."""

    message: str
    details: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return False


@dataclass
class OFXDocument:
    """A structurally parsed OFX file.

    ``root`` holds the children of the <OFX> element. Leaf values are
    strings, aggregates are dicts and repeated elements are lists.
    """

    header: dict[str, str] = field(default_factory=dict)
    root: Element = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return True

    def get(self, *path: str) -> Any:
        """Follow a path of element names, taking the first of any list."""
        node: Any = self.root
        for name in path:
            if isinstance(node, list):
                node = node[0] if node else None
            if not isinstance(node, dict):
                return None
            node = node.get(name)
        return node

    def find_all(self, name: str) -> list[Any]:
        """Every element with the given name anywhere in the tree."""
        return list(_walk(self.root, name))


def _walk(node: Any, name: str) -> Iterator[Any]:
    if isinstance(node, list):
        for item in node:
            yield from _walk(item, name)
    elif isinstance(node, dict):
        for key, value in node.items():
            if key == name:
                if isinstance(value, list):
                    yield from value
                else:
                    yield value
            yield from _walk(value, name)


def _add_child(parent: Element, name: str, value: Any) -> None:
    existing = parent.get(name)
    if existing is None and name not in parent:
        parent[name] = value
    elif isinstance(existing, list):
        existing.append(value)
    else:
        parent[name] = [existing, value]


def _parse_header(prefix: str) -> dict[str, str]:
    """Read SGML "KEY:VALUE" header lines and <?OFX ...?> attributes."""
    header: dict[str, str] = {}
    for line in prefix.splitlines():
        match = _SGML_HEADER_LINE.match(line)
        if match:
            header[match.group(1)] = match.group(2)
    for pi in re.findall(r"<\?OFX(.*?)\?>", prefix, re.IGNORECASE | re.DOTALL):
        for key, value in _XML_PI_ATTR.findall(pi):
            header[key] = value
    return header


def parse_ofx_document(content: str) -> OFXDocument | OFXParseFailure:
    """Parse raw OFX/QFX text into an element tree.

    Args:
        content: Raw file content

    Returns:
        OFXDocument, or OFXParseFailure with structural details
    """
    if not content or not content.strip():
        return OFXParseFailure("Failed to parse OFX file", ["File is empty"])

    start = _OFX_START.search(content)
    if not start:
        return OFXParseFailure(
            "Failed to parse OFX file", ["No <OFX> root element found"]
        )

    header = _parse_header(content[: start.start()])
    body = content[start.start():]

    tokens = [m for m in _TOKEN.finditer(body) if m.group("name")]
    details: list[str] = []
    document: Element = {}
    stack: list[tuple[str, Element]] = [("#document", document)]

    i = 0
    while i < len(tokens):
        token = tokens[i]
        name = token.group("name").upper()
        text_end = tokens[i + 1].start() if i + 1 < len(tokens) else len(body)
        text = body[token.end():text_end].strip()
        next_token = tokens[i + 1] if i + 1 < len(tokens) else None
        next_name = next_token.group("name").upper() if next_token is not None else None
        next_closes = next_token is not None and bool(next_token.group("close"))
        closes_self = next_closes and next_name == name
        # An empty SGML leaf directly followed by its parent's closing tag
        empty_leaf = not closes_self and next_closes and next_name == stack[-1][0]

        if token.group("close"):
            open_names = [open_name for open_name, _ in stack[1:]]
            if name not in open_names:
                details.append(f"Unexpected closing tag </{name}>")
            else:
                while stack[-1][0] != name:
                    unclosed, _ = stack.pop()
                    details.append(f"Element <{unclosed}> was not closed before </{name}>")
                stack.pop()
            i += 1
            continue

        if text or closes_self or empty_leaf:
            # Leaf element; XML-style files also close it explicitly
            _add_child(stack[-1][1], name, html.unescape(text))
            i += 2 if closes_self else 1
            continue

        aggregate: Element = {}
        _add_child(stack[-1][1], name, aggregate)
        stack.append((name, aggregate))
        i += 1

    for unclosed, _ in reversed(stack[1:]):
        details.append(f"Element <{unclosed}> is never closed")

    if details:
        logger.warning(f"OFX structure errors: {'; '.join(details[:5])}")
        return OFXParseFailure("Failed to parse OFX file", details)

    root = document.get("OFX")
    if isinstance(root, list):
        root = root[0]
    if not isinstance(root, dict):
        return OFXParseFailure("Failed to parse OFX file", ["<OFX> element has no content"])

    return OFXDocument(header=header, root=root)


def is_ofx_format(content: str) -> bool:
    """Check if content appears to be OFX/QFX."""
    return (
        "OFXHEADER" in content
        or "<OFX>" in content
        or "<OFX " in content
        or "<?OFX" in content
    )
