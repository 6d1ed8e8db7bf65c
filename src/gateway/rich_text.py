"""Rich text documents: plain-text extraction, reading time and HTML rendering.

A rich text document is the upstream node tree
(``{"nodeType": "document", "content": [...]}``).  Linked targets in
``data.target`` are expected to be resolved already; an unresolved link
renders as an HTML comment.  Plain strings are accepted everywhere and
pass through unchanged.
"""

from __future__ import annotations

import html
import math
import re
from typing import Any

_TAG_RE = re.compile(r"<[^>]+>")

_HEADINGS = {f"heading-{level}": f"h{level}" for level in range(1, 7)}
_SIMPLE_BLOCKS = {
    "paragraph": "p",
    "unordered-list": "ul",
    "ordered-list": "ol",
    "list-item": "li",
    "blockquote": "blockquote",
}
_MARKS = {"bold": "strong", "italic": "em", "underline": "u", "code": "code"}


def extract_plain_text(document: Any) -> str:
    """Concatenate every text node, separated by single spaces."""
    if not document:
        return ""
    if isinstance(document, str):
        return document

    def walk(node: Any) -> str:
        if not isinstance(node, dict):
            return ""
        if node.get("nodeType") == "text":
            value = node.get("value")
            return value if isinstance(value, str) else ""
        children = node.get("content")
        if isinstance(children, list):
            return " ".join(walk(child) for child in children)
        return ""

    return walk(document).strip()


def count_words(document: Any) -> int:
    text = extract_plain_text(document)
    if isinstance(document, str):
        text = _TAG_RE.sub(" ", text)
    return len(text.split())


def calculate_reading_time(document: Any, words_per_minute: int = 200) -> int:
    """Estimated minutes to read *document*; never less than 1."""
    return max(1, math.ceil(count_words(document) / words_per_minute))


# ── HTML rendering ──────────────────────────────────────────────────────


def _asset_url(asset: Any) -> str:
    try:
        url = asset["fields"]["file"]["url"]
    except (KeyError, TypeError):
        return ""
    if not isinstance(url, str):
        return ""
    return f"https:{url}" if url.startswith("//") else url


def _is_resolved(target: Any) -> bool:
    return isinstance(target, dict) and isinstance(target.get("fields"), dict)


def _text_field(fields: dict, key: str) -> str:
    value = fields.get(key)
    return value if isinstance(value, str) else ""


class RichTextRenderer:
    """Render a document to escaped HTML with ``{prefix}-*`` class names."""

    def __init__(self, class_prefix: str = "rich-text") -> None:
        self.prefix = class_prefix

    def render(self, document: Any) -> str:
        if not document:
            return ""
        if isinstance(document, str):
            return document
        return self._children(document)

    def _children(self, node: dict) -> str:
        children = node.get("content")
        if not isinstance(children, list):
            return ""
        return "".join(self._node(child) for child in children if isinstance(child, dict))

    def _node(self, node: dict) -> str:
        node_type = node.get("nodeType")
        cls = self.prefix

        if node_type == "text":
            return self._text(node)
        if node_type in _HEADINGS:
            tag = _HEADINGS[node_type]
            return f'<{tag} class="{cls}-{tag}">{self._children(node)}</{tag}>'
        if node_type in _SIMPLE_BLOCKS:
            tag = _SIMPLE_BLOCKS[node_type]
            return f'<{tag} class="{cls}-{node_type}">{self._children(node)}</{tag}>'
        if node_type == "hr":
            return f'<hr class="{cls}-hr" />'

        data = node.get("data") if isinstance(node.get("data"), dict) else {}
        target = data.get("target")
        if node_type == "hyperlink":
            uri = html.escape(_text_field(data, "uri") or "#", quote=True)
            external = uri.startswith(("http://", "https://"))
            extra = ' target="_blank" rel="noopener noreferrer"' if external else ""
            return f'<a href="{uri}" class="{cls}-link"{extra}>{self._children(node)}</a>'
        if node_type == "entry-hyperlink":
            return f'<a href="{self._entry_href(target)}" class="{cls}-link">{self._children(node)}</a>'
        if node_type == "asset-hyperlink":
            url = html.escape(_asset_url(target) or "#", quote=True)
            return f'<a href="{url}" class="{cls}-link" download>{self._children(node)}</a>'
        if node_type == "embedded-asset-block":
            return self._embedded_asset(target)
        if node_type == "embedded-entry-block":
            return self._embedded_entry(target)
        if node_type == "embedded-entry-inline":
            if not _is_resolved(target):
                return ""
            title = target["fields"].get("title") or target["fields"].get("name") or "Content"
            return f'<span class="{cls}-inline-entry">{html.escape(str(title))}</span>'

        # Unknown node types still render their children
        return self._children(node)

    def _text(self, node: dict) -> str:
        value = node.get("value")
        text = html.escape(value if isinstance(value, str) else "")
        for mark in node.get("marks") or []:
            tag = _MARKS.get((mark or {}).get("type"))
            if tag:
                text = f'<{tag} class="{self.prefix}-{mark["type"]}">{text}</{tag}>'
        return text

    @staticmethod
    def _entry_href(target: Any) -> str:
        if not _is_resolved(target):
            return "#"
        content_type = ((target.get("sys") or {}).get("contentType") or {}).get("sys", {}).get("id")
        slug = _text_field(target["fields"], "slug") or str((target.get("sys") or {}).get("id") or "")
        if content_type == "blogPost":
            return f"/blog/{html.escape(slug, quote=True)}"
        if content_type == "portfolioEntry":
            return f"/portfolio/{html.escape(slug, quote=True)}"
        return "#"

    def _embedded_asset(self, asset: Any) -> str:
        if not _is_resolved(asset):
            return "<!-- Asset file not found -->"
        fields = asset["fields"]
        file = fields.get("file") if isinstance(fields.get("file"), dict) else {}
        url = html.escape(_asset_url(asset), quote=True)
        title = html.escape(_text_field(fields, "title"), quote=True)
        alt = html.escape(
            _text_field(fields, "description") or _text_field(fields, "title") or "Embedded asset", quote=True
        )
        content_type = _text_field(file, "contentType")
        caption = f'<figcaption class="{self.prefix}-caption">{title}</figcaption>' if title else ""

        if content_type.startswith("image/"):
            return (
                f'<figure class="{self.prefix}-figure">'
                f'<img src="{url}" alt="{alt}" title="{title}" class="{self.prefix}-image" loading="lazy" />'
                f"{caption}</figure>"
            )
        if content_type.startswith("video/"):
            return (
                f'<figure class="{self.prefix}-figure">'
                f'<video src="{url}" controls class="{self.prefix}-video"></video>'
                f"{caption}</figure>"
            )
        return (
            f'<div class="{self.prefix}-download">'
            f'<a href="{url}" download="{title or "download"}">{title or "Download file"}</a>'
            f"<p>{html.escape(content_type)}</p></div>"
        )

    def _embedded_entry(self, entry: Any) -> str:
        if not _is_resolved(entry):
            return "<!-- Embedded entry not found -->"
        fields = entry["fields"]
        title = html.escape(str(fields.get("title") or fields.get("name") or "Embedded content"))
        description = fields.get("description") or fields.get("excerpt") or ""
        body = f"<p>{html.escape(str(description))}</p>" if isinstance(description, str) and description else ""
        return f'<div class="{self.prefix}-embedded-entry"><h3>{title}</h3>{body}</div>'


def render_rich_text(document: Any, class_prefix: str = "rich-text") -> str:
    """Render *document* to HTML; plain strings are returned unchanged."""
    return RichTextRenderer(class_prefix).render(document)
