"""
Mail template parameter parsing and content formatting.

Placeholders look like ``{name}``. Formatting substitutes known params, then
post-processes the HTML produced by the rich-text editor so code blocks
render in mail clients. The HTML handling is regex-based on purpose and does
not parse the document.
"""
from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

PATTERN_PARAMS = re.compile(r"\{([^{}]+)\}")

# Only these entities are decoded, in a single left-to-right pass
_HTML_ENTITIES = {
    "&amp;": "&",
    "&lt;": "<",
    "&gt;": ">",
    "&quot;": '"',
    "&#39;": "'",
    "&nbsp;": " ",
}
_HTML_ENTITY = re.compile("|".join(re.escape(entity) for entity in _HTML_ENTITIES))

_CODE_BLOCK = re.compile(r"<pre\s*.*?><code\s*.*?>(.*?)</code></pre>", re.DOTALL)
_OUTER_PRE = re.compile(r"<pre[^>]*>(.*?)</pre>", re.DOTALL)

CODE_BLOCK_STYLE = "background-color: #f5f5f5; padding: 10px; border-radius: 5px; overflow-x: auto;"


def extract_params(text: str | None) -> list[str]:
    if not text:
        return []
    return PATTERN_PARAMS.findall(text)


def extract_template_params(title: str | None, content: str | None) -> list[str]:
    params: list[str] = []
    for param in extract_params(title) + extract_params(content):
        if param not in params:
            params.append(param)
    return params


def render(content: str | None, params: Mapping[str, Any] | None) -> str | None:
    """Replace ``{name}`` with ``params[name]``; unknown or ``None`` params stay as-is."""
    if not content or not params:
        return content

    def _sub(m: re.Match) -> str:
        value = params.get(m.group(1))
        return m.group(0) if value is None else str(value)

    return PATTERN_PARAMS.sub(_sub, content)


def unescape_html(text: str | None) -> str | None:
    if not text:
        return text
    return _HTML_ENTITY.sub(lambda m: _HTML_ENTITIES[m.group(0)], text)


def format_html_code_blocks(text: str | None) -> str | None:
    if not text:
        return text
    return _CODE_BLOCK.sub(
        lambda m: f'<pre style="{CODE_BLOCK_STYLE}"><code>{m.group(1)}</code></pre>',
        text,
    )


def replace_outer_pre_with_div(text: str | None) -> str | None:
    if not text:
        return text
    return _OUTER_PRE.sub(lambda m: f"<div>{m.group(1)}</div>", text)


def post_process_html(text: str | None) -> str | None:
    # code block styling expects unescaped tags, and the div swap must see its output
    text = unescape_html(text)
    text = format_html_code_blocks(text)
    return replace_outer_pre_with_div(text)


def format_mail_template_content(content: str | None, params: Mapping[str, Any] | None) -> str | None:
    return post_process_html(render(content, params))
