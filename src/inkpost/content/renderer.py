"""Render the post-body markup subset to HTML.

The rules run in a fixed order and each one rewrites the output of the
previous ones:

1. ``![alt](url)`` images
2. ``[text](url)`` links, opened in a new tab without referrer/opener
3. ``**bold**``
4. ``*italic*`` (after bold, so ``**`` is already consumed)
5. ``## `` and ``### `` headings
6. ``> `` block quotes
7. ``- `` list items, consecutive items grouped into one ``<ul>``
8. two trailing spaces before a newline: ``<br />``
9. blank-line separated blocks: ``<p>``

Anything that does not match a rule passes through literally. The output is
not escaped: post bodies are trusted markup written by signed-in authors.
"""

from __future__ import annotations

import re

_IMAGE = re.compile(r"!\[([^\]]*)\]\(([^)]+)\)")
_LINK = re.compile(r"\[([^\]]+)\]\(([^)]+)\)")
_BOLD = re.compile(r"\*\*(?=\S)(.+?)(?<=\S)\*\*")
_ITALIC = re.compile(r"\*(?=[^\s*])([^*\n]+?)(?<=[^\s*])\*")
_H2 = re.compile(r"^## (.+)$", re.MULTILINE)
_H3 = re.compile(r"^### (.+)$", re.MULTILINE)
_QUOTE = re.compile(r"^> (.+)$", re.MULTILINE)
_LIST_ITEM = re.compile(r"^- (.+)$", re.MULTILINE)
_LIST_RUN = re.compile(r"^<li>.*</li>(?:\n<li>.*</li>)*", re.MULTILINE)
_HARD_BREAK = re.compile(r" {2,}\n(?=[^\n])")
_BLANK_LINE = re.compile(r"\n[ \t]*\n")
# One line of a heading, quote or list block; lines are classified one at a time
_BLOCK_LINE = re.compile(
    r"<(h2|h3|blockquote)>[^\n]*</\1>|(?:<ul>)?<li>[^\n]*</li>(?:</ul>)?"
)


def render_markup(text: str | None) -> str:
    """Convert post-body markup to HTML. Never raises for any string."""
    if not text:
        return ""

    html = text.replace("\r\n", "\n").replace("\r", "\n")

    html = _IMAGE.sub(r'<img src="\2" alt="\1" />', html)
    html = _LINK.sub(r'<a href="\2" target="_blank" rel="noopener noreferrer">\1</a>', html)
    html = _BOLD.sub(r"<strong>\1</strong>", html)
    html = _ITALIC.sub(r"<em>\1</em>", html)

    html = _H2.sub(r"<h2>\1</h2>", html)
    html = _H3.sub(r"<h3>\1</h3>", html)
    html = _QUOTE.sub(r"<blockquote>\1</blockquote>", html)
    html = _LIST_ITEM.sub(r"<li>\1</li>", html)
    html = _LIST_RUN.sub(r"<ul>\g<0></ul>", html)

    html = _HARD_BREAK.sub("<br />\n", html)

    return _paragraphs(html)


def _paragraphs(html: str) -> str:
    blocks = (block.strip() for block in _BLANK_LINE.split(html))
    out = []
    for block in blocks:
        if not block:
            continue
        if all(_BLOCK_LINE.fullmatch(line.strip()) for line in block.split("\n")):
            out.append(block)
        else:
            out.append(f"<p>{block}</p>")
    return "\n".join(out)
