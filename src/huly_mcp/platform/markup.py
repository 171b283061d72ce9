"""Markdown <-> ProseMirror JSON conversion for issue descriptions.

Markdown is tokenized with markdown-it (CommonMark plus strikethrough) and
mapped onto the node and mark names the platform editor uses: paragraph,
heading, bulletList, orderedList, listItem, blockquote, codeBlock,
horizontalRule, hardBreak, image; marks bold, italic, strike, code, link.
"""

import json
from typing import Any, Optional

from markdown_it import MarkdownIt
from markdown_it.token import Token

_parser = MarkdownIt("commonmark").enable("strikethrough")

_BLOCKS = {
    "paragraph_open": "paragraph",
    "heading_open": "heading",
    "bullet_list_open": "bulletList",
    "ordered_list_open": "orderedList",
    "list_item_open": "listItem",
    "blockquote_open": "blockquote",
}

_MARK_OPEN = {"strong_open": "bold", "em_open": "italic", "s_open": "strike"}
_MARK_CLOSE = {"strong_close": "bold", "em_close": "italic", "s_close": "strike", "link_close": "link"}

# Outermost first when rendering nested marks
_MARK_ORDER = ["link", "bold", "italic", "strike", "underline", "code"]
_MARK_SYNTAX = {"bold": "**", "italic": "*", "strike": "~~", "code": "`", "underline": ""}


# ----------------------------------------------------------------------------
# Markdown -> markup
# ----------------------------------------------------------------------------


def _text_node(text: str, marks: list[dict]) -> dict:
    node: dict = {"type": "text", "text": text}
    if marks:
        node["marks"] = [dict(m) for m in marks]
    return node


def _merge_text(nodes: list[dict]) -> list[dict]:
    merged: list[dict] = []
    for node in nodes:
        previous = merged[-1] if merged else None
        if (
            previous is not None
            and node["type"] == previous["type"] == "text"
            and node.get("marks") == previous.get("marks")
        ):
            previous["text"] += node["text"]
        else:
            merged.append(node)
    return merged


def _inline_nodes(children: list[Token]) -> list[dict]:
    nodes: list[dict] = []
    marks: list[dict] = []

    for child in children:
        kind = child.type
        if kind in ("text", "html_inline"):
            if child.content:
                nodes.append(_text_node(child.content, marks))
        elif kind == "code_inline":
            nodes.append(_text_node(child.content, marks + [{"type": "code"}]))
        elif kind in _MARK_OPEN:
            marks.append({"type": _MARK_OPEN[kind]})
        elif kind == "link_open":
            marks.append({
                "type": "link",
                "attrs": {"href": child.attrGet("href"), "title": child.attrGet("title")},
            })
        elif kind in _MARK_CLOSE:
            name = _MARK_CLOSE[kind]
            for index in range(len(marks) - 1, -1, -1):
                if marks[index]["type"] == name:
                    del marks[index]
                    break
        elif kind == "softbreak":
            nodes.append(_text_node(" ", marks))
        elif kind == "hardbreak":
            nodes.append({"type": "hardBreak"})
        elif kind == "image":
            nodes.append({
                "type": "image",
                "attrs": {"src": child.attrGet("src"), "alt": child.content or None},
            })

    return _merge_text(nodes)


def _open_block(token: Token) -> dict:
    node: dict = {"type": _BLOCKS.get(token.type, "paragraph"), "content": []}
    if token.type == "heading_open":
        node["attrs"] = {"level": int(token.tag[1:])}
    elif token.type == "ordered_list_open":
        node["attrs"] = {"order": int(token.attrGet("start") or 1)}
    return node


def markdown_to_markup(markdown: str) -> str:
    """Convert markdown text to a serialized ProseMirror document."""
    root: dict = {"type": "doc", "content": []}
    stack = [root]

    for token in _parser.parse(markdown or ""):
        if token.nesting == 1:
            node = _open_block(token)
            stack[-1]["content"].append(node)
            stack.append(node)
        elif token.nesting == -1:
            stack.pop()
        elif token.type == "inline":
            stack[-1]["content"].extend(_inline_nodes(token.children or []))
        elif token.type in ("fence", "code_block"):
            text = token.content.rstrip("\n")
            stack[-1]["content"].append({
                "type": "codeBlock",
                "attrs": {"language": token.info.strip() or None},
                "content": [_text_node(text, [])] if text else [],
            })
        elif token.type == "hr":
            stack[-1]["content"].append({"type": "horizontalRule"})
        elif token.type == "html_block":
            stack[-1]["content"].append(
                {"type": "paragraph", "content": [_text_node(token.content.strip(), [])]}
            )

    return json.dumps(root)


# ----------------------------------------------------------------------------
# Markup -> markdown
# ----------------------------------------------------------------------------


def _open_mark(mark: dict) -> str:
    if mark["type"] == "link":
        return "["
    return _MARK_SYNTAX.get(mark["type"], "")


def _close_mark(mark: dict) -> str:
    if mark["type"] == "link":
        attrs = mark.get("attrs") or {}
        title = attrs.get("title")
        suffix = f' "{title}"' if title else ""
        return f"]({attrs.get('href') or ''}{suffix})"
    return _MARK_SYNTAX.get(mark["type"], "")


def _sorted_marks(node: dict) -> list[dict]:
    known = [m for m in node.get("marks") or [] if m.get("type") in _MARK_ORDER]
    return sorted(known, key=lambda m: _MARK_ORDER.index(m["type"]))


def _plain_text(node: dict) -> str:
    if node.get("type") == "text":
        return node.get("text", "")
    attrs = node.get("attrs") or {}
    if attrs.get("label"):
        return f"@{attrs['label']}"
    return "".join(_plain_text(child) for child in node.get("content") or [])


def _render_inline(nodes: list[dict]) -> str:
    out: list[str] = []
    open_marks: list[dict] = []

    def close_from(keep: int) -> None:
        for mark in reversed(open_marks[keep:]):
            out.append(_close_mark(mark))
        del open_marks[keep:]

    for node in nodes:
        kind = node.get("type")
        if kind != "text":
            close_from(0)
            if kind == "hardBreak":
                out.append("\\\n")
            elif kind == "image":
                attrs = node.get("attrs") or {}
                out.append(f"![{attrs.get('alt') or ''}]({attrs.get('src') or ''})")
            else:
                out.append(_plain_text(node))
            continue

        marks = _sorted_marks(node)
        keep = 0
        while keep < min(len(marks), len(open_marks)) and marks[keep] == open_marks[keep]:
            keep += 1
        close_from(keep)
        for mark in marks[keep:]:
            out.append(_open_mark(mark))
            open_marks.append(mark)
        out.append(node.get("text", ""))

    close_from(0)
    return "".join(out)


def _prefix_lines(text: str, first: str, rest: str) -> str:
    lines = text.split("\n")
    return "\n".join(
        [first + lines[0]] + [rest + line if line else line for line in lines[1:]]
    )


def _render_list_item(item: dict, marker: str) -> str:
    parts: list[str] = []
    for block in item.get("content") or []:
        rendered = _render_block(block)
        if parts:
            nested = block.get("type") in ("bulletList", "orderedList")
            parts.append("\n" if nested else "\n\n")
        parts.append(rendered)
    return _prefix_lines("".join(parts), marker, " " * len(marker))


def _render_block(node: dict) -> str:
    kind = node.get("type")
    content = node.get("content") or []
    attrs = node.get("attrs") or {}

    if kind == "paragraph":
        return _render_inline(content)
    if kind == "heading":
        return "#" * int(attrs.get("level", 1)) + " " + _render_inline(content)
    if kind == "codeBlock":
        return f"```{attrs.get('language') or ''}\n{_plain_text(node)}\n```"
    if kind == "blockquote":
        inner = _render_blocks(content)
        return "\n".join(f"> {line}" if line else ">" for line in inner.split("\n"))
    if kind == "bulletList":
        return "\n".join(_render_list_item(item, "- ") for item in content)
    if kind == "orderedList":
        start = int(attrs.get("order") or 1)
        return "\n".join(
            _render_list_item(item, f"{start + index}. ") for index, item in enumerate(content)
        )
    if kind == "horizontalRule":
        return "---"
    if kind in ("text", "hardBreak", "image"):
        return _render_inline([node])
    return _plain_text(node)


def _render_blocks(nodes: list[dict]) -> str:
    return "\n\n".join(_render_block(node) for node in nodes)


def markup_to_markdown(markup: Optional[str | dict[str, Any]]) -> str:
    """Convert a ProseMirror document (serialized or parsed) to markdown text."""
    if isinstance(markup, str):
        try:
            doc = json.loads(markup)
        except ValueError:
            # Stored as plain text already
            return markup
    else:
        doc = markup
    if not isinstance(doc, dict):
        return str(markup)
    return _render_blocks(doc.get("content") or [])
