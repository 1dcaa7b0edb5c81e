"""
Markdown Renderer
=================

Compile Markdown text into an HTML body with markdown-it-py.
CommonMark plus tables, strikethrough, task lists and footnotes; raw HTML is
always passed through and ``$``/``$$`` math is parsed only when enabled.
"""

from functools import lru_cache
from html import escape
from typing import Any, List, Optional

from markdown_it import MarkdownIt
from markdown_it.tree import SyntaxTreeNode
from mdit_py_plugins.dollarmath import dollarmath_plugin
from mdit_py_plugins.footnote import footnote_plugin
from mdit_py_plugins.tasklists import tasklists_plugin

from marky.core.errors import EncodingError
from marky.models.schemas import RenderOptions

TITLE_TEXT_NODES = {"text", "code_inline", "math_inline"}
TITLE_BREAK_NODES = {"softbreak", "hardbreak"}


def _render_math_inline(self: Any, tokens: List[Any], idx: int, options: Any, env: Any) -> str:
    content = escape(tokens[idx].content.strip())
    return f'<code class="language-math math-inline">{content}</code>'


def _render_math_display(self: Any, tokens: List[Any], idx: int, options: Any, env: Any) -> str:
    content = escape(tokens[idx].content.strip("\n"))
    return f'<pre><code class="language-math math-display">{content}</code></pre>\n'


@lru_cache(maxsize=2)
def _markdown_parser(math: bool) -> MarkdownIt:
    """Build (once per math flag) the shared parser instance."""
    md = (
        MarkdownIt("commonmark", {"html": True})
        .enable(["table", "strikethrough"])
        .use(tasklists_plugin)
        .use(footnote_plugin)
    )

    if math:
        md.use(dollarmath_plugin, allow_labels=False)
        md.add_render_rule("math_inline", _render_math_inline)
        md.add_render_rule("math_inline_double", _render_math_display)
        md.add_render_rule("math_block", _render_math_display)

    return md


def decode_source(raw: bytes) -> str:
    """Decode Markdown source bytes, rejecting anything that is not UTF-8."""
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise EncodingError(f"Input is not valid UTF-8: {e}") from e


def compile_markdown(text: str, options: RenderOptions) -> str:
    """
    Compile Markdown text to an HTML body.

    Args:
        text: Markdown source
        options: Render options; only ``math`` affects parsing

    Returns:
        Rendered HTML body
    """
    return _markdown_parser(options.math).render(text)


def _plain_text(heading: SyntaxTreeNode) -> str:
    parts: List[str] = []
    stack = [heading]
    while stack:
        node = stack.pop()
        if node.type in TITLE_TEXT_NODES:
            parts.append(node.content)
        elif node.type in TITLE_BREAK_NODES:
            parts.append(" ")
        stack.extend(reversed(node.children))
    return "".join(parts)


def extract_title(text: str) -> Optional[str]:
    """
    Find the first heading in document order.

    The syntax tree is walked depth-first; every sibling is visited until a
    heading is found, however deeply it is nested in quotes or lists.

    Args:
        text: Markdown source

    Returns:
        Plain text of the first heading, or None when the document has none
    """
    root = SyntaxTreeNode(_markdown_parser(False).parse(text))
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "heading":
            return _plain_text(node)
        stack.extend(reversed(node.children))
    return None
