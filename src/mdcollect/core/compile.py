"""Markdown body compilation: markdown-it tokens -> anchored, deterministic HTML"""

import json
import re
import threading
from typing import Iterable

from markdown_it import MarkdownIt
from markdown_it.common.utils import escapeHtml

from mdcollect.core.errors import CompilationError
from mdcollect.core.models import CompiledBody, Heading
from mdcollect.core.utils.hashing import sha256
from mdcollect.core.utils.slug import unique_anchor


DEFAULT_EXTENSIONS = ("note", "tip", "warning", "details")
DIRECTIVE_RE = re.compile(r'^\{([A-Za-z][\w-]*)\}\s*(.*)$')
CONTAINER_RE = re.compile(r'^(\s*>)*\s*')
COMPILER_VERSION = "1"


def _make_parser(preset: str) -> MarkdownIt:
    """Build a MarkdownIt instance for the given preset name."""
    return MarkdownIt(preset, options_update={"linkify": False, "html": True})


def _directive(info: str) -> tuple[str, str] | None:
    """Return (name, title) when a fence info string is '{name} optional title'."""
    m = DIRECTIVE_RE.match(info.strip())
    return (m.group(1), m.group(2).strip()) if m else None


def _inline_text(inline) -> str:
    """Plain text of a heading's inline token (text and code spans only)."""
    if not inline.children:
        return inline.content
    return "".join(c.content for c in inline.children if c.type in ("text", "code_inline"))


def _fence_closed(token, lines: list[str]) -> bool:
    start, end = token.map
    if end - 1 <= start or end > len(lines):
        return False
    # Blockquote markers at any depth precede the closing fence.
    last = CONTAINER_RE.sub("", lines[end - 1]).strip()
    return len(last) >= len(token.markup) and set(last) == {token.markup[0]}


class BodyCompiler:
    """Compile raw markdown bodies to HTML.

    Side-effect free: no filesystem, network, or clock access, so identical
    input and configuration always produce byte-identical output.
    """

    def __init__(self, extensions: Iterable[str] = DEFAULT_EXTENSIONS, parser_config: str = "gfm-like"):
        self.extensions = frozenset(extensions)
        self.parser_config = parser_config
        self._local = threading.local()

    @property
    def fingerprint(self) -> str:
        """Identifies everything that can change compiled output; used as a cache key part."""
        return sha256(json.dumps({
            "version": COMPILER_VERSION,
            "parser": self.parser_config,
            "extensions": sorted(self.extensions),
        }, sort_keys=True))

    @property
    def md(self) -> MarkdownIt:
        # MarkdownIt compiles its rule chains lazily; keep one instance per thread.
        md = getattr(self._local, "md", None)
        if md is None:
            md = _make_parser(self.parser_config)
            md.core.ruler.push("heading_anchors", self._heading_anchors)
            md.renderer.rules["fence"] = self._render_fence
            self._local.md = md
        return md

    def compile(self, raw: str, line_offset: int = 0) -> CompiledBody:
        """Compile raw body text. Raises CompilationError naming the offending line/snippet."""
        env: dict = {"anchors": set(), "headings": []}
        tokens = self.md.parse(raw, env)
        self._check(tokens, raw.splitlines(), line_offset)
        html = self.md.renderer.render(tokens, self.md.options, env)
        return CompiledBody(html=html, raw=raw, headings=tuple(env["headings"]))

    def _check(self, tokens: list, lines: list[str], offset: int) -> None:
        """Reject unterminated fences and unknown embedded-block types, recursing into blocks."""
        for tok in tokens:
            if tok.type != "fence" or not tok.map:
                continue
            start = tok.map[0]
            snippet = lines[start].strip() if start < len(lines) else tok.markup
            if not _fence_closed(tok, lines):
                raise CompilationError("unterminated code fence", offset + start + 1, snippet)
            directive = _directive(tok.info)
            if directive is None:
                continue
            name, _ = directive
            if name not in self.extensions:
                raise CompilationError(f"unknown embedded block type {name!r}", offset + start + 1, snippet)
            inner = self.md.parse(tok.content, {"anchors": set(), "headings": []})
            self._check(inner, tok.content.splitlines(), offset + start + 1)

    @staticmethod
    def _heading_anchors(state) -> None:
        """Core rule: give every heading a unique id and record it in env['headings']."""
        tokens = state.tokens
        for i, tok in enumerate(tokens):
            if tok.type != "heading_open" or i + 1 >= len(tokens):
                continue
            text = _inline_text(tokens[i + 1]).strip()
            anchor = unique_anchor(text, state.env.setdefault("anchors", set()))
            tok.attrSet("id", anchor)
            state.env.setdefault("headings", []).append(
                Heading(level=int(tok.tag[1:]), text=text, anchor=anchor)
            )

    def _render_fence(self, tokens, idx, options, env) -> str:
        tok = tokens[idx]
        directive = _directive(tok.info)
        if directive is not None:
            return self._render_directive(*directive, tok.content, env)

        lang = tok.info.strip().split(maxsplit=1)[0] if tok.info.strip() else ""
        code = escapeHtml(tok.content)
        if not lang:
            return f"<pre><code>{code}</code></pre>\n"
        lang = escapeHtml(lang)
        return f'<pre><code class="language-{lang}" data-language="{lang}">{code}</code></pre>\n'

    def _render_directive(self, name: str, title: str, content: str, env: dict) -> str:
        # Nested headings share the anchor namespace but stay out of the top-level outline.
        inner = self.md.render(content, {"anchors": env.setdefault("anchors", set()), "headings": []})
        if name == "details":
            summary = escapeHtml(title or "Details")
            return f'<details class="directive directive-details">\n<summary>{summary}</summary>\n{inner}</details>\n'
        heading = f'<p class="directive-title">{escapeHtml(title)}</p>\n' if title else ""
        return f'<aside class="directive directive-{name}">\n{heading}{inner}</aside>\n'
