"""
Result-line grammar — recognizes ``path:N:`` match headers and
``path-N-`` context headers in search output, and normalizes merged
context regions before the rest of the engine sees them.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum

from .errors import GrammarError

logger = logging.getLogger(__name__)

MATCH_SEPARATOR = ":"
CONTEXT_SEPARATOR = "-"
BLOCK_SEPARATOR = "--"

_LINE_NUMBER = r"[1-9][0-9]*"

# Match-line patterns per search tool. Every pattern must define the
# named groups ``path`` and ``line``; the header ends where the match ends.
_DEFAULT_MATCH = rf"^(?P<path>.+?):(?P<line>{_LINE_NUMBER}):"

PRESETS: dict[str, dict[str, str]] = {
    "grep": {"match": _DEFAULT_MATCH, "context_separators": "-"},
    "ripgrep": {"match": _DEFAULT_MATCH, "context_separators": "-"},
    "ag": {"match": _DEFAULT_MATCH, "context_separators": "-"},
    "ack": {"match": _DEFAULT_MATCH, "context_separators": "-"},
    # git grep -W / -p marks function-context lines with "="
    "git-grep": {"match": _DEFAULT_MATCH, "context_separators": "-="},
}


class LineKind(Enum):
    MATCH = "match"
    CONTEXT = "context"
    SEPARATOR = "separator"
    OTHER = "other"


@dataclass(frozen=True)
class HeaderMatch:
    """A recognized result-line header."""
    path: str
    line_number: int
    header_length: int
    kind: LineKind
    separator: str = MATCH_SEPARATOR


@dataclass
class ParsedLine:
    """One line of search output after grammar recognition."""
    text: str
    kind: LineKind
    header: HeaderMatch | None = None
    ending: str = "\n"


class ResultGrammar:
    """Header grammar of one search tool's output."""

    def __init__(
        self,
        match_regex: str = _DEFAULT_MATCH,
        context_separators: str = CONTEXT_SEPARATOR,
        block_separator: str = BLOCK_SEPARATOR,
    ) -> None:
        try:
            self._match_re = re.compile(match_regex)
        except re.error as exc:
            raise GrammarError(
                f"Invalid header pattern: {exc}", {"pattern": match_regex}
            ) from exc
        missing = {"path", "line"} - set(self._match_re.groupindex)
        if missing:
            raise GrammarError(
                "Header pattern must define the named groups 'path' and 'line'",
                {"pattern": match_regex, "missing": sorted(missing)},
            )
        if not context_separators:
            raise GrammarError("At least one context separator is required")
        self.context_separators = context_separators
        self.block_separator = block_separator
        self._context_cache: dict[str, re.Pattern[str]] = {}

    @classmethod
    def preset(cls, name: str) -> "ResultGrammar":
        """Build the grammar of a known search tool."""
        try:
            entry = PRESETS[name]
        except KeyError:
            raise GrammarError(
                f"Unknown grammar '{name}'",
                {"known": sorted(PRESETS)},
            ) from None
        return cls(entry["match"], entry["context_separators"])

    def parse_header(self, text: str) -> HeaderMatch | None:
        """Parse a match-line header, or return None."""
        m = self._match_re.match(text)
        if not m:
            return None
        try:
            number = int(m.group("line"))
        except (TypeError, ValueError):
            return None
        if number < 1:
            return None
        return HeaderMatch(
            path=m.group("path"),
            line_number=number,
            header_length=m.end(),
            kind=LineKind.MATCH,
        )

    def parse_context_header(self, text: str, path: str) -> HeaderMatch | None:
        """Parse a context-line header for an already known *path*.

        The path is matched literally, which is what disambiguates file
        names that themselves contain ``-N-`` fragments.
        """
        pattern = self._context_cache.get(path)
        if pattern is None:
            seps = re.escape(self.context_separators)
            pattern = re.compile(
                rf"{re.escape(path)}(?P<sep>[{seps}])(?P<line>{_LINE_NUMBER})(?P=sep)"
            )
            self._context_cache[path] = pattern
        m = pattern.match(text)
        if not m:
            return None
        return HeaderMatch(
            path=path,
            line_number=int(m.group("line")),
            header_length=m.end(),
            kind=LineKind.CONTEXT,
            separator=m.group("sep"),
        )

    def is_block_separator(self, text: str) -> bool:
        return text == self.block_separator


def format_header(path: str, line_number: int, kind: LineKind) -> str:
    """Return the canonical header text for *path* and *line_number*."""
    sep = MATCH_SEPARATOR if kind is LineKind.MATCH else CONTEXT_SEPARATOR
    return f"{path}{sep}{line_number}{sep}"


def split_lines(text: str) -> tuple[list[str], list[str]]:
    """Split *text* into lines and their terminators.

    Returns ``(lines, endings)``. Every line keeps its own terminator
    (``"\\r\\n"``, ``"\\n"``, or ``""`` for an unterminated last line), so
    text that mixes CRLF and LF lines joins back byte for byte.
    """
    if not text:
        return [], []
    parts = text.split("\n")
    last = parts.pop()
    lines: list[str] = []
    endings: list[str] = []
    for part in parts:
        if part.endswith("\r"):
            lines.append(part[:-1])
            endings.append("\r\n")
        else:
            lines.append(part)
            endings.append("\n")
    if last:
        lines.append(last)
        endings.append("")
    return lines, endings


def join_lines(lines: list[str], endings: list[str]) -> str:
    return "".join(line + ending for line, ending in zip(lines, endings))


def parse_results(text: str, grammar: ResultGrammar | None = None) -> list[ParsedLine]:
    """Recognize every line of search output.

    Context lines are only accepted next to a match line (or a run of
    context lines) for the same path with contiguous line numbers.
    Merged context regions are then normalized into canonical form.
    """
    grammar = grammar or ResultGrammar()
    lines, endings = split_lines(text)

    headers: list[HeaderMatch | None] = [grammar.parse_header(line) for line in lines]

    # Forward walk: after-context of each match run
    _walk_context(lines, headers, grammar, range(len(lines)), step=1)
    # Backward walk: before-context of each match run
    _walk_context(lines, headers, grammar, range(len(lines) - 1, -1, -1), step=-1)

    match_keys = {
        (h.path, h.line_number)
        for h in headers
        if h is not None and h.kind is LineKind.MATCH
    }

    parsed: list[ParsedLine] = []
    for text_line, header, ending in zip(lines, headers, endings):
        if header is None:
            kind = (LineKind.SEPARATOR if grammar.is_block_separator(text_line)
                    else LineKind.OTHER)
            parsed.append(ParsedLine(text_line, kind, ending=ending))
            continue
        if header.kind is LineKind.CONTEXT:
            text_line, header = _normalize_context(text_line, header, match_keys)
        parsed.append(ParsedLine(text_line, header.kind, header, ending))
    return parsed


def _walk_context(
    lines: list[str],
    headers: list[HeaderMatch | None],
    grammar: ResultGrammar,
    indices: range,
    step: int,
) -> None:
    """Assign context headers adjacent to match lines, walking in one direction."""
    current: HeaderMatch | None = None
    for i in indices:
        text = lines[i]
        header = headers[i]
        if grammar.is_block_separator(text):
            current = None
            continue

        if current is not None:
            expected = current.line_number + step
            ctx = grammar.parse_context_header(text, current.path)
            if ctx is not None and ctx.line_number == expected:
                if header is None or (
                    header.kind is LineKind.MATCH and header.path != current.path
                ):
                    # Either unclaimed, or a body that merely looked like a
                    # match header (e.g. "x[1:2:3]" after a dashed context header)
                    headers[i] = ctx
                    current = ctx
                    continue
                if header.kind is LineKind.CONTEXT:
                    current = header
                    continue

        if header is not None and header.kind is LineKind.MATCH:
            current = header
        elif header is not None and header.kind is LineKind.CONTEXT:
            current = header
        else:
            current = None


def _normalize_context(
    text: str,
    header: HeaderMatch,
    match_keys: set[tuple[str, int]],
) -> tuple[str, HeaderMatch]:
    """Rewrite a context header into canonical form.

    A context line that is also reported as a match elsewhere (overlapping
    context windows merged by the search tool) is promoted to a match line.
    Non-canonical separators are rewritten to ``-``.
    """
    body = text[header.header_length:]
    if (header.path, header.line_number) in match_keys:
        kind = LineKind.MATCH
    elif header.separator != CONTEXT_SEPARATOR:
        kind = LineKind.CONTEXT
    else:
        return text, header

    new_header = format_header(header.path, header.line_number, kind)
    logger.debug(
        "[GrepEdit] Normalized context header %r -> %r",
        text[:header.header_length], new_header,
    )
    sep = MATCH_SEPARATOR if kind is LineKind.MATCH else CONTEXT_SEPARATOR
    return new_header + body, HeaderMatch(
        path=header.path,
        line_number=header.line_number,
        header_length=len(new_header),
        kind=kind,
        separator=sep,
    )
