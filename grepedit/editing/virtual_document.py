"""
Virtual document — the editable representation of search-result text.

Holds the ordered result lines, their permission flags (protected
headers, locked lines) and a cursor, and notifies subscribers about
every content mutation.
"""

from __future__ import annotations

import itertools
import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterator

from .errors import ReadOnlyRegionError
from .grammar import LineKind, ResultGrammar, parse_results

logger = logging.getLogger(__name__)

_uid_counter = itertools.count(1)


@dataclass(eq=False)
class ResultLine:
    """One line of the virtual document."""
    text: str
    kind: LineKind = LineKind.OTHER
    path: str | None = None
    target_file: str | None = None
    line_number: int | None = None
    header: str = ""
    origin_header: str = ""
    readonly_until: int = 0
    deleted: bool = False
    ending: str = "\n"
    uid: int = field(default_factory=lambda: next(_uid_counter))

    @property
    def trackable(self) -> bool:
        return self.kind in (LineKind.MATCH, LineKind.CONTEXT) and self.line_number is not None

    @property
    def header_length(self) -> int:
        return len(self.header)

    @property
    def header_intact(self) -> bool:
        return self.text.startswith(self.header)

    @property
    def body(self) -> str:
        if self.header_intact:
            return self.text[len(self.header):]
        return self.text


class ChangeKind(Enum):
    EDIT = "edit"
    REMOVE = "remove"
    RESET = "reset"


@dataclass(frozen=True)
class DocumentChange:
    """A content mutation of the virtual document."""
    kind: ChangeKind
    line: ResultLine | None = None
    index: int = -1
    start: int = 0
    end: int = 0


ChangeListener = Callable[[DocumentChange], None]


class VirtualDocument:
    """Editable, line-addressed view over search output."""

    def __init__(
        self,
        lines: list[ResultLine] | None = None,
        protect_headers: bool = True,
    ) -> None:
        self._lines: list[ResultLine] = list(lines or [])
        self.readonly = False
        self.headers_protected = protect_headers
        self.cursor: tuple[int, int] = (0, 0)
        self.snapshot = None  # linked by ShadowSnapshot.take()
        self._listeners: list[ChangeListener] = []
        self._apply_protection()

    @classmethod
    def from_text(
        cls,
        text: str,
        grammar: ResultGrammar | None = None,
        base_dir: str = ".",
        protect_headers: bool = True,
    ) -> "VirtualDocument":
        """Build a virtual document from raw search output."""
        lines = build_lines(text, grammar, base_dir)
        doc = cls(lines, protect_headers=protect_headers)
        logger.debug(
            "[GrepEdit] Virtual document: %d line(s), %d trackable",
            len(lines), sum(1 for l in lines if l.trackable),
        )
        return doc

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._lines)

    def __getitem__(self, index: int) -> ResultLine:
        return self._lines[index]

    def __iter__(self) -> Iterator[ResultLine]:
        return iter(self._lines)

    @property
    def lines(self) -> list[ResultLine]:
        return list(self._lines)

    def index_of(self, line: ResultLine) -> int:
        """Return the current index of *line*, or -1 if it is no longer present."""
        for i, candidate in enumerate(self._lines):
            if candidate is line:
                return i
        return -1

    def text(self) -> str:
        return "".join(l.text + l.ending for l in self._lines)

    def cursor_offset(self) -> int:
        """Character offset of the cursor from the start of the document."""
        row, col = self.cursor
        offset = sum(len(l.text) + len(l.ending) for l in self._lines[:row])
        if row < len(self._lines):
            offset += min(col, len(self._lines[row].text))
        return offset

    def move_cursor_to_offset(self, offset: int) -> None:
        remaining = max(offset, 0)
        for row, line in enumerate(self._lines):
            if remaining <= len(line.text):
                self.cursor = (row, remaining)
                return
            remaining -= len(line.text) + len(line.ending)
        if self._lines:
            last = len(self._lines) - 1
            self.cursor = (last, len(self._lines[last].text))
        else:
            self.cursor = (0, 0)

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def subscribe(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: ChangeListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, change: DocumentChange) -> None:
        for listener in list(self._listeners):
            listener(change)

    # ------------------------------------------------------------------
    # Permissions
    # ------------------------------------------------------------------

    def set_headers_protected(self, protected: bool) -> None:
        self.headers_protected = protected
        self._apply_protection()

    def _apply_protection(self) -> None:
        for line in self._lines:
            line.readonly_until = line.header_length if (
                self.headers_protected and line.trackable) else 0

    def is_locked(self, line: ResultLine) -> bool:
        """Whole-line read-only check."""
        if self.readonly or line.deleted:
            return True
        return self.headers_protected and not line.trackable

    def _check_writable(self, line: ResultLine, start: int) -> None:
        if self.readonly:
            raise ReadOnlyRegionError("The virtual document is read-only")
        if self.is_locked(line):
            raise ReadOnlyRegionError(
                "This line cannot be edited", {"text": line.text}
            )
        if start < line.readonly_until:
            raise ReadOnlyRegionError(
                "The result header is protected",
                {"header": line.header, "column": start},
            )

    # ------------------------------------------------------------------
    # Host mutations (permission-checked, notify listeners)
    # ------------------------------------------------------------------

    def edit(self, index: int, start: int, end: int, text: str) -> None:
        """Replace columns ``[start, end)`` of line *index* with *text*."""
        if "\n" in text or "\r" in text:
            raise ValueError("A result line cannot be split into several lines")
        line = self._lines[index]
        if not 0 <= start <= end <= len(line.text):
            raise IndexError(f"Column range {start}..{end} outside line {index}")
        self._check_writable(line, start)
        line.text = line.text[:start] + text + line.text[end:]
        self._notify(DocumentChange(ChangeKind.EDIT, line, index, start, start + len(text)))

    def insert_text(self, index: int, column: int, text: str) -> None:
        self.edit(index, column, column, text)

    def set_body(self, index: int, body: str) -> None:
        """Replace everything after the header of line *index*."""
        line = self._lines[index]
        start = line.header_length if line.header_intact else 0
        self.edit(index, start, len(line.text), body)

    def remove_line(self, index: int) -> ResultLine:
        """Remove a whole line, header included.

        Only possible while headers are unprotected.
        """
        line = self._lines[index]
        self._check_writable(line, 0)
        if self.headers_protected and line.trackable:
            raise ReadOnlyRegionError(
                "Unprotect headers before removing whole lines",
                {"header": line.header},
            )
        del self._lines[index]
        self._fix_cursor_after_removal(index)
        self._notify(DocumentChange(ChangeKind.REMOVE, line, index))
        return line

    # ------------------------------------------------------------------
    # Engine mutations (no permission checks, no tracking notifications)
    # ------------------------------------------------------------------

    def set_line_text(self, line: ResultLine, text: str) -> None:
        line.text = text

    def rewrite_header(self, line: ResultLine, header: str, line_number: int) -> None:
        """Swap the header of *line*, keeping its body and editable boundary."""
        body = line.body
        line.header = header
        line.line_number = line_number
        line.text = header + body
        line.readonly_until = len(header) if (
            self.headers_protected and line.trackable) else 0

    def drop_line(self, line: ResultLine) -> None:
        index = self.index_of(line)
        if index < 0:
            return
        del self._lines[index]
        self._fix_cursor_after_removal(index)

    def replace_lines(self, lines: list[ResultLine]) -> None:
        """Replace the whole content (used by restore)."""
        self._lines = list(lines)
        self._apply_protection()
        self._notify(DocumentChange(ChangeKind.RESET))

    def _fix_cursor_after_removal(self, index: int) -> None:
        row, col = self.cursor
        if row > index:
            self.cursor = (row - 1, col)
        elif row == index:
            self.cursor = (min(row, max(len(self._lines) - 1, 0)), 0)


def build_lines(
    text: str,
    grammar: ResultGrammar | None = None,
    base_dir: str = ".",
) -> list[ResultLine]:
    """Parse search output into :class:`ResultLine` objects."""
    lines: list[ResultLine] = []
    for parsed in parse_results(text, grammar):
        header = parsed.header
        if header is None:
            lines.append(ResultLine(text=parsed.text, kind=parsed.kind,
                                    ending=parsed.ending))
            continue
        header_text = parsed.text[:header.header_length]
        lines.append(ResultLine(
            text=parsed.text,
            kind=parsed.kind,
            ending=parsed.ending,
            path=header.path,
            target_file=resolve_path(header.path, base_dir),
            line_number=header.line_number,
            header=header_text,
            origin_header=header_text,
        ))
    return lines


def resolve_path(path: str, base_dir: str = ".") -> str:
    """Resolve a result path against the search's base directory."""
    return os.path.normpath(os.path.join(os.path.abspath(base_dir), path))
