"""
Source documents — the live, line-addressed documents that result lines
point at — and the locator that opens them.

Line numbers are 1-based. Documents keep *line markers*: positions that
follow the document's own deletions, so that a batch of edits can be
resolved once, up front, and then applied without line-number drift.
"""

from __future__ import annotations

import codecs
import logging
import os
import shutil
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable

from .errors import StaleContent, TargetNotFound, TargetNotWritable
from .grammar import join_lines, split_lines

logger = logging.getLogger(__name__)

BOM = "\ufeff"

_UTF8_NAMES = {"utf-8", "utf8", "utf_8", "utf-8-sig", "utf_8_sig"}
_UTF16_BOMS = (codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)


@dataclass(eq=False)
class LineMarker:
    """A line position that survives deletions elsewhere in the document."""
    line: int
    deleted: bool = False


class SourceDocument(ABC):
    """A document that edits are committed into."""

    def __init__(self, path: str, writable: bool = True) -> None:
        self.path = path
        self.writable = writable
        self.modified = False
        self._markers: list[LineMarker] = []
        self._change_markers: list[LineMarker] = []

    # ------------------------------------------------------------------
    # Storage primitives
    # ------------------------------------------------------------------

    @abstractmethod
    def line_count(self) -> int:
        """Number of lines in the document."""

    @abstractmethod
    def line_text(self, number: int) -> str:
        """Text of line *number*, without its terminator."""

    @abstractmethod
    def _replace_line(self, number: int, text: str) -> None:
        """Overwrite the content of line *number*."""

    @abstractmethod
    def _delete_line(self, number: int) -> None:
        """Remove line *number* together with its terminator."""

    @abstractmethod
    def encoding_has_bom(self) -> bool:
        """True if the document is stored with a byte-order mark."""

    def save(self) -> None:
        """Persist the document. In-memory documents only clear their marks."""
        self.on_saved()

    def changed_on_disk(self) -> bool:
        """True if the stored copy no longer matches what was loaded."""
        return False

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def replace_line(self, number: int, text: str) -> None:
        self._check_line(number)
        self._replace_line(number, text)
        self.modified = True

    def delete_line(self, number: int) -> None:
        self._check_line(number)
        self._delete_line(number)
        self.modified = True
        for marker in self._markers + self._change_markers:
            if marker.deleted:
                continue
            if marker.line == number:
                marker.deleted = True
            elif marker.line > number:
                marker.line -= 1

    def _check_line(self, number: int) -> None:
        if not 1 <= number <= self.line_count():
            raise IndexError(f"{self.path}: no line {number}")

    # ------------------------------------------------------------------
    # Markers
    # ------------------------------------------------------------------

    def create_marker(self, number: int) -> LineMarker:
        marker = LineMarker(number, deleted=not 1 <= number <= self.line_count())
        self._markers.append(marker)
        return marker

    def release_marker(self, marker: LineMarker) -> None:
        if marker in self._markers:
            self._markers.remove(marker)

    def mark_changed(self, number: int) -> None:
        """Flag line *number* as changed until the document is saved."""
        for marker in self._change_markers:
            if not marker.deleted and marker.line == number:
                return
        self._change_markers.append(LineMarker(number))

    @property
    def change_markers(self) -> list[int]:
        return sorted(m.line for m in self._change_markers if not m.deleted)

    def clear_change_markers(self) -> None:
        self._change_markers.clear()

    def on_saved(self) -> None:
        self.clear_change_markers()
        self.modified = False


class TextSourceDocument(SourceDocument):
    """An in-memory source document."""

    def __init__(
        self,
        path: str,
        text: str = "",
        writable: bool = True,
        has_bom: bool = False,
    ) -> None:
        super().__init__(path, writable)
        self._lines, self._endings = split_lines(text)
        self._has_bom = has_bom

    def line_count(self) -> int:
        return len(self._lines)

    def line_text(self, number: int) -> str:
        self._check_line(number)
        return self._lines[number - 1]

    def _replace_line(self, number: int, text: str) -> None:
        self._lines[number - 1] = text

    def _delete_line(self, number: int) -> None:
        del self._lines[number - 1]
        ending = self._endings.pop(number - 1)
        # Removing an unterminated last line also removes the break before it
        if not ending and self._endings:
            self._endings[-1] = ""

    def encoding_has_bom(self) -> bool:
        return self._has_bom

    def text(self) -> str:
        return join_lines(self._lines, self._endings)


class FileSourceDocument(TextSourceDocument):
    """A source document loaded from, and saved back to, a file."""

    def __init__(
        self,
        path: str,
        text: str,
        encoding: str = "utf-8",
        writable: bool = True,
        has_bom: bool = False,
        disk_stat: tuple[int, int, int] | None = None,
    ) -> None:
        super().__init__(path, text, writable=writable, has_bom=has_bom)
        self.encoding = encoding
        # (inode, mtime_ns, size) of the file as loaded or last saved
        self.disk_stat = disk_stat

    @classmethod
    def load(cls, path: str, encoding: str = "utf-8") -> "FileSourceDocument":
        """Read *path*, detecting a byte-order mark.

        Undecodable bytes are kept via ``surrogateescape`` so that saving
        does not corrupt lines nobody edited.
        """
        with open(path, "rb") as f:
            disk_stat = _stat_key(os.fstat(f.fileno()))
            raw = f.read()

        has_bom = False
        if encoding.lower() in _UTF8_NAMES and raw.startswith(codecs.BOM_UTF8):
            has_bom = True
            encoding = "utf-8"
            raw = raw[len(codecs.BOM_UTF8):]
        elif raw.startswith(_UTF16_BOMS):
            has_bom = True
            encoding = "utf-16"
        elif encoding.lower() in ("utf-8-sig", "utf_8_sig"):
            encoding = "utf-8"

        text = raw.decode(encoding, errors="surrogateescape")
        if encoding == "utf-16" and text.startswith(BOM):
            text = text[1:]
        writable = os.access(path, os.W_OK)
        return cls(path, text, encoding=encoding, writable=writable,
                   has_bom=has_bom, disk_stat=disk_stat)

    def changed_on_disk(self) -> bool:
        if self.disk_stat is None:
            return False
        return _current_stat(self.path) != self.disk_stat

    def save(self) -> None:
        """Write the document atomically via temp file + replace.

        Raises
        ------
        StaleContent
            If the file was changed on disk since it was loaded; writing
            would discard those changes.
        """
        if self.changed_on_disk():
            raise StaleContent(
                f"{self.path} was changed on disk since it was loaded",
                {"path": self.path},
            )
        data = self.text().encode(self.encoding, errors="surrogateescape")
        # The utf-16 codec writes its own BOM
        if self._has_bom and self.encoding == "utf-8":
            data = codecs.BOM_UTF8 + data

        abs_path = os.path.abspath(self.path)
        tmp_path = abs_path + ".grepedit_tmp"
        try:
            with open(tmp_path, "wb") as f:
                f.write(data)
            if os.path.exists(abs_path):
                shutil.copymode(abs_path, tmp_path)
            os.replace(tmp_path, abs_path)
        except Exception:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
        self.disk_stat = _current_stat(abs_path)
        logger.info("[GrepEdit] Saved %s", self.path)
        self.on_saved()


def _stat_key(st: os.stat_result) -> tuple[int, int, int]:
    # Atomic saves replace the inode, so same-size writes within one
    # mtime tick are still told apart
    return st.st_ino, st.st_mtime_ns, st.st_size


def _current_stat(path: str) -> tuple[int, int, int] | None:
    try:
        return _stat_key(os.stat(path))
    except OSError:
        return None


DocumentResolver = Callable[[str], "SourceDocument | None"]


def _document_key(path: str) -> str:
    return os.path.realpath(os.path.abspath(path))


class SourceLocator:
    """Resolve target paths to live source documents.

    Documents already known to the locator (registered by the host or
    opened earlier) are reused; others are opened from storage, either by
    the host's *resolver* or from disk.
    """

    def __init__(
        self,
        allow_readonly: bool = False,
        encoding: str = "utf-8",
        resolver: DocumentResolver | None = None,
    ) -> None:
        self.allow_readonly = allow_readonly
        self.encoding = encoding
        self._resolver = resolver
        self._documents: dict[str, SourceDocument] = {}
        self._opened: set[str] = set()

    @property
    def documents(self) -> list[SourceDocument]:
        return list(self._documents.values())

    def register(self, document: SourceDocument) -> None:
        """Make an already open document known to the locator."""
        self._documents[_document_key(document.path)] = document

    def resolve(self, path: str) -> SourceDocument:
        """Return the live document for *path*.

        Raises
        ------
        TargetNotFound
            If the document does not exist.
        TargetNotWritable
            If it cannot be written and read-only targets are not allowed.
        StaleContent
            If the file changed on disk while the cached document holds
            unsaved changes.
        """
        key = _document_key(path)
        document = self._documents.get(key)
        if document is None:
            document = self._open(path)
            self._documents[key] = document
            self._opened.add(key)
        elif document.changed_on_disk():
            if document.modified:
                raise StaleContent(
                    f"{path} was changed on disk and has unsaved changes",
                    {"path": path},
                )
            logger.info("[GrepEdit] %s changed on disk, reloading", path)
            document = self._open(path)
            self._documents[key] = document

        if not document.writable and not self.allow_readonly:
            raise TargetNotWritable(
                f"File is not writable: {path}", {"path": path}
            )
        return document

    def _open(self, path: str) -> SourceDocument:
        if self._resolver is not None:
            document = self._resolver(path)
            if document is None:
                raise TargetNotFound(f"File no longer exists: {path}", {"path": path})
            return document

        if not os.path.isfile(path):
            raise TargetNotFound(f"File no longer exists: {path}", {"path": path})
        try:
            document = FileSourceDocument.load(path, self.encoding)
        except OSError as exc:
            raise TargetNotFound(
                f"Cannot open {path}: {exc}", {"path": path}
            ) from exc
        logger.debug("[GrepEdit] Opened %s", path)
        return document

    def opened_here(self, document: SourceDocument) -> bool:
        """True if the locator opened *document* itself (not the host)."""
        return _document_key(document.path) in self._opened

    def close(self, document: SourceDocument) -> None:
        key = _document_key(document.path)
        self._documents.pop(key, None)
        self._opened.discard(key)
