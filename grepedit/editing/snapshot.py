"""
Shadow snapshot — immutable copy of the virtual document taken at
session entry, used to recover original line text and to restore the
document on abort.
"""

from __future__ import annotations

import dataclasses
import logging

from .errors import RestoreUnavailable
from .virtual_document import ResultLine, VirtualDocument

logger = logging.getLogger(__name__)


class ShadowSnapshot:
    """Read-only copy of a virtual document's initial state."""

    def __init__(self, document: VirtualDocument) -> None:
        self._document: VirtualDocument | None = document
        self._text = document.text()
        self._lines = [dataclasses.replace(line) for line in document]
        self._index: dict[str, str] = {}
        for line in self._lines:
            if line.trackable and line.origin_header not in self._index:
                self._index[line.origin_header] = line.body
        # Texts committed during the session, keyed by origin header
        self._baselines: dict[str, str] = {}

    @classmethod
    def take(cls, document: VirtualDocument) -> "ShadowSnapshot":
        """Capture *document* and link it to the new snapshot."""
        snapshot = cls(document)
        document.snapshot = snapshot
        logger.debug("[GrepEdit] Snapshot taken (%d chars)", len(snapshot._text))
        return snapshot

    @property
    def text(self) -> str:
        return self._text

    def is_alive(self) -> bool:
        return self._document is not None and self._document.snapshot is self

    def old_text_for(self, header: str) -> str | None:
        """Return the original text after *header*, or None if unknown."""
        if header in self._baselines:
            return self._baselines[header]
        return self._index.get(header)

    def rebase(self, header: str, text: str) -> None:
        """Record *text* as the new original for *header* after a commit."""
        self._baselines[header] = text

    def restore(self) -> None:
        """Put the snapshot's content back into the linked document.

        The cursor stays on the same header when that header still exists,
        otherwise at the same character offset.

        Raises
        ------
        RestoreUnavailable
            If the snapshot was discarded or unlinked from its document.
        """
        if not self.is_alive():
            raise RestoreUnavailable(
                "Original search output is no longer available; "
                "the document cannot be fully restored"
            )
        document = self._document
        row, col = document.cursor
        cursor_header = None
        if row < len(document):
            current = document[row]
            if current.trackable:
                cursor_header = current.header
        offset = document.cursor_offset()

        document.replace_lines([dataclasses.replace(line) for line in self._lines])

        if cursor_header is not None:
            for i, line in enumerate(document):
                if line.header == cursor_header:
                    document.cursor = (i, min(col, len(line.text)))
                    break
            else:
                document.move_cursor_to_offset(offset)
        else:
            document.move_cursor_to_offset(offset)
        logger.info("[GrepEdit] Restored virtual document from snapshot")

    def discard(self) -> None:
        """Unlink the snapshot; later restores will fail."""
        if self._document is not None and self._document.snapshot is self:
            self._document.snapshot = None
        self._document = None


def origin_text(snapshot: ShadowSnapshot | None, line: ResultLine) -> str | None:
    """Original text of *line*, looked up by the header it had at session start."""
    if snapshot is None:
        return None
    return snapshot.old_text_for(line.origin_header)
