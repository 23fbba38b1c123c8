"""
Edit tracker — turns virtual-document mutations into edit records.

Every change notification is mapped to its result line; the line's
current body is compared with the snapshot's original text. A record
exists exactly while the two differ (or while the line is marked for
deletion).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from .errors import ErrorKind
from .snapshot import ShadowSnapshot, origin_text
from .virtual_document import ChangeKind, DocumentChange, ResultLine, VirtualDocument

logger = logging.getLogger(__name__)


class _Delete:
    """Sentinel for a whole-line deletion."""

    _instance: "_Delete | None" = None

    def __new__(cls) -> "_Delete":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "DELETE"


DELETE = _Delete()


class EditStatus(Enum):
    PENDING = "pending"
    DONE = "done"
    REJECTED = "rejected"


@dataclass(eq=False)
class EditRecord:
    """A pending change of one result line."""
    line: ResultLine
    target_file: str
    target_line: int
    old_text: str
    new_text: str | _Delete
    status: EditStatus = EditStatus.PENDING
    reason: str = ""
    error_kind: ErrorKind | None = None
    # Position the line had when it was removed from the document
    removed_at: int = -1

    @property
    def is_delete(self) -> bool:
        return self.new_text is DELETE

    def reject(self, reason: str, kind: ErrorKind | None = None) -> None:
        self.status = EditStatus.REJECTED
        self.reason = reason
        self.error_kind = kind

    def mark_done(self) -> None:
        self.status = EditStatus.DONE
        self.reason = ""
        self.error_kind = None

    def reset(self) -> None:
        self.status = EditStatus.PENDING
        self.reason = ""
        self.error_kind = None


class EditTracker:
    """Index of edit records keyed by result-line identity."""

    def __init__(self, document: VirtualDocument, snapshot: ShadowSnapshot) -> None:
        self._document = document
        self._snapshot = snapshot
        self._records: dict[int, EditRecord] = {}
        document.subscribe(self.on_change)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, line: ResultLine) -> bool:
        return line.uid in self._records

    # ------------------------------------------------------------------
    # Change notifications
    # ------------------------------------------------------------------

    def on_change(self, change: DocumentChange) -> None:
        line = change.line
        if change.kind is ChangeKind.RESET or line is None or not line.trackable:
            return

        if change.kind is ChangeKind.REMOVE:
            record = self._record_delete(line)
            if record is not None:
                record.removed_at = change.index
            return

        if not line.header_intact:
            # Header edited away while unprotected: the whole line goes
            self._record_delete(line)
            return

        self._record_text(line, line.body)

    def _original(self, line: ResultLine) -> str | None:
        record = self._records.get(line.uid)
        if record is not None:
            return record.old_text
        return origin_text(self._snapshot, line)

    def _record_text(self, line: ResultLine, new_text: str) -> EditRecord | None:
        old_text = self._original(line)
        if old_text is None:
            logger.debug("[GrepEdit] No original text for %r, ignoring", line.header)
            return None

        record = self._records.get(line.uid)
        if new_text == old_text:
            if record is not None:
                del self._records[line.uid]
                logger.debug("[GrepEdit] Edit of %s reverted", line.header)
            return None

        if record is None:
            record = EditRecord(
                line=line,
                target_file=line.target_file,
                target_line=line.line_number,
                old_text=old_text,
                new_text=new_text,
            )
            self._records[line.uid] = record
            logger.debug("[GrepEdit] Tracking edit of %s", line.header)
        else:
            record.new_text = new_text
            record.reset()
        return record

    def _record_delete(self, line: ResultLine) -> EditRecord | None:
        old_text = self._original(line)
        if old_text is None:
            return None
        record = self._records.get(line.uid)
        if record is None:
            record = EditRecord(
                line=line,
                target_file=line.target_file,
                target_line=line.line_number,
                old_text=old_text,
                new_text=DELETE,
            )
            self._records[line.uid] = record
        else:
            record.new_text = DELETE
            record.reset()
        logger.debug("[GrepEdit] Tracking deletion of %s", line.header)
        return record

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def mark_deleted(self, line: ResultLine) -> EditRecord | None:
        """Record *line* for deletion without touching its text."""
        if not line.trackable or line.deleted:
            return None
        return self._record_delete(line)

    def record_for(self, line: ResultLine) -> EditRecord | None:
        return self._records.get(line.uid)

    def all_pending(self) -> list[EditRecord]:
        """Records not yet applied, in virtual-document order."""
        position = {line.uid: i for i, line in enumerate(self._document)}

        def order(record: EditRecord) -> float:
            if record.line.uid in position:
                return position[record.line.uid]
            return record.removed_at - 0.5

        pending = [r for r in self._records.values() if r.status is not EditStatus.DONE]
        return sorted(pending, key=order)

    def revert_edit(self, record: EditRecord) -> None:
        """Drop *record* and put the line's original text back."""
        line = record.line
        self._records.pop(line.uid, None)
        if self._document.index_of(line) < 0:
            return
        self._document.set_line_text(line, line.header + record.old_text)
        logger.debug("[GrepEdit] Reverted %s", line.header)

    def clear_all(self, start: int, end: int) -> int:
        """Revert every record whose line index is in ``[start, end)``.

        Source documents are not touched. Returns the number of records removed.
        """
        cleared = 0
        for index in range(max(start, 0), min(end, len(self._document))):
            record = self._records.get(self._document[index].uid)
            if record is not None:
                self.revert_edit(record)
                cleared += 1
        return cleared

    def forget(self, line: ResultLine) -> None:
        self._records.pop(line.uid, None)

    def retarget(self, line: ResultLine) -> None:
        """Follow a header rewrite of *line*."""
        record = self._records.get(line.uid)
        if record is not None:
            record.target_line = line.line_number

    def detached_records(self) -> list[EditRecord]:
        """Records of lines that were removed from the virtual document."""
        present = {line.uid for line in self._document}
        return [r for r in self._records.values() if r.line.uid not in present]

    def discard_all(self) -> None:
        self._records.clear()

    def detach(self) -> None:
        self._document.unsubscribe(self.on_change)
