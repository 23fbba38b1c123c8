"""
Editing session — owns the virtual document, its shadow snapshot and
the edit records, and drives commits.

State machine::

    EDITING --commit--> COMMITTING --> EDITING (clean | partially applied)
    EDITING --abort / exit--> CLOSED
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from .committer import Committer
from .errors import CommitOutcome, RestoreUnavailable, SessionClosedError, StaleContent
from .history import log_commit
from .renumber import renumber_after_delete
from .snapshot import ShadowSnapshot
from .source_document import SourceDocument, SourceLocator
from .tracker import EditRecord, EditStatus, EditTracker
from .transaction import TransactionBuilder
from .virtual_document import VirtualDocument

logger = logging.getLogger(__name__)


class SessionState(Enum):
    EDITING = "editing"
    COMMITTING = "committing"
    CLOSED = "closed"


@dataclass(frozen=True)
class StatusChange:
    """Per-line status notification for the presentation layer."""
    uid: int
    index: int
    status: EditStatus
    reason: str = ""


@dataclass
class CommitSummary:
    """Counts of applied vs. unapplied changes after a commit."""
    applied: int = 0
    unapplied: int = 0
    rejected: list[EditRecord] = field(default_factory=list)
    files: list[str] = field(default_factory=list)

    @property
    def clean(self) -> bool:
        return self.unapplied == 0


StatusListener = Callable[[StatusChange], None]


class Session:
    """One editing session over one virtual document."""

    def __init__(
        self,
        document: VirtualDocument,
        locator: SourceLocator | None = None,
        auto_save: bool = False,
        too_many_files: int = 200,
        history_root: str | None = None,
    ) -> None:
        self.document = document
        self.locator = locator or SourceLocator()
        self.snapshot = ShadowSnapshot.take(document)
        self.tracker = EditTracker(document, self.snapshot)
        self.state = SessionState.EDITING
        self._builder = TransactionBuilder(self.locator)
        self._committer = Committer()
        self._auto_save = auto_save
        self._too_many_files = too_many_files
        self._history_root = history_root
        self._listeners: list[StatusListener] = []

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self.state is SessionState.CLOSED

    @property
    def is_clean(self) -> bool:
        return len(self.tracker) == 0

    def pending(self) -> list[EditRecord]:
        return self.tracker.all_pending()

    def subscribe(self, listener: StatusListener) -> None:
        self._listeners.append(listener)

    def _emit(self, record: EditRecord) -> None:
        change = StatusChange(
            uid=record.line.uid,
            index=self.document.index_of(record.line),
            status=record.status,
            reason=record.reason,
        )
        for listener in list(self._listeners):
            listener(change)

    def _require_open(self) -> None:
        if self.state is SessionState.CLOSED:
            raise SessionClosedError("No open editing session")

    # ------------------------------------------------------------------
    # Editing operations
    # ------------------------------------------------------------------

    def mark_deleted(self, index: int) -> EditRecord | None:
        """Schedule line *index* for deletion at the next commit."""
        self._require_open()
        record = self.tracker.mark_deleted(self.document[index])
        if record is not None:
            self._emit(record)
        return record

    def discard_range(self, start: int, end: int) -> int:
        """Forget the changes of lines ``[start, end)``; files are not touched."""
        self._require_open()
        cleared = self.tracker.clear_all(start, end)
        logger.info("[GrepEdit] Discarded %d change(s)", cleared)
        return cleared

    def toggle_protected_region(self) -> bool:
        """Flip header protection; returns True if headers are now protected."""
        self._require_open()
        protected = not self.document.headers_protected
        self.document.set_headers_protected(protected)
        return protected

    def discard_all(self) -> None:
        """Drop every change and restore the document from the snapshot.

        Raises
        ------
        RestoreUnavailable
            If the snapshot is gone. The changes are dropped anyway and the
            session stays usable.
        """
        self._require_open()
        self.tracker.discard_all()
        try:
            self.snapshot.restore()
        except RestoreUnavailable as exc:
            logger.warning("[GrepEdit] %s", exc.message)
            raise

    # ------------------------------------------------------------------
    # Commits
    # ------------------------------------------------------------------

    def commit_all(self) -> CommitSummary:
        """Apply every pending change; rejected ones stay pending."""
        self._require_open()
        self.state = SessionState.COMMITTING
        summary = CommitSummary()
        touched: list[SourceDocument] = []
        try:
            result = self._builder.build(self.tracker.all_pending())
            for record, _ in result.failures:
                self._emit(record)

            for document, transaction in result.transactions.items():
                outcomes = self._committer.commit_transaction(transaction)
                if any(outcome.done for _, outcome in outcomes):
                    touched.append(document)
                for record, outcome in outcomes:
                    if outcome.done:
                        self._settle_done(record, immediate=False)
                        summary.applied += 1
                    self._emit(record)
        finally:
            self.state = SessionState.EDITING

        pending = self.tracker.all_pending()
        summary.unapplied = len(pending)
        summary.rejected = [r for r in pending if r.status is EditStatus.REJECTED]
        summary.files = [d.path for d in touched]
        logger.info(
            "[GrepEdit] Commit: %d applied, %d unapplied",
            summary.applied, summary.unapplied,
        )
        self._after_commit(touched)
        self._record_history(summary)
        return summary

    def commit_one(self, index: int) -> CommitOutcome | None:
        """Immediately commit the change of line *index*, if it has one."""
        self._require_open()
        record = self.tracker.record_for(self.document[index])
        if record is None:
            return None
        return self._commit_immediately(record)

    def delete_line(self, index: int) -> CommitOutcome:
        """Immediately delete the source line behind result line *index*."""
        self._require_open()
        line = self.document[index]
        record = self.tracker.mark_deleted(line)
        if record is None:
            raise ValueError(f"Line {index} is not a result line that can be deleted")
        return self._commit_immediately(record)

    def _commit_immediately(self, record: EditRecord) -> CommitOutcome:
        self.state = SessionState.COMMITTING
        try:
            result = self._builder.build([record])
            if result.failures:
                _, exc = result.failures[0]
                self._emit(record)
                return CommitOutcome.from_error(exc)

            transaction = next(iter(result.transactions.values()))
            _, outcome = self._committer.commit_transaction(transaction)[0]
            if outcome.done:
                self._settle_done(record, immediate=True)
            self._emit(record)
        finally:
            self.state = SessionState.EDITING

        if outcome.done:
            self._after_commit([transaction.document])
        return outcome

    def _settle_done(self, record: EditRecord, immediate: bool) -> None:
        line = record.line
        self.tracker.forget(line)
        if not record.is_delete:
            self.snapshot.rebase(line.origin_header, record.new_text)
            return

        if immediate:
            self.document.drop_line(line)
            renumber_after_delete(
                self.document, self.tracker, record.target_file, record.target_line,
            )
        else:
            # Batch deletions leave later headers as they are
            line.deleted = True

    def _after_commit(self, documents: list[SourceDocument]) -> None:
        if not self._auto_save or not documents:
            return
        for document in documents:
            try:
                document.save()
            except (OSError, StaleContent) as exc:
                logger.warning("[GrepEdit] Could not save %s: %s", document.path, exc)
        if len(documents) > self._too_many_files:
            for document in documents:
                if self.locator.opened_here(document) and not document.modified:
                    self.locator.close(document)

    def _record_history(self, summary: CommitSummary) -> None:
        if self._history_root is None:
            return
        reasons = Counter(r.reason for r in summary.rejected)
        log_commit(
            {
                "applied": summary.applied,
                "unapplied": summary.unapplied,
                "files": summary.files,
                "rejections": dict(reasons),
            },
            project_root=self._history_root,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def abort(self) -> None:
        """Discard everything, restore the document and close the session."""
        self._require_open()
        try:
            self.discard_all()
        finally:
            self.close()

    def exit(self, save: bool = True) -> CommitSummary | None:
        """Leave the session, committing first when *save* is true."""
        self._require_open()
        if not save:
            self.abort()
            return None
        summary = self.commit_all()
        self.close()
        return summary

    def close(self) -> None:
        if self.state is SessionState.CLOSED:
            return
        self.state = SessionState.CLOSED
        self.tracker.discard_all()
        self.tracker.detach()
        self.snapshot.discard()
        self.document.readonly = True
        logger.debug("[GrepEdit] Session closed")

    def on_document_saved(self, document: SourceDocument) -> None:
        """Host hook: *document* was saved, its change marks can go."""
        document.on_saved()

    def on_session_closed(self) -> None:
        """Host hook: the editing context went away."""
        self.close()
