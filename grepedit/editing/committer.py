"""
Committer — applies one positioned edit to its document under an
optimistic concurrency check.
"""

from __future__ import annotations

import logging

from .errors import CommitOutcome, ErrorKind, GrepEditError
from .source_document import BOM, SourceDocument
from .tracker import DELETE, EditRecord
from .transaction import PositionedEdit, Transaction

logger = logging.getLogger(__name__)

STALE_REASON = "Document was changed after search"
DELETED_REASON = "Line was deleted after search"


def _strip_bom(text: str) -> str:
    return text[len(BOM):] if text.startswith(BOM) else text


class Committer:
    """Apply edits one at a time, never mutating on failure."""

    def commit(self, document: SourceDocument, edit: PositionedEdit) -> CommitOutcome:
        """Apply *edit* to *document*.

        The line at the marker must still hold exactly the record's old
        text; otherwise the edit is rejected as stale and the document is
        left alone.
        """
        record = edit.record
        marker = edit.marker
        try:
            if marker.deleted or not 1 <= marker.line <= document.line_count():
                return CommitOutcome.rejected(DELETED_REASON, ErrorKind.STALE_CONTENT)

            current = document.line_text(marker.line)
            old_text = record.old_text
            new_text = record.new_text
            if marker.line == 1 and document.encoding_has_bom():
                current = _strip_bom(current)
                old_text = _strip_bom(old_text)
                if new_text is not DELETE:
                    new_text = _strip_bom(new_text)

            if current != old_text:
                return CommitOutcome.rejected(STALE_REASON, ErrorKind.STALE_CONTENT)

            if new_text is DELETE:
                document.delete_line(marker.line)
                if document.line_count():
                    document.mark_changed(min(marker.line, document.line_count()))
            else:
                document.replace_line(marker.line, new_text)
                document.mark_changed(marker.line)
        except GrepEditError as exc:
            return CommitOutcome.from_error(exc)
        except IndexError:
            return CommitOutcome.rejected(DELETED_REASON, ErrorKind.STALE_CONTENT)
        return CommitOutcome.applied()

    def commit_transaction(
        self,
        transaction: Transaction,
    ) -> list[tuple[EditRecord, CommitOutcome]]:
        """Apply every edit of *transaction* in order.

        A rejected edit does not stop the remaining ones.
        """
        document = transaction.document
        outcomes: list[tuple[EditRecord, CommitOutcome]] = []
        for edit in transaction.edits:
            record = edit.record
            outcome = self.commit(document, edit)
            document.release_marker(edit.marker)
            if outcome.done:
                record.mark_done()
                logger.info(
                    "[GrepEdit] %s %s:%d",
                    "Deleted" if record.is_delete else "Updated",
                    document.path, record.target_line,
                )
            else:
                record.reject(outcome.reason, outcome.kind)
                logger.warning(
                    "[GrepEdit] Rejected change to %s:%d: %s",
                    document.path, record.target_line, outcome.reason,
                )
            outcomes.append((record, outcome))
        return outcomes
