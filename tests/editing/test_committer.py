"""Tests for the transaction builder and the committer."""

import os

import pytest

from grepedit.editing.committer import DELETED_REASON, STALE_REASON, Committer
from grepedit.editing.errors import ErrorKind
from grepedit.editing.grammar import LineKind
from grepedit.editing.source_document import (
    FileSourceDocument,
    SourceLocator,
    TextSourceDocument,
)
from grepedit.editing.tracker import DELETE, EditRecord, EditStatus
from grepedit.editing.transaction import TransactionBuilder
from grepedit.editing.virtual_document import ResultLine

SIX_LINES = "line1\nline2\nline3\nline4\nline5\nline6\n"


def _record(target_file, number, old_text, new_text):
    header = f"{os.path.basename(target_file)}:{number}:"
    line = ResultLine(
        text=header + (old_text if new_text is DELETE else new_text),
        kind=LineKind.MATCH,
        path=os.path.basename(target_file),
        target_file=target_file,
        line_number=number,
        header=header,
        origin_header=header,
    )
    return EditRecord(
        line=line,
        target_file=target_file,
        target_line=number,
        old_text=old_text,
        new_text=new_text,
    )


def _locator_with(*documents):
    locator = SourceLocator()
    for document in documents:
        locator.register(document)
    return locator


def _commit(locator, records):
    result = TransactionBuilder(locator).build(records)
    committer = Committer()
    outcomes = []
    for transaction in result.transactions.values():
        outcomes.extend(committer.commit_transaction(transaction))
    return result, outcomes


class TestTransactionBuilder:
    def test_groups_per_document(self, tmp_path):
        a = TextSourceDocument(str(tmp_path / "a.txt"), SIX_LINES)
        b = TextSourceDocument(str(tmp_path / "b.txt"), SIX_LINES)
        records = [
            _record(a.path, 1, "line1", "x"),
            _record(b.path, 2, "line2", "y"),
            _record(a.path, 3, "line3", "z"),
        ]
        result = TransactionBuilder(_locator_with(a, b)).build(records)

        assert set(result.transactions) == {a, b}
        assert [e.record for e in result.transactions[a].edits] == [records[0], records[2]]
        assert [e.marker.line for e in result.transactions[a].edits] == [1, 3]
        assert result.failures == []

    def test_done_records_are_skipped(self, tmp_path):
        a = TextSourceDocument(str(tmp_path / "a.txt"), SIX_LINES)
        record = _record(a.path, 1, "line1", "x")
        record.mark_done()
        result = TransactionBuilder(_locator_with(a)).build([record])
        assert result.transactions == {}

    def test_missing_document_is_a_failure(self, tmp_path):
        record = _record(str(tmp_path / "gone.txt"), 1, "a", "b")
        result = TransactionBuilder(SourceLocator()).build([record])

        assert result.transactions == {}
        assert len(result.failures) == 1
        assert record.status is EditStatus.REJECTED
        assert record.error_kind is ErrorKind.TARGET_NOT_FOUND


class TestCommitter:
    def test_replace(self, tmp_path):
        a = TextSourceDocument(str(tmp_path / "a.txt"), SIX_LINES)
        record = _record(a.path, 4, "line4", "FOUR")
        _, outcomes = _commit(_locator_with(a), [record])

        assert outcomes[0][1].done
        assert record.status is EditStatus.DONE
        assert a.line_text(4) == "FOUR"
        assert a.change_markers == [4]

    def test_stale_line_is_rejected_untouched(self, tmp_path):
        a = TextSourceDocument(str(tmp_path / "a.txt"), SIX_LINES)
        a.replace_line(2, "changed elsewhere")
        record = _record(a.path, 2, "line2", "TWO")
        _, outcomes = _commit(_locator_with(a), [record])

        outcome = outcomes[0][1]
        assert not outcome.done
        assert outcome.reason == STALE_REASON
        assert outcome.kind is ErrorKind.STALE_CONTENT
        assert record.status is EditStatus.REJECTED
        assert a.line_text(2) == "changed elsewhere"
        assert a.change_markers == []

    def test_batch_deletion_does_not_shift_later_targets(self, tmp_path):
        a = TextSourceDocument(str(tmp_path / "a.txt"), SIX_LINES)
        records = [
            _record(a.path, 2, "line2", DELETE),
            _record(a.path, 5, "line5", "FIVE"),
        ]
        _, outcomes = _commit(_locator_with(a), records)

        assert all(outcome.done for _, outcome in outcomes)
        assert a.text() == "line1\nline3\nline4\nFIVE\nline6\n"

    def test_partial_success(self, tmp_path):
        a = TextSourceDocument(str(tmp_path / "a.txt"), SIX_LINES)
        a.replace_line(1, "someone else")
        records = [
            _record(a.path, 1, "line1", "ONE"),
            _record(a.path, 3, "line3", "THREE"),
        ]
        _, outcomes = _commit(_locator_with(a), records)

        assert [outcome.done for _, outcome in outcomes] == [False, True]
        assert a.line_text(1) == "someone else"
        assert a.line_text(3) == "THREE"

    def test_line_deleted_earlier_in_same_batch(self, tmp_path):
        a = TextSourceDocument(str(tmp_path / "a.txt"), SIX_LINES)
        records = [
            _record(a.path, 3, "line3", DELETE),
            _record(a.path, 3, "line3", "THREE"),
        ]
        _, outcomes = _commit(_locator_with(a), records)

        assert outcomes[0][1].done
        assert not outcomes[1][1].done
        assert outcomes[1][1].reason == DELETED_REASON

    def test_line_past_end_of_document(self, tmp_path):
        a = TextSourceDocument(str(tmp_path / "a.txt"), "only\n")
        record = _record(a.path, 9, "line9", "NINE")
        _, outcomes = _commit(_locator_with(a), [record])
        assert outcomes[0][1].reason == DELETED_REASON

    def test_markers_are_released(self, tmp_path):
        a = TextSourceDocument(str(tmp_path / "a.txt"), SIX_LINES)
        _commit(_locator_with(a), [_record(a.path, 1, "line1", "ONE")])
        assert a._markers == []

    def test_bom_on_first_line(self, tmp_path):
        path = tmp_path / "bom.txt"
        path.write_bytes(b"\xef\xbb\xbfhello\nworld\n")
        document = FileSourceDocument.load(str(path))
        record = _record(str(path), 1, "\ufeffhello", "\ufeffbye")

        _, outcomes = _commit(_locator_with(document), [record])
        document.save()

        assert outcomes[0][1].done
        assert path.read_bytes() == b"\xef\xbb\xbfbye\nworld\n"

    def test_delete_marks_following_line(self, tmp_path):
        a = TextSourceDocument(str(tmp_path / "a.txt"), SIX_LINES)
        _commit(_locator_with(a), [_record(a.path, 6, "line6", DELETE)])
        assert a.line_count() == 5
        assert a.change_markers == [5]


@pytest.mark.parametrize("new_text", ["", "   ", "line4"])
def test_replace_with_unusual_text(tmp_path, new_text):
    a = TextSourceDocument(str(tmp_path / "a.txt"), SIX_LINES)
    _commit(_locator_with(a), [_record(a.path, 4, "line4", new_text)])
    assert a.line_text(4) == new_text
