"""Tests for the edit tracker and the shadow snapshot."""

import pytest

from grepedit.editing.errors import RestoreUnavailable
from grepedit.editing.snapshot import ShadowSnapshot
from grepedit.editing.tracker import DELETE, EditStatus, EditTracker
from grepedit.editing.virtual_document import VirtualDocument

RESULTS = (
    "a.txt:1:one\n"
    "a.txt-2-two\n"
    "a.txt:3:three\n"
    "--\n"
    "b.txt:10:ten\n"
)


@pytest.fixture
def doc(tmp_path):
    return VirtualDocument.from_text(RESULTS, base_dir=str(tmp_path))


@pytest.fixture
def snapshot(doc):
    return ShadowSnapshot.take(doc)


@pytest.fixture
def tracker(doc, snapshot):
    return EditTracker(doc, snapshot)


class TestEditRecords:
    def test_edit_creates_record(self, doc, tracker):
        doc.set_body(2, "THREE")
        record = tracker.record_for(doc[2])
        assert record is not None
        assert record.old_text == "three"
        assert record.new_text == "THREE"
        assert record.target_line == 3
        assert record.target_file == doc[2].target_file
        assert record.status is EditStatus.PENDING

    def test_context_lines_are_tracked(self, doc, tracker):
        doc.set_body(1, "TWO")
        assert tracker.record_for(doc[1]).target_line == 2

    def test_repeated_edits_keep_one_record(self, doc, tracker):
        doc.set_body(0, "x")
        doc.set_body(0, "xy")
        doc.insert_text(0, len(doc[0].text), "z")
        assert len(tracker) == 1
        record = tracker.record_for(doc[0])
        assert record.old_text == "one"
        assert record.new_text == "xyz"

    def test_back_to_original_destroys_record(self, doc, tracker):
        doc.set_body(0, "changed")
        assert doc[0] in tracker
        doc.set_body(0, "one")
        assert doc[0] not in tracker
        assert len(tracker) == 0

    def test_lines_without_header_are_ignored(self, doc, tracker):
        doc.set_headers_protected(False)
        doc.insert_text(3, 0, "-")
        assert len(tracker) == 0


class TestDeletions:
    def test_mark_deleted(self, doc, tracker):
        record = tracker.mark_deleted(doc[2])
        assert record.new_text is DELETE
        assert record.is_delete
        assert record.old_text == "three"
        assert doc[2].text == "a.txt:3:three"

    def test_mark_deleted_ignores_non_result_lines(self, doc, tracker):
        assert tracker.mark_deleted(doc[3]) is None

    def test_edit_after_mark_deleted(self, doc, tracker):
        tracker.mark_deleted(doc[0])
        doc.set_body(0, "uno")
        record = tracker.record_for(doc[0])
        assert record.new_text == "uno"
        assert not record.is_delete

    def test_removed_line_becomes_deletion(self, doc, tracker):
        doc.set_headers_protected(False)
        line = doc.remove_line(1)
        record = tracker.record_for(line)
        assert record.is_delete
        assert record.removed_at == 1

    def test_header_edited_away_becomes_deletion(self, doc, tracker):
        doc.set_headers_protected(False)
        doc.edit(0, 0, len("a.txt:1:"), "")
        assert tracker.record_for(doc[0]).is_delete

    def test_pending_in_document_order(self, doc, tracker):
        doc.set_body(4, "TEN")
        doc.set_body(0, "ONE")
        doc.set_headers_protected(False)
        removed = doc.remove_line(1)
        pending = tracker.all_pending()
        assert [r.line for r in pending] == [doc[0], removed, doc[3]]


class TestClearing:
    def test_clear_all_reverts_range(self, doc, tracker):
        doc.set_body(0, "ONE")
        doc.set_body(2, "THREE")
        doc.set_body(4, "TEN")

        cleared = tracker.clear_all(0, 4)

        assert cleared == 2
        assert doc[0].text == "a.txt:1:one"
        assert doc[2].text == "a.txt:3:three"
        assert doc[4].text == "b.txt:10:TEN"
        assert len(tracker) == 1

    def test_clear_all_out_of_range(self, doc, tracker):
        doc.set_body(0, "ONE")
        assert tracker.clear_all(-5, 100) == 1
        assert len(tracker) == 0

    def test_detach_stops_tracking(self, doc, tracker):
        tracker.detach()
        doc.set_body(0, "ONE")
        assert len(tracker) == 0


class TestShadowSnapshot:
    def test_restore_is_byte_identical(self, doc, snapshot, tracker):
        doc.set_body(0, "ONE")
        doc.set_headers_protected(False)
        doc.remove_line(1)
        doc.insert_text(2, 0, "!")
        snapshot.restore()
        assert doc.text() == RESULTS

    def test_snapshot_is_a_copy(self, doc, snapshot):
        doc.set_body(0, "ONE")
        assert snapshot.text == RESULTS
        assert snapshot.old_text_for("a.txt:1:") == "one"

    def test_restore_keeps_cursor_on_header(self, doc, snapshot):
        doc.set_headers_protected(False)
        doc.remove_line(0)
        doc.cursor = (1, 5)  # "a.txt:3:three"
        snapshot.restore()
        assert doc.cursor == (2, 5)

    def test_restore_falls_back_to_offset(self, doc, snapshot):
        doc.cursor = (3, 1)  # block separator
        offset = doc.cursor_offset()
        snapshot.restore()
        assert doc.cursor_offset() == offset

    def test_restore_reapplies_protection(self, doc, snapshot):
        doc.set_headers_protected(False)
        doc.set_headers_protected(True)
        snapshot.restore()
        assert doc[0].readonly_until == len("a.txt:1:")

    def test_rebase(self, snapshot):
        snapshot.rebase("a.txt:1:", "ONE")
        assert snapshot.old_text_for("a.txt:1:") == "ONE"
        assert snapshot.old_text_for("b.txt:10:") == "ten"
        assert snapshot.old_text_for("c.txt:1:") is None

    def test_discarded_snapshot_cannot_restore(self, doc, snapshot):
        snapshot.discard()
        assert not snapshot.is_alive()
        assert doc.snapshot is None
        with pytest.raises(RestoreUnavailable):
            snapshot.restore()

    def test_replaced_snapshot_is_dead(self, doc, snapshot):
        newer = ShadowSnapshot.take(doc)
        assert newer.is_alive()
        assert not snapshot.is_alive()
