"""Tests for the editable virtual document."""

import os

import pytest

from grepedit.editing.errors import ReadOnlyRegionError
from grepedit.editing.grammar import LineKind
from grepedit.editing.virtual_document import ChangeKind, VirtualDocument

RESULTS = "Search started\na.txt:1:alpha\na.txt-2-beta\n--\nb.txt:5:gamma\n"


@pytest.fixture
def doc(tmp_path):
    return VirtualDocument.from_text(RESULTS, base_dir=str(tmp_path))


class TestConstruction:
    def test_line_kinds(self, doc):
        assert [l.kind for l in doc] == [
            LineKind.OTHER, LineKind.MATCH, LineKind.CONTEXT,
            LineKind.SEPARATOR, LineKind.MATCH,
        ]

    def test_target_paths_are_resolved(self, doc, tmp_path):
        assert doc[1].target_file == os.path.join(str(tmp_path), "a.txt")
        assert doc[1].path == "a.txt"
        assert doc[4].line_number == 5

    def test_headers_are_protected(self, doc):
        assert doc[1].readonly_until == len("a.txt:1:")
        assert doc[2].readonly_until == len("a.txt-2-")
        assert doc[0].readonly_until == 0

    def test_text_round_trip(self, doc):
        assert doc.text() == RESULTS

    def test_crlf_round_trip(self, tmp_path):
        text = "a.txt:1:x\r\na.txt:2:y"
        doc = VirtualDocument.from_text(text, base_dir=str(tmp_path))
        assert doc.text() == text

    def test_mixed_line_endings(self, tmp_path):
        text = "win.txt:1:one\r\nunix.txt:1:alpha\nunix.txt:2:beta\n"
        doc = VirtualDocument.from_text(text, base_dir=str(tmp_path))
        assert len(doc) == 3
        assert [l.body for l in doc] == ["one", "alpha", "beta"]
        assert doc[2].line_number == 2

        doc.set_body(1, "ALPHA")
        assert doc.text() == text.replace("alpha", "ALPHA")

    def test_unique_line_ids(self, doc):
        assert len({l.uid for l in doc}) == len(doc)


class TestPermissions:
    def test_edit_body(self, doc):
        doc.set_body(1, "ALPHA")
        assert doc[1].text == "a.txt:1:ALPHA"
        assert doc[1].body == "ALPHA"

    def test_edit_inside_header_rejected(self, doc):
        with pytest.raises(ReadOnlyRegionError):
            doc.edit(1, 2, 3, "X")
        assert doc[1].text == "a.txt:1:alpha"

    def test_insert_at_header_boundary_allowed(self, doc):
        doc.insert_text(1, len("a.txt:1:"), ">")
        assert doc[1].text == "a.txt:1:>alpha"

    def test_non_result_lines_locked(self, doc):
        assert doc.is_locked(doc[0])
        with pytest.raises(ReadOnlyRegionError):
            doc.insert_text(0, 0, "x")

    def test_unprotected_headers_allow_everything(self, doc):
        doc.set_headers_protected(False)
        assert doc[1].readonly_until == 0
        doc.edit(1, 0, 1, "b")
        doc.insert_text(0, 0, "#")
        assert doc[1].text == "b.txt:1:alpha"
        assert doc[1].header_intact is False
        assert doc[0].text == "#Search started"

    def test_newline_rejected(self, doc):
        with pytest.raises(ValueError):
            doc.set_body(1, "two\nlines")

    def test_column_range_checked(self, doc):
        with pytest.raises(IndexError):
            doc.edit(1, 5, 100, "x")

    def test_readonly_document(self, doc):
        doc.readonly = True
        with pytest.raises(ReadOnlyRegionError):
            doc.set_body(1, "x")

    def test_deleted_line_locked(self, doc):
        doc[1].deleted = True
        assert doc.is_locked(doc[1])
        with pytest.raises(ReadOnlyRegionError):
            doc.set_body(1, "x")

    def test_remove_line_needs_unprotected_headers(self, doc):
        with pytest.raises(ReadOnlyRegionError):
            doc.remove_line(1)
        doc.set_headers_protected(False)
        removed = doc.remove_line(1)
        assert removed.header == "a.txt:1:"
        assert len(doc) == 4


class TestNotifications:
    def test_edit_notifies(self, doc):
        changes = []
        doc.subscribe(changes.append)
        doc.set_body(4, "GAMMA")
        assert len(changes) == 1
        assert changes[0].kind is ChangeKind.EDIT
        assert changes[0].line is doc[4]
        assert changes[0].index == 4

    def test_remove_notifies(self, doc):
        changes = []
        doc.subscribe(changes.append)
        doc.set_headers_protected(False)
        line = doc.remove_line(2)
        assert changes[0].kind is ChangeKind.REMOVE
        assert changes[0].line is line
        assert changes[0].index == 2

    def test_engine_mutations_do_not_notify(self, doc):
        changes = []
        doc.subscribe(changes.append)
        doc.set_line_text(doc[1], "a.txt:1:quiet")
        doc.rewrite_header(doc[4], "b.txt:4:", 4)
        doc.drop_line(doc[2])
        assert changes == []
        assert doc[3].text == "b.txt:4:gamma"
        assert doc[3].line_number == 4

    def test_unsubscribe(self, doc):
        changes = []
        doc.subscribe(changes.append)
        doc.unsubscribe(changes.append)
        doc.set_body(1, "x")
        assert changes == []


class TestCursor:
    def test_offset_round_trip(self, doc):
        doc.cursor = (1, 4)
        offset = doc.cursor_offset()
        assert offset == len("Search started\n") + 4
        doc.cursor = (0, 0)
        doc.move_cursor_to_offset(offset)
        assert doc.cursor == (1, 4)

    def test_offset_with_mixed_line_endings(self, tmp_path):
        doc = VirtualDocument.from_text("a.txt:1:x\r\na.txt:2:y\nb.txt:3:z\n",
                                        base_dir=str(tmp_path))
        doc.cursor = (2, 5)
        offset = doc.cursor_offset()
        assert offset == len("a.txt:1:x\r\na.txt:2:y\n") + 5
        doc.cursor = (0, 0)
        doc.move_cursor_to_offset(offset)
        assert doc.cursor == (2, 5)

    def test_offset_past_end(self, doc):
        doc.move_cursor_to_offset(10_000)
        assert doc.cursor == (4, len("b.txt:5:gamma"))

    def test_cursor_follows_removal(self, doc):
        doc.cursor = (4, 2)
        doc.drop_line(doc[1])
        assert doc.cursor == (3, 2)
