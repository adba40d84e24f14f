"""Tests for providers/devonthink.py"""

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from highlight_sync.providers.content_types import Bookmark, BookmarkKind, SaveType
from highlight_sync.providers.devonthink import DevonthinkStore, as_list, as_string
from highlight_sync.providers.document_store import DocumentStoreError


def completed(stdout="", returncode=0, stderr=""):
    return subprocess.CompletedProcess(args=["osascript", "-"], returncode=returncode, stdout=stdout, stderr=stderr)


class TestFilters:
    """Tests for AppleScript literal helpers."""

    def test_as_string_escapes(self):
        assert as_string('say "hi" \\ bye') == 'say \\"hi\\" \\\\ bye'
        assert as_string(None) == ""

    def test_as_list(self):
        assert as_list(["a", 'b"c']) == '{"a", "b\\"c"}'
        assert as_list([]) == "{}"


class TestRender:
    """Tests for script rendering."""

    def test_inbox_defaults(self):
        store = DevonthinkStore()
        script = store.render("lookup.applescript.j2", title="T", field="content")
        assert "set theGroup to inbox" in script
        assert 'search "name:\\"T\\"" in theGroup' in script
        assert "return plain text of theRecord" in script

    def test_named_database_and_group(self):
        store = DevonthinkStore("Research", "/Readwise")
        script = store.render("lookup.applescript.j2", title="T", field="annotation")
        assert 'create location "/Readwise" in database "Research"' in script
        assert "annotation of theRecord" in script

    @pytest.mark.parametrize(
        "save_type, command",
        [
            (SaveType.MARKDOWN, "create Markdown from"),
            (SaveType.ARCHIVE, "create web document from"),
            (SaveType.PDF, "create PDF document from"),
            (SaveType.BOOKMARK, "type:bookmark"),
        ],
    )
    def test_save_record_type(self, save_type, command):
        store = DevonthinkStore()
        bookmark = Bookmark(url="https://example.com", title='A "quoted" title', tags=("x", "y"))
        with patch.object(store, "run_script") as run:
            store.save_bookmark(bookmark, "note", save_type)
        script = run.call_args.args[0]
        assert command in script
        assert 'name "A \\"quoted\\" title"' in script or 'name:"A \\"quoted\\" title"' in script
        assert 'set tags of theRecord to {"x", "y"}' in script

    def test_non_article_saved_as_bookmark(self):
        store = DevonthinkStore()
        bookmark = Bookmark(url="https://readwise.io/x", title="Mail", kind=BookmarkKind.EMAIL)
        with patch.object(store, "run_script") as run:
            store.save_bookmark(bookmark, "", SaveType.MARKDOWN)
        script = run.call_args.args[0]
        assert "type:bookmark" in script
        assert "set tags" not in script


class TestRunScript:
    """Tests for osascript invocation."""

    def test_returns_stdout(self):
        store = DevonthinkStore()
        with patch("subprocess.run", return_value=completed("body text\n")) as run:
            assert store.get_content("T") == "body text"
        assert run.call_args.kwargs["input"].startswith('tell application id "DNtp"')

    def test_content_keeps_leading_whitespace(self):
        store = DevonthinkStore()
        with patch("subprocess.run", return_value=completed("    indented code\n\nText\n")):
            assert store.get_content("T") == "    indented code\n\nText"

    def test_empty_output_is_none(self):
        store = DevonthinkStore()
        with patch("subprocess.run", return_value=completed("")):
            assert store.get_annotation("T") is None

    def test_non_zero_exit(self):
        store = DevonthinkStore()
        with patch("subprocess.run", return_value=completed(returncode=1, stderr="execution error")):
            with pytest.raises(DocumentStoreError, match="execution error"):
                store.set_content("T", "body")

    def test_missing_osascript(self):
        store = DevonthinkStore(osascript="/nonexistent/osascript")
        with patch("subprocess.run", side_effect=FileNotFoundError("no such file")):
            with pytest.raises(DocumentStoreError):
                store.get_content("T")

    def test_timeout(self):
        store = DevonthinkStore(timeout=1)
        with patch("subprocess.run", side_effect=subprocess.TimeoutExpired(cmd="osascript", timeout=1)):
            with pytest.raises(DocumentStoreError, match="timed out"):
                store.get_content("T")

    def test_set_content_escapes_body(self):
        store = DevonthinkStore()
        run = MagicMock(return_value=completed())
        with patch("subprocess.run", run):
            store.set_content("T", 'He said "{==hi==}"')
        assert 'set plain text of theRecord to "He said \\"{==hi==}\\""' in run.call_args.kwargs["input"]
