"""Tests for the header rewrite, front-matter parsing and DocumentStore."""

import datetime

import pytest

from metawatch.services.markdown import (
    DocumentStore,
    format_value,
    has_header,
    parse_front_matter,
    replace_header_with_value,
)


class TestReplaceHeader:
    """Tests for replace_header_with_value."""

    def test_appends_value(self):
        content = "# Title\n## Start Date\nbody\n"
        assert replace_header_with_value(content, "## Start Date", "2024-01-01") == \
            "# Title\n## Start Date 2024-01-01\nbody\n"

    def test_discards_trailing_text(self):
        content = "## Start Date 2023-12-31 (draft)\n"
        assert replace_header_with_value(content, "## Start Date", "2024-01-01") == \
            "## Start Date 2024-01-01\n"

    def test_only_first_match(self):
        content = "## Date\n## Date\n"
        assert replace_header_with_value(content, "## Date", "x") == "## Date x\n## Date\n"

    def test_anchored_at_line_start(self):
        content = "see ## Date here\n"
        assert replace_header_with_value(content, "## Date", "x") == content

    def test_no_match_returns_input(self):
        content = "# Title\nnothing to see\n"
        assert replace_header_with_value(content, "## Date", "x") == content

    def test_empty_header_never_matches(self):
        content = "first line\n"
        assert replace_header_with_value(content, "", "x") == content

    def test_metacharacters_are_literal(self):
        """Header text is matched as written, not as a pattern."""
        content = "## Cost (USD)\n## Cost XUSDX\n"
        assert replace_header_with_value(content, "## Cost (USD)", 12) == "## Cost (USD) 12\n## Cost XUSDX\n"
        assert replace_header_with_value("## a.b\n", "## a+b", 1) == "## a.b\n"

    def test_value_with_backslashes(self):
        """Replacement text is inserted verbatim."""
        result = replace_header_with_value("## Path\n", "## Path", r"C:\new\1")
        assert result == "## Path C:\\new\\1\n"

    def test_crlf_preserved(self):
        content = "## Date old\r\nbody\r\n"
        assert replace_header_with_value(content, "## Date", "new") == "## Date new\r\nbody\r\n"

    def test_unicode_header(self):
        content = "## Дата Начало\n"
        assert replace_header_with_value(content, "## Дата Начало", "2024-05-01") == "## Дата Начало 2024-05-01\n"

    def test_has_header(self):
        assert has_header("x\n## Date 1\n", "## Date")
        assert not has_header("x\n", "## Date")
        assert not has_header("x\n", "")


class TestFormatValue:

    @pytest.mark.parametrize("value,expected", [
        ("text", "text"),
        (3, "3"),
        (True, "true"),
        (datetime.date(2024, 1, 1), "2024-01-01"),
        (["a", "b"], "a, b"),
    ])
    def test_format(self, value, expected):
        assert format_value(value) == expected


class TestParseFrontMatter:

    def test_parses_yaml(self):
        meta = parse_front_matter("---\nstatus: draft\ndate: 2024-01-01\n---\nbody\n")
        assert meta == {"status": "draft", "date": datetime.date(2024, 1, 1)}

    def test_no_block(self):
        assert parse_front_matter("# just a heading\n") is None
        assert parse_front_matter("") is None

    def test_empty_block(self):
        assert parse_front_matter("---\n---\nbody\n") is None

    def test_invalid_yaml(self):
        with pytest.raises(ValueError):
            parse_front_matter("---\nstatus: [unclosed\n---\n")


class TestDocumentStore:
    """Tests for DocumentStore."""

    def test_read_write(self, store, make_doc):
        make_doc("note.md", "", "hello\n")

        assert store.read("note.md") == "hello\n"
        assert store.write("note.md", "bye\n") is True
        assert store.read("note.md") == "bye\n"

    def test_write_failure_returns_false(self, store):
        assert store.write("missing/dir/note.md", "x") is False

    @pytest.mark.parametrize("bad", ["", "../escape.md", "/etc/passwd.md", "a/./b.md", "notes.txt"])
    def test_resolve_rejects(self, store, bad):
        with pytest.raises(ValueError):
            store.resolve(bad)

    def test_resolve_nested(self, store, vault):
        assert store.resolve("a/b.md") == vault / "a" / "b.md"

    def test_relative(self, store, vault):
        assert store.relative(vault / "a" / "b.md") == "a/b.md"
        assert store.relative(vault / "a" / "b.txt") is None
        assert store.relative(vault / ".metawatch" / "x.md") is None
        assert store.relative(vault.parent / "outside.md") is None

    def test_list_documents(self, store, make_doc):
        make_doc("b.md", "", "x")
        make_doc("a/c.md", "", "x")
        make_doc(".hidden/d.md", "", "x")
        make_doc("e.txt", "", "x")

        assert store.list_documents() == ["a/c.md", "b.md"]

    def test_list_documents_missing_root(self, tmp_path):
        assert DocumentStore(tmp_path / "nope").list_documents() == []

    def test_metadata(self, store, make_doc):
        make_doc("note.md", "status: draft", "body")
        make_doc("broken.md", "status: [oops", "body")

        assert store.metadata("note.md") == {"status": "draft"}
        assert store.metadata("broken.md") is None
        assert store.metadata("missing.md") is None

    def test_ensure_root(self, tmp_path):
        store = DocumentStore(tmp_path / "new" / "vault")
        assert store.ensure_root().is_dir()
