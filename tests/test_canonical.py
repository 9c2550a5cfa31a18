"""Tests for canonical production diffs."""
import warnings

from pr_triage.fingerprints import canonical
from pr_triage.fingerprints.canonical import canonicalize, extract_added_removed_lines
from conftest import patch_of


def test_extract_skips_metadata(make_file):
    patch = "\n".join([
        "diff --git a/src/a.ts b/src/a.ts",
        "index 123..456 100644",
        "--- a/src/a.ts",
        "+++ b/src/a.ts",
        "@@ -1,2 +1,2 @@",
        " context",
        "-old line",
        "+new line",
        "\\ No newline at end of file",
    ])
    assert extract_added_removed_lines(patch) == ["-old line", "+new line"]


def test_extract_none_patch():
    assert extract_added_removed_lines(None) == []
    assert extract_added_removed_lines("") == []


def test_file_order_does_not_change_hash(make_file):
    a = make_file("src/a.ts", "+const a = 1;")
    b = make_file("src/b.ts", "-const b = 2;", "+const b = 3;")
    assert canonicalize([a, b]).hash == canonicalize([b, a]).hash


def test_hunk_header_numbers_do_not_change_hash(make_file):
    lines = ("-return x;", "+return y;")
    a = make_file("src/a.ts", patch=patch_of(*lines, old_start=10, new_start=10))
    b = make_file("src/a.ts", patch=patch_of(*lines, old_start=200, new_start=207))
    assert canonicalize([a]).hash == canonicalize([b]).hash


def test_trailing_whitespace_ignored(make_file):
    a = make_file("src/a.ts", "+return y;")
    b = make_file("src/a.ts", "+return y;   ")
    assert canonicalize([a]).hash == canonicalize([b]).hash


def test_content_change_changes_hash(make_file):
    a = make_file("src/a.ts", "+return y;")
    b = make_file("src/a.ts", "+return z;")
    assert canonicalize([a]).hash != canonicalize([b]).hash


def test_path_is_part_of_hash(make_file):
    a = make_file("src/a.ts", "+return y;")
    b = make_file("src/b.ts", "+return y;")
    assert canonicalize([a]).hash != canonicalize([b]).hash


def test_empty_production_diff_has_no_hash(make_file):
    assert canonicalize([]).hash is None
    only_context = make_file("src/a.ts", patch="@@ -1,1 +1,1 @@\n unchanged")
    diff = canonicalize([only_context])
    assert diff.line_count == 0
    assert diff.hash is None


def test_hash_is_sha256_hex(make_file):
    h = canonicalize([make_file("src/a.ts", "+x")]).hash
    assert len(h) == 64
    int(h, 16)


def test_crlf_patch_hashes_like_lf(make_file):
    a = make_file("src/a.ts", patch="@@ -1,1 +1,1 @@\n-return x;\n+return y;")
    b = make_file("src/a.ts", patch="@@ -1,1 +1,1 @@\r\n-return x;\r\n+return y;\r\n")
    assert canonicalize([a]).hash == canonicalize([b]).hash


class TestLineSeparators:
    """Only newlines split a patch; other separators stay inside the line."""

    def test_form_feed_content_changes_hash(self, make_file):
        a = make_file("src/a.c", "+int x = 1;\x0cint y = 2;")
        b = make_file("src/a.c", "+int x = 1;\x0cint y = 999;")
        assert canonicalize([a]).hash != canonicalize([b]).hash
        assert "int y = 2;" in canonicalize([a]).text

    def test_unicode_line_separator_content_changes_hash(self, make_file):
        a = make_file("src/a.ts", "+prepare();\u2028launch();")
        b = make_file("src/a.ts", "+prepare();\u2028destroy();")
        assert canonicalize([a]).hash != canonicalize([b]).hash

    def test_separator_does_not_split_extracted_lines(self):
        patch = "@@ -0,0 +1,2 @@\n+a();\x1eb();\n+c();\x85d();"
        assert extract_added_removed_lines(patch) == ["+a();\x1eb();", "+c();\x85d();"]


def test_module_compiles_without_escape_warnings():
    with open(canonical.__file__, encoding="utf-8") as fh:
        source = fh.read()
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        compile(source, canonical.__file__, "exec")
    assert "\\ No newline at end of file" in canonical.__doc__
