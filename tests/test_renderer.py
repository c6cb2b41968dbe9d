"""Tests for the Markdown-subset renderer (bizchat/services/renderer.py)."""

import time

from bizchat.services.renderer import (
    Bold,
    Code,
    Paragraph,
    Spacer,
    Table,
    Text,
    is_separator_row,
    is_table_line,
    parse_inlines,
    render,
    render_html,
)


class TestInlines:
    def test_bold_then_code(self):
        blocks = render("**a** `b`")
        assert len(blocks) == 1
        assert isinstance(blocks[0], Paragraph)
        spans = [node for node in blocks[0].inlines if not isinstance(node, Text)]
        assert spans == [Bold("a"), Code("b")]

    def test_plain_text_kept_between_spans(self):
        assert parse_inlines("x **y** z") == (Text("x "), Bold("y"), Text(" z"))

    def test_delimiters_do_not_nest(self):
        assert parse_inlines("`**x**`") == (Code("**x**"), )

    def test_unclosed_delimiter_is_text(self):
        assert parse_inlines("**open") == (Text("**open"), )

    def test_multiple_spans_non_greedy(self):
        assert parse_inlines("**a** and **b**") == (Bold("a"), Text(" and "), Bold("b"))


class TestBlocks:
    def test_blank_lines_become_spacers(self):
        blocks = render("first\n\nsecond")
        assert [type(b) for b in blocks] == [Paragraph, Spacer, Paragraph]

    def test_empty_text(self):
        assert render("") == [Spacer()]

    def test_table_with_separator(self):
        blocks = render("| A | B |\n|---|:--:|\n| 1 | 2 |")
        assert len(blocks) == 1
        table = blocks[0]
        assert isinstance(table, Table)
        assert table.header == ((Text("A"), ), (Text("B"), ))
        assert table.rows == (((Text("1"), ), (Text("2"), )), )

    def test_table_between_paragraphs(self):
        blocks = render("intro\n| k | v |\n| a | **b** |\noutro")
        assert [type(b) for b in blocks] == [Paragraph, Table, Paragraph]
        assert blocks[1].rows[0][1] == (Bold("b"), )

    def test_separator_only_run_yields_nothing(self):
        assert render("|---|---|") == []

    def test_ragged_rows_are_split_best_effort(self):
        table = render("| a | b | c |\n| 1 |")[0]
        assert len(table.header) == 3
        assert table.rows == (((Text("1"), ), ), )

    def test_single_pipe_is_not_a_table(self):
        assert not is_table_line("|")
        assert is_table_line("  | a |")

    def test_separator_patterns(self):
        assert is_separator_row("|---|---|")
        assert is_separator_row("| :-- | --: |")
        assert not is_separator_row("| a | - |")
        assert not is_separator_row("|---||---|")
        assert not is_separator_row("")

    def test_long_dash_row_with_stray_character_is_fast(self):
        started = time.monotonic()
        blocks = render("|" + "-" * 5000 + "x|\n| a | b |")
        assert time.monotonic() - started < 0.5
        table = blocks[0]
        assert table.header == ((Text("-" * 5000 + "x"), ), )
        assert table.rows == (((Text("a"), ), (Text("b"), )), )


class TestHtml:
    def test_content_is_escaped(self):
        html = render_html("<script>**x**</script>")
        assert html == "<p>&lt;script&gt;<strong>x</strong>&lt;/script&gt;</p>"

    def test_table_markup(self):
        html = render_html("| h |\n|---|\n| `c` |")
        assert html == "<table><thead><tr><th>h</th></tr></thead><tbody><tr><td><code>c</code></td></tr></tbody></table>"
