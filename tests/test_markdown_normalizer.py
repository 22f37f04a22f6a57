"""Tests for checkbox counting and To-Do / Follow-Ups normalization."""

from __future__ import annotations

import pytest

from voicememo.utils.markdown_normalizer import (
    count_checkboxes,
    format_markdown_checkboxes,
    post_process_insights,
)

from conftest import CANONICAL_INSIGHTS, PLAIN_INSIGHTS


class TestCountCheckboxes:
    def test_empty(self):
        assert count_checkboxes("") == 0

    def test_none(self):
        assert count_checkboxes(None) == 0

    def test_two_checkboxes(self):
        assert count_checkboxes("- [ ] a\n- [ ] b") == 2

    def test_plain_bullets(self):
        assert count_checkboxes("- a\n- b") == 0

    def test_counts_anywhere_in_line(self):
        assert count_checkboxes("text - [ ] inline") == 1


class TestFormatMarkdownCheckboxes:
    def test_section_scoping(self):
        text = "**Transcript Summary:**\n- alpha\n\n**To-Do List:**\n- beta\n- gamma"
        out = format_markdown_checkboxes(text, "openai")
        assert "- alpha" in out
        assert "- [ ] alpha" not in out
        assert "- [ ] beta" in out
        assert "- [ ] gamma" in out

    def test_follow_ups_converted_and_references_untouched(self):
        out = format_markdown_checkboxes(PLAIN_INSIGHTS, "claude")
        assert "- [ ] Email the finance team" in out
        assert "- [ ] Book the meeting room" in out
        assert "- [ ] Ask Dana about the forecast" in out
        assert "- [Quarterly report](https://example.com/q3)" in out
        assert "- Budget review is due Friday" in out

    def test_any_bold_line_closes_section(self):
        text = "**To-Do List:**\n- one\n**Notes**\n- two"
        out = format_markdown_checkboxes(text, "openai")
        assert out == "**To-Do List:**\n- [ ] one\n**Notes**\n- two"

    def test_plain_heading_form_recognized(self):
        text = "To-Do List:\n- call mom"
        assert format_markdown_checkboxes(text, "openai") == "To-Do List:\n- [ ] call mom"

    def test_heading_with_extra_bold_does_not_close(self):
        text = "**To-Do List** for **today**\n- buy milk"
        out = format_markdown_checkboxes(text, "openai")
        assert out.endswith("- [ ] buy milk")

    def test_heading_line_is_not_rewritten(self):
        text = "- **To-Do List**\n- item"
        out = format_markdown_checkboxes(text, "openai")
        assert out.split("\n")[0] == "- **To-Do List**"
        assert out.split("\n")[1] == "- [ ] item"

    def test_indentation_preserved(self):
        text = "**To-Do List:**\n  - nested"
        assert format_markdown_checkboxes(text, "openai") == "**To-Do List:**\n  - [ ] nested"

    def test_existing_checkbox_line_untouched(self):
        text = "**Follow-Ups:**\n- [ ] done already\n- new one"
        out = format_markdown_checkboxes(text, "openai")
        assert out == "**Follow-Ups:**\n- [ ] done already\n- [ ] new one"

    def test_non_bullet_lines_untouched(self):
        text = "**To-Do List:**\nJust prose\n\n- real item"
        out = format_markdown_checkboxes(text, "openai")
        assert out == "**To-Do List:**\nJust prose\n\n- [ ] real item"

    def test_model_tag_does_not_change_output(self):
        assert format_markdown_checkboxes(PLAIN_INSIGHTS, "openai") == format_markdown_checkboxes(
            PLAIN_INSIGHTS, "claude"
        )

    def test_empty_input(self):
        assert format_markdown_checkboxes("", "openai") == ""


class TestPostProcessInsights:
    def test_already_formatted_passthrough(self):
        text = "**To-Do List:**\n- [ ] x"
        assert post_process_insights(text, "openai") is text

    def test_any_checkbox_skips_whole_document(self):
        # To-Do already has a checkbox, so Follow-Ups keeps its plain bullet
        text = "**To-Do List:**\n- [ ] a\n\n**Follow-Ups:**\n- b"
        assert post_process_insights(text, "openai") == text

    @pytest.mark.parametrize("text", [PLAIN_INSIGHTS, CANONICAL_INSIGHTS, "", "no headings here\n- x"])
    def test_idempotent(self, text):
        once = post_process_insights(text, "openai")
        assert post_process_insights(once, "openai") == once

    def test_formats_plain_document(self):
        out = post_process_insights(PLAIN_INSIGHTS, "openai")
        assert count_checkboxes(out) == 3
