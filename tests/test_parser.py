import io
import os
import tempfile
import unittest
from datetime import datetime, timezone

from changelog_filter.common.debian.changelog import Change, Detail, render_entries
from changelog_filter.common.errors import ErrorCode, FormatError
from changelog_filter.parser import (
    ChangelogParser,
    ParseState,
    parse_changelog,
    parse_changelog_file,
    parse_changelog_text,
)

KERNEL_CHANGELOG = """\
linux (5.15.0-25.25) jammy; urgency=medium

  * Change A
    - detail line 1
      continuation

  * Change B

 -- Ubuntu Kernel Team <kernel-team@lists.ubuntu.com>  Thu, 05 May 2022 10:00:00 +0000
"""

TWO_ENTRIES = """\
hello (2.10-3) noble; urgency=medium

  * Fix crash on startup
    - handle missing config
    - add regression test
  * Update translations
    - German: fix typo in crash dialog
      and wrap long lines
    - French: new strings
  * Bump standards version

 -- Jane Doe <jane@example.com>  Mon, 01 Jan 2024 12:00:00 +0000

hello (2.10-2) noble; urgency=low

  * Initial release

 -- Jane Doe <jane@example.com>  Sun, 31 Dec 2023 12:00:00 +0000
"""


def without_blank_lines(text):
    return "\n".join(line for line in text.splitlines() if line)


class TestParseChangelog(unittest.TestCase):
    def test_kernel_changelog(self):
        """Test the structure of a single kernel changelog entry"""
        entries = parse_changelog_text(KERNEL_CHANGELOG)

        self.assertEqual(len(entries), 1)
        entry = entries[0]
        self.assertEqual(entry.package, "linux")
        self.assertEqual(entry.version, "5.15.0-25.25")
        self.assertEqual(entry.distributions, "jammy")
        self.assertEqual(entry.metadata, "urgency=medium")
        self.assertEqual(entry.maintainer_name, "Ubuntu Kernel Team")
        self.assertEqual(entry.email_address, "kernel-team@lists.ubuntu.com")
        self.assertEqual(entry.date, datetime(2022, 5, 5, 10, 0, 0, tzinfo=timezone.utc))
        self.assertEqual(entry.changes, [
            Change(summary="Change A", details=[Detail(lines=["detail line 1", "continuation"])]),
            Change(summary="Change B", details=[]),
        ])

    def test_multiple_entries_in_order(self):
        """Test that entries and their changes keep input order"""
        entries = parse_changelog_text(TWO_ENTRIES)

        self.assertEqual([e.version for e in entries], ["2.10-3", "2.10-2"])
        self.assertEqual(
            [c.summary for c in entries[0].changes],
            ["Fix crash on startup", "Update translations", "Bump standards version"],
        )
        self.assertEqual(entries[0].changes[1].details, [
            Detail(lines=["German: fix typo in crash dialog", "and wrap long lines"]),
            Detail(lines=["French: new strings"]),
        ])
        self.assertEqual(entries[1].changes, [Change(summary="Initial release")])

    def test_round_trip(self):
        """Test that rendering parsed entries reproduces the input"""
        for text in (KERNEL_CHANGELOG, TWO_ENTRIES):
            with self.subTest(text=text.splitlines()[0]):
                rendered = render_entries(parse_changelog_text(text))

                self.assertEqual(without_blank_lines(rendered), without_blank_lines(text))
                self.assertEqual(parse_changelog_text(rendered), parse_changelog_text(text))

    def test_entry_without_changes(self):
        """Test that an entry with only header and trailer is accepted"""
        text = "pkg (1.0) unstable; urgency=low\n -- A <a@b.c>  Mon, 01 Jan 2024 12:00:00 +0000\n"

        entries = parse_changelog_text(text)

        self.assertEqual(len(entries), 1)
        self.assertEqual(entries[0].changes, [])

    def test_empty_input(self):
        """Test that empty input yields no entries"""
        self.assertEqual(parse_changelog([]), [])
        self.assertEqual(parse_changelog_text("\n\n"), [])

    def test_detail_without_change_is_ignored(self):
        """Test that a detail before the first change of an entry is dropped"""
        text = "\n".join([
            "pkg (1.0) unstable; urgency=low",
            "    - orphan detail",
            "  * Real change",
            " -- A <a@b.c>  Mon, 01 Jan 2024 12:00:00 +0000",
        ])

        entries = parse_changelog_text(text)

        self.assertEqual(entries[0].changes, [Change(summary="Real change")])

    def test_unknown_lines_are_skipped(self):
        """Test that lines matching no rule for the current state are skipped"""
        text = "\n".join([
            "pkg (1.0) unstable; urgency=low",
            "  [ Jane Doe ]",
            "  * Real change",
            "      stray continuation",
            "    - detail",
            "  free text",
            "      continuation",
            " -- A <a@b.c>  Mon, 01 Jan 2024 12:00:00 +0000",
        ])

        entries = parse_changelog_text(text)

        self.assertEqual(entries[0].changes, [
            Change(summary="Real change", details=[Detail(lines=["detail", "continuation"])]),
        ])

    def test_last_line_without_newline(self):
        """Test that a trailer without a final newline is parsed"""
        entries = parse_changelog(io.StringIO(KERNEL_CHANGELOG.rstrip("\n")))

        self.assertEqual(len(entries), 1)

    def test_crlf_line_endings(self):
        """Test that CRLF terminators are stripped"""
        entries = parse_changelog(io.StringIO(KERNEL_CHANGELOG.replace("\n", "\r\n"), newline=""))

        self.assertEqual(entries, parse_changelog_text(KERNEL_CHANGELOG))

    def test_text_split_only_on_newlines(self):
        """Test that other line-break characters stay inside a summary"""
        text = "pkg (1.0) unstable; urgency=low\n  * a\x0cb c\n -- A <a@b.c>  Mon, 01 Jan 2024 12:00:00 +0000"

        entries = parse_changelog_text(text)

        self.assertEqual(entries[0].changes, [Change(summary="a\x0cb c")])
        self.assertEqual(entries, parse_changelog(io.StringIO(text, newline="\n")))

    def test_header_with_runs_of_spaces(self):
        """Test that a header with several spaces between fields is accepted"""
        text = "pkg  (1.0)  unstable;  urgency=low\n -- A <a@b.c>  Mon, 01 Jan 2024 12:00:00 +0000\n"

        entries = parse_changelog_text(text)

        self.assertEqual(len(entries), 1)
        self.assertEqual(entries[0].package, "pkg")
        self.assertEqual(entries[0].version, "1.0")
        self.assertEqual(entries[0].distributions, "unstable")
        self.assertEqual(entries[0].metadata, "urgency=low")

    def test_binary_stream(self):
        """Test parsing from a binary stream"""
        entries = parse_changelog(io.BytesIO(TWO_ENTRIES.encode("utf-8")))

        self.assertEqual(entries, parse_changelog_text(TWO_ENTRIES))


class TestParseErrors(unittest.TestCase):
    def test_malformed_header(self):
        """Test that an invalid first line is rejected"""
        with self.assertRaises(FormatError) as cm:
            parse_changelog_text("not a valid header\n")

        self.assertEqual(cm.exception.code, ErrorCode.HEADER_FORMAT)
        self.assertEqual(cm.exception.line, "not a valid header")
        self.assertEqual(cm.exception.line_number, 1)
        self.assertIn("not a valid header", str(cm.exception))

    def test_malformed_header_after_entry(self):
        """Test that a bad header following a complete entry reports its line"""
        text = KERNEL_CHANGELOG + "\ngarbage after entry\n"

        with self.assertRaises(FormatError) as cm:
            parse_changelog_text(text)

        self.assertEqual(cm.exception.line_number, 11)
        self.assertEqual(cm.exception.line, "garbage after entry")

    def test_malformed_trailer(self):
        """Test that a maintainer line without an address is rejected"""
        text = "pkg (1.0) unstable; urgency=low\n  * Change\n -- nobody\n"

        with self.assertRaises(FormatError) as cm:
            parse_changelog_text(text)

        self.assertEqual(cm.exception.code, ErrorCode.TRAILER_FORMAT)
        self.assertEqual(cm.exception.line, " -- nobody")
        self.assertEqual(cm.exception.line_number, 3)

    def test_bad_date(self):
        """Test that an unparseable trailer date is rejected"""
        text = "pkg (1.0) unstable; urgency=low\n -- A B <a@b.com>  not-a-date\n"

        with self.assertRaises(FormatError) as cm:
            parse_changelog_text(text)

        self.assertEqual(cm.exception.code, ErrorCode.DATE_FORMAT)
        self.assertIn("not-a-date", str(cm.exception))
        self.assertIsInstance(cm.exception.__cause__, ValueError)
        self.assertEqual(cm.exception.column, 20)

    def test_one_digit_day(self):
        """Test that a date with a one-digit day is rejected"""
        text = "pkg (1.0) unstable; urgency=low\n -- A <a@b.c>  Mon, 1 Jan 2024 12:00:00 +0000\n"

        with self.assertRaises(FormatError) as cm:
            parse_changelog_text(text)

        self.assertEqual(cm.exception.code, ErrorCode.DATE_FORMAT)

    def test_missing_trailer(self):
        """Test that input ending inside an entry is rejected"""
        text = KERNEL_CHANGELOG + "\nlinux (5.15.0-26.26) jammy; urgency=medium\n  * Change C\n"

        with self.assertRaises(FormatError) as cm:
            parse_changelog_text(text)

        self.assertEqual(cm.exception.code, ErrorCode.UNTERMINATED_ENTRY)
        self.assertEqual(cm.exception.line, "linux (5.15.0-26.26) jammy; urgency=medium")
        self.assertEqual(cm.exception.line_number, 11)


class TestChangelogParser(unittest.TestCase):
    def test_state_transitions(self):
        """Test the state after each kind of line"""
        parser = ChangelogParser()
        self.assertEqual(parser.state, ParseState.INITIAL)

        parser.feed("pkg (1.0) unstable; urgency=low\n")
        self.assertEqual(parser.state, ParseState.IN_ENTRY)
        parser.feed("  * Change\n")
        self.assertEqual(parser.state, ParseState.IN_CHANGE)
        parser.feed("    - Detail\n")
        self.assertEqual(parser.state, ParseState.IN_DETAIL)
        parser.feed("      more\n")
        self.assertEqual(parser.state, ParseState.IN_DETAIL)
        parser.feed("  * Another change\n")
        self.assertEqual(parser.state, ParseState.IN_CHANGE)
        self.assertEqual(parser.entries, [])

        parser.feed(" -- A <a@b.c>  Mon, 01 Jan 2024 12:00:00 +0000\n")
        self.assertEqual(parser.state, ParseState.INITIAL)
        self.assertEqual(len(parser.finish()), 1)


class TestParseChangelogFile(unittest.TestCase):
    def test_parse_file(self):
        """Test parsing a changelog stored on disk"""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "changelog")
            with open(path, "w", encoding="utf-8") as f:
                f.write(TWO_ENTRIES)

            entries = parse_changelog_file(path)

        self.assertEqual(entries, parse_changelog_text(TWO_ENTRIES))

    def test_missing_file(self):
        """Test that I/O errors propagate unchanged"""
        with self.assertRaises(FileNotFoundError):
            parse_changelog_file("/nonexistent/debian/changelog")


if __name__ == "__main__":
    unittest.main()
