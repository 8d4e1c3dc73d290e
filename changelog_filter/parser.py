"""
Line-oriented parser turning debian/changelog text into Entry objects.
"""
from enum import Enum
from typing import Iterable, List, Optional, Union

from changelog_filter.common.debian.changelog import (
    CHANGE_PREFIX,
    DATE_SHAPE,
    DETAIL_HEAD_PREFIX,
    DETAIL_TAIL_PREFIX,
    HEADER_SHAPE,
    TRAILER_PREFIX,
    TRAILER_SHAPE,
    Change,
    Detail,
    Entry,
    parse_date,
    parse_header,
    parse_trailer,
)
from changelog_filter.common.errors import ErrorCode, FormatError
from changelog_filter.common.logging import get_logger


class ParseState(Enum):
    INITIAL = "initial"
    IN_ENTRY = "in-entry"
    IN_CHANGE = "in-change"
    IN_DETAIL = "in-detail"


class LineKind(Enum):
    CHANGE = "change"
    DETAIL_HEAD = "detail-head"
    DETAIL_TAIL = "detail-tail"
    TRAILER = "trailer"


LINE_PREFIXES = {
    LineKind.CHANGE: CHANGE_PREFIX,
    LineKind.DETAIL_HEAD: DETAIL_HEAD_PREFIX,
    LineKind.DETAIL_TAIL: DETAIL_TAIL_PREFIX,
    LineKind.TRAILER: TRAILER_PREFIX,
}

# Line kinds accepted in each state, in the order they are tested.
# A detail head inside an entry without a change is consumed and dropped.
TRANSITIONS = {
    ParseState.IN_ENTRY: [LineKind.CHANGE, LineKind.DETAIL_HEAD, LineKind.TRAILER],
    ParseState.IN_CHANGE: [LineKind.CHANGE, LineKind.DETAIL_HEAD, LineKind.TRAILER],
    ParseState.IN_DETAIL: [LineKind.CHANGE, LineKind.DETAIL_HEAD, LineKind.DETAIL_TAIL, LineKind.TRAILER],
}


class ChangelogParser:
    """
    State machine consuming changelog lines one at a time.

    Entries are only moved to ``entries`` once their trailer line is parsed;
    ``finish()`` must be called after the last line.
    """

    def __init__(self):
        self.logger = get_logger("parser")
        self.state = ParseState.INITIAL
        self.entries: List[Entry] = []
        self._entry: Optional[Entry] = None
        self._entry_line: Optional[str] = None
        self._entry_line_number = 0
        self._line_number = 0

    def feed(self, line: Union[str, bytes]) -> None:
        """Process one raw input line."""
        if isinstance(line, bytes):
            line = line.decode("utf-8")
        self._line_number += 1
        line = line.rstrip("\r\n")
        if not line:
            return

        if self.state == ParseState.INITIAL:
            self._start_entry(line)
            return

        for kind in TRANSITIONS[self.state]:
            if line.startswith(LINE_PREFIXES[kind]):
                self._handle(kind, line)
                return
        self.logger.debug(f"Skipping line {self._line_number} in state {self.state.value}: {line!r}")

    def finish(self) -> List[Entry]:
        """Check the input ended between entries and return the parsed entries."""
        if self.state != ParseState.INITIAL:
            raise FormatError(
                f"entry {self._entry.package} ({self._entry.version}) has no trailer line",
                line=self._entry_line,
                line_number=self._entry_line_number,
                expected=TRAILER_SHAPE,
                code=ErrorCode.UNTERMINATED_ENTRY,
            )
        self.logger.info(f"Parsed {len(self.entries)} changelog entries")
        return self.entries

    def _handle(self, kind: LineKind, line: str) -> None:
        if kind == LineKind.CHANGE:
            self._entry.changes.append(Change(summary=line[len(CHANGE_PREFIX):]))
            self.state = ParseState.IN_CHANGE
        elif kind == LineKind.DETAIL_HEAD:
            if self.state == ParseState.IN_ENTRY:
                self.logger.debug(f"Ignoring detail without a change at line {self._line_number}")
                return
            self._entry.changes[-1].details.append(Detail(lines=[line[len(DETAIL_HEAD_PREFIX):]]))
            self.state = ParseState.IN_DETAIL
        elif kind == LineKind.DETAIL_TAIL:
            self._entry.changes[-1].details[-1].lines.append(line[len(DETAIL_TAIL_PREFIX):])
        elif kind == LineKind.TRAILER:
            self._finish_entry(line)

    def _start_entry(self, line: str) -> None:
        header = parse_header(line)
        if header is None:
            raise FormatError(
                f"invalid format entry line: {line}",
                line=line,
                line_number=self._line_number,
                expected=HEADER_SHAPE,
                code=ErrorCode.HEADER_FORMAT,
            )
        self._entry = Entry(
            package=header.package,
            version=header.version,
            distributions=header.distributions,
            metadata=header.metadata,
        )
        self._entry_line = line
        self._entry_line_number = self._line_number
        self.state = ParseState.IN_ENTRY

    def _finish_entry(self, line: str) -> None:
        trailer = parse_trailer(line)
        if trailer is None:
            raise FormatError(
                f"invalid format maintainer line: {line}",
                line=line,
                line_number=self._line_number,
                expected=TRAILER_SHAPE,
                code=ErrorCode.TRAILER_FORMAT,
            )
        try:
            date = parse_date(trailer["date"])
        except ValueError as e:
            raise FormatError(
                f"parse date: {trailer['date']}, {e}",
                line=line,
                line_number=self._line_number,
                expected=DATE_SHAPE,
                code=ErrorCode.DATE_FORMAT,
                column=line.rfind(trailer["date"]) + 1,
            ) from e

        entry = self._entry
        entry.maintainer_name = trailer["maintainer_name"]
        entry.email_address = trailer["email_address"]
        entry.date = date
        self.entries.append(entry)
        self.logger.debug(f"Parsed entry {entry.package} ({entry.version}) with {len(entry.changes)} changes")

        self._entry = None
        self._entry_line = None
        self.state = ParseState.INITIAL


def parse_changelog(lines: Iterable[Union[str, bytes]]) -> List[Entry]:
    """
    Parse changelog text into a list of entries.

    Args:
        lines: Any iterable of lines, e.g. an open text or binary file

    Returns:
        The entries in input order

    Raises:
        FormatError: a header or trailer line is malformed, or the input
            ends inside an entry
    """
    parser = ChangelogParser()
    for line in lines:
        parser.feed(line)
    return parser.finish()


def parse_changelog_text(text: str) -> List[Entry]:
    """Parse changelog content held in a string."""
    return parse_changelog(text.split("\n"))


def parse_changelog_file(filename: str) -> List[Entry]:
    """Parse the changelog stored in ``filename``."""
    logger = get_logger("parser")
    logger.debug(f"Reading changelog from {filename}")
    with open(filename, encoding="utf-8", newline="\n") as f:
        return parse_changelog(f)
