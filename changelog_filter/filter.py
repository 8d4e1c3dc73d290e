"""
Filtering of parsed changelog entries by a regular expression.
"""
from dataclasses import replace
from typing import Iterable, List, Optional, Union
import re

from changelog_filter.common.debian.changelog import Change, Detail, Entry
from changelog_filter.common.errors import PatternSyntaxError
from changelog_filter.common.logging import get_logger


def compile_pattern(source: str) -> re.Pattern:
    """Compile a filter pattern, raising PatternSyntaxError on bad syntax."""
    try:
        return re.compile(source)
    except re.error as e:
        raise PatternSyntaxError(source, str(e)) from e


def detail_matches(detail: Detail, pattern: re.Pattern) -> bool:
    """A detail matches when any of its lines does."""
    return any(pattern.search(line) for line in detail.lines)


class _EntryMatcher:
    """Collects the matching parts of a single entry into a fresh copy."""

    def __init__(self, entry: Entry):
        self.entry = entry
        self.matched: Optional[Entry] = None
        self.current_change: Optional[Change] = None

    def add_change(self, change: Change) -> None:
        if self.matched is None:
            self.matched = replace(self.entry, changes=[])
        self.current_change = Change(summary=change.summary)
        self.matched.changes.append(self.current_change)

    def add_detail(self, change: Change, detail: Detail) -> None:
        if self.current_change is None:
            self.add_change(change)
        self.current_change.details.append(Detail(lines=list(detail.lines)))

    def clear_change(self) -> None:
        self.current_change = None


def filter_entries(entries: Iterable[Entry], pattern: Union[str, re.Pattern]) -> List[Entry]:
    """
    Keep the changes and details matching ``pattern``.

    A change is kept when its summary or any of its details matches; only the
    matching details are kept with it. Kept parts carry a copy of their
    entry's header and trailer fields, and entries with nothing kept are
    dropped. The input entries are left untouched.

    Args:
        entries: Parsed changelog entries
        pattern: Compiled regular expression, or its source

    Returns:
        New list of entries holding only the matching content
    """
    logger = get_logger("filter")
    if isinstance(pattern, str):
        pattern = compile_pattern(pattern)
    logger.debug(f"Filtering with pattern {pattern.pattern!r}")

    matched_entries = []
    for entry in entries:
        matcher = _EntryMatcher(entry)
        for change in entry.changes:
            if pattern.search(change.summary):
                matcher.add_change(change)
            else:
                matcher.clear_change()
            for detail in change.details:
                if detail_matches(detail, pattern):
                    matcher.add_detail(change, detail)
        if matcher.matched is not None:
            matched_entries.append(matcher.matched)

    logger.info(f"{len(matched_entries)} of the parsed entries matched")
    return matched_entries
