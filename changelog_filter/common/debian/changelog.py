"""
Data model for debian/changelog entries and the per-line parsers/renderers.

See deb-changelog(5) for the format:
https://manpages.debian.org/testing/dpkg-dev/deb-changelog.5.en.html
"""
from __future__ import annotations
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Dict, Iterable, List, Optional
import re

from parse import compile as compile_format, with_pattern

CHANGE_PREFIX = "  * "
DETAIL_HEAD_PREFIX = "    - "
DETAIL_TAIL_PREFIX = "      "
TRAILER_PREFIX = " -- "

DATE_FORMAT = "%a, %d %b %Y %H:%M:%S %z"

HEADER_SHAPE = "NAME (VERSION) DISTRIBUTIONS; METADATA"
TRAILER_SHAPE = " -- NAME <EMAIL> DATE"
DATE_SHAPE = "Weekday, DD Mon YYYY HH:MM:SS +ZZZZ"
DATE_SHAPE_RE = re.compile(r"[A-Za-z]{3}, \d{2} [A-Za-z]{3} \d{4} \d{2}:\d{2}:\d{2} [+-]\d{4}")


@with_pattern(r"[^ ]+")
def _token(text):
    return text


@with_pattern(r"[^)]+")
def _version(text):
    return text


@with_pattern(r"[^;]+")
def _distributions(text):
    return text


@with_pattern(r"[^<]+")
def _name(text):
    return text


@with_pattern(r"[^>]+")
def _email(text):
    return text


@with_pattern(r".*")
def _tail(text):
    return text


@with_pattern(r" +")
def _gap(text):
    return text


_FIELD_TYPES = {
    "Token": _token,
    "Version": _version,
    "Distributions": _distributions,
    "Name": _name,
    "Email": _email,
    "Tail": _tail,
    "Gap": _gap,
}

# Fields may be separated by runs of spaces
HEADER_PATTERN = compile_format(
    "{package:Token}{gap_version:Gap}({version:Version}){gap_distributions:Gap}"
    "{distributions:Distributions};{gap_metadata:Gap}{metadata:Tail}",
    extra_types=_FIELD_TYPES,
    case_sensitive=True,
)
TRAILER_PATTERN = compile_format(
    TRAILER_PREFIX + "{maintainer_name:Name} <{email_address:Email}> {date:Tail}",
    extra_types=_FIELD_TYPES,
    case_sensitive=True,
)


@dataclass
class Detail:
    """One sub-bullet of a change, possibly wrapped over several lines."""
    lines: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {"lines": list(self.lines)}


@dataclass
class Change:
    """One bullet item of an entry."""
    summary: str
    details: List[Detail] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "summary": self.summary,
            "details": [d.to_dict() for d in self.details],
        }


@dataclass
class EntryHeader:
    package: str
    version: str
    distributions: str
    metadata: str


@dataclass
class Entry:
    """
    One changelog stanza: header line, bullet changes and the maintainer trailer.
    """
    package: str
    version: str
    distributions: str
    metadata: str
    maintainer_name: str = ""
    email_address: str = ""
    date: Optional[datetime] = None
    changes: List[Change] = field(default_factory=list)

    def distribution_list(self) -> List[str]:
        """
        Split the distributions field, which may separate suites by whitespace
        and sometimes commas. Examples: 'jammy', 'jammy-proposed',
        'jammy jammy-proposed'.
        """
        norm = re.sub(r"[,\s]+", " ", self.distributions).strip()
        return norm.split()

    def to_dict(self) -> Dict:
        d = asdict(self)
        d["date"] = self.date.isoformat() if self.date else None
        d["changes"] = [c.to_dict() for c in self.changes]
        return d

    def __str__(self) -> str:
        return render_entry(self)


def parse_header(line: str) -> Optional[EntryHeader]:
    """Parse an entry header line; returns None if the line has another shape."""
    m = HEADER_PATTERN.parse(line)
    if not m:
        return None
    return EntryHeader(
        package=m["package"],
        version=m["version"],
        distributions=m["distributions"],
        metadata=m["metadata"],
    )


def parse_trailer(line: str) -> Optional[dict]:
    """
    Split a trailer line into maintainer name, email address and date text.

    The date is returned unparsed; see parse_date(). Returns None if the line
    has another shape.
    """
    m = TRAILER_PATTERN.parse(line)
    if not m:
        return None
    return {
        "maintainer_name": m["maintainer_name"],
        "email_address": m["email_address"],
        "date": m["date"].lstrip(" "),
    }


def parse_date(text: str) -> datetime:
    """Parse a trailer date. Raises ValueError if it is not in DATE_FORMAT."""
    # strptime alone would accept one-digit days and hours
    if not DATE_SHAPE_RE.fullmatch(text):
        raise ValueError(f"time data {text!r} does not match format {DATE_SHAPE!r}")
    return datetime.strptime(text, DATE_FORMAT)


def format_date(date: datetime) -> str:
    return date.strftime(DATE_FORMAT)


def render_entry(entry: Entry) -> str:
    """
    Render an entry back into changelog text, without a trailing newline.

    The output is accepted by the parser and parses back into an equal entry.
    An entry without a date renders its trailer with the date left out.
    """
    lines = [f"{entry.package} ({entry.version}) {entry.distributions}; {entry.metadata}"]
    for change in entry.changes:
        lines.append(CHANGE_PREFIX + change.summary)
        for detail in change.details:
            for i, text in enumerate(detail.lines):
                prefix = DETAIL_HEAD_PREFIX if i == 0 else DETAIL_TAIL_PREFIX
                lines.append(prefix + text)
    trailer = f"{TRAILER_PREFIX}{entry.maintainer_name} <{entry.email_address}>"
    if entry.date is not None:
        trailer += f"  {format_date(entry.date)}"
    lines.append(trailer)
    return "\n".join(lines)


def render_entries(entries: Iterable[Entry]) -> str:
    """Render entries separated by a single blank line."""
    return "\n\n".join(render_entry(e) for e in entries)
