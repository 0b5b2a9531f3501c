"""
Marker-delimited section replacement inside Markdown documents.

A managed section starts at a literal heading line (the marker) and runs
until the next heading of the same or a shallower level, or the end of the
document. Patching replaces exactly that span, so running the same patch
twice gives the same bytes as running it once.
"""
import re
from typing import Iterator, List, Optional, Tuple

from utils.errors import PatchError

HEADING = re.compile(r"^(#{1,6})[ \t]+\S")
FENCE = re.compile(r"^[ ]{0,3}(`{3,}|~{3,})(.*)$")


def heading_level(line: str) -> Optional[int]:
    """Returns the ATX heading level of `line`, or None if it is not a heading."""
    match = HEADING.match(line)
    return len(match.group(1)) if match else None


def _lines_with_offsets(text: str) -> Iterator[Tuple[int, str]]:
    offset = 0
    for line in text.splitlines(keepends=True):
        yield offset, line
        offset += len(line)


def _strip_eol(line: str) -> str:
    return line.rstrip("\r\n")


def _opens_fence(match: "re.Match[str]") -> bool:
    # Backtick info strings may not contain backticks.
    return not (match.group(1)[0] == "`" and "`" in match.group(2))


def _closes_fence(match: "re.Match[str]", fence: str) -> bool:
    run = match.group(1)
    return run[0] == fence[0] and len(run) >= len(fence) and not match.group(2).strip()


def _fenced_lines(lines: List[str]) -> List[bool]:
    """
    Flags the lines that belong to a fenced code block.

    A fence is closed by a run of the same character at least as long as
    the opening run, with nothing after it. A fence that is never closed
    hides nothing: its opening line is read as plain text and the scan is
    repeated.
    """
    plain_openers = set()
    while True:
        fenced = [False] * len(lines)
        fence: Optional[str] = None
        opened_at = 0
        for index, line in enumerate(lines):
            match = FENCE.match(line)
            if fence is None:
                if match and index not in plain_openers and _opens_fence(match):
                    fence, opened_at = match.group(1), index
                    fenced[index] = True
                continue
            fenced[index] = True
            if match and _closes_fence(match, fence):
                fence = None
        if fence is None:
            return fenced
        plain_openers.add(opened_at)


class SectionPatcher:
    """
    Locates and replaces the section headed by `marker`.

    Args:
        marker: The heading line that opens the managed section,
            e.g. "## 🤖 Automated Development Status".
        anchor: A heading line before which the section is inserted the first
            time, when the document has no marker yet.
    """

    def __init__(self, marker: str, anchor: Optional[str] = None):
        marker = _strip_eol(marker)
        level = heading_level(marker)
        if level is None:
            raise PatchError(f"Marker must be a Markdown heading, got {marker!r}.")
        if level == 6:
            # Sub-headings inside the section need a deeper level.
            raise PatchError(f"Marker must be a heading of level 5 or shallower, got {marker!r}.")
        self.marker = marker
        self.level = level
        self.anchor = _strip_eol(anchor) if anchor else None
        if self.anchor is not None:
            anchor_level = heading_level(self.anchor)
            # The anchor must close the section on the next run.
            if anchor_level is None or anchor_level > level:
                raise PatchError(
                    f"Anchor must be a heading of level {level} or shallower, got {self.anchor!r}."
                )

    def _find_line(self, text: str, literal: str) -> Optional[int]:
        """Offset of the first line that reads exactly `literal` (outside code fences)."""
        for offset, line, in_fence in self._scan(text):
            if not in_fence and _strip_eol(line).rstrip() == literal:
                return offset
        return None

    @staticmethod
    def _scan(text: str) -> List[Tuple[int, str, bool]]:
        """Pairs every line with its offset and whether it sits inside a fenced code block."""
        lines = list(_lines_with_offsets(text))
        fenced = _fenced_lines([_strip_eol(line) for _, line in lines])
        return [(offset, line, in_fence) for (offset, line), in_fence in zip(lines, fenced)]

    def _boundaries(self, text: str, start: int) -> List[int]:
        """Offsets of heading lines after `start` that close a section of this level."""
        found = []
        for offset, line, in_fence in self._scan(text[start:]):
            if offset == 0 or in_fence:
                continue
            level = heading_level(line)
            if level is not None and level <= self.level:
                found.append(start + offset)
        return found

    def locate(self, document: str) -> Optional[Tuple[int, int]]:
        """
        Returns the half-open span `[start, end)` of the managed section, or
        None when the marker is absent. Only the first marker counts.
        """
        start = self._find_line(document, self.marker)
        if start is None:
            return None
        boundaries = self._boundaries(document, start)
        return start, boundaries[0] if boundaries else len(document)

    def extract(self, document: str) -> Optional[str]:
        """Returns the managed section's text with trailing blank lines trimmed to one newline."""
        span = self.locate(document)
        if span is None:
            return None
        return document[span[0]:span[1]].rstrip("\r\n") + "\n"

    def validate_section(self, section: str) -> None:
        """
        Checks that `section` opens with the marker and holds no heading that
        would end the section early when the document is patched again.
        """
        first_line = _strip_eol(section.splitlines()[0]) if section else ""
        if first_line.rstrip() != self.marker:
            raise PatchError(f"Section must start with the marker heading {self.marker!r}.")
        if self._boundaries(section, 0):
            raise PatchError(
                f"Section contains a heading of level {self.level} or shallower; "
                "nest sub-headings deeper than the marker."
            )

    def patch(self, document: str, section: str) -> str:
        """
        Merges `section` into `document`.

        - marker present: the span from the marker to the next heading of the
          same or shallower level (or the end) is replaced;
        - marker absent, anchor present: the section is inserted right before
          the first anchor line, followed by a blank line;
        - otherwise: the section is appended after a blank line.

        Raises:
            PatchError: If `section` does not satisfy `validate_section`.
        """
        self.validate_section(section)
        body = section.rstrip("\r\n")

        span = self.locate(document)
        if span is not None:
            start, end = span
            tail = document[end:]
            return document[:start] + body + ("\n\n" if tail else "\n") + tail

        anchor_at = self._find_line(document, self.anchor) if self.anchor else None
        if anchor_at is not None:
            return document[:anchor_at] + body + "\n\n" + document[anchor_at:]

        if not document:
            separator = ""
        elif document.endswith("\n\n"):
            separator = ""
        elif document.endswith("\n"):
            separator = "\n"
        else:
            separator = "\n\n"
        return document + separator + body + "\n"
