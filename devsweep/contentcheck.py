"""Checks applied to the lines of files to find particular content."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, NamedTuple

DEFAULT_CHECKER_PART = "match"


class ContentCheckError(ValueError):
    """Raised when a content check cannot be built or changed."""


@dataclass
class ContentCheck:
    """Patterns used to check the contents of a file."""

    name: str
    match_pattern: re.Pattern[str] | None = None
    skip_pattern: re.Pattern[str] | None = None
    stop_pattern: re.Pattern[str] | None = None
    filename_pattern: re.Pattern[str] | None = None

    def __str__(self) -> str:
        part_prefix = " " * (len(self.name) + 1)
        val_prefix = part_prefix + "    "
        match = self.match_pattern.pattern if self.match_pattern else ""
        lines = [
            self.name + ":",
            part_prefix + "A file has a line matching pattern:",
            val_prefix + match,
        ]
        extras = (
            (self.skip_pattern, "Skip if line also matches pattern:"),
            (self.stop_pattern, "Stop looking after a line matching pattern:"),
            (self.filename_pattern, "Only search files matching pattern:"),
        )
        for pattern, intro in extras:
            if pattern is not None:
                lines.append(part_prefix + intro)
                lines.append(val_prefix + pattern.pattern)
        return "\n".join(lines)

    def file_name_ok(self, fn: str) -> bool:
        """Return True if the filename matches the filename pattern, if any."""
        if self.filename_pattern is None:
            return True
        return self.filename_pattern.search(fn) is not None

    def stop(self, s: str) -> bool:
        """Return True if the line matches the stop pattern, if any."""
        if self.stop_pattern is None:
            return False
        return self.stop_pattern.search(s) is not None

    def match(self, s: str) -> bool:
        """Return True if the line matches the match pattern and not the skip pattern."""
        if self.match_pattern is None:
            return False
        if self.match_pattern.search(s) is None:
            return False
        if self.skip_pattern is None:
            return True
        return self.skip_pattern.search(s) is None


def _set_pattern(chk: ContentCheck | None, s: str, part: str, attr: str) -> None:
    prefix = f"Could not set the {part} pattern"
    if chk is None:
        raise ContentCheckError(prefix + " - the ContentCheck value is missing")
    prefix += " for " + chk.name
    if getattr(chk, attr) is not None:
        raise ContentCheckError(
            f"{prefix} - the {part} pattern is already set")
    try:
        compiled = re.compile(s)
    except re.error as err:
        raise ContentCheckError(f"{prefix} - bad pattern: {err}") from err
    setattr(chk, attr, compiled)


def set_match_pattern(chk: ContentCheck | None, s: str) -> None:
    """Set the match pattern; raise ContentCheckError if set already or invalid."""
    _set_pattern(chk, s, "match", "match_pattern")


def set_skip_pattern(chk: ContentCheck | None, s: str) -> None:
    """Set the skip pattern; raise ContentCheckError if set already or invalid."""
    _set_pattern(chk, s, "skip", "skip_pattern")


def set_stop_pattern(chk: ContentCheck | None, s: str) -> None:
    """Set the stop pattern; raise ContentCheckError if set already or invalid."""
    _set_pattern(chk, s, "stop", "stop_pattern")


def set_filename_pattern(chk: ContentCheck | None, s: str) -> None:
    """Set the filename pattern; raise ContentCheckError if set already or invalid."""
    _set_pattern(chk, s, "filename", "filename_pattern")


class CheckerPart(NamedTuple):
    """A settable part of a content check with its description."""

    desc: str
    setter: Callable[[ContentCheck | None, str], None]


CHECKER_PARTS: dict[str, CheckerPart] = {
    DEFAULT_CHECKER_PART: CheckerPart("match file content", set_match_pattern),
    "stop": CheckerPart(
        "stop further checking."
        " Once a line is found matching this pattern"
        " no more lines in the file will be checked"
        " by this checker.",
        set_stop_pattern),
    "skip": CheckerPart(
        "skip otherwise matching lines."
        " If a line matches the match pattern"
        " but also matches this skip pattern then"
        " it is taken as not being a matching line.",
        set_skip_pattern),
    "filename": CheckerPart(
        "limit the files to check. This check will"
        " only be applied to files with names matching this pattern.",
        set_filename_pattern),
}


def checker_part_names() -> list[str]:
    """Return the sorted names of the checker parts, excluding the default."""
    return sorted(k for k in CHECKER_PARTS if k != DEFAULT_CHECKER_PART)


def checker_parts_help_text() -> str:
    """Return a description of each named checker part, one per line."""
    names = checker_part_names()
    width = max((len(n) for n in names), default=0)
    return "\n".join(f"  {n:<{width}}: {CHECKER_PARTS[n].desc}"
                     for n in names)


@dataclass
class StatusCheck:
    """A content check together with whether its stop pattern has matched."""

    chk: ContentCheck
    stopped: bool = False

    def check_line(self, s: str) -> bool:
        """Apply the check to a line, noting when the stop pattern matches."""
        if self.stopped:
            return False
        if self.chk.stop(s):
            self.stopped = True
            return False
        return self.chk.match(s)


def build_tag_check() -> ContentCheck:
    """Return a check for files having a build tag."""
    return ContentCheck(
        name="build-tag",
        match_pattern=re.compile(r"^//\s*\+build\s+"),
        stop_pattern=re.compile(r"^\s*package\s+"),
        filename_pattern=re.compile(r".*\.go"),
    )


def go_generate_check() -> ContentCheck:
    """Return a check for files having a go:generate comment."""
    return ContentCheck(
        name="go-gen",
        match_pattern=re.compile(r"^//go:generate\s+"),
        filename_pattern=re.compile(r".*\.go"),
    )