"""Counters recording what happened to the files found by the compare-and-remove tool."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import TextIO

_INITIAL_INDENT = 4
_SECOND_INDENT = 8


def _plural(word: str, count: int) -> str:
    return word if count == 1 else word + "s"


def _report_val(out: TextIO, n: int, name: str, indent: int) -> None:
    if n <= 0:
        return
    print(f"{' ' * indent}{n:3d} {name}", file=out)


@dataclass
class Counts:
    """The number of files of one kind and what was done to them."""

    name: str
    is_comparable: bool = False
    total: int = 0

    compared: int = 0
    cmp_errs: int = 0

    deleted: int = 0
    del_errs: int = 0

    reverted: int = 0
    rev_errs: int = 0

    def report(self, out: TextIO | None = None) -> None:
        """Write a summary of these counts; nothing is written if there are no files."""
        out = sys.stdout if out is None else out
        if self.total == 0:
            return

        _report_val(out, self.total,
                    f"{self.name} {_plural('file', self.total)}",
                    _INITIAL_INDENT)

        if self.is_comparable:
            _report_val(out, self.compared, "compared", _SECOND_INDENT)
            _report_val(out, self.cmp_errs,
                        "comparison " + _plural("error", self.cmp_errs),
                        _SECOND_INDENT)
            _report_val(out, self.total - self.cmp_errs - self.compared,
                        "skipped (not checked)", _SECOND_INDENT)
            print(file=out)

        _report_val(out, self.deleted, "deleted", _SECOND_INDENT)
        _report_val(out, self.del_errs,
                    "deletion " + _plural("error", self.del_errs),
                    _SECOND_INDENT)
        _report_val(out, self.reverted, "reverted", _SECOND_INDENT)
        _report_val(out, self.rev_errs,
                    "revert " + _plural("error", self.rev_errs),
                    _SECOND_INDENT)
        _report_val(out, self.total - self.deleted - self.reverted,
                    "kept", _SECOND_INDENT)


@dataclass
class Status:
    """Counts for the comparable, duplicate and problem files."""

    cmp_file: Counts = field(
        default_factory=lambda: Counts("comparable", is_comparable=True))
    dup_file: Counts = field(default_factory=lambda: Counts("duplicate"))
    bad_file: Counts = field(default_factory=lambda: Counts("problem"))

    def report(self, out: TextIO | None = None) -> None:
        """Write the summary of all the counts."""
        out = sys.stdout if out is None else out
        print("Summary", file=out)

        if self.cmp_file.total + self.dup_file.total + self.bad_file.total == 0:
            print("No files found", file=out)
            return

        self.bad_file.report(out)
        self.dup_file.report(out)
        self.cmp_file.report(out)