"""Find files with an extension, compare them with their base files and tidy up."""

from __future__ import annotations

import enum
import json
import os
import subprocess
import sys
import textwrap
from dataclasses import dataclass, field
from typing import Iterable, Protocol, TextIO

from devsweep.cmprm_status import Counts, Status

DEFAULT_EXTENSION = ".orig"
DEFAULT_DIR = "."
DEFAULT_DIFF_CMD = "diff"
DEFAULT_LESS_CMD = "less"

FILENAME_INDENT = 8
WRAP_WIDTH = 80


class DupAction(str, enum.Enum):
    """What to do with files identical to their base file."""

    DELETE = "delete"
    QUERY = "query"
    KEEP = "keep"


class CmpAction(str, enum.Enum):
    """What to do with files that differ from their base file."""

    SHOW_DIFF = "show-diffs"
    QUERY = "query"
    KEEP_ALL = "keep-all"
    DELETE_ALL = "delete-all"
    REVERT_ALL = "revert-all"


@dataclass
class CmdInfo:
    """A command name and the parameters to give it."""

    name: str
    params: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class BadFile:
    """A file for which some problem was found."""

    name: str
    problem: str


class _ResponderLike(Protocol):
    def get_response(self, first_indent: int, indent: int) -> str: ...


class Responder:
    """Prompts the user and reads a single-character reply."""

    def __init__(self, prompt: str, responses: dict[str, str], default: str,
                 *, inp: TextIO | None = None, out: TextIO | None = None):
        if default not in responses:
            raise ValueError(
                f"the default response {default!r} is not an allowed response")
        self.prompt = prompt
        self.responses = dict(responses)
        self.default = default
        self._inp = inp
        self._out = out

    def get_response(self, first_indent: int = 0, indent: int = 0) -> str:
        """Prompt until a valid reply is given; an empty reply gives the default."""
        inp = sys.stdin if self._inp is None else self._inp
        out = sys.stdout if self._out is None else self._out
        pad = " " * first_indent
        choices = "/".join(self.responses)
        while True:
            out.write(f"{pad}{self.prompt} ({choices},"
                      f" default: {self.default}) ? ")
            out.flush()
            line = inp.readline()
            if not line:
                raise EOFError(f"no response given to: {self.prompt}")
            answer = line.strip()
            if not answer:
                return self.default
            if len(answer) == 1 and answer in self.responses:
                return answer
            out.write(f"{' ' * indent}Unexpected response: {answer!r}."
                      " Please reply with one of:\n")
            for key, desc in self.responses.items():
                out.write(f"{' ' * (indent + 4)}{key}: {desc}\n")
            pad = " " * indent


@dataclass
class FixedResponder:
    """A responder that always gives the same reply without prompting."""

    response: str

    def get_response(self, first_indent: int = 0, indent: int = 0) -> str:
        return self.response


def _plural(word: str, count: int) -> str:
    return word if count == 1 else word + "s"


def _quote(s: str) -> str:
    return json.dumps(s, ensure_ascii=False)


def file_contents_differ(f1: bytes, f2: bytes) -> bool:
    """Return True if the two contents differ."""
    return f1 != f2


def report_files(count: int, desc: str, action: str,
                 out: TextIO | None = None) -> None:
    """Report the number of files, their kind and what was done to them."""
    if count == 0:
        return
    out = sys.stdout if out is None else out
    print(f"{count} {desc} {_plural('file', count)} {action}", file=out)


@dataclass
class Prog:
    """Settings and state for finding, comparing and removing files."""

    search_dir: str = DEFAULT_DIR
    search_sub_dirs: bool = True
    file_extension: str = DEFAULT_EXTENSION

    diff: CmdInfo = field(default_factory=lambda: CmdInfo(DEFAULT_DIFF_CMD))
    less: CmdInfo = field(default_factory=lambda: CmdInfo(DEFAULT_LESS_CMD))

    dup_action: DupAction = DupAction.QUERY
    cmp_action: CmpAction = CmpAction.QUERY

    verbose: bool = False

    show_diff_r: _ResponderLike | None = None
    delete_dup_r: _ResponderLike | None = None
    post_diff_r: _ResponderLike | None = None

    status: Status = field(default_factory=Status)
    indent: int = 0

    out: TextIO = field(default_factory=lambda: sys.stdout)
    err: TextIO = field(default_factory=lambda: sys.stderr)
    inp: TextIO = field(default_factory=lambda: sys.stdin)

    def set_responders(self) -> None:
        """Create the interactive responders."""
        ext = self.file_extension
        self.show_diff_r = Responder(
            "Show differences",
            {
                "y": "to show differences",
                "n": "to skip this file",
                "d": "delete this and all subsequent files with extension "
                     + ext,
                "r": "revert this and all subsequent base files to the"
                     " contents of the files with extension " + ext,
                "q": "to quit, keeping all subsequent files",
            },
            "y", inp=self.inp, out=self.out)
        self.post_diff_r = Responder(
            "delete file",
            {
                "y": "to delete this file",
                "n": "to keep this file",
                "r": "to revert the base file to this content",
                "q": "to quit, keeping all subsequent files",
            },
            "n", inp=self.inp, out=self.out)
        self.delete_dup_r = Responder(
            "delete all duplicate files",
            {
                "y": "to delete all duplicates files with extension " + ext,
                "n": "to keep these duplicates",
            },
            "y", inp=self.inp, out=self.out)

    # output helpers

    def _print(self, *args, end: str = "\n") -> None:
        print(*args, end=end, file=self.out)

    def _wrap(self, msg: str, indent: int) -> None:
        pad = " " * indent
        for para in msg.split("\n"):
            self._print(textwrap.fill(
                para, width=WRAP_WIDTH,
                initial_indent=pad, subsequent_indent=pad,
                break_long_words=False, break_on_hyphens=False))

    def _verbose_msg(self, msg: str) -> None:
        if self.verbose:
            self._wrap(msg, self.indent)

    def _path_list(self, paths: list[str], indent: int, indexed: bool) -> None:
        width = len(str(len(paths)))
        prev_dirs: list[str] = []
        for idx, path in enumerate(paths, start=1):
            parts = path.split(os.sep)
            dirs = parts[:-1]
            shared = 0
            for a, b in zip(dirs, prev_dirs):
                if a != b:
                    break
                shared += 1
            blank = ""
            if shared:
                blank = " " * (len(os.sep.join(dirs[:shared])) + len(os.sep))
            label = f"{idx:>{width}}: " if indexed else ""
            self._print(f"{' ' * indent}- {label}{blank}"
                        f"{os.sep.join(parts[shared:])}")
            prev_dirs = dirs

    # finding files

    def short_names(self, filenames: Iterable[str]) -> tuple[list[str], int]:
        """Return the names without the search directory, and the longest length."""
        prefix = self.search_dir + os.sep
        names = [fn.removeprefix(prefix) for fn in filenames]
        return names, max((len(n) for n in names), default=0)

    def _find_entries(self) -> list[str]:
        suffix = self.file_extension
        if not self.search_sub_dirs:
            with os.scandir(self.search_dir) as it:
                return [e.path for e in it
                        if e.name.endswith(suffix)
                        and e.is_file(follow_symlinks=False)]

        errors: list[OSError] = []
        found = []
        for dirpath, _dirnames, filenames in os.walk(self.search_dir,
                                                     onerror=errors.append):
            for name in filenames:
                if not name.endswith(suffix):
                    continue
                path = os.path.join(dirpath, name)
                if os.path.isfile(path) and not os.path.islink(path):
                    found.append(path)
        if errors:
            raise errors[0]
        return found

    def get_files(self) -> tuple[list[str], list[str], list[BadFile]]:
        """Find the regular files with the extension and classify them.

        Raises OSError if the search directory cannot be read.
        """
        return self.make_file_lists(self._find_entries())

    def make_file_lists(self, entries: Iterable[str]
                        ) -> tuple[list[str], list[str], list[BadFile]]:
        """Split the files into comparable files, duplicates and bad files."""
        filenames: list[str] = []
        duplicates: list[str] = []
        bad_files: list[BadFile] = []

        for name_orig in entries:
            name_new = name_orig.removesuffix(self.file_extension)
            try:
                is_dir = os.path.isdir(name_new) if os.stat(name_new) else False
            except FileNotFoundError:
                bad_files.append(BadFile(
                    name_orig, f"there is no file named {_quote(name_new)}"))
                continue
            except OSError as err:
                bad_files.append(BadFile(name_orig, str(err)))
                continue

            if is_dir:
                bad_files.append(BadFile(
                    name_orig, f"{_quote(name_new)} is a directory"))
                continue

            try:
                with open(name_new, "rb") as f:
                    new_content = f.read()
            except OSError as err:
                bad_files.append(BadFile(
                    name_orig, f"cannot read {_quote(name_new)}: {err}"))
                continue

            try:
                with open(name_orig, "rb") as f:
                    orig_content = f.read()
            except OSError as err:
                bad_files.append(BadFile(
                    name_orig, f"cannot read {_quote(name_orig)}: {err}"))
                continue

            if file_contents_differ(new_content, orig_content):
                filenames.append(name_orig)
            else:
                duplicates.append(name_orig)

        filenames.sort()
        duplicates.sort()
        bad_files.sort(key=lambda bf: bf.name)
        return filenames, duplicates, bad_files

    # showing and processing

    def show_bad_files(self, bad_files: list[BadFile]) -> None:
        """Display the files for which problems were found."""
        if not bad_files:
            return
        self.status.bad_file.total = len(bad_files)
        short, max_len = self.short_names(bf.name for bf in bad_files)
        report_files(len(bad_files), "problem", "found", self.out)
        self._print("in", self.search_dir)
        for name, bf in zip(short, bad_files):
            self._print(f"{' ' * FILENAME_INDENT}{name:>{max_len}}"
                        f" - {bf.problem}")
        self._print()

    def show_duplicate_files(self, dup_files: list[str]) -> None:
        """Display the duplicate files."""
        if not dup_files:
            return
        self.status.dup_file.total = len(dup_files)
        short, _ = self.short_names(dup_files)
        report_files(len(dup_files), "duplicate", "found", self.out)
        self._print("in", self.search_dir)
        self._path_list(short, FILENAME_INDENT, indexed=False)

    def process_duplicate_files(self, dup_files: list[str]) -> None:
        """Delete, keep or ask about the duplicate files."""
        if not dup_files:
            return
        if self.dup_action is DupAction.DELETE:
            self.delete_all_files(dup_files, self.status.dup_file)
        elif self.dup_action is DupAction.QUERY:
            if self._query_delete_duplicates() == "y":
                self.delete_all_files(dup_files, self.status.dup_file)
        self._print()

    def show_comparable_files(self, cmp_files: list[str]) -> None:
        """Display the comparable files with their index."""
        if not cmp_files:
            return
        self.status.cmp_file.total = len(cmp_files)
        short, _ = self.short_names(cmp_files)
        report_files(len(cmp_files), "comparable", "found", self.out)
        self._print("in", self.search_dir)
        self._path_list(short, FILENAME_INDENT, indexed=True)

    def process_comparable_files(self, cmp_files: list[str]) -> None:
        """Show differences for, delete, revert or keep each comparable file."""
        if not cmp_files:
            return
        short, w = self.short_names(cmp_files)
        digits = len(str(len(cmp_files) + 1))
        total = len(cmp_files)

        def header(i: int, n: int, name: str) -> str:
            return f"    ({i:>{digits}} / {n:>{digits}}) {name:>{w}.{w}}: "

        self.indent = len(header(0, 0, ""))

        for i, name_orig in enumerate(cmp_files):
            name_new = name_orig.removesuffix(self.file_extension)

            if self.cmp_action is CmpAction.QUERY:
                self._print(header(i + 1, total, short[i]), end="")
                if self._query_show_diff():
                    self._show_diff(name_orig, name_new, self.status.cmp_file)
            elif self.cmp_action is CmpAction.SHOW_DIFF:
                self._print(header(i + 1, total, short[i]), end="")
                self._show_diff(name_orig, name_new, self.status.cmp_file)

            # the query above may have changed the action
            if self.cmp_action is CmpAction.REVERT_ALL:
                self.revert_file(name_orig, name_new, self.status.cmp_file)
            elif self.cmp_action is CmpAction.DELETE_ALL:
                self.delete_file(name_orig, self.status.cmp_file)
            elif self.cmp_action is CmpAction.KEEP_ALL:
                report_files(total - i, "comparable", "kept", self.out)
                break
        self._print()

    def _query_delete_duplicates(self) -> str:
        response = self.delete_dup_r.get_response(0, self.indent)
        self._print()
        return response

    def _query_show_diff(self) -> bool:
        response = self.show_diff_r.get_response(0, self.indent)
        self._print()
        if response == "y":
            return True
        if response == "n":
            self._verbose_msg("Skipping...")
        elif response == "r":
            self._set_cmp_action(CmpAction.REVERT_ALL, "Reverting all...")
        elif response == "d":
            self._set_cmp_action(CmpAction.DELETE_ALL, "Deleting all...")
        elif response == "q":
            self._set_keep_all()
        return False

    def _set_cmp_action(self, action: CmpAction, msg: str) -> None:
        self._verbose_msg(msg)
        self.cmp_action = action

    def _set_keep_all(self) -> None:
        self._set_cmp_action(CmpAction.KEEP_ALL,
                             "All remaining files will be kept...")

    def _show_diff(self, name_orig: str, name_new: str, counts: Counts) -> None:
        try:
            self.diffs(name_orig, name_new)
        except RuntimeError as err:
            self._wrap(f"Error: {err}", self.indent)
            counts.cmp_errs += 1
            return
        counts.compared += 1
        self._query_delete_file(name_orig, name_new)

    def _query_delete_file(self, name_orig: str, name_new: str) -> None:
        response = self.post_diff_r.get_response(self.indent, self.indent)
        self._print()
        if response == "y":
            self.delete_file(name_orig, self.status.cmp_file)
        elif response == "r":
            self.revert_file(name_orig, name_new, self.status.cmp_file)
        elif response == "q":
            self._set_keep_all()

    def diffs(self, name_orig: str, name_new: str) -> None:
        """Run the diff command on the two files, paging its output.

        Raises RuntimeError if either command fails.
        """
        diff_args = [*self.diff.params, name_orig, name_new]
        diff_str = ("the diff command ("
                    + _quote(" ".join([self.diff.name, *diff_args])) + ")")
        less_str = ("the less command ("
                    + _quote(" ".join([self.less.name, *self.less.params]))
                    + ")")

        self.out.flush()
        try:
            diff_proc = subprocess.Popen([self.diff.name, *diff_args],
                                         stdout=subprocess.PIPE)
        except OSError as err:
            raise RuntimeError(f"{diff_str} could not be started: {err}") \
                from err

        try:
            less_proc = subprocess.Popen([self.less.name, *self.less.params],
                                         stdin=diff_proc.stdout)
        except OSError as err:
            diff_proc.stdout.close()
            diff_proc.wait()
            raise RuntimeError(f"{less_str} could not be started: {err}") \
                from err
        diff_proc.stdout.close()

        less_rc = less_proc.wait()
        diff_rc = diff_proc.wait()
        if less_rc != 0:
            raise RuntimeError(
                f"{less_str} finished with an error: exit status {less_rc}")
        # diff exits with 1 when the files differ
        if diff_rc not in (0, 1):
            raise RuntimeError(
                f"{diff_str} finished with an error: exit status {diff_rc}")

    def delete_all_files(self, filenames: Iterable[str], counts: Counts) -> None:
        """Delete all the files and report the outcome."""
        for name in filenames:
            self.delete_file(name, counts)
        report_files(counts.deleted, counts.name, "deleted", self.out)
        report_files(counts.del_errs, counts.name, "could not be deleted",
                     self.out)

    def delete_file(self, name: str, counts: Counts) -> None:
        """Delete the file, recording success or failure in the counts."""
        self._verbose_msg(f"Deleting {name}...")
        try:
            os.remove(name)
        except OSError as err:
            self._wrap(f"Couldn't delete the file: {err}", self.indent)
            counts.del_errs += 1
            return
        self._verbose_msg(f"{name} deleted")
        counts.deleted += 1

    def revert_file(self, name_orig: str, name_new: str, counts: Counts) -> None:
        """Replace the base file with the file having the extension."""
        self._verbose_msg(f"Reverting {name_new} to {name_orig}...")
        try:
            os.replace(name_orig, name_new)
        except OSError as err:
            self._wrap(f"Couldn't revert the file: {err}", self.indent)
            counts.rev_errs += 1
            return
        self._verbose_msg(f"{name_new} reverted to {name_orig}")
        counts.reverted += 1

    def run(self) -> int:
        """Find and process the files, returning an exit status."""
        if None in (self.show_diff_r, self.delete_dup_r, self.post_diff_r):
            self.set_responders()
        try:
            filenames, duplicates, bad_files = self.get_files()
        except OSError as err:
            print("Couldn't find the entries:", file=self.err)
            print("\t", err, file=self.err)
            return 1

        self.show_bad_files(bad_files)
        self.show_duplicate_files(duplicates)
        self.process_duplicate_files(duplicates)
        self.show_comparable_files(filenames)
        self.process_comparable_files(filenames)
        self.status.report(self.out)
        return 0