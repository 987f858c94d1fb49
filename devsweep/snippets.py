"""Install a collection of snippets into a directory, or compare two collections."""

from __future__ import annotations

import argparse
import json
import os
import sys
import textwrap
from dataclasses import dataclass, field
from datetime import datetime
from typing import Sequence, TextIO

PROG_NAME = "gosh.snippet"

INSTALL_ACTION = "install"
CMP_ACTION = "compare"

DEFAULT_MAX_SUB_DIRS = 10
MIN_SUB_DIRS = 3
LIST_ITEM_INDENT = 8
DEFAULT_DIR_PERMS = 0o755

DEFAULT_SNIPPET_DIR = os.path.join(
    os.path.dirname(os.path.abspath(__file__)), "_snippets")

_WRAP_WIDTH = 80

_DESCRIPTION = (
    "This can install the standard collection of useful snippets."
    " It can also be used to install snippets from a directory or to"
    " compare two collections of snippets."
    "\n\n"
    "The default behaviour is to compare the standard collection of"
    " snippets with those in the given target directory.")

_SNIP_DIR = "snipDir=$HOME/.config/devsweep/gosh/snippets"

_EPILOG = (
    "Examples:\n"
    f"  {_SNIP_DIR}\n"
    f"  {PROG_NAME} -target $snipDir\n"
    "      This will compare the standard collection of snippets with\n"
    "      those in the target directory\n"
    f"  {_SNIP_DIR}\n"
    f"  {PROG_NAME} -target $snipDir -install\n"
    "      This will install the standard collection of snippets into\n"
    "      the target directory\n"
    "\n"
    "See also:\n"
    "  findCmpRm\n"
    "      A program to find files with a given suffix and compare them\n"
    "      with corresponding files without the suffix. It is useful for\n"
    "      reviewing the copies of changed snippets moved aside during\n"
    "      installation and for cleaning up the snippet directory.")


class SnippetError(Exception):
    """Raised when snippets cannot be read, compared or installed."""

    def __init__(self, message: str,
                 errors: dict[str, list[str]] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or {}


@dataclass(frozen=True)
class Snippet:
    """The content of a snippet file and where it lives in the collection."""

    content: bytes
    dir_name: str
    name: str


@dataclass
class SnippetSet:
    """Snippets keyed by name, with the names in the order they were found."""

    files: dict[str, Snippet] = field(default_factory=dict)
    names: list[str] = field(default_factory=list)

    def add(self, snippet: Snippet) -> None:
        """Add the snippet to the set."""
        self.files[snippet.name] = snippet
        self.names.append(snippet.name)

    def __len__(self) -> int:
        return len(self.names)

    def __contains__(self, name: object) -> bool:
        return name in self.files


def _quote(s: str) -> str:
    return json.dumps(s, ensure_ascii=False)


def _plural(word: str, count: int) -> str:
    return word if count == 1 else word + "s"


def _wrap(text: str, out: TextIO) -> None:
    print(textwrap.fill(text, width=_WRAP_WIDTH), file=out)


def _list(items: Sequence[str], indent: int, out: TextIO) -> None:
    for item in items:
        print(" " * indent + item, file=out)


def trim_prefix(vals: Sequence[str], prefix: str) -> list[str]:
    """Return the values with the prefix removed from each."""
    return [v.removeprefix(prefix) for v in vals]


def write_snippet(snippet: Snippet, name: str) -> None:
    """Create the named file holding the snippet's content."""
    with open(name, "wb") as f:
        f.write(snippet.content)


def _format_errors(errors: dict[str, list[str]]) -> str:
    lines: list[str] = []
    for category, messages in errors.items():
        lines.append(f"{category}:")
        lines.extend("    " + m for m in messages)
    return "\n".join(lines)


def read_snippets(root: str,
                  max_sub_dirs: int = DEFAULT_MAX_SUB_DIRS) -> SnippetSet:
    """Read every file below root into a SnippetSet.

    Sub-directories nested more than max_sub_dirs deep are taken to be a
    loop. Raises SnippetError listing every problem found.
    """
    snippets = SnippetSet()
    errors: dict[str, list[str]] = {}

    def note(category: str, err: object) -> None:
        errors.setdefault(category, []).append(str(err))

    def walk(path: str, names: list[str]) -> None:
        try:
            with os.scandir(path) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as err:
            note("ReadDir", err)
            return

        for entry in entries:
            if entry.is_dir():
                sub_names = [*names, entry.name]
                if len(sub_names) > max_sub_dirs:
                    note("Directories too deep - suspected loop",
                         f"the directories at {_quote(os.path.join(*sub_names))}"
                         f" exceed the maximum directory depth ({max_sub_dirs})")
                    continue
                walk(entry.path, sub_names)
                continue

            try:
                with open(entry.path, "rb") as f:
                    content = f.read()
            except OSError as err:
                note("addSnippet", err)
                continue

            dir_name = os.path.join(*names) if names else ""
            snippets.add(Snippet(content, dir_name,
                                 os.path.join(dir_name, entry.name)))

    walk(root, [])
    if errors:
        raise SnippetError(_format_errors(errors), errors)
    return snippets


@dataclass
class InstallStatus:
    """The progress and outcome of an installation."""

    new_count: int = 0
    dup_count: int = 0
    diff_count: int = 0
    clear_count: int = 0
    timestamped_count: int = 0

    removed_files: list[str] = field(default_factory=list)
    renamed_files: list[str] = field(default_factory=list)
    bad_installs: list[str] = field(default_factory=list)

    errors: dict[str, list[str]] = field(default_factory=dict)
    verbose: bool = False

    def handle_error(self, err: BaseException | None, category: str,
                     snippet_name: str) -> bool:
        """Record the error, if any, against the snippet; return True if there was one."""
        if err is None:
            return False
        self.errors.setdefault(category, []).append(str(err))
        self.bad_installs.append(snippet_name)
        return True

    def report(self, directory: str, out: TextIO | None = None) -> None:
        """Write a description of the installation."""
        out = sys.stdout if out is None else out
        if self.verbose:
            print("Snippet installation summary", file=out)
            print(f"\t        New:{self.new_count:4d}", file=out)
            print(f"\t  Duplicate:{self.dup_count:4d}", file=out)
            print(f"\t    Changed:{self.diff_count:4d}", file=out)
            print(f"\tTimestamped:{self.timestamped_count:4d}", file=out)
            print(f"\t   Failures:{len(self.bad_installs):4d}", file=out)

        if self.clear_count <= 0:
            return

        print(f"Existing snippets cleared:{self.clear_count:4d}", file=out)
        print(f"         snippets changed:{self.diff_count:4d}", file=out)
        if self.timestamped_count > 0:
            print(f"       Timestamped copies:{self.timestamped_count:4d}",
                  file=out)

        prefix = directory + os.sep
        if self.removed_files:
            _wrap("The following files were removed. Please check that you"
                  " are happy with this; if not you will need to restore"
                  " from backups (if available)", out)
            print(file=out)
            count = len(self.removed_files)
            print(count, _plural("file", count), "removed", file=out)
            print("in", directory, file=out)
            _list(trim_prefix(self.removed_files, prefix),
                  LIST_ITEM_INDENT, out)

        if self.renamed_files:
            _wrap("You should check that you don't want to keep the original"
                  " files and if so, remove the copies of the original"
                  " snippet files. You might find the 'findCmpRm' tool"
                  " useful for this.", out)
            print(file=out)
            count = len(self.renamed_files)
            print(count, _plural("file", count), "renamed", file=out)
            print("in", directory, file=out)
            _list(trim_prefix(self.renamed_files, prefix),
                  LIST_ITEM_INDENT, out)
            if self.timestamped_count > 0:
                print(file=out)
                _wrap("Note that some files have a timestamped copy"
                      " indicating that there were previous copies kept."
                      " You should consider cleaning up these old copies.",
                      out)

    def report_errors(self, err: TextIO | None = None) -> None:
        """Write the snippets that failed and the errors seen."""
        err = sys.stderr if err is None else err
        if self.bad_installs:
            _wrap("The following snippets could not be installed", err)
            _list(self.bad_installs, LIST_ITEM_INDENT, err)
        if self.errors:
            total = sum(len(m) for m in self.errors.values())
            print(f"Installing snippets: {total} {_plural('error', total)}",
                  file=err)
            print(textwrap.indent(_format_errors(self.errors), "  "),
                  file=err)


def _make_timestamp() -> str:
    now = datetime.now()
    return now.strftime(".%Y%m%d-%H%M%S.") + f"{now.microsecond // 1000:03d}"


@dataclass
class Prog:
    """Settings and state for installing or comparing snippets."""

    from_dir: str = ""
    to_dir: str = ""
    action: str = CMP_ACTION

    max_sub_dirs: int = DEFAULT_MAX_SUB_DIRS
    no_copy: bool = False
    verbose: bool = False

    status: InstallStatus = field(default_factory=InstallStatus)
    timestamp: str = field(default_factory=_make_timestamp)

    source: SnippetSet = field(default_factory=SnippetSet)
    target: SnippetSet = field(default_factory=SnippetSet)

    out: TextIO = field(default_factory=lambda: sys.stdout)
    err: TextIO = field(default_factory=lambda: sys.stderr)

    def _verbose(self, *parts: str) -> None:
        if self.verbose:
            print(*parts, file=self.out)

    def create_target(self) -> None:
        """Make sure the target directory exists, creating it if need be.

        Raises SnippetError if it exists but is not a directory or cannot
        be created.
        """
        if os.path.exists(self.to_dir):
            if not os.path.isdir(self.to_dir):
                raise SnippetError(
                    "The target exists but is not a directory:"
                    f" {_quote(self.to_dir)}")
            return

        self._verbose("creating the target directory: ", self.to_dir)
        try:
            os.makedirs(self.to_dir, DEFAULT_DIR_PERMS)
        except OSError as err:
            raise SnippetError(
                "Failed to create the target directory"
                f" ({_quote(self.to_dir)}): {err}") from err

    def load_snippets(self) -> None:
        """Read the source and target snippet collections.

        Raises SnippetError if either cannot be read or there are no
        source snippets.
        """
        source_dir = self.from_dir or DEFAULT_SNIPPET_DIR
        try:
            self.source = read_snippets(source_dir, self.max_sub_dirs)
        except SnippetError as err:
            raise SnippetError(f"Snippet source:\n{err}", err.errors) from err
        if not self.source:
            raise SnippetError("There are no snippets to " + self.action)

        try:
            self.target = read_snippets(self.to_dir, self.max_sub_dirs)
        except SnippetError as err:
            raise SnippetError(f"Snippet target:\n{err}", err.errors) from err

        if self.verbose:
            print(f"       snippets to install:{len(self.source):4d}",
                  file=self.out)
            if self.target:
                print(f"snippets already installed:{len(self.target):4d}",
                      file=self.out)

    def compare_snippets(self) -> None:
        """Report how each source snippet differs from the target collection."""
        self._verbose("comparing snippets")
        for name in self.source.names:
            from_s = self.source.files[name]
            to_s = self.target.files.get(name)
            if to_s is None:
                print("      New: ", name, file=self.out)
            elif to_s.content == from_s.content:
                print("Duplicate: ", name, file=self.out)
            else:
                print("  Differs: ", name, file=self.out)

        for name in self.target.names:
            if name not in self.source:
                print("    Extra: ", name, file=self.out)

    def install_snippets(self) -> None:
        """Copy the source snippets into the target directory and report."""
        self._verbose("Installing snippets into ", self.to_dir)
        status = self.status

        for snippet_name in self.source.names:
            self._verbose("\tinstalling ", snippet_name)
            from_s = self.source.files[snippet_name]
            to_s = self.target.files.get(snippet_name)
            file_name = os.path.join(self.to_dir, snippet_name)

            if to_s is not None:
                if to_s.content == from_s.content:
                    status.dup_count += 1
                    continue
                status.diff_count += 1
                if self.clear_file(snippet_name, file_name):
                    try:
                        write_snippet(from_s, file_name)
                    except OSError as err:
                        status.handle_error(err, "Write failure",
                                            snippet_name)
                continue

            status.new_count += 1
            try:
                self.make_sub_dir(from_s)
            except (OSError, SnippetError) as err:
                status.handle_error(err, "Mkdir failure", snippet_name)
                continue
            try:
                write_snippet(from_s, file_name)
            except OSError as err:
                status.handle_error(err, "Write failure", snippet_name)

        status.verbose = self.verbose
        status.report(self.to_dir, self.out)
        status.report_errors(self.err)

    def make_sub_dir(self, snippet: Snippet) -> None:
        """Create the snippet's sub-directory in the target if necessary.

        A file blocking the path is moved aside (or removed). Raises
        OSError or SnippetError if the directory cannot be made.
        """
        if not snippet.dir_name:
            return

        sub_dir = os.path.join(self.to_dir, snippet.dir_name)
        if os.path.isdir(sub_dir):
            return

        try:
            os.makedirs(sub_dir, DEFAULT_DIR_PERMS)
            return
        except OSError as err:
            mkdir_err = err

        name = sub_dir
        while not os.path.exists(name) and name != self.to_dir:
            name = os.path.dirname(name)

        if name == self.to_dir:
            raise mkdir_err

        if self.clear_file(snippet.name, name):
            os.makedirs(sub_dir, DEFAULT_DIR_PERMS)
            return

        raise SnippetError("Cannot clear the blocking non-dir: " + name)

    def clear_file(self, snippet_name: str, file_name: str) -> bool:
        """Move the file aside, or remove it if copies are not kept.

        Returns True on success; failures are recorded in the status.
        """
        status = self.status
        status.clear_count += 1

        if self.no_copy:
            status.removed_files.append(file_name)
            try:
                os.remove(file_name)
            except OSError as err:
                status.handle_error(err, "Remove failure", snippet_name)
                return False
            return True

        copy_name = file_name + ".orig"
        if os.path.exists(copy_name):
            copy_name += self.timestamp
            status.timestamped_count += 1

        status.renamed_files.append(copy_name)
        try:
            os.rename(file_name, copy_name)
        except OSError as err:
            status.handle_error(err, "Rename failure", snippet_name)
            return False
        return True


class _Parser(argparse.ArgumentParser):
    def error(self, message: str):  # type: ignore[override]
        raise ValueError(message)


def _names(*names: str) -> list[str]:
    flags: list[str] = []
    for name in names:
        flags.append("-" + name)
        if len(name) > 1:
            flags.append("--" + name)
    return flags


def _non_empty(value: str) -> str:
    if not value:
        raise argparse.ArgumentTypeError(
            "the length of the string (0) is incorrect:"
            " the value (0) must be greater than 0")
    return value


def _existing_dir(path: str) -> str:
    if not os.path.exists(path):
        raise argparse.ArgumentTypeError(
            f"path: {_quote(path)}: should exist but does not")
    if not os.path.isdir(path):
        raise argparse.ArgumentTypeError(
            f"path: {_quote(path)}: should be a directory but is not")
    return path


def _sub_dir_count(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"cannot interpret {_quote(value)} as a whole number") from None
    if n < MIN_SUB_DIRS:
        raise argparse.ArgumentTypeError(
            f"the value ({n}) must be greater than or equal to {MIN_SUB_DIRS}")
    return n


def _action(value: str) -> str:
    if value not in (INSTALL_ACTION, CMP_ACTION):
        raise argparse.ArgumentTypeError(f"value not allowed: {_quote(value)}")
    return value


def build_parser(prog: Prog) -> argparse.ArgumentParser:
    """Build the argument parser for the settings held in the Prog."""
    parser = _Parser(
        prog=PROG_NAME,
        description=_DESCRIPTION,
        epilog=_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        argument_default=argparse.SUPPRESS,
        allow_abbrev=False,
        add_help=False,
    )
    parser.add_argument(*_names("help", "h"), action="help",
                        help="show this help message and exit")
    parser.add_argument(*_names("verbose", "v"), dest="verbose",
                        action="store_true",
                        help="show extra messages describing what is done")
    parser.add_argument(
        *_names("action", "a"), dest="action", type=_action,
        metavar="{" + ",".join((INSTALL_ACTION, CMP_ACTION)) + "}",
        help="what action should be performed (currently"
             f" {prog.action}). {INSTALL_ACTION}: install the default"
             f" snippets in the target directory; {CMP_ACTION}: compare"
             " the default snippets with those in the target directory")
    parser.add_argument(
        *_names("install"), dest="action", action="store_const",
        const=INSTALL_ACTION,
        help="install the snippets. See also action.")
    parser.add_argument(
        *_names("target", "to", "to-dir", "t"), dest="to_dir",
        type=_non_empty, metavar="DIR", required=True,
        help="set the directory where the snippets are to be copied or"
             " compared.")
    parser.add_argument(
        *_names("source", "from", "from-dir", "f"), dest="from_dir",
        type=_existing_dir, metavar="DIR",
        help="set the directory where the snippets are to be found. If this"
             " is not set then the standard collection of snippets will be"
             " used.")
    parser.add_argument(
        *_names("max-sub-dirs"), dest="max_sub_dirs", type=_sub_dir_count,
        metavar="N",
        help="how many levels of sub-directory are allowed before we assume"
             " there is a loop in the directory path (currently"
             f" {prog.max_sub_dirs}). This must be at least {MIN_SUB_DIRS}.")
    parser.add_argument(
        *_names("no-copy", "no-backup"), dest="no_copy", action="store_true",
        help="suppress the copying of existing files which have changed and"
             " are being replaced. NOTE: this deletes files from the target"
             " directory which have the same name as files from the source."
             " The original files cannot be recovered, no copy is kept.")
    return parser


def parse_args(prog: Prog, argv: Sequence[str]) -> Prog:
    """Apply the parameters in argv to the Prog.

    Raises ValueError if any parameter is unknown, missing or has a bad value.
    """
    namespace = build_parser(prog).parse_args(list(argv))
    for key, value in vars(namespace).items():
        setattr(prog, key, value)
    return prog


def main(argv: Sequence[str] | None = None) -> int:
    """Compare or install snippets, returning an exit status."""
    if argv is None:
        argv = sys.argv[1:]
    prog = Prog()
    try:
        parse_args(prog, argv)
    except ValueError as err:
        print(f"{PROG_NAME}: {err}", file=sys.stderr)
        return 2

    try:
        prog.create_target()
        prog.load_snippets()
    except SnippetError as err:
        print(err, file=sys.stderr)
        return 1

    if prog.action == INSTALL_ACTION:
        prog.install_snippets()
        return 1 if prog.status.bad_installs else 0
    prog.compare_snippets()
    return 0


if __name__ == "__main__":
    sys.exit(main())