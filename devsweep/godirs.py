"""Find directories holding Go packages and act on those meeting given criteria."""

from __future__ import annotations

import contextlib
import enum
import json
import os
import subprocess
import sys
from dataclasses import dataclass, field
from typing import Iterable, Iterator, TextIO

from devsweep.contentcheck import ContentCheck, StatusCheck


class Action(str, enum.Enum):
    """The actions that can be taken in a matching directory."""

    PRINT = "print"
    BUILD = "build"
    INSTALL = "install"
    TEST = "test"
    GENERATE = "generate"
    CONTENT = "content"
    FILENAME = "filename"


# Actions always run in this order: files are generated before building.
ACTION_ORDER = (
    Action.PRINT, Action.CONTENT, Action.FILENAME,
    Action.GENERATE, Action.TEST, Action.BUILD, Action.INSTALL,
)


@dataclass(frozen=True)
class Match:
    """A line of a file that matched a content check."""

    source: str
    line: int
    content: str

    def __str__(self) -> str:
        return f"{self.source}:{self.line}: {self.content}"


def _quote(s: str) -> str:
    return json.dumps(s, ensure_ascii=False)


@contextlib.contextmanager
def cd(directory: str) -> Iterator[str]:
    """Change into the directory for the duration of the block.

    Reports the failure on standard error and raises OSError if the
    directory cannot be entered.
    """
    try:
        cwd = os.getcwd()
    except OSError as err:
        print("Cannot get the current directory:", err, file=sys.stderr)
        raise
    try:
        os.chdir(directory)
    except OSError as err:
        print(f"Cannot chdir to {_quote(directory)}: {err}", file=sys.stderr)
        raise
    try:
        yield cwd
    finally:
        with contextlib.suppress(OSError):
            os.chdir(cwd)


def has_entries(entries: Iterable[str]) -> bool:
    """Return True if every named entry is present in the current directory."""
    wanted = list(entries)
    if not wanted:
        return True
    try:
        present = set(os.listdir("."))
    except OSError as err:
        print("Cannot read the directory:", err, file=sys.stderr)
        return False
    return all(name in present for name in wanted)


def get_package() -> str:
    """Return the name of the Go package in the current directory.

    Raises RuntimeError if the directory does not hold a Go package.
    """
    try:
        result = subprocess.run(["go", "list", "-f", "{{.Name}}"],
                                capture_output=True, text=True, check=False)
    except OSError as err:
        raise RuntimeError(f"cannot run go list: {err}") from err
    if result.returncode != 0:
        raise RuntimeError(f"exit status {result.returncode}")
    name = result.stdout.strip()
    if not name:
        raise RuntimeError("no package name found")
    return name


def _name_allowed(name: str, skip_dirs: Iterable[str]) -> bool:
    if name == "testdata" or name.startswith("_"):
        return False
    if name.startswith(".") and name not in (".", ".."):
        return False
    return name not in skip_dirs


def _strip_line_end(line: str) -> str:
    line = line.removesuffix("\n")
    return line.removesuffix("\r")


@dataclass
class Prog:
    """Search criteria, actions and results for finding Go directories."""

    base_dirs: list[str] = field(default_factory=list)
    skip_dirs: list[str] = field(default_factory=list)
    pkg_names: list[str] = field(default_factory=list)
    files_wanted: list[str] = field(default_factory=list)
    files_missing: list[str] = field(default_factory=list)
    content_checks: dict[str, ContentCheck] = field(default_factory=dict)
    dir_content: dict[str, dict[str, list[Match]]] = field(
        default_factory=dict)

    no_action: bool = False
    actions: set[Action] = field(default_factory=set)

    generate_args: list[str] = field(default_factory=list)
    install_args: list[str] = field(default_factory=list)
    build_args: list[str] = field(default_factory=list)
    test_args: list[str] = field(default_factory=list)

    verbose: bool = False
    out: TextIO = field(default_factory=lambda: sys.stdout)
    err: TextIO = field(default_factory=lambda: sys.stderr)

    def _verbose(self, msg: str) -> None:
        if self.verbose:
            print(msg, file=self.out)

    def pkg_matches(self, pkg: str) -> bool:
        """Return True if there are no package names to match or pkg is one."""
        return not self.pkg_names or pkg in self.pkg_names

    def find_matching_dirs(self) -> list[str]:
        """Return the sorted, distinct directories below the base directories.

        Directories called testdata, those starting with '.' or '_' and
        those named in the skip list are left out along with everything
        below them.
        """
        if not self.base_dirs:
            self.base_dirs = ["."]

        dirs: set[str] = set()
        for base in self.base_dirs:
            errors: list[OSError] = []
            if not os.path.isdir(base):
                print(f"Error: {_quote(base)} : not a directory: {base}",
                      file=self.err)
                continue
            root_name = os.path.basename(os.path.normpath(base))
            if not _name_allowed(root_name, self.skip_dirs):
                continue
            dirs.add(base)
            for dirpath, dirnames, _files in os.walk(base,
                                                     onerror=errors.append):
                dirnames[:] = [d for d in dirnames
                               if _name_allowed(d, self.skip_dirs)]
                for d in dirnames:
                    dirs.add(os.path.normpath(os.path.join(dirpath, d)))
            for error in errors:
                print(f"Error: {_quote(base)} : {error}", file=self.err)
        return sorted(dirs)

    def on_match_do(self, directory: str) -> None:
        """Perform the actions if the directory is a Go package meeting the criteria."""
        intro = f"onMatchDo({directory}):"
        with contextlib.ExitStack() as stack:
            try:
                stack.enter_context(cd(directory))
            except OSError:
                self._verbose(f"{intro} Skipping: couldn't chdir")
                return

            try:
                pkg = get_package()
            except RuntimeError:
                self._verbose(f"{intro} Skipping: Not a package directory")
                return

            if not self.pkg_matches(pkg):
                self._verbose(f"{intro} Skipping: Wrong package")
                return
            if not has_entries(self.files_wanted):
                self._verbose(f"{intro} Skipping: missing files")
                return
            if self.files_missing and has_entries(self.files_missing):
                self._verbose(f"{intro} Skipping: has unwanted files")
                return
            if not self.has_required_content(directory):
                self.dir_content.pop(directory, None)
                self._verbose(f"{intro} Skipping: missing required content")
                return

            for action in ACTION_ORDER:
                if action in self.actions:
                    self._verbose(f"{intro} Doing: {action.value}")
                    self.do_action(action, directory)

    def has_required_content(self, directory: str) -> bool:
        """Return True if every content check matches some file in the current directory.

        The matches found are recorded against the directory in dir_content.
        """
        self.dir_content[directory] = {}
        if not self.content_checks:
            return True
        try:
            entries = sorted(os.scandir("."), key=lambda e: e.name)
        except OSError as err:
            print("Cannot read the directory:", err, file=self.err)
            return False

        for entry in entries:
            if not entry.is_file(follow_symlinks=False):
                continue
            try:
                self.check_content(directory, entry.name)
            except OSError:
                break
        return len(self.dir_content[directory]) == len(self.content_checks)

    def check_content(self, directory: str, fname: str) -> None:
        """Record the lines of the file that match the content checks.

        The file is opened relative to the current directory. Raises
        OSError if it cannot be read.
        """
        checks = [StatusCheck(c) for c in self.content_checks.values()
                  if c.file_name_ok(fname)]
        if not checks:
            return

        pathname = os.path.join(directory, fname)
        found = self.dir_content.setdefault(directory, {})
        try:
            with open(fname, encoding="utf-8", errors="replace",
                      newline="") as f:
                for lineno, raw in enumerate(f, start=1):
                    text = _strip_line_end(raw)
                    for sc in checks:
                        if sc.check_line(text):
                            found.setdefault(sc.chk.name, []).append(
                                Match(pathname, lineno, text))
                    if all(sc.stopped for sc in checks):
                        break
        except OSError as err:
            print(f"Couldn't open {_quote(pathname)}: {err}", file=self.err)
            raise

    def _report_no_action(self, label: str, directory: str) -> None:
        print(f"{label:<20.20} : {directory}", file=self.out)

    def _go_command(self, directory: str, command: str,
                    cmd_args: list[str]) -> None:
        if self.no_action:
            self._report_no_action("go " + command, directory)
            return
        args = [command, *cmd_args]
        self._verbose(f"doGoCommand({directory}): go {' '.join(args)}")
        self.out.flush()
        try:
            result = subprocess.run(["go", *args], check=False)
        except OSError as err:
            print(f"Cannot run go {command}: {err}", file=self.err)
            return
        if result.returncode != 0:
            print(f"go {command} in {_quote(directory)} failed:"
                  f" exit status {result.returncode}", file=self.err)

    def do_action(self, action: Action, directory: str) -> None:
        """Perform a single action for the directory."""
        if action is Action.PRINT:
            if self.no_action:
                self._report_no_action("print", directory)
            else:
                print(directory, file=self.out)
        elif action in (Action.CONTENT, Action.FILENAME):
            if self.no_action:
                label = ("content" if action is Action.CONTENT
                         else "filenames")
                self._report_no_action(label, directory)
                return
            content = self.dir_content.get(directory, {})
            for key in sorted(content):
                for match in content[key]:
                    print(str(match) if action is Action.CONTENT
                          else match.source, file=self.out)
        elif action is Action.BUILD:
            self._go_command(directory, "build", self.build_args)
        elif action is Action.TEST:
            self._go_command(directory, "test", self.test_args)
        elif action is Action.INSTALL:
            self._go_command(directory, "install", self.install_args)
        elif action is Action.GENERATE:
            self._go_command(directory, "generate", self.generate_args)

    def run(self) -> int:
        """Find the matching directories and act on each, returning an exit status."""
        if not self.actions:
            self.actions = {Action.PRINT}
        for directory in self.find_matching_dirs():
            self.on_match_do(directory)
        return 0