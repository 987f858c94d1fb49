"""Command-line handling for the tool that finds and acts on Go package directories."""

from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Callable, Sequence

from devsweep.contentcheck import (
    build_tag_check,
    checker_part_names,
    go_generate_check,
)
from devsweep.contentsetter import add_content_check, value_description
from devsweep.godirs import Action, Prog

PROG_NAME = "findGoDirs"

PARAM_HAVING_CONTENT = "having-content"
PARAM_HAVING_BUILD_TAG = "having-build-tag"
PARAM_HAVING_GO_GENERATE = "having-go-generate"

_DESCRIPTION = (
    "This will search for directories containing Go packages. You can add"
    " extra criteria for selecting the directory. Once in each selected"
    " directory you can perform certain actions. If no directory is given"
    " then the current directory is searched. Directories called testdata"
    " or with names starting with either '.' or '_' are ignored. Duplicate"
    " directory names are silently removed. Directories may also be given"
    " after a '--' argument.")

_EXAMPLES = (
    ("findGoDirs -pkg main",
     "search recursively down from the current directory for any directory"
     " which contains Go code where the package name is 'main', ignoring"
     " the contents of any .git directories, and print each directory"
     " name."),
    ("findGoDirs -pkg main -actions install",
     "install all the Go programs under the current directory."),
    ("findGoDirs -pkg main -d some/dir -do install",
     "install all the Go programs under some/dir."),
    ("findGoDirs -pkg main -not-having .gitignore",
     "find all the Go directories with code for building commands that"
     " don't have a .gitignore file."),
    ("findGoDirs -having-go-generate",
     "find all the Go directories with go:generate comments."),
    ("findGoDirs -having-go-generate -do content",
     "find all the Go directories with go:generate comments and print the"
     " matching lines."),
    ("findGoDirs -having-content 'nolint=//nolint:' -do content",
     "find all the Go directories with some file having a nolint comment"
     " and print the matching lines."),
    ("findGoDirs -having-content 'nolint=//nolint:'"
     " -having-content 'nolint.skip=errcheck' -do content",
     "find all the Go directories with some file having a nolint comment"
     " where the matching line doesn't also match errcheck, and print the"
     " matching lines."),
)


def _epilog() -> str:
    lines = ["Examples:"]
    for cmd, desc in _EXAMPLES:
        lines.append("  " + cmd)
        lines.append("      This will " + desc)
    lines.append("")
    lines.append("Content Checks:")
    lines.append(
        "  A directory can be required to hold at least one file with"
        " certain content.")
    lines.append(
        f"  The '{PARAM_HAVING_BUILD_TAG}' and '{PARAM_HAVING_GO_GENERATE}'"
        " parameters add checks with the patterns preset.")
    lines.append(
        f"  The '{PARAM_HAVING_CONTENT}' parameter takes tag=RE to create a"
        " checker and tag.part=RE to extend it.")
    lines.append("  Valid part names are: " + ", ".join(checker_part_names()))
    lines.append(
        "  A checker must be created (without a part) before parts can be"
        " added.")
    return "\n".join(lines)


class _Parser(argparse.ArgumentParser):
    def error(self, message: str):  # type: ignore[override]
        raise ValueError(message)


class _Apply(argparse.Action):
    """An action that hands the parsed value straight to a function."""

    def __init__(self, option_strings, dest, apply, nargs=None, **kwargs):
        super().__init__(option_strings, dest, nargs=nargs, **kwargs)
        self._apply = apply

    def __call__(self, parser, namespace, values, option_string=None):
        try:
            self._apply(values)
        except (ValueError, argparse.ArgumentTypeError) as err:
            raise argparse.ArgumentError(self, str(err)) from err


def _quote(s: str) -> str:
    return json.dumps(s, ensure_ascii=False)


def _names(*names: str) -> list[str]:
    flags: list[str] = []
    for name in names:
        flags.append("-" + name)
        if len(name) > 1:
            flags.append("--" + name)
    return flags


def _check_dir(path: str) -> str:
    if not os.path.exists(path):
        raise ValueError(f"path: {_quote(path)}: should exist but does not")
    if not os.path.isdir(path):
        raise ValueError(
            f"path: {_quote(path)}: should be a directory but is not")
    return path


def _split_list(value: str) -> list[str]:
    return value.split(",")


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("true", "t", "yes", "y", "1"):
        return True
    if lowered in ("false", "f", "no", "n", "0"):
        return False
    raise ValueError(f"cannot interpret {_quote(value)} as true or false")


def _actions_setter(prog: Prog) -> Callable[[str], None]:
    def apply(value: str) -> None:
        for item in value.split(","):
            name, has_flag, flag = item.partition("=")
            name = name.strip()
            try:
                action = Action(name)
            except ValueError:
                raise ValueError(
                    f"value not allowed: {_quote(name)}") from None
            if not has_flag or _parse_bool(flag):
                prog.actions.add(action)
            else:
                prog.actions.discard(action)
    return apply


def _arg_appender(prog: Prog, attr: str,
                  action: Action) -> Callable[[str], None]:
    def apply(value: str) -> None:
        getattr(prog, attr).extend(_split_list(value))
        prog.actions.add(action)
    return apply


def build_parser(prog: Prog) -> argparse.ArgumentParser:
    """Build the argument parser; each parameter updates the Prog as it is parsed."""
    parser = _Parser(
        prog=PROG_NAME,
        description=_DESCRIPTION,
        epilog=_epilog(),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        argument_default=argparse.SUPPRESS,
        allow_abbrev=False,
        add_help=False,
    )
    parser.add_argument(*_names("help", "h"), action="help",
                        help="show this help message and exit")

    def set_verbose(_values) -> None:
        prog.verbose = True

    parser.add_argument(*_names("verbose", "v"), dest="verbose",
                        action=_Apply, nargs=0, apply=set_verbose,
                        help="show extra messages describing what is done")

    parser.add_argument(
        *_names("dir", "dirs", "d"), dest="dir", metavar="DIR",
        action=_Apply, apply=lambda v: prog.base_dirs.append(_check_dir(v)),
        help="set the name of a directory to search from. If no directories"
             " are given, the current directory is used. This may be given"
             " more than once, each directory is added to the list.")
    parser.add_argument(
        *_names("actions", "a", "do"), dest="actions",
        metavar="{" + ",".join(a.value for a in Action) + "}",
        action=_Apply, apply=_actions_setter(prog),
        help="set the actions to perform when a matching Go directory is"
             " found. print: print the directory name; build, install,"
             " test, generate: run the go command in the directory;"
             " content: print any matching content; filename: print files"
             " with matching content.")

    for attr, action, names in (
        ("generate_args", Action.GENERATE,
         ("generate-arg", "generate-args", "args-generate",
          "gen-args", "g-args", "g-arg")),
        ("install_args", Action.INSTALL,
         ("install-arg", "install-args", "args-install",
          "inst-args", "i-args", "i-arg")),
        ("test_args", Action.TEST,
         ("test-arg", "test-args", "args-test", "t-args", "t-arg")),
        ("build_args", Action.BUILD,
         ("build-arg", "build-args", "args-build", "b-args", "b-arg")),
    ):
        parser.add_argument(
            *_names(*names), dest=attr, metavar="ARG,...",
            action=_Apply, apply=_arg_appender(prog, attr, action),
            help=f"set the arguments to be given to the go {action.value}"
                 " command (this also selects that action)")

    def setter(attr: str) -> Callable[[str], None]:
        return lambda v: setattr(prog, attr, _split_list(v))

    parser.add_argument(
        *_names("package-names", "package", "pkg"), dest="pkg_names",
        metavar="NAME,...", action=_Apply, apply=setter("pkg_names"),
        help="set the names of packages to be matched. If this is not set"
             " then any package name will be matched")
    parser.add_argument(
        *_names("having-files", "having", "with"), dest="files_wanted",
        metavar="FILE,...", action=_Apply, apply=setter("files_wanted"),
        help="give a list of files that the directory must contain. All the"
             " listed files must be present for the directory to match.")
    parser.add_argument(
        *_names("missing-files", "not-having", "without"),
        dest="files_missing", metavar="FILE,...", action=_Apply,
        apply=setter("files_missing"),
        help="give a list of files that the directory may not contain. The"
             " directory does not match if all of them are present.")

    def add_build_tag(_values) -> None:
        chk = build_tag_check()
        prog.content_checks[chk.name] = chk

    def add_go_generate(_values) -> None:
        chk = go_generate_check()
        prog.content_checks[chk.name] = chk

    parser.add_argument(
        *_names(PARAM_HAVING_BUILD_TAG, "having-build-tags",
                "with-build-tags", "with-build-tag"),
        dest="having_build_tag", action=_Apply, nargs=0,
        apply=add_build_tag,
        help="the directory must contain at least one file with a build-tag."
             " This adds a content check with tag name: build-tag")
    parser.add_argument(
        *_names(PARAM_HAVING_GO_GENERATE, "having-go-gen",
                "with-go-generate", "with-go-gen"),
        dest="having_go_generate", action=_Apply, nargs=0,
        apply=add_go_generate,
        help="the directory must contain at least one file with a"
             " go:generate comment. This adds a content check with tag"
             " name: go-gen")
    parser.add_argument(
        *_names(PARAM_HAVING_CONTENT, "containing", "contains",
                "with-content"),
        dest="having_content", metavar=value_description(),
        action=_Apply,
        apply=lambda v: add_content_check(prog.content_checks, v),
        help="the directory must contain at least one file with the"
             " following content. Extra criteria can be set by adding a"
             " period to the tag name and a part name.")

    def set_no_action(_values) -> None:
        prog.no_action = True

    parser.add_argument(
        *_names("no-action", "do-nothing"), dest="no_action",
        action=_Apply, nargs=0, apply=set_no_action,
        help="stop any action from happening; report what would have been"
             " done instead.")
    parser.add_argument(
        *_names("skip-dir"), dest="skip_dir", metavar="NAME",
        action=_Apply, apply=prog.skip_dirs.append,
        help="exclude a directory with this name and skip any"
             " sub-directories. This may be given more than once.")
    return parser


def parse_args(prog: Prog, argv: Sequence[str]) -> Prog:
    """Apply the parameters in argv to the Prog.

    Arguments after a '--' are directories to search. Raises ValueError
    if any parameter is unknown or has a bad value.
    """
    args = list(argv)
    remainder: list[str] = []
    if "--" in args:
        idx = args.index("--")
        args, remainder = args[:idx], args[idx + 1:]

    build_parser(prog).parse_args(args)

    problems: list[str] = []
    for name in remainder:
        try:
            prog.base_dirs.append(_check_dir(name))
        except ValueError as err:
            problems.append(f"bad directory: {err}")
    if problems:
        raise ValueError("\n".join(problems))

    if not prog.actions:
        prog.actions.add(Action.PRINT)
    return prog


def main(argv: Sequence[str] | None = None) -> int:
    """Run the Go directory finder, returning an exit status."""
    if argv is None:
        argv = sys.argv[1:]
    prog = Prog()
    try:
        parse_args(prog, argv)
    except ValueError as err:
        print(f"{PROG_NAME}: {err}", file=sys.stderr)
        return 2
    return prog.run()


if __name__ == "__main__":
    sys.exit(main())