"""Command-line handling for the compare-and-remove tool."""

from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Callable, Sequence

from devsweep.cmprm import (
    DEFAULT_DIR,
    DEFAULT_EXTENSION,
    CmpAction,
    DupAction,
    Prog,
)

PROG_NAME = "findCmpRm"
CONFIG_SUBPATH = ("devsweep", PROG_NAME, "common.cfg")

_EXAMPLE_FILE = "F"
_EXAMPLE_ORIG = _EXAMPLE_FILE + DEFAULT_EXTENSION
_DUPLICATE_ACTION = (f"if {_EXAMPLE_FILE} and {_EXAMPLE_ORIG} are the same,"
                     f" delete {_EXAMPLE_ORIG}")

_DESCRIPTION = (
    f"This finds any files in the given directory (by default: {DEFAULT_DIR})"
    f" with the given extension (by default: {DEFAULT_EXTENSION})."
    " It presents each file and gives the user the chance to compare it"
    " with the corresponding file without the extension. The user is then"
    " asked whether to remove the file with the extension. The command name"
    " echoes this: find, compare, remove. You will also have the opportunity"
    " to revert the file back to the original contents.")

_REFERENCES = (
    "See also:\n"
    "  golden-file test helpers\n"
    "      Test helpers that regenerate golden files often keep the previous\n"
    "      contents in a file with a suffix of '.orig'. This command will\n"
    "      help you to review any changes and tidy up afterwards.\n"
    "  gosh\n"
    "      When editing files in place, copies of the files prior to editing\n"
    "      are kept in files with the original name plus a suffix of\n"
    "      '.orig'. This command will help you to review any changes and\n"
    "      tidy up afterwards.")

_DUP_ACTION_HELP = {
    DupAction.DELETE: "delete all duplicate files without prompting"
                      f" ({_DUPLICATE_ACTION})",
    DupAction.QUERY: "show all duplicate files and prompt to see what to do"
                     " with them",
    DupAction.KEEP: "keep all duplicate files without prompting",
}

_CMP_ACTION_HELP = {
    CmpAction.SHOW_DIFF: "show file differences without prompting",
    CmpAction.QUERY: "prompt to show differences (the default action)",
    CmpAction.KEEP_ALL: "keep all comparable files without prompting",
    CmpAction.DELETE_ALL: "delete all comparable files with the given"
                          f" extension ({DEFAULT_EXTENSION} by default)"
                          " without prompting",
    CmpAction.REVERT_ALL: "revert all comparable files back to the contents"
                          " of the file with the given extension"
                          f" ({DEFAULT_EXTENSION} by default)"
                          " without prompting",
}


class _Parser(argparse.ArgumentParser):
    def error(self, message: str):  # type: ignore[override]
        raise ValueError(message)


def _quote(s: str) -> str:
    return json.dumps(s, ensure_ascii=False)


def _names(*names: str) -> list[str]:
    flags: list[str] = []
    for name in names:
        flags.append("-" + name)
        if len(name) > 1:
            flags.append("--" + name)
    return flags


def _existing_dir(path: str) -> str:
    if not os.path.exists(path):
        child = path
        parent = os.path.dirname(path) or "."
        while not os.path.exists(parent):
            child = parent
            parent = os.path.dirname(parent) or "."
        raise argparse.ArgumentTypeError(
            f"path: {_quote(path)}: should exist but does not;"
            f" {_quote(parent)} exists but {_quote(child)} does not")
    if not os.path.isdir(path):
        raise argparse.ArgumentTypeError(
            f"path: {_quote(path)}: should be a directory but is not")
    return path


def _non_empty(value: str) -> str:
    if not value:
        raise argparse.ArgumentTypeError(
            "the length of the string (0) is incorrect:"
            " the value (0) must be greater than 0")
    return value


def _str_list(value: str) -> list[str]:
    items = value.split(",")
    if not items:
        raise argparse.ArgumentTypeError(
            "the length of the list (0) is incorrect:"
            " the value (0) must be greater than 0")
    return items


def _enum_value(cls) -> Callable[[str], object]:
    def convert(value: str):
        try:
            return cls(value)
        except ValueError:
            raise argparse.ArgumentTypeError(
                f"value not allowed: {_quote(value)}") from None
    return convert


def _enum_help(intro: str, descriptions: dict) -> str:
    lines = "; ".join(f"{member.value}: {desc}"
                      for member, desc in descriptions.items())
    return f"{intro}. Allowed values are - {lines}"


def build_parser(prog: Prog) -> argparse.ArgumentParser:
    """Build the argument parser for the settings held in the Prog."""
    parser = _Parser(
        prog=PROG_NAME,
        description=_DESCRIPTION,
        epilog=_REFERENCES,
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
        *_names("dir", "search-dir", "d"), dest="search_dir",
        type=_existing_dir, metavar="DIR",
        help="give the name of the directory to search for files (currently"
             f" {prog.search_dir}). Note that both the directory and its"
             " sub-directories are searched unless the dont-recurse"
             " parameter is also given.")
    parser.add_argument(
        *_names("dont-recurse", "no-recurse", "no-rec", "no-r"),
        dest="search_sub_dirs", action="store_false",
        help="this makes the command only search the given directory, it"
             " will not recursively search sub-directories.")
    parser.add_argument(
        *_names("extension", "e", "suffix"), dest="file_extension",
        type=_non_empty, metavar="EXT",
        help="give the extension for the files to search for"
             f" (currently {prog.file_extension}).")
    parser.add_argument(
        *_names("tidy"), dest="dup_action", action="store_const",
        const=DupAction.DELETE,
        help=f"delete all duplicate files. {_DUPLICATE_ACTION}."
             " See also duplicate-action.")
    parser.add_argument(
        *_names("duplicate-action", "dup-action"), dest="dup_action",
        type=_enum_value(DupAction),
        metavar="{" + ",".join(a.value for a in DupAction) + "}",
        help=_enum_help("what action should be performed with duplicate"
                        " files", _DUP_ACTION_HELP))
    parser.add_argument(
        *_names("comparable-action", "cmp-action"), dest="cmp_action",
        type=_enum_value(CmpAction),
        metavar="{" + ",".join(a.value for a in CmpAction) + "}",
        help=_enum_help("what action should be performed with comparable"
                        " files", _CMP_ACTION_HELP))
    parser.add_argument(
        *_names("diff-cmd", "diff"), dest="diff__name",
        type=_non_empty, metavar="CMD",
        help="give the name of the command to use when showing the"
             f" differences between files (currently {prog.diff.name})")
    parser.add_argument(
        *_names("diff-cmd-params", "diff-params", "diff-args"),
        dest="diff__params", type=_str_list, metavar="P1,P2,...",
        help="give any parameters to be supplied to the diff command.")
    parser.add_argument(
        *_names("less-cmd", "less"), dest="less__name",
        type=_non_empty, metavar="CMD",
        help="give the name of the command to use for paginating the"
             " differences calculated by the diff command"
             f" (currently {prog.less.name}).")
    parser.add_argument(
        *_names("less-cmd-params", "less-params", "less-args"),
        dest="less__params", type=_str_list, metavar="P1,P2,...",
        help="give any parameters to be supplied to the less command.")
    return parser


def config_files() -> list[str]:
    """Return the global and then the personal configuration file paths."""
    paths: list[str] = []
    dirs = [d for d in os.environ.get("XDG_CONFIG_DIRS", "/etc/xdg").split(
        os.pathsep) if d]
    if dirs:
        paths.append(os.path.join(dirs[0], *CONFIG_SUBPATH))
    home = os.environ.get("XDG_CONFIG_HOME") or os.path.join(
        os.path.expanduser("~"), ".config")
    paths.append(os.path.join(home, *CONFIG_SUBPATH))
    return paths


def read_config_args(path: str) -> list[str]:
    """Read a configuration file of 'name = value' lines into arguments.

    Blank lines and lines starting with '#' are ignored; a line holding
    only a name gives a parameter without a value.
    """
    args: list[str] = []
    with open(path, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            name, has_value, value = line.partition("=")
            name = name.strip()
            if has_value:
                args.append(f"-{name}={value.strip()}")
            else:
                args.append(f"-{name}")
    return args


def parse_args(prog: Prog, argv: Sequence[str]) -> Prog:
    """Apply the parameters in argv to the Prog.

    Raises ValueError if any parameter is unknown or has a bad value.
    """
    namespace = build_parser(prog).parse_args(list(argv))
    for key, value in vars(namespace).items():
        owner, _, attr = key.partition("__")
        if attr:
            setattr(getattr(prog, owner), attr, value)
        else:
            setattr(prog, key, value)
    return prog


def main(argv: Sequence[str] | None = None) -> int:
    """Run the compare-and-remove tool, returning an exit status."""
    if argv is None:
        argv = sys.argv[1:]
    prog = Prog()
    for path in config_files():
        if not os.path.isfile(path):
            continue
        try:
            parse_args(prog, read_config_args(path))
        except (ValueError, OSError) as err:
            print(f"{PROG_NAME}: config file {path}: {err}", file=sys.stderr)
            return 2
    try:
        parse_args(prog, argv)
    except ValueError as err:
        print(f"{PROG_NAME}: {err}", file=sys.stderr)
        return 2
    prog.set_responders()
    return prog.run()


if __name__ == "__main__":
    sys.exit(main())