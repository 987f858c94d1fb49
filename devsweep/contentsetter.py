"""Building content checks from 'tag=RE' and 'tag.part=RE' parameter values."""

from __future__ import annotations

import json
from typing import MutableMapping

from devsweep.contentcheck import (
    CHECKER_PARTS,
    DEFAULT_CHECKER_PART,
    ContentCheck,
    ContentCheckError,
    checker_part_names,
    checker_parts_help_text,
)


def _quote(s: str) -> str:
    return json.dumps(s, ensure_ascii=False)


def add_content_check(checks: MutableMapping[str, ContentCheck],
                      param_val: str) -> None:
    """Create a check or set one of its parts from a 'tag[.part]=RE' value.

    Raises ContentCheckError if the value is malformed or cannot be applied.
    """
    tag, has_re, pattern = param_val.partition("=")
    if not has_re:
        raise ContentCheckError(
            f"missing '=': the parameter {_quote(param_val)} should be of"
            " the form: tag=RE")

    tag_name, has_part, part_name = tag.partition(".")
    if not has_part:
        part_name = DEFAULT_CHECKER_PART

    cc = checks.get(tag_name)
    if cc is None:
        if part_name != DEFAULT_CHECKER_PART:
            if not checks:
                raise ContentCheckError("no checkers have been created yet")
            raise ContentCheckError(
                f"no such checker: {_quote(tag_name)}. Available checkers: "
                + ", ".join(sorted(checks)))
        cc = ContentCheck(name=tag_name)
        checks[tag_name] = cc
    elif part_name == DEFAULT_CHECKER_PART:
        raise ContentCheckError(
            f"the checker {_quote(tag_name)} already exists")

    part = CHECKER_PARTS.get(part_name)
    if part is None:
        raise ContentCheckError(
            f"unknown checker part name: {_quote(part_name)}. Must be one of "
            + ", ".join(checker_part_names()))

    try:
        part.setter(cc, pattern)
    except ContentCheckError as err:
        raise ContentCheckError(f"{tag_name}: {err}") from err


def allowed_values() -> str:
    """Describe a well-formed parameter value."""
    return ("a string of the form tag=RE or tag.part=RE."
            "\n\n"
            "The tag can be any value and is simply used to"
            " add parts to an existing content checker."
            " Note that the first use of a tag must be without"
            " any part name attached."
            "\n\n"
            "The 'RE' part must compile to a valid"
            " regular expression."
            "\n\n"
            "The 'part' must be one of:"
            "\n"
            + checker_parts_help_text())


def current_value(checks: MutableMapping[str, ContentCheck]) -> str:
    """Describe the checks, in order of their names."""
    return "\n".join(str(checks[k]) for k in sorted(checks))


def value_description() -> str:
    """Return a short string showing what the value should look like."""
    return "tag=RE"