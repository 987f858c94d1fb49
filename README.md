# devsweep

A small set of command-line tools for keeping a development tree tidy. It
needs nothing beyond the Python standard library.

## Installation

```
pip install .
```

To run the test suite, install the test extra and run pytest:

```
pip install '.[test]'
pytest
```

Every option can be given with one or two leading dashes (`-dir` or
`--dir`); `-h` / `--help` describes all of them.

## devsweep-cmprm — find, compare, remove

Tools such as golden-file test helpers and in-place editors leave the
previous contents of a file in a copy with an extra extension (`.orig` by
default). `devsweep-cmprm` finds every regular file with that extension under
a directory and pairs it with the file of the same name without the
extension.

- Copies whose partner is identical are **duplicates**. They can all be
  deleted at once, kept, or you can be asked (`-duplicate-action
  delete|query|keep`; `-tidy` is the same as `delete`).
- Copies whose partner differs are **comparable**. With `-comparable-action
  query` (the default) you are asked for each one whether to show the
  differences; after seeing them you can delete the copy, keep it, revert
  the partner to the copy's contents, or quit keeping the rest. At the first
  question you may also choose to delete or revert all the remaining files.
  `show-diffs`, `keep-all`, `delete-all` and `revert-all` do the same without
  asking.
- Copies with no partner, with a partner that is a directory, or that cannot
  be read are listed as **problems**.

The differences are produced by `diff` and paged through `less`; both
commands and their arguments can be changed (`-diff-cmd`, `-diff-cmd-params`,
`-less-cmd`, `-less-cmd-params`, the parameter lists comma separated). A
summary of what was found and done is printed at the end.

Other options: `-dir DIR` (the directory to search, default `.`),
`-dont-recurse` (search only that directory), `-extension EXT`, `-verbose`.

Defaults can be kept in configuration files, read before the command line:
`$XDG_CONFIG_DIRS` (first entry, default `/etc/xdg`) and then
`$XDG_CONFIG_HOME` (default `~/.config`), each at
`devsweep/findCmpRm/common.cfg`. Each line is `name = value`, or just `name`
for an option without a value; blank lines and lines starting with `#` are
ignored.

```
devsweep-cmprm -dir some/tree -duplicate-action delete
```

The exit status is 1 if the directory cannot be searched and 2 for a bad
option.

## devsweep-godirs — find Go package directories

Searches one or more directory trees (`-dir DIR`, repeatable, or
directories after `--`; default `.`) for directories holding Go packages.
Directories called `testdata`, those starting with `.` or `_`, and any named
with `-skip-dir NAME` are skipped together with everything below them.
Whether a directory is a Go package is decided by running `go list`, so the
`go` command must be on the `PATH`.

Matches can be narrowed by:

- `-pkg NAME,...` — the package name must be one of these;
- `-having FILE,...` — all these entries must be present;
- `-not-having FILE,...` — the directory is skipped if all these are present;
- content checks: at least one file must hold a matching line.
  `-having-build-tag` and `-having-go-generate` add ready-made checks;
  `-having-content tag=RE` creates a checker and `-having-content
  tag.part=RE` extends it, where `part` is `filename` (only check files
  whose names match), `stop` (stop reading a file after a matching line) or
  `skip` (ignore otherwise matching lines that also match).

For each matching directory, `-actions` (comma separated; `name=false`
removes one) chooses what to do: `print` the directory name (the default),
print the matching `content` lines as `path:line: text`, print the
`filename` of each match, or run `go generate`, `go test`, `go build` and
`go install` there — always in that order. `-generate-arg`, `-test-arg`,
`-build-arg` and `-install-arg` pass arguments to those commands and select
the action. `-no-action` reports what would have been done instead.

```
devsweep-godirs -pkg main -actions install
devsweep-godirs -having-content 'nolint=//nolint:' -having-content 'nolint.skip=errcheck' -do content
```

## devsweep-snippets — install or compare snippets

Compares a collection of snippet files (`-source DIR`) with those in a
target directory (`-target DIR`, required, created if it does not exist),
reporting each snippet as `New`, `Duplicate`, `Differs` or `Extra`. With
`-install` (or `-action install`) the collection is copied into the target
instead. An installed snippet that differs is moved aside to a copy with a
`.orig` extension, with a timestamp added if such a copy already exists,
unless `-no-copy` asks for the old file to be removed outright. The copies
can then be reviewed with `devsweep-cmprm`. `-max-sub-dirs N` (at least 3,
default 10) limits how deeply sub-directories are read.

```
devsweep-snippets -source my/snippets -target ~/.config/snippets -install
```

The exit status is 2 for a bad option and 1 if the snippets cannot be read
or some could not be installed.

## What is not included

The package does not ship a standard collection of snippets. The command
looks for one in a `_snippets` directory inside the installed package, which
is not present, so `-source` must always be given.

## Library use

The commands are built on importable pieces: `devsweep.cmprm.Prog` and
`devsweep.cmprm_status.Status`, `devsweep.godirs.Prog` with the checks in
`devsweep.contentcheck` and `devsweep.contentsetter.add_content_check`, and
`devsweep.snippets.Prog` with `read_snippets`. Each `Prog` writes to its
`out` and `err` streams, so output can be captured.