import io
import os

import pytest

from devsweep.snippets import (
    CMP_ACTION,
    DEFAULT_MAX_SUB_DIRS,
    INSTALL_ACTION,
    InstallStatus,
    Prog,
    Snippet,
    SnippetError,
    build_parser,
    main,
    parse_args,
    read_snippets,
    trim_prefix,
    write_snippet,
)


def _make_tree(root, files):
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)


def _prog(src, dst, **kwargs):
    prog = Prog(from_dir=str(src), to_dir=str(dst), out=io.StringIO(),
                err=io.StringIO(), timestamp=".ts", **kwargs)
    return prog


def test_trim_prefix():
    assert trim_prefix(["d/a", "d/b/c", "x"], "d/") == ["a", "b/c", "x"]


def test_write_snippet_round_trip(tmp_path):
    name = tmp_path / "s.txt"
    write_snippet(Snippet(b"hello", "", "s.txt"), str(name))
    assert name.read_bytes() == b"hello"


def test_read_snippets(tmp_path):
    _make_tree(tmp_path, {"b.txt": "B", "a.txt": "A", "sub/c.txt": "C"})
    snips = read_snippets(str(tmp_path))
    assert snips.names == ["a.txt", "b.txt", os.path.join("sub", "c.txt")]
    c = snips.files[os.path.join("sub", "c.txt")]
    assert c.dir_name == "sub"
    assert c.content == b"C"
    assert snips.files["a.txt"].dir_name == ""


def test_read_snippets_too_deep(tmp_path):
    _make_tree(tmp_path, {"a/b/c/d/e.txt": "E"})
    with pytest.raises(SnippetError) as info:
        read_snippets(str(tmp_path), 3)
    assert "Directories too deep - suspected loop" in info.value.errors


def test_read_snippets_missing_dir(tmp_path):
    with pytest.raises(SnippetError) as info:
        read_snippets(str(tmp_path / "nonesuch"))
    assert "ReadDir" in info.value.errors


def test_create_target_makes_dir(tmp_path):
    dst = tmp_path / "new" / "target"
    prog = _prog(tmp_path, dst)
    prog.create_target()
    assert dst.is_dir()


def test_create_target_not_a_dir(tmp_path):
    dst = tmp_path / "file"
    dst.write_text("x")
    prog = _prog(tmp_path, dst)
    with pytest.raises(SnippetError, match="not a directory"):
        prog.create_target()


def test_load_snippets_empty_source(tmp_path):
    src = tmp_path / "src"
    dst = tmp_path / "dst"
    src.mkdir()
    dst.mkdir()
    prog = _prog(src, dst)
    with pytest.raises(SnippetError, match="There are no snippets to compare"):
        prog.load_snippets()


def test_compare_snippets(tmp_path):
    src = tmp_path / "src"
    dst = tmp_path / "dst"
    _make_tree(src, {"a": "same", "b": "new", "c": "C"})
    _make_tree(dst, {"a": "same", "b": "old", "d": "D"})
    prog = _prog(src, dst)
    prog.load_snippets()
    prog.compare_snippets()
    assert prog.out.getvalue() == (
        "Duplicate:  a\n"
        "  Differs:  b\n"
        "      New:  c\n"
        "    Extra:  d\n")


def test_install_new_snippets(tmp_path):
    src = tmp_path / "src"
    dst = tmp_path / "dst"
    _make_tree(src, {"a.txt": "A", "sub/b.txt": "B"})
    prog = _prog(src, dst, action=INSTALL_ACTION)
    prog.create_target()
    prog.load_snippets()
    prog.install_snippets()
    assert (dst / "a.txt").read_text() == "A"
    assert (dst / "sub" / "b.txt").read_text() == "B"
    assert prog.status.new_count == 2
    assert prog.status.bad_installs == []


def test_install_changed_and_duplicate(tmp_path):
    src = tmp_path / "src"
    dst = tmp_path / "dst"
    _make_tree(src, {"a.txt": "A", "b.txt": "B"})
    _make_tree(dst, {"a.txt": "old", "b.txt": "B"})
    prog = _prog(src, dst)
    prog.load_snippets()
    prog.install_snippets()
    assert (dst / "a.txt").read_text() == "A"
    assert (dst / "a.txt.orig").read_text() == "old"
    assert prog.status.diff_count == 1
    assert prog.status.dup_count == 1
    assert prog.status.clear_count == 1
    assert prog.status.renamed_files == [str(dst / "a.txt.orig")]
    assert "Existing snippets cleared:   1\n" in prog.out.getvalue()


def test_install_timestamped_copy(tmp_path):
    src = tmp_path / "src"
    dst = tmp_path / "dst"
    _make_tree(src, {"a.txt": "A"})
    _make_tree(dst, {"a.txt": "old", "a.txt.orig": "older"})
    prog = _prog(src, dst)
    prog.load_snippets()
    prog.install_snippets()
    assert (dst / "a.txt.orig.ts").read_text() == "old"
    assert (dst / "a.txt.orig").read_text() == "older"
    assert prog.status.timestamped_count == 1


def test_install_no_copy_removes(tmp_path):
    src = tmp_path / "src"
    dst = tmp_path / "dst"
    _make_tree(src, {"a.txt": "A"})
    _make_tree(dst, {"a.txt": "old"})
    prog = _prog(src, dst, no_copy=True)
    prog.load_snippets()
    prog.install_snippets()
    assert (dst / "a.txt").read_text() == "A"
    assert not (dst / "a.txt.orig").exists()
    assert prog.status.removed_files == [str(dst / "a.txt")]


def test_make_sub_dir_clears_blocking_file(tmp_path):
    src = tmp_path / "src"
    dst = tmp_path / "dst"
    _make_tree(src, {"sub/b.txt": "B"})
    _make_tree(dst, {"sub": "blocker"})
    prog = _prog(src, dst)
    prog.load_snippets()
    prog.install_snippets()
    assert (dst / "sub" / "b.txt").read_text() == "B"
    assert (dst / "sub.orig").read_text() == "blocker"
    assert prog.status.clear_count == 1


def test_handle_error():
    status = InstallStatus()
    assert status.handle_error(None, "Write failure", "a") is False
    assert status.handle_error(OSError("boom"), "Write failure", "a") is True
    assert status.bad_installs == ["a"]
    assert status.errors == {"Write failure": ["boom"]}


def test_report_errors_lists_bad_installs():
    status = InstallStatus()
    status.handle_error(OSError("boom"), "Write failure", "snip")
    err = io.StringIO()
    status.report_errors(err)
    text = err.getvalue()
    assert "The following snippets could not be installed\n" in text
    assert "        snip\n" in text
    assert "boom" in text


def test_report_renamed(tmp_path):
    status = InstallStatus(clear_count=1, diff_count=1,
                           renamed_files=[os.path.join("dir", "a.orig")])
    out = io.StringIO()
    status.report("dir", out)
    text = out.getvalue()
    assert text.startswith("Existing snippets cleared:   1\n"
                           "         snippets changed:   1\n")
    assert "1 file renamed\nin dir\n        a.orig\n" in text


def test_report_nothing_cleared():
    out = io.StringIO()
    InstallStatus(new_count=3).report("dir", out)
    assert out.getvalue() == ""


def test_build_parser_defaults():
    prog = Prog()
    parser = build_parser(prog)
    assert parser.prog == "gosh.snippet"
    assert prog.action == CMP_ACTION
    assert prog.max_sub_dirs == DEFAULT_MAX_SUB_DIRS


def test_parse_args_sets_values(tmp_path):
    prog = parse_args(Prog(), ["-target", "xyz", "-install",
                               "-source", str(tmp_path),
                               "-max-sub-dirs", "5", "-no-copy"])
    assert prog.to_dir == "xyz"
    assert prog.action == INSTALL_ACTION
    assert prog.from_dir == str(tmp_path)
    assert prog.max_sub_dirs == 5
    assert prog.no_copy is True


@pytest.mark.parametrize("argv", [
    [],
    ["-target", ""],
    ["-target", "x", "-max-sub-dirs", "2"],
    ["-target", "x", "-action", "nonesuch"],
    ["-target", "x", "-source", "nonesuch-dir-xyz"],
])
def test_parse_args_errors(argv):
    with pytest.raises(ValueError):
        parse_args(Prog(), argv)


def test_main_compare(tmp_path, capsys):
    src = tmp_path / "src"
    dst = tmp_path / "dst"
    _make_tree(src, {"a.txt": "A"})
    assert main(["-target", str(dst), "-source", str(src)]) == 0
    assert capsys.readouterr().out == "      New:  a.txt\n"
    assert not (dst / "a.txt").exists()


def test_main_install(tmp_path):
    src = tmp_path / "src"
    dst = tmp_path / "dst"
    _make_tree(src, {"a.txt": "A"})
    assert main(["-target", str(dst), "-source", str(src), "-install"]) == 0
    assert (dst / "a.txt").read_text() == "A"


def test_main_bad_args(capsys):
    assert main(["-nonesuch"]) == 2
    assert "gosh.snippet:" in capsys.readouterr().err