import io
import os
import re
import subprocess
from unittest import mock

import pytest

from devsweep.contentcheck import ContentCheck, go_generate_check
from devsweep.godirs import (
    Action,
    Match,
    Prog,
    cd,
    get_package,
    has_entries,
)


@pytest.fixture
def gopkg(tmp_path):
    d = tmp_path / "gopkg"
    d.mkdir()
    (d / "go.mod").write_text("module gopkg\n\ngo 1.14\n")
    (d / "doesExist1.go").write_text("package gopkg\n")
    (d / "doesExist2.go").write_text("package gopkg\n")
    return d


def _completed(rc, stdout=""):
    return subprocess.CompletedProcess(args=["go"], returncode=rc,
                                       stdout=stdout, stderr="")


def test_cd_good_dir_restores_cwd(gopkg, capsys):
    before = os.getcwd()
    with cd(str(gopkg)) as old:
        inside = os.getcwd()
    assert old == before
    assert os.path.samefile(inside, gopkg)
    assert os.getcwd() == before
    captured = capsys.readouterr()
    assert captured.out == ""
    assert captured.err == ""


def test_cd_bad_dir(tmp_path, capsys):
    before = os.getcwd()
    bad = str(tmp_path / "nonesuch")
    with pytest.raises(FileNotFoundError):
        with cd(bad):
            pass
    assert os.getcwd() == before
    captured = capsys.readouterr()
    assert captured.out == ""
    assert captured.err.startswith(f'Cannot chdir to "{bad}": ')


@pytest.mark.parametrize("wanted, expected", [
    (["doesExist1.go"], True),
    (["doesExist1.go", "doesExist2.go"], True),
    (["doesNotExist1.go"], False),
    (["doesNotExist1.go", "doesNotExist2.go"], False),
    (["doesExist1.go", "doesNotExist2.go"], False),
    ([], True),
])
def test_has_entries(gopkg, wanted, expected):
    with cd(str(gopkg)):
        assert has_entries(wanted) is expected


@pytest.mark.parametrize("names, pkg, expected", [
    ([], "gopkg", True),
    (["gopkg"], "gopkg", True),
    (["notgopkg"], "gopkg", False),
    (["notgopkg", "gopkg"], "gopkg", True),
    (["notgopkg", "othernotgopkg"], "gopkg", False),
])
def test_pkg_matches(names, pkg, expected):
    assert Prog(pkg_names=names).pkg_matches(pkg) is expected


def test_get_package_success():
    with mock.patch("subprocess.run", return_value=_completed(0, "gopkg\n")):
        assert get_package() == "gopkg"


def test_get_package_failure():
    with mock.patch("subprocess.run", return_value=_completed(1)):
        with pytest.raises(RuntimeError, match="exit status 1"):
            get_package()


def test_get_package_no_go():
    with mock.patch("subprocess.run", side_effect=FileNotFoundError("go")):
        with pytest.raises(RuntimeError):
            get_package()


def test_find_matching_dirs(tmp_path):
    root = tmp_path / "root"
    for sub in ["a/b", ".git/x", "_hidden", "testdata/y", "skipme/z", "c"]:
        (root / sub).mkdir(parents=True)
    prog = Prog(base_dirs=[str(root), str(root)], skip_dirs=["skipme"],
                err=io.StringIO())
    found = prog.find_matching_dirs()
    assert found == sorted([str(root), str(root / "a"),
                            str(root / "a" / "b"), str(root / "c")])


def test_find_matching_dirs_defaults_to_cwd(tmp_path):
    (tmp_path / "sub").mkdir()
    prog = Prog(err=io.StringIO())
    with cd(str(tmp_path)):
        found = prog.find_matching_dirs()
    assert prog.base_dirs == ["."]
    assert found == [".", "sub"]


def test_check_content_records_matches(tmp_path):
    (tmp_path / "gen.go").write_text(
        "package x\n//go:generate mkdoc\nfunc f() {}\n//go:generate other\n")
    (tmp_path / "notes.txt").write_text("//go:generate ignored\n")
    chk = go_generate_check()
    prog = Prog(content_checks={chk.name: chk})
    with cd(str(tmp_path)):
        assert prog.has_required_content("d") is True
    assert prog.dir_content["d"] == {
        "go-gen": [Match(os.path.join("d", "gen.go"), 2,
                         "//go:generate mkdoc"),
                   Match(os.path.join("d", "gen.go"), 4,
                         "//go:generate other")],
    }


def test_check_content_stop_pattern(tmp_path):
    (tmp_path / "a.txt").write_text("hit 1\nSTOP\nhit 2\n")
    chk = ContentCheck(name="hits", match_pattern=re.compile("hit"),
                       stop_pattern=re.compile("STOP"))
    prog = Prog(content_checks={"hits": chk})
    with cd(str(tmp_path)):
        prog.check_content("d", "a.txt")
    assert [m.line for m in prog.dir_content["d"]["hits"]] == [1]


def test_has_required_content_missing(tmp_path):
    (tmp_path / "a.go").write_text("package x\n")
    chk = go_generate_check()
    prog = Prog(content_checks={chk.name: chk})
    with cd(str(tmp_path)):
        assert prog.has_required_content("d") is False
    assert prog.dir_content["d"] == {}


def test_has_required_content_no_checks(tmp_path):
    prog = Prog()
    with cd(str(tmp_path)):
        assert prog.has_required_content("d") is True
    assert prog.dir_content == {"d": {}}


@pytest.mark.parametrize("action, label", [
    (Action.PRINT, "print"),
    (Action.CONTENT, "content"),
    (Action.FILENAME, "filenames"),
    (Action.BUILD, "go build"),
    (Action.TEST, "go test"),
    (Action.INSTALL, "go install"),
    (Action.GENERATE, "go generate"),
])
def test_do_action_no_action(action, label):
    out = io.StringIO()
    prog = Prog(no_action=True, out=out)
    prog.do_action(action, "some/dir")
    assert out.getvalue() == f"{label:<20} : some/dir\n"


def test_do_action_print_and_content():
    out = io.StringIO()
    prog = Prog(out=out)
    prog.dir_content["d"] = {
        "b": [Match("d/y.go", 3, "yy")],
        "a": [Match("d/x.go", 1, "xx")],
    }
    prog.do_action(Action.PRINT, "d")
    prog.do_action(Action.CONTENT, "d")
    prog.do_action(Action.FILENAME, "d")
    assert out.getvalue() == ("d\n"
                              "d/x.go:1: xx\n"
                              "d/y.go:3: yy\n"
                              "d/x.go\n"
                              "d/y.go\n")


def test_run_build_runs_go(gopkg):
    prog = Prog(base_dirs=[str(gopkg)], actions={Action.BUILD},
                build_args=["-v"], out=io.StringIO(), err=io.StringIO())
    with mock.patch("subprocess.run",
                    return_value=_completed(0, "gopkg\n")) as run:
        rc = prog.run()
    assert rc == 0
    assert prog.actions == {Action.BUILD}
    commands = [c.args[0] for c in run.call_args_list]
    assert commands[-1] == ["go", "build", "-v"]


def test_on_match_do_prints_matching(gopkg):
    out = io.StringIO()
    prog = Prog(actions={Action.PRINT}, pkg_names=["gopkg"],
                files_wanted=["doesExist1.go"], out=out)
    with mock.patch("subprocess.run", return_value=_completed(0, "gopkg\n")):
        prog.on_match_do(str(gopkg))
    assert out.getvalue() == f"{gopkg}\n"


@pytest.mark.parametrize("settings", [
    {"pkg_names": ["other"]},
    {"files_wanted": ["missing.go"]},
    {"files_missing": ["doesExist2.go"]},
])
def test_on_match_do_skips(gopkg, settings):
    out = io.StringIO()
    prog = Prog(actions={Action.PRINT}, out=out, **settings)
    with mock.patch("subprocess.run", return_value=_completed(0, "gopkg\n")):
        prog.on_match_do(str(gopkg))
    assert out.getvalue() == ""


def test_on_match_do_skips_missing_content(gopkg):
    out = io.StringIO()
    chk = go_generate_check()
    prog = Prog(actions={Action.PRINT}, content_checks={chk.name: chk},
                out=out)
    with mock.patch("subprocess.run", return_value=_completed(0, "gopkg\n")):
        prog.on_match_do(str(gopkg))
    assert out.getvalue() == ""
    assert str(gopkg) not in prog.dir_content


def test_on_match_do_not_a_package(gopkg):
    out = io.StringIO()
    prog = Prog(actions={Action.PRINT}, out=out)
    with mock.patch("subprocess.run", return_value=_completed(1)):
        prog.on_match_do(str(gopkg))
    assert out.getvalue() == ""


def test_run_defaults_to_print(gopkg):
    out = io.StringIO()
    prog = Prog(base_dirs=[str(gopkg)], out=out, err=io.StringIO())
    with mock.patch("subprocess.run", return_value=_completed(0, "gopkg\n")):
        rc = prog.run()
    assert rc == 0
    assert prog.actions == {Action.PRINT}
    assert out.getvalue() == f"{gopkg}\n"