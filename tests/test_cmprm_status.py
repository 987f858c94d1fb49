import io

from devsweep.cmprm_status import Counts, Status


def _report(status):
    out = io.StringIO()
    status.report(out)
    return out.getvalue()


def test_no_files():
    assert _report(Status()) == "Summary\nNo files found\n"


def test_cmp_files():
    s = Status()
    s.cmp_file.total = 1
    assert _report(s) == (
        "Summary\n"
        "      1 comparable file\n"
        "          1 skipped (not checked)\n"
        "\n"
        "          1 kept\n"
    )


def test_dup_files():
    s = Status()
    s.dup_file.total = 1
    assert _report(s) == "Summary\n      1 duplicate file\n          1 kept\n"


def test_bad_files():
    s = Status()
    s.bad_file.total = 1
    assert _report(s) == "Summary\n      1 problem file\n          1 kept\n"


def test_all_types():
    s = Status()
    s.cmp_file.total = 10
    s.cmp_file.cmp_errs = 3
    s.cmp_file.compared = 3
    s.cmp_file.deleted = 4
    s.cmp_file.reverted = 1
    s.dup_file.total = 10
    s.bad_file.total = 10
    assert _report(s) == (
        "Summary\n"
        "     10 problem files\n"
        "         10 kept\n"
        "     10 duplicate files\n"
        "         10 kept\n"
        "     10 comparable files\n"
        "          3 compared\n"
        "          3 comparison errors\n"
        "          4 skipped (not checked)\n"
        "\n"
        "          4 deleted\n"
        "          1 reverted\n"
        "          5 kept\n"
    )


def test_counts_with_no_total_report_nothing():
    out = io.StringIO()
    Counts("duplicate", deleted=3).report(out)
    assert out.getvalue() == ""


def test_counts_errors_reported():
    out = io.StringIO()
    Counts("duplicate", total=2, del_errs=1, rev_errs=2).report(out)
    assert out.getvalue() == (
        "      2 duplicate files\n"
        "          1 deletion error\n"
        "          2 revert errors\n"
        "          2 kept\n"
    )


def test_default_names():
    s = Status()
    assert (s.cmp_file.name, s.dup_file.name, s.bad_file.name) == (
        "comparable", "duplicate", "problem")
    assert s.cmp_file.is_comparable and not s.dup_file.is_comparable