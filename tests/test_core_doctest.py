import doctest

from cbr2pdf import archive, config, core, document, render


def test_core_doctests():
    failed = 0
    attempted = 0
    for mod in (archive, config, core, document, render):
        res = doctest.testmod(mod)
        failed += res.failed
        attempted += res.attempted
    assert failed == 0, f"Doctests failed: {failed} failures, {attempted} attempted"
