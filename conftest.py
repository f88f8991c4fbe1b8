"""
conftest.py
===========
Session-level pytest configuration for the test suite.

Custom marks
------------
deep
    Applied to tests that build caterpillar trees thousands of levels deep
    to exercise the iterative traversal strategy.  They run by default and
    take a few seconds; deselect with ``-m "not deep"``.

    Registration here suppresses PytestUnknownMarkWarning and makes the mark
    visible in ``pytest --markers``.
"""


def pytest_configure(config):
    """
    Configure pytest before test collection begins.
    """
    config.addinivalue_line(
        "markers",
        "deep: builds very deep caterpillar trees (deselect with -m 'not deep')",
    )
