import pytest

from hooktest import Suite


@pytest.fixture
def suite() -> Suite:
    """Fresh, named suite per test."""

    return Suite("fixture suite")
