"""
Module containing configuration functions for Pytest.
"""

import pytest


@pytest.fixture(autouse=True)
def default_numerics_config(monkeypatch):
    """Run every test with the built-in numerical defaults, independent of a
    porebox.cfg in the working directory."""
    import porebox as pb

    monkeypatch.setitem(pb.config, pb.NUMERICS, {})
