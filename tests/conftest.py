"""
go6obj Test Configuration
=========================

Shared fixtures. The stream builders themselves live in objstream.py so
test modules can import them directly.
"""

import pytest

from objstream import StreamBuilder


@pytest.fixture
def stream() -> StreamBuilder:
    """A fresh stream builder using the default opcode space."""
    return StreamBuilder()
