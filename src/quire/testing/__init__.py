"""Test utilities for quire applications::

    from quire.testing import TestClient
"""

from quire.testing.client import TestClient

__all__ = ["TestClient"]
