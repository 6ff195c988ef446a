"""Fake implementations of core ports for testing.

These in-memory implementations allow core domain logic to be tested
without external dependencies:

- FakeKeyValueStore: Dict-backed text storage with failure injection
- FakeAnnotator: Canned annotation results with failure injection
- FakeSyncTransport: Captured pushes, optional failures and gating
- FakeConnectivity: Switchable online state with restored events
"""

from .annotator import FakeAnnotator
from .connectivity import FakeConnectivity
from .store import FakeKeyValueStore
from .transport import FakeSyncTransport

__all__ = [
    "FakeAnnotator",
    "FakeConnectivity",
    "FakeKeyValueStore",
    "FakeSyncTransport",
]
