"""Fake source and price adapters for cycle and chain tests (no live network)."""

from .sources import (
    FakePriceAdapter,
    FakePriceAdapterDown,
    FakeSource,
    FakeSourceAlwaysFail,
    FakeSourceFailNThenSucceed,
    FakeSourceRaises,
    make_record,
)

__all__ = [
    "FakePriceAdapter",
    "FakePriceAdapterDown",
    "FakeSource",
    "FakeSourceAlwaysFail",
    "FakeSourceFailNThenSucceed",
    "FakeSourceRaises",
    "make_record",
]
