"""Shared test fixtures for poaconsensus tests."""

import ctypes
import os

import pytest

from poaconsensus.engine import (
    BOUNDED_PROTOTYPE,
    RELEASE_PROTOTYPE,
    RETURNED_PROTOTYPE,
    CallingConvention,
    ConsensusEngine,
    set_default_engine,
)
from poaconsensus.errors import EngineUnavailableError


def majority(records, weights=None):
    """Most heavily weighted distinct record; first seen wins ties."""
    totals = {}
    for i, rec in enumerate(records):
        totals[rec] = totals.get(rec, 0) + (sum(weights[i]) if weights else 1)
    return max(totals, key=totals.get)


class FakeNative:
    """Python stand-in for ``poa_func`` reached through real ctypes pointers."""

    def __init__(self, output=None, return_null=False):
        self.output = output
        self.return_null = return_null
        self.calls = []
        self.released = []
        self.live = {}
        self.returned = RETURNED_PROTOTYPE(self._poa_func)
        self.bounded = BOUNDED_PROTOTYPE(self._poa_func_bounded)
        self.release = RELEASE_PROTOTYPE(self._poa_free)

    def _consensus(self, records, weights):
        if self.output is not None:
            return self.output
        return majority(records, weights)

    def _poa_func(self, seqs, quals, num_seqs, l, m, n, g, e, q, c):
        records = [seqs[i] for i in range(num_seqs)]
        weights = [quals[i] for i in range(num_seqs)] if quals else None
        self.calls.append({
            "sequences": records,
            "qualities": weights,
            "arguments": (l, m, n, g, e, q, c),
        })
        if self.return_null:
            return None
        buf = ctypes.create_string_buffer(self._consensus(records, weights))
        address = ctypes.addressof(buf)
        self.live[address] = buf
        return address

    def _poa_func_bounded(self, seqs, num_seqs, consensus, capacity, l, m, n, g, e):
        records = [seqs[i] for i in range(num_seqs)]
        self.calls.append({
            "sequences": records,
            "qualities": None,
            "arguments": (l, m, n, g, e),
            "capacity": capacity,
        })
        result = self._consensus(records, None)
        ctypes.memmove(consensus, result, min(len(result), capacity))
        return len(result)

    def _poa_free(self, address):
        self.released.append(address)
        self.live.pop(address)

    def engine(self, convention=CallingConvention.RETURNED, max_length=None, release=True):
        if CallingConvention.parse(convention) is CallingConvention.BOUNDED:
            return ConsensusEngine(self.bounded, "bounded", max_length, name="fake")
        return ConsensusEngine(
            self.returned, "returned", release=self.release if release else None, name="fake"
        )


@pytest.fixture
def fake_native():
    return FakeNative()


@pytest.fixture
def fake_engine(fake_native):
    return fake_native.engine()


@pytest.fixture(autouse=True)
def _isolated_default_engine():
    set_default_engine(None)
    yield
    set_default_engine(None)


@pytest.fixture
def dna_records():
    """Noisy copies of AATGCCCGTT."""
    return [
        b"ATTGCCCGTT\x00",
        b"AATGCCGTT\x00",
        b"AATGCCCGAT\x00",
        b"AACGCCCGTC\x00",
        b"AGTGCTCGTT\x00",
        b"AATGCTCGTT\x00",
    ]


@pytest.fixture
def protein_records():
    """Noisy copies of FNLKPSWDDCQ."""
    return [
        b"FNLKESWDDCQ\x00",
        b"FNLKPSWDCQ\x00",
        b"FNLKSPSWDDCQ\x00",
        b"FNLKASWCQ\x00",
        b"FLKPSWDDCQ\x00",
        b"FNLKPSWDADCQ\x00",
    ]


@pytest.fixture
def weighted_records():
    """Two alleles at position 7; qualities favour the first and third reads."""
    seqs = [
        b"ATTGCCCATT\x00",
        b"ATTGCCCGTT\x00",
        b"ATTGCCCATT\x00",
        b"ATTGCCCGTT\x00",
    ]
    quals = [
        b"IIIIIIIIII\x00",
        b"IIIIIII!II\x00",
        b"IIIIIIIIII\x00",
        b"IIIIIII!II\x00",
    ]
    return seqs, quals


@pytest.fixture
def native_engine():
    """Engine backed by the real shared library, if one is configured."""
    if not os.environ.get("POACONSENSUS_LIBRARY"):
        pytest.skip("POACONSENSUS_LIBRARY not set; native engine unavailable")
    from poaconsensus.engine import load_engine
    try:
        return load_engine(convention="returned")
    except EngineUnavailableError as exc:
        pytest.skip(f"native engine unavailable: {exc}")
