"""Sentinel-framed sequence records and the pointer arrays built from them.

The engine reads every sequence and quality record as a C string: raw
bytes ending with a single 0 byte and no length prefix.  Records are
snapshotted into immutable ``bytes`` before any address is taken, so the
addresses handed to the engine cannot move or change during a call.
"""

from __future__ import annotations

import ctypes
from typing import Iterable, List, Optional, Sequence, Union

import numpy as np

from poaconsensus.errors import EmbeddedSentinelError, UnterminatedRecordError

SENTINEL = 0

RecordLike = Union[bytes, bytearray, memoryview, np.ndarray]


def snapshot(record: RecordLike) -> bytes:
    """Return an immutable byte copy of a bytes-like record."""
    if isinstance(record, bytes):
        return record
    if isinstance(record, str):
        raise TypeError("records must be bytes-like; use terminate() to encode text")
    if isinstance(record, np.ndarray):
        if record.dtype.itemsize != 1 or record.ndim != 1:
            raise TypeError(f"array records must be 1-D with 1-byte items, got {record.dtype}")
        return record.tobytes()
    if isinstance(record, (bytearray, memoryview)):
        view = memoryview(record)
        if view.itemsize != 1:
            raise TypeError(f"memoryview records must have 1-byte items, got {view.format!r}")
        return view.tobytes()
    raise TypeError(f"unsupported record type: {type(record).__name__}")


def check_record(data: bytes, kind: str = "sequence", index: Optional[int] = None) -> None:
    """Raise unless *data* ends with the sentinel and holds no earlier one."""
    codes = np.frombuffer(data, dtype=np.uint8)
    if codes.size == 0 or codes[-1] != SENTINEL:
        raise UnterminatedRecordError(kind, index)
    embedded = np.flatnonzero(codes[:-1] == SENTINEL)
    if embedded.size:
        raise EmbeddedSentinelError(kind, index, int(embedded[0]))


def validate_records(records: Iterable[RecordLike], kind: str = "sequence") -> List[bytes]:
    """Snapshot and check every record, returning the immutable copies."""
    checked = []
    for index, record in enumerate(records):
        data = snapshot(record)
        check_record(data, kind, index)
        checked.append(data)
    return checked


def payload_length(data: bytes) -> int:
    """Number of residues in a terminated record."""
    return len(data) - 1


# '"' is Phred 1, which SPOA weighs as 1, the weight of an unweighted record.
UNIFORM_QUALITY = b'"'


def uniform_qualities(records: Sequence[bytes]) -> List[bytes]:
    """Quality records of constant weight, one per residue of each record."""
    return [UNIFORM_QUALITY * payload_length(data) + b"\x00" for data in records]


def terminate(seq: Union[str, RecordLike]) -> bytes:
    """Encode *seq* as a sentinel-terminated record.

    Text is encoded as ASCII.  A payload that already contains a 0 byte
    cannot be framed and raises EmbeddedSentinelError.
    """
    payload = seq.encode("ascii") if isinstance(seq, str) else snapshot(seq)
    position = payload.find(b"\x00")
    if position != -1:
        raise EmbeddedSentinelError("payload", None, position)
    return payload + b"\x00"


def terminate_all(seqs: Iterable[Union[str, RecordLike]]) -> List[bytes]:
    records = []
    for index, seq in enumerate(seqs):
        try:
            records.append(terminate(seq))
        except EmbeddedSentinelError as exc:
            raise EmbeddedSentinelError("payload", index, exc.position) from None
    return records


class PointerArray:
    """A ``char*`` array pointing into record snapshots, valid inside ``with``.

    The array and the snapshots it points into are held together for the
    lifetime of the block and dropped on exit.  ``PointerArray(None)``
    yields a NULL pointer.
    """

    def __init__(self, records: Optional[Sequence[bytes]]):
        self._records = None if records is None else list(records)
        self._array = None
        self._closed = False

    def __len__(self) -> int:
        return 0 if self._records is None else len(self._records)

    def __enter__(self):
        if self._closed:
            raise RuntimeError("pointer array has already been released")
        if self._array is not None:
            raise RuntimeError("pointer array is already in use")
        if self._records is None:
            return None
        array = (ctypes.c_char_p * len(self._records))()
        for i, data in enumerate(self._records):
            array[i] = data
        self._array = array
        return array

    def __exit__(self, exc_type, exc, tb):
        self._array = None
        self._records = None
        self._closed = True
        return False
