"""Consensus computation over the native partial-order-alignment engine."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Union

from poaconsensus.engine import CallingConvention, ConsensusEngine, default_engine
from poaconsensus.errors import EngineError, RecordCountMismatchError
from poaconsensus.records import (
    PointerArray,
    RecordLike,
    payload_length,
    uniform_qualities,
    validate_records,
)
from poaconsensus.scoring import AlignmentMode, ScoringModel

L = logging.getLogger(__name__)

ScoringLike = Union[ScoringModel, Mapping, None]


@dataclass(frozen=True)
class ConsensusResult:
    """Consensus bytes owned by Python, independent of any engine buffer."""

    sequence: bytes = b""
    num_sequences: int = 0
    mode: AlignmentMode = AlignmentMode.GLOBAL
    truncated: bool = False
    reported_length: int = 0

    @property
    def text(self) -> str:
        return self.sequence.decode("latin-1")

    def __len__(self) -> int:
        return len(self.sequence)

    def __bytes__(self) -> bytes:
        return self.sequence

    def __str__(self) -> str:
        return self.text


def compute_consensus(
    sequences: Iterable[RecordLike],
    qualities: Optional[Iterable[RecordLike]] = None,
    config: ScoringLike = None,
    engine: Optional[ConsensusEngine] = None,
) -> ConsensusResult:
    """Compute the consensus of sentinel-terminated *sequences*.

    Every record (and every quality record, when given) must end with a
    single 0 byte.  All inputs are validated before the engine is
    touched; an empty *sequences* collection returns an empty result
    without calling it.  Exactly one foreign call is made otherwise.
    Without *qualities* the returned convention is given constant-weight
    quality records, never a NULL array.
    """
    scoring = ScoringModel.coerce(config)
    seqs = validate_records(sequences, "sequence")

    quals = None
    if qualities is not None:
        qualities = list(qualities)
        if len(qualities) != len(seqs):
            raise RecordCountMismatchError(len(seqs), len(qualities))
        quals = validate_records(qualities, "quality")

    if not seqs:
        return ConsensusResult(mode=scoring.mode)

    engine = engine or default_engine()
    engine.check_request(scoring, quals is not None)
    weighted = quals is not None
    if not weighted and engine.convention is CallingConvention.RETURNED:
        # the returned-convention engine reads quals[i] for every record
        quals = uniform_qualities(seqs)

    L.debug(
        "computing consensus of %d sequences (%s mode, qualities=%s) via %r",
        len(seqs), scoring.mode.name.lower(), weighted, engine,
    )
    with PointerArray(seqs) as seq_ptrs, PointerArray(quals) as qual_ptrs:
        data, reported = engine.run(seq_ptrs, qual_ptrs, len(seqs), scoring)

    if not data and any(payload_length(s) for s in seqs):
        raise EngineError(f"engine produced an empty consensus for {len(seqs)} non-empty sequences")

    truncated = reported > len(data)
    if truncated:
        L.warning(
            "consensus truncated from %d to %d bytes by the output bound", reported, len(data)
        )
    return ConsensusResult(
        sequence=bytes(data),
        num_sequences=len(seqs),
        mode=scoring.mode,
        truncated=truncated,
        reported_length=reported,
    )


class ConsensusBuilder:
    """Reusable scoring configuration bound to an engine.

    Holds no per-call state, so one builder can serve many threads as
    long as the engine itself is reentrant.
    """

    def __init__(self, scoring: ScoringLike = None, engine: Optional[ConsensusEngine] = None):
        self.scoring = ScoringModel.coerce(scoring)
        self._engine = engine

    @property
    def engine(self) -> ConsensusEngine:
        return self._engine or default_engine()

    def consensus(
        self,
        sequences: Iterable[RecordLike],
        qualities: Optional[Iterable[RecordLike]] = None,
    ) -> ConsensusResult:
        return compute_consensus(sequences, qualities, self.scoring, self._engine)
