"""
poaconsensus: consensus sequences from a native partial-order-alignment engine.

Sequences (DNA or protein) and optional per-base qualities are passed as
0-terminated byte records to a single ``poa_func`` call in a shared
library wrapping SPOA; the consensus comes back as Python-owned bytes.
"""

__version__ = "0.1.0"

from poaconsensus.errors import (
    ConsensusError,
    PreconditionError,
    UnterminatedRecordError,
    EmbeddedSentinelError,
    RecordCountMismatchError,
    InvalidAlignmentModeError,
    IncompleteScoringError,
    UnsupportedFeatureError,
    EngineError,
    EngineUnavailableError,
)
from poaconsensus.scoring import AlignmentMode, ScoringModel
from poaconsensus.records import terminate, terminate_all
from poaconsensus.engine import (
    CallingConvention,
    ConsensusEngine,
    load_engine,
    default_engine,
    set_default_engine,
)
from poaconsensus.consensus import ConsensusBuilder, ConsensusResult, compute_consensus

__all__ = [
    "compute_consensus",
    "ConsensusBuilder",
    "ConsensusResult",
    "AlignmentMode",
    "ScoringModel",
    "terminate",
    "terminate_all",
    "CallingConvention",
    "ConsensusEngine",
    "load_engine",
    "default_engine",
    "set_default_engine",
    "ConsensusError",
    "PreconditionError",
    "UnterminatedRecordError",
    "EmbeddedSentinelError",
    "RecordCountMismatchError",
    "InvalidAlignmentModeError",
    "IncompleteScoringError",
    "UnsupportedFeatureError",
    "EngineError",
    "EngineUnavailableError",
]
