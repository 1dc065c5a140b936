"""Exception hierarchy for the consensus binding."""

from __future__ import annotations

import errno
from typing import Optional


class ConsensusError(Exception):
    """Base class for every error raised by poaconsensus."""


class PreconditionError(ConsensusError, ValueError):
    """Input rejected before the native engine was called."""


class UnterminatedRecordError(PreconditionError):
    """A record does not end with the sentinel byte."""

    def __init__(self, kind: str, index: int):
        self.kind = kind
        self.index = index
        super().__init__(f"{kind} record {index} is not terminated by a 0 byte")


class EmbeddedSentinelError(PreconditionError):
    """A record contains a 0 byte before its end."""

    def __init__(self, kind: str, index: Optional[int], position: int):
        self.kind = kind
        self.index = index
        self.position = position
        where = f"{kind} record {index}" if index is not None else kind
        super().__init__(f"{where} contains a 0 byte at position {position}")


class RecordCountMismatchError(PreconditionError):
    """Qualities were given for a different number of records than sequences."""

    def __init__(self, num_sequences: int, num_qualities: int):
        self.num_sequences = num_sequences
        self.num_qualities = num_qualities
        super().__init__(
            f"got {num_qualities} quality records for {num_sequences} sequences"
        )


class InvalidAlignmentModeError(PreconditionError):
    """Alignment mode outside local/global/gapped."""

    def __init__(self, value):
        self.value = value
        super().__init__(
            f"invalid alignment mode {value!r}; expected 0 (local), 1 (global) or 2 (gapped)"
        )


class IncompleteScoringError(PreconditionError):
    """A scoring parameter required by the chosen gap model is missing."""


class UnsupportedFeatureError(PreconditionError):
    """The active calling convention cannot express the request."""


class EngineError(ConsensusError, RuntimeError):
    """The native engine returned an abnormal result."""


class EngineUnavailableError(ConsensusError, OSError):
    """The native engine library could not be located or loaded."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(errno.ENOENT, message)
        self.filename = path
