"""Alignment mode and scoring parameters handed to the POA engine."""

from __future__ import annotations

import operator
from dataclasses import dataclass, fields
from enum import IntEnum
from typing import Mapping, Optional, Tuple, Union

from poaconsensus.errors import IncompleteScoringError, InvalidAlignmentModeError


class AlignmentMode(IntEnum):
    """Engine alignment mode codes."""

    LOCAL = 0
    GLOBAL = 1
    GAPPED = 2

    @classmethod
    def parse(cls, value: Union["AlignmentMode", int, str]) -> "AlignmentMode":
        """Coerce an enum member, integer code or name into an AlignmentMode."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower().replace("_", "-")
            if key in _MODE_NAMES:
                return _MODE_NAMES[key]
            if not key.lstrip("-").isdigit():
                raise InvalidAlignmentModeError(value)
            code = int(key)
        elif isinstance(value, bool) or not isinstance(value, int):
            raise InvalidAlignmentModeError(value)
        else:
            code = value
        try:
            return cls(code)
        except ValueError:
            raise InvalidAlignmentModeError(value) from None


_MODE_NAMES = {
    "local": AlignmentMode.LOCAL,
    "global": AlignmentMode.GLOBAL,
    "gapped": AlignmentMode.GAPPED,
    "semi-global": AlignmentMode.GAPPED,
}


def _score(name: str, value) -> int:
    try:
        return operator.index(value)
    except TypeError:
        raise TypeError(f"scoring parameter {name!r} must be an integer, got {value!r}") from None


@dataclass(frozen=True)
class ScoringModel:
    """Scoring parameters for the partial-order alignment.

    Scores are passed to the engine verbatim.  ``gap2_open`` and
    ``gap2_extend`` enable the two-piece affine gap model and must be
    given together.
    """

    mode: AlignmentMode = AlignmentMode.GLOBAL
    match: int = 5
    mismatch: int = -4
    gap_open: int = -3
    gap_extend: int = -1
    gap2_open: Optional[int] = None
    gap2_extend: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, "mode", AlignmentMode.parse(self.mode))
        for name in ("match", "mismatch", "gap_open", "gap_extend"):
            value = getattr(self, name)
            if value is None:
                raise IncompleteScoringError(f"scoring parameter {name!r} is required")
            object.__setattr__(self, name, _score(name, value))
        if (self.gap2_open is None) != (self.gap2_extend is None):
            raise IncompleteScoringError(
                "gap2_open and gap2_extend must be given together"
            )
        if self.gap2_open is not None:
            object.__setattr__(self, "gap2_open", _score("gap2_open", self.gap2_open))
            object.__setattr__(self, "gap2_extend", _score("gap2_extend", self.gap2_extend))

    @classmethod
    def coerce(cls, config: Union["ScoringModel", Mapping, None]) -> "ScoringModel":
        """Accept a ScoringModel, a mapping of its fields, or None for defaults."""
        if config is None:
            return cls()
        if isinstance(config, cls):
            return config
        known = {f.name for f in fields(cls)}
        unknown = set(config) - known
        if unknown:
            raise TypeError(f"unknown scoring parameters: {sorted(unknown)}")
        return cls(**config)

    @property
    def is_two_piece(self) -> bool:
        return self.gap2_open is not None

    def engine_arguments(self) -> Tuple[int, int, int, int, int, int, int]:
        """Return ``(mode, match, mismatch, gap_open, gap_extend, gap2_open, gap2_extend)``.

        Without a second tier the primary gap parameters are repeated,
        which the engine reads as a single affine model.
        """
        if self.is_two_piece:
            q, c = self.gap2_open, self.gap2_extend
        else:
            q, c = self.gap_open, self.gap_extend
        return (
            int(self.mode),
            self.match,
            self.mismatch,
            self.gap_open,
            self.gap_extend,
            q,
            c,
        )
