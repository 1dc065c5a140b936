"""Native POA engine access through ctypes.

Two calling conventions of the ``poa_func`` symbol are supported:

``returned``
    ``char* poa_func(char** seqs, char** quals, int num_seqs,
    int l, int m, int n, int g, int e, int q, int c)``.  The engine
    allocates the consensus and returns it as a C string.  ``quals`` is
    NULL when no qualities are supplied.

``bounded``
    ``unsigned poa_func(char** seqs, int num_seqs, char* consensus,
    int consensus_len, int l, int m, int n, int g, int e)``.  The caller
    supplies a fixed-capacity buffer and gets back the full consensus
    length; output beyond the capacity is dropped.
"""

from __future__ import annotations

import ctypes
import ctypes.util
import logging
import os
import sys
import threading
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple, Union

from poaconsensus.errors import EngineError, EngineUnavailableError, UnsupportedFeatureError
from poaconsensus.scoring import ScoringModel

L = logging.getLogger(__name__)

LIBRARY_NAME = "spoa_func"
DEFAULT_SYMBOL = "poa_func"
DEFAULT_RELEASE_SYMBOL = "poa_free"
DEFAULT_MAX_LENGTH = 100_000

ENV_LIBRARY = "POACONSENSUS_LIBRARY"
ENV_CONVENTION = "POACONSENSUS_CONVENTION"
ENV_MAX_LENGTH = "POACONSENSUS_MAX_LENGTH"

CHAR_PP = ctypes.POINTER(ctypes.c_char_p)

RETURNED_ARGTYPES = [CHAR_PP, CHAR_PP] + [ctypes.c_int] * 8
BOUNDED_ARGTYPES = [CHAR_PP, ctypes.c_int, ctypes.POINTER(ctypes.c_char), ctypes.c_int] + [ctypes.c_int] * 5

# Prototypes for wrapping function pointers obtained outside load_engine().
RETURNED_PROTOTYPE = ctypes.CFUNCTYPE(ctypes.c_void_p, *RETURNED_ARGTYPES)
BOUNDED_PROTOTYPE = ctypes.CFUNCTYPE(ctypes.c_uint, *BOUNDED_ARGTYPES)
RELEASE_PROTOTYPE = ctypes.CFUNCTYPE(None, ctypes.c_void_p)


class CallingConvention(str, Enum):
    RETURNED = "returned"
    BOUNDED = "bounded"

    @classmethod
    def parse(cls, value: Union["CallingConvention", str]) -> "CallingConvention":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                f"unknown calling convention {value!r}; expected 'returned' or 'bounded'"
            ) from None


class ConsensusEngine:
    """One native ``poa_func`` entry point plus the convention it follows.

    ``run`` performs exactly one foreign call and returns the consensus
    bytes copied into Python memory together with the length the engine
    reported.  Any buffer holding the native output is released before
    ``run`` returns.
    """

    def __init__(
        self,
        function,
        convention: Union[CallingConvention, str] = CallingConvention.RETURNED,
        max_length: Optional[int] = None,
        release=None,
        name: str = "<native>",
    ):
        self.convention = CallingConvention.parse(convention)
        if self.convention is CallingConvention.BOUNDED:
            max_length = DEFAULT_MAX_LENGTH if max_length is None else int(max_length)
            if max_length <= 0:
                raise ValueError(f"max_length must be positive, got {max_length}")
        elif release is None:
            L.warning(
                "%s exports no release function; every returned consensus buffer is leaked", name
            )
        self.max_length = max_length
        self.name = name
        self._function = function
        self._release = release
        self.library = None

    def __repr__(self) -> str:
        return f"ConsensusEngine(name={self.name!r}, convention={self.convention.value!r})"

    def check_request(self, scoring: ScoringModel, has_qualities: bool) -> None:
        """Raise if this convention cannot carry the request."""
        if self.convention is not CallingConvention.BOUNDED:
            return
        if has_qualities:
            raise UnsupportedFeatureError("the bounded calling convention does not accept qualities")
        if scoring.is_two_piece:
            raise UnsupportedFeatureError(
                "the bounded calling convention does not accept a second gap tier"
            )

    def run(self, seq_ptrs, qual_ptrs, count: int, scoring: ScoringModel) -> Tuple[bytes, int]:
        if self.convention is CallingConvention.BOUNDED:
            return self._run_bounded(seq_ptrs, count, scoring)
        return self._run_returned(seq_ptrs, qual_ptrs, count, scoring)

    def _run_returned(self, seq_ptrs, qual_ptrs, count, scoring):
        address = self._function(seq_ptrs, qual_ptrs, count, *scoring.engine_arguments())
        if not address:
            raise EngineError(f"{self.name} returned NULL for {count} sequences")
        try:
            data = ctypes.string_at(address)
        finally:
            if self._release is not None:
                self._release(address)
        return data, len(data)

    def _run_bounded(self, seq_ptrs, count, scoring):
        capacity = self.max_length
        buffer = ctypes.create_string_buffer(capacity)
        reported = int(self._function(seq_ptrs, count, buffer, capacity, *scoring.engine_arguments()[:5]))
        data = buffer.raw[: min(reported, capacity)]
        return data, reported


def _shared_library_suffix() -> str:
    if sys.platform == "darwin":
        return ".dylib"
    if sys.platform.startswith("win"):
        return ".dll"
    return ".so"


def locate_library(path: Optional[Union[str, Path]] = None) -> str:
    """Find the native library: explicit path, environment, system, then bundled."""
    candidate = path or os.environ.get(ENV_LIBRARY)
    if candidate:
        candidate = os.fspath(candidate)
        # bare names such as "libspoa_func.so.1" are resolved by the dynamic loader
        if os.path.dirname(candidate) and not os.path.isfile(candidate):
            raise EngineUnavailableError(f'Library file "{candidate}" not found.', candidate)
        return candidate
    found = ctypes.util.find_library(LIBRARY_NAME)
    if found:
        return found
    bundled = Path(__file__).resolve().parent / f"lib{LIBRARY_NAME}{_shared_library_suffix()}"
    if bundled.is_file():
        return str(bundled)
    raise EngineUnavailableError(
        f"could not locate lib{LIBRARY_NAME}; set {ENV_LIBRARY} to its path"
    )


def declare(function, convention: CallingConvention) -> None:
    """Set argtypes/restype of a ctypes library function for *convention*."""
    if convention is CallingConvention.BOUNDED:
        function.argtypes = BOUNDED_ARGTYPES
        function.restype = ctypes.c_uint
    else:
        function.argtypes = RETURNED_ARGTYPES
        function.restype = ctypes.c_void_p


def load_engine(
    path: Optional[Union[str, Path]] = None,
    convention: Optional[Union[CallingConvention, str]] = None,
    max_length: Optional[int] = None,
    symbol: str = DEFAULT_SYMBOL,
    release_symbol: Optional[str] = DEFAULT_RELEASE_SYMBOL,
) -> ConsensusEngine:
    """Open the native library and bind its consensus entry point.

    Unset arguments fall back to the ``POACONSENSUS_*`` environment
    variables and then to the module defaults.

    In the returned convention the consensus buffer is handed back to the
    library through *release_symbol*.  A library without that export (the
    plain SPOA ``poa_func`` wrapper allocates with ``new[]`` and exports
    nothing else) leaks one buffer per call; a warning is logged on load.
    """
    library_path = locate_library(path)
    convention = CallingConvention.parse(
        convention or os.environ.get(ENV_CONVENTION) or CallingConvention.RETURNED
    )
    if max_length is None and os.environ.get(ENV_MAX_LENGTH):
        max_length = int(os.environ[ENV_MAX_LENGTH])

    try:
        library = ctypes.CDLL(library_path)
    except OSError as exc:
        raise EngineUnavailableError(f"cannot load {library_path}: {exc}", library_path) from exc
    try:
        function = getattr(library, symbol)
    except AttributeError:
        raise EngineUnavailableError(f"{library_path} does not export {symbol}", library_path) from None
    declare(function, convention)

    release = None
    if release_symbol and convention is CallingConvention.RETURNED:
        release = getattr(library, release_symbol, None)
        if release is not None:
            release.argtypes = [ctypes.c_void_p]
            release.restype = None

    L.debug("loaded %s from %s (%s convention)", symbol, library_path, convention.value)
    engine = ConsensusEngine(function, convention, max_length, release, name=library_path)
    engine.library = library
    return engine


_default_engine: Optional[ConsensusEngine] = None
_default_lock = threading.Lock()


def default_engine() -> ConsensusEngine:
    """Return the process-wide engine, loading it on first use."""
    global _default_engine
    with _default_lock:
        if _default_engine is None:
            _default_engine = load_engine()
        return _default_engine


def set_default_engine(engine: Optional[ConsensusEngine]) -> None:
    """Install *engine* as the process default; ``None`` forces a reload on next use."""
    global _default_engine
    with _default_lock:
        _default_engine = engine
