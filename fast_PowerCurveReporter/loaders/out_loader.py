# fast_PowerCurveReporter/loaders/out_loader.py
from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Iterable
import codecs, logging, math

from ..core.schema import ColumnSchema, SUMMED_FIELDS, DEFAULT_SCHEMA

_LOG = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024

class HeaderNotFoundError(ValueError):
    """No line of the file carries the time-column label."""

@dataclass(frozen=True)
class OutAverages:
    """Per-file means of the summed channels plus derived hub wind speed."""
    means: dict[str, float]
    wind_speed: float
    n_rows: int

# ---------- token helpers ----------
def _to_float(token: str) -> float | None:
    """Parse one token; Fortran 'D' exponents accepted. None if not a finite number."""
    try:
        v = float(token)
    except ValueError:
        try:
            v = float(token.replace("D", "E").replace("d", "e"))
        except ValueError:
            return None
    return v if math.isfinite(v) else None

def _value_at(values: list[str], idx: int) -> float:
    if idx < 0 or idx >= len(values):
        return 0.0
    v = _to_float(values[idx])
    return 0.0 if v is None else v

def resolve_indices(headers: list[str], schema: ColumnSchema) -> dict[str, int]:
    """Column index per schema field; -1 where the label is absent."""
    pos: dict[str, int] = {}
    for i, h in enumerate(headers):
        pos.setdefault(h, i)   # first occurrence wins on duplicate labels
    return {name: pos.get(getattr(schema, name), -1) for name in SUMMED_FIELDS}

# ---------- streaming accumulator ----------
class OutAccumulator:
    """
    Incremental parser for one OpenFAST .out file.

    Feed decoded text (or raw bytes) in chunks of any size with ``feed`` and
    call ``finish`` once the stream is exhausted. Only the partial trailing
    line and the running sums are kept between chunks.
    """

    def __init__(self, schema: ColumnSchema = DEFAULT_SCHEMA, encoding: str = "utf-8"):
        self.schema = schema
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""
        self._at_start = True
        self._indices: dict[str, int] | None = None
        self._skip_next = False
        self._sums = dict.fromkeys(SUMMED_FIELDS, 0.0)
        self._sum_wind = 0.0
        self.n_rows = 0
        self.n_lines = 0

    @property
    def header_found(self) -> bool:
        return self._indices is not None

    def feed(self, chunk: bytes | str) -> None:
        if isinstance(chunk, (bytes, bytearray)):
            chunk = self._decoder.decode(chunk)
        if not chunk:
            return
        if self._at_start:
            self._at_start = False
            if chunk.startswith("\ufeff"):   # byte-order mark
                chunk = chunk[1:]
        self._buffer += chunk
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()   # keep the unterminated tail
        for line in lines:
            self._process_line(line)

    def finish(self) -> OutAverages | None:
        """Flush the tail; return per-field means, or None if no data row was read."""
        self._buffer += self._decoder.decode(b"", final=True)
        if self._buffer:
            tail, self._buffer = self._buffer, ""
            for line in tail.split("\n"):
                self._process_line(line)
        if not self.header_found:
            raise HeaderNotFoundError(f"no header row containing '{self.schema.time}'")
        if self.n_rows == 0:
            return None
        n = float(self.n_rows)
        return OutAverages(
            means={k: s / n for k, s in self._sums.items()},
            wind_speed=self._sum_wind / n,
            n_rows=self.n_rows,
        )

    def _process_line(self, line: str) -> None:
        self.n_lines += 1
        if self._indices is None:
            tokens = line.split()
            # whole-token match, so words like "Timestep" in the preamble are not headers
            if self.schema.time in tokens:
                self._indices = resolve_indices(tokens, self.schema)
                self._skip_next = True   # units row sits directly under the header
                missing = [k for k, i in self._indices.items() if i < 0]
                if missing:
                    _LOG.debug("header at line %d lacks %s; those fields read as 0",
                               self.n_lines, ", ".join(missing))
            return

        if self._skip_next:
            self._skip_next = False
            return

        values = line.split()
        if not values or _to_float(values[0]) is None:
            return   # blank, footer or comment line

        idx = self._indices
        for name in SUMMED_FIELDS:
            self._sums[name] += _value_at(values, idx[name])
        wx = _value_at(values, idx["windX"])
        wy = _value_at(values, idx["windY"])
        wz = _value_at(values, idx["windZ"])
        self._sum_wind += math.sqrt(wx * wx + wy * wy + wz * wz)
        self.n_rows += 1

# ---------- public entry points ----------
def iter_chunks(stream: IO, chunk_size: int = DEFAULT_CHUNK_SIZE):
    while True:
        chunk = stream.read(chunk_size)
        if not chunk:
            return
        yield chunk

def parse_chunks(chunks: Iterable[bytes | str], schema: ColumnSchema = DEFAULT_SCHEMA) -> OutAverages | None:
    acc = OutAccumulator(schema)
    for chunk in chunks:
        acc.feed(chunk)
    return acc.finish()

def parse_stream(stream: IO, schema: ColumnSchema = DEFAULT_SCHEMA,
                 chunk_size: int = DEFAULT_CHUNK_SIZE) -> OutAverages | None:
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    return parse_chunks(iter_chunks(stream, chunk_size), schema)

def load(path: Path, schema: ColumnSchema = DEFAULT_SCHEMA,
         chunk_size: int = DEFAULT_CHUNK_SIZE) -> OutAverages | None:
    """Parse a .out file from disk."""
    with Path(path).open("rb") as fh:
        return parse_stream(fh, schema, chunk_size)
