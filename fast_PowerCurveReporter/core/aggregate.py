# fast_PowerCurveReporter/core/aggregate.py
from __future__ import annotations
from pathlib import PurePath
from typing import Callable, Sequence
import logging

from .model import FileSummary, InputFile
from .schema import ColumnSchema, DEFAULT_SCHEMA
from ..loaders.out_loader import parse_stream, DEFAULT_CHUNK_SIZE

_LOG = logging.getLogger(__name__)

# (files completed, total files, percent 0..100, current file name)
ProgressCallback = Callable[[int, int, int, str], None]

class NoFilesProcessedError(RuntimeError):
    """Raised when a batch yields no FileSummary at all."""

def get_group_key(file_name: str) -> str:
    """
    Power-curve bin key for a file.
    Seed realisations share the prefix before '_seed' (lower-cased);
    any other file is its own group, keyed by the name without extension.
    """
    lower = file_name.lower()
    if "_seed" in lower:
        return lower.split("_seed", 1)[0]
    base, dot, _ext = file_name.rpartition(".")
    return base if dot and base else file_name

def is_out_file(name: str) -> bool:
    return name.lower().endswith(".out")

def filter_out_files(files: Sequence[InputFile]) -> list[InputFile]:
    return [f for f in files if is_out_file(f.name)]

def summarize_file(item: InputFile, schema: ColumnSchema = DEFAULT_SCHEMA,
                   chunk_size: int = DEFAULT_CHUNK_SIZE) -> FileSummary | None:
    """Parse one input; None when the header was found but no data row followed."""
    with item.opener() as fh:
        avg = parse_stream(fh, schema, chunk_size)
    if avg is None:
        return None
    m = avg.means
    return FileSummary(
        file_name=item.name,
        group_key=get_group_key(PurePath(item.name).name),
        power=m["genPwr"],
        torque=m["torque"],
        gen_speed=m["rpm"],
        cp=m["cp"],
        ct=m["ct"],
        blade_pitch1=m["bladePitch1"],
        blade_pitch2=m["bladePitch2"],
        blade_pitch3=m["bladePitch3"],
        wind_speed=avg.wind_speed,
        rotor_area=m["rtArea"],
        n_rows=avg.n_rows,
    )

def aggregate_files(files: Sequence[InputFile],
                    schema: ColumnSchema = DEFAULT_SCHEMA,
                    on_progress: ProgressCallback | None = None,
                    chunk_size: int = DEFAULT_CHUNK_SIZE,
                    warnings: list[str] | None = None) -> list[FileSummary]:
    """
    Summarise every file in input order. A file that fails to parse or has no
    data rows is logged (and appended to ``warnings`` when given) and skipped.
    Raises NoFilesProcessedError if nothing survives.
    """
    total = len(files)
    if total == 0:
        raise NoFilesProcessedError("No .out files supplied")

    results: list[FileSummary] = []
    for i, item in enumerate(files, start=1):
        msg = None
        try:
            summary = summarize_file(item, schema, chunk_size)
            if summary is None:
                msg = f"{item.name}: header found but no data rows; skipped"
            else:
                results.append(summary)
                _LOG.debug("%s: %d rows, mean wind %.3f m/s", item.name, summary.n_rows, summary.wind_speed)
        except Exception as e:
            msg = f"{item.name}: {e}; skipped"

        if msg is not None:
            _LOG.warning(msg)
            if warnings is not None:
                warnings.append(msg)

        if on_progress is not None:
            on_progress(i, total, 100 * i // total, item.name)

    if not results:
        raise NoFilesProcessedError("No files processed")
    return results
