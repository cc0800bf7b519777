# fast_PowerCurveReporter/core/pipeline.py
from __future__ import annotations
from pathlib import Path
from typing import Sequence
import logging

from .aggregate import aggregate_files, filter_out_files, NoFilesProcessedError, ProgressCallback
from .grouping import build_power_curve
from .model import BatchResult, InputFile
from .plotting import save_power_curve_plot
from .reports import render_exports, write_outputs, Precision
from .schema import ColumnSchema, DEFAULT_SCHEMA
from ..loaders.out_loader import DEFAULT_CHUNK_SIZE

_LOG = logging.getLogger(__name__)

def run_batch(files: Sequence[InputFile],
              schema: ColumnSchema = DEFAULT_SCHEMA,
              on_progress: ProgressCallback | None = None,
              precision: Precision = "full",
              chunk_size: int = DEFAULT_CHUNK_SIZE,
              render: bool = True) -> BatchResult:
    """
    Parse, group and (optionally) render one batch of .out files.
    Raises NoFilesProcessedError when no eligible file yields data.
    """
    eligible = filter_out_files(files)
    skipped = len(files) - len(eligible)
    if skipped:
        _LOG.info("ignoring %d non-.out input(s)", skipped)
    if not eligible:
        raise NoFilesProcessedError("No .out files uploaded")

    warnings: list[str] = []
    summaries = aggregate_files(eligible, schema, on_progress=on_progress,
                                chunk_size=chunk_size, warnings=warnings)
    curve, rt_mean, rt_max = build_power_curve(summaries)

    result = BatchResult(
        files_processed=len(summaries),
        all_file_results=summaries,
        power_curve=curve,
        global_rt_area_mean=rt_mean,
        global_rt_area_max=rt_max,
        warnings=warnings,
    )
    if render:
        result.exports = render_exports(result, precision)
    return result

def run_pipeline(files: Sequence[InputFile], cfg: dict, out_root: Path,
                 on_progress: ProgressCallback | None = None) -> BatchResult:
    """Config-driven batch: run, then write reports (and the plot) under out_root."""
    schema = ColumnSchema.from_config(cfg)
    rep = cfg.get("reports", {}) or {}
    precision = str(rep.get("precision", "full")).lower()
    formats = [str(f).lower() for f in (rep.get("formats") or ["csv"])]
    chunk_size = int((cfg.get("parsing", {}) or {}).get("chunk_size", DEFAULT_CHUNK_SIZE))

    result = run_batch(files, schema, on_progress=on_progress, precision=precision,
                       chunk_size=chunk_size, render=False)
    write_outputs(result, out_root, formats=formats, precision=precision,
                  day=rep.get("date"), mat_variable=str(rep.get("mat_variable", "report")))

    plot_cfg = cfg.get("plot", {}) or {}
    if bool(plot_cfg.get("enabled", True)):
        save_power_curve_plot(result.power_curve,
                              Path(out_root) / str(plot_cfg.get("file_name", "power_curve.png")),
                              seeds=result.all_file_results if plot_cfg.get("show_seeds", True) else (),
                              title=str(plot_cfg.get("title", "Power curve")))
    return result
