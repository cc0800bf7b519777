# fast_PowerCurveReporter/core/reports.py
from __future__ import annotations
from datetime import date as _date
from pathlib import Path
from typing import Literal, Sequence
import base64, io
import numpy as np
import pandas as pd
from openpyxl.utils import get_column_letter
from scipy.io import savemat

from .model import BatchResult, FileSummary, GroupSummary

Precision = Literal["full", "compact"]
ExportFormat = Literal["csv", "xlsx", "fw", "mat"]

# (exported header, record attribute) in output order; rotor area is never a column
FILE_COLUMNS: tuple[tuple[str, str], ...] = (
    ("windSpeedGroup", "group_key"),
    ("fileName", "file_name"),
    ("power", "power"),
    ("torque", "torque"),
    ("genSpeed", "gen_speed"),
    ("cp", "cp"),
    ("ct", "ct"),
    ("bladePitch1", "blade_pitch1"),
    ("bladePitch2", "blade_pitch2"),
    ("bladePitch3", "blade_pitch3"),
    ("windSpeed", "wind_speed"),
)
GROUP_COLUMNS: tuple[tuple[str, str], ...] = (
    ("group", "group"),
    ("windSpeed", "wind_speed"),
    ("power", "power"),
    ("torque", "torque"),
    ("genSpeed", "gen_speed"),
    ("cp", "cp"),
    ("ct", "ct"),
    ("bladePitch1", "blade_pitch1"),
    ("bladePitch2", "blade_pitch2"),
    ("bladePitch3", "blade_pitch3"),
)

_XLSX_WIDTHS = {"fileName": 30, "windSpeedGroup": 20, "group": 20}
_XLSX_DEFAULT_WIDTH = 15

_FILE_PREFIX = {"individual": "all_seed_averages", "power_curve": "final_power_curve"}
_FILE_EXT = {"csv": "csv", "xlsx": "xlsx", "fw": "fw.txt", "mat": "mat"}

def _decimals(precision: Precision) -> int:
    if precision == "full":
        return 6
    if precision == "compact":
        return 4
    raise ValueError(f"unknown precision '{precision}' (expected 'full' or 'compact')")

def _is_rotor_area(name: str) -> bool:
    key = name.lower().replace("_", "")
    return "rtarea" in key or "rotorarea" in key

def _columns_for(records: Sequence) -> tuple[tuple[str, str], ...]:
    if records and isinstance(records[0], GroupSummary):
        return GROUP_COLUMNS
    return FILE_COLUMNS

def build_table(records: Sequence[FileSummary] | Sequence[GroupSummary],
                columns: Sequence[tuple[str, str]] | None = None) -> pd.DataFrame:
    """One row per record, columns in declared export order."""
    cols = [(h, a) for h, a in (columns or _columns_for(records)) if not _is_rotor_area(h)]
    rows = [{h: getattr(r, a, None) for h, a in cols} for r in records]
    return pd.DataFrame(rows, columns=[h for h, _ in cols])

def _format_cell(v, precision: Precision) -> str:
    if v is None or (isinstance(v, float) and np.isnan(v)):
        return ""
    if isinstance(v, (float, np.floating)):
        if precision == "full":
            return f"{v:.6f}"
        return repr(round(float(v), 4))
    return str(v)

def sort_by_wind_speed(summaries: Sequence[FileSummary]) -> list[FileSummary]:
    return sorted(summaries, key=lambda s: s.wind_speed)   # sorted() is stable

# ---------- renderers ----------
def render_csv(records, precision: Precision = "full", columns=None) -> str:
    """
    Comma-separated text with a header row.
    full: every number with 6 decimals; compact: numbers rounded to 4 decimals.
    Fields are quoted only when they contain a comma, a double quote or a newline.
    """
    digits = _decimals(precision)
    df_out = build_table(records, columns)
    if df_out.empty:
        return ""
    if precision == "full":
        return df_out.to_csv(index=False, float_format=f"%.{digits}f", lineterminator="\n", na_rep="")
    return df_out.round(digits).to_csv(index=False, lineterminator="\n", na_rep="")

def render_fixed_width(records, precision: Precision = "full", columns=None) -> str:
    """Left-justified columns, each max(header, longest cell) + 2 wide, under a '-' rule."""
    _decimals(precision)
    df_out = build_table(records, columns)
    if df_out.empty:
        return ""
    headers = list(df_out.columns)
    cells = [[_format_cell(v, precision).strip() for v in row]
             for row in df_out.itertuples(index=False, name=None)]
    widths = [
        max([len(h)] + [len(row[j]) for row in cells]) + 2
        for j, h in enumerate(headers)
    ]
    lines = ["".join(h.ljust(w) for h, w in zip(headers, widths)),
             "".join("-" * w for w in widths)]
    lines += ["".join(c.ljust(w) for c, w in zip(row, widths)) for row in cells]
    return "\n".join(lines) + "\n"

def render_xlsx(records, sheet_name: str, precision: Precision = "full", columns=None) -> bytes:
    """Single-sheet workbook; numbers rounded to the same decimals as the CSV."""
    digits = _decimals(precision)
    df_out = build_table(records, columns).round(digits)
    buf = io.BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        df_out.to_excel(writer, sheet_name=sheet_name, index=False)
        ws = writer.sheets[sheet_name]
        for j, name in enumerate(df_out.columns, start=1):
            ws.column_dimensions[get_column_letter(j)].width = _XLSX_WIDTHS.get(name, _XLSX_DEFAULT_WIDTH)
    return buf.getvalue()

def render_exports(result: BatchResult, precision: Precision = "full") -> dict[str, str]:
    """All six download payloads; spreadsheets are base64 text."""
    seeds = sort_by_wind_speed(result.all_file_results)
    curve = result.power_curve
    return {
        "individualSeedsCSV": render_csv(seeds, precision),
        "individualSeedsXLSX": base64.b64encode(render_xlsx(seeds, "Seed Averages", precision)).decode("ascii"),
        "individualSeedsFW": render_fixed_width(seeds, precision),
        "powerCurveCSV": render_csv(curve, precision),
        "powerCurveXLSX": base64.b64encode(render_xlsx(curve, "Power Curve", precision)).decode("ascii"),
        "powerCurveFW": render_fixed_width(curve, precision),
    }

# ---------- MATLAB ----------
def _to_mat_cellstr(seq: list[str]) -> np.ndarray:
    """Make a MATLAB column cell array from a list of strings."""
    seq2 = [("" if s is None else str(s)) for s in seq]
    arr = np.empty((len(seq2), 1), dtype=object)
    arr[:, 0] = seq2
    return arr

def _write_mat(df_out: pd.DataFrame, out_mat: Path, varname: str, title: str) -> None:
    """
    Save a MATLAB struct with one field per exported column.
    Strings become cell arrays (Nx1), numerics become double (Nx1).
    """
    out_mat.parent.mkdir(parents=True, exist_ok=True)
    mat_struct = {}
    for name in df_out.columns:
        col = df_out[name]
        if pd.api.types.is_numeric_dtype(col):
            mat_struct[name] = col.to_numpy(dtype=float).reshape(-1, 1)
        else:
            mat_struct[name] = _to_mat_cellstr(col.tolist())
    savemat(out_mat, {varname: mat_struct})
    print(f"[OK] wrote report: {title} → {out_mat}")

# ---------- files on disk ----------
def export_file_name(kind: str, day: _date | str, fmt: str) -> str:
    """e.g. ('power_curve', 2024-05-01, 'fw') -> final_power_curve_2024-05-01.fw.txt"""
    stamp = day.isoformat() if isinstance(day, _date) else str(day)
    return f"{_FILE_PREFIX[kind]}_{stamp}.{_FILE_EXT[fmt]}"

def _write_text(text: str, out_path: Path, title: str) -> None:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(text, encoding="utf-8", newline="")
    print(f"[OK] wrote report: {title} → {out_path}")

def write_outputs(result: BatchResult,
                  out_root: Path,
                  formats: Sequence[ExportFormat] = ("csv",),
                  precision: Precision = "full",
                  day: _date | str | None = None,
                  mat_variable: str = "report") -> list[Path]:
    """
    Write both tables in every requested format under ``out_root``.
    Returns the written paths in (table, format) order. Formats and precision
    are checked before anything is written.
    """
    unknown = [f for f in formats if f not in _FILE_EXT]
    if unknown:
        raise ValueError(f"unknown export format(s) {unknown} (expected one of {sorted(_FILE_EXT)})")
    _decimals(precision)
    day = day or _date.today()
    tables = (
        ("individual", sort_by_wind_speed(result.all_file_results), "Seed Averages", "all seed averages"),
        ("power_curve", result.power_curve, "Power Curve", "power curve"),
    )
    written: list[Path] = []
    for kind, records, sheet, title in tables:
        for fmt in formats:
            out_path = Path(out_root) / export_file_name(kind, day, fmt)
            if fmt == "csv":
                _write_text(render_csv(records, precision), out_path, title)
            elif fmt == "fw":
                _write_text(render_fixed_width(records, precision), out_path, title)
            elif fmt == "xlsx":
                out_path.parent.mkdir(parents=True, exist_ok=True)
                out_path.write_bytes(render_xlsx(records, sheet, precision))
                print(f"[OK] wrote report: {title} → {out_path}")
            elif fmt == "mat":
                df_out = build_table(records).round(_decimals(precision))
                _write_mat(df_out, out_path, f"{mat_variable}_{kind}", title)
            written.append(out_path)
    return written
