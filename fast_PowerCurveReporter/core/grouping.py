# fast_PowerCurveReporter/core/grouping.py
from __future__ import annotations
from dataclasses import asdict
from typing import Sequence
import numpy as np
import pandas as pd

from .model import FileSummary, GroupSummary

MEAN_FIELDS: tuple[str, ...] = (
    "wind_speed", "power", "torque", "gen_speed", "cp", "ct",
    "blade_pitch1", "blade_pitch2", "blade_pitch3", "rotor_area",
)

def snap_wind_speed(v, step: float = 0.5):
    """Nearest multiple of ``step``, ties rounded up (not banker's rounding)."""
    return np.floor(np.asarray(v, dtype=float) / step + 0.5) * step

def summaries_frame(summaries: Sequence[FileSummary]) -> pd.DataFrame:
    return pd.DataFrame([asdict(s) for s in summaries])

def build_power_curve(summaries: Sequence[FileSummary]) -> tuple[list[GroupSummary], float, float]:
    """
    Average the file summaries per group key.

    Returns (groups sorted by snapped wind speed, global rotor-area mean,
    global rotor-area max). Groups are unweighted means of their members;
    equal wind speeds keep first-occurrence order.
    """
    if not summaries:
        return [], 0.0, 0.0
    df = summaries_frame(summaries)

    g = df.groupby("group_key", sort=False)
    agg = g[list(MEAN_FIELDS)].mean()
    agg["n_files"] = g.size()
    agg["wind_speed"] = snap_wind_speed(agg["wind_speed"].to_numpy())
    agg = agg.sort_values("wind_speed", kind="stable")

    groups = [
        GroupSummary(group=str(key), n_files=int(row["n_files"]),
                     **{f: float(row[f]) for f in MEAN_FIELDS})
        for key, row in agg.iterrows()
    ]
    rt = df["rotor_area"].astype(float)
    return groups, float(rt.mean()), float(rt.max())
