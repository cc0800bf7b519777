# fast_PowerCurveReporter/core/plotting.py
from __future__ import annotations
from pathlib import Path
from typing import Sequence
import matplotlib.pyplot as plt

from .model import FileSummary, GroupSummary

def save_power_curve_plot(curve: Sequence[GroupSummary],
                          out_path: Path,
                          seeds: Sequence[FileSummary] = (),
                          title: str = "Power curve") -> Path | None:
    """
    Power vs binned wind speed (top) and Cp/Ct (bottom).
    Individual seed averages, when given, are drawn as a light scatter
    at their unbinned wind speed.
    """
    if not curve:
        print(f"[INFO] {title}: no groups; skipping plot.")
        return None
    out_path.parent.mkdir(parents=True, exist_ok=True)

    ws = [g.wind_speed for g in curve]
    fig, (ax_p, ax_c) = plt.subplots(2, 1, figsize=(9, 8), sharex=True)

    if seeds:
        ax_p.scatter([s.wind_speed for s in seeds], [s.power for s in seeds],
                     s=12, alpha=0.35, color="tab:gray", label="seed averages")
    ax_p.plot(ws, [g.power for g in curve], marker="o", label="bin average")
    ax_p.set_ylabel("GenPwr [kW]")
    ax_p.set_title(title)
    ax_p.grid(True, alpha=0.3)
    ax_p.legend(fontsize=8, frameon=False)

    ax_c.plot(ws, [g.cp for g in curve], marker="o", label="Cp")
    ax_c.plot(ws, [g.ct for g in curve], marker="s", label="Ct")
    ax_c.set_xlabel("Hub wind speed [m/s]")
    ax_c.set_ylabel("Coefficient [-]")
    ax_c.grid(True, alpha=0.3)
    ax_c.legend(fontsize=8, frameon=False)

    fig.tight_layout()
    fig.savefig(out_path, dpi=160)
    plt.close(fig)
    print(f"[OK] {title}: {len(curve)} bins → {out_path}")
    return out_path
