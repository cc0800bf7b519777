# fast_PowerCurveReporter/main.py
from __future__ import annotations
from pathlib import Path
import logging
import sys
import yaml

from .core.aggregate import NoFilesProcessedError
from .core.model import InputFile
from .core.pipeline import run_pipeline
from .utils.detect import discover_inputs

DEFAULT_INPUT = "./runs"
DEFAULT_OUTPUT = "./power_curve_out"

def load_config(cfg_path: Path) -> dict:
    with cfg_path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}

def main(argv: list[str] | None = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    # ---------- config ----------
    here = Path(__file__).resolve().parent
    cfg_path = Path(argv[0]) if argv else here / "config.yaml"
    cfg = load_config(cfg_path)

    log_cfg = cfg.get("logging", {}) or {}
    logging.basicConfig(level=str(log_cfg.get("level", "WARNING")).upper(),
                        format="%(levelname)s %(name)s: %(message)s")
    verbose = bool(log_cfg.get("verbose", True))

    in_cfg = cfg.get("input", {}) or {}
    out_cfg = cfg.get("output", {}) or {}
    in_path = Path(in_cfg.get("path", DEFAULT_INPUT)).resolve()
    recurse = bool(in_cfg.get("recurse", True))
    out_root = Path(out_cfg.get("root", DEFAULT_OUTPUT)).resolve()
    out_root.mkdir(parents=True, exist_ok=True)
    if verbose:
        print(f"[cfg] input={in_path} (recurse={recurse})")
        print(f"[cfg] output={out_root}")

    # ---------- discover ----------
    detected = discover_inputs(in_path, recurse=recurse)
    if not detected:
        print(f"[INFO] No .out inputs found under: {in_path}")
        return 1
    if verbose:
        print(f"[detector] found {len(detected)} .out file(s)")

    def progress(done: int, total: int, percent: int, name: str) -> None:
        if verbose:
            print(f"  [{percent:3d}%] {done}/{total} {name}")

    files = [InputFile.from_path(d.path) for d in detected]
    try:
        result = run_pipeline(files, cfg, out_root, on_progress=progress)
    except NoFilesProcessedError as e:
        print(f"[ERROR] {e}")
        return 1

    for w in result.warnings:
        print(f"[WARN] {w}")
    print(
        f"[summary] {result.files_processed}/{len(files)} file(s) → {len(result.power_curve)} wind-speed bin(s); "
        f"RtArea mean={result.global_rt_area_mean:.3f} max={result.global_rt_area_max:.3f}"
    )
    return 0

if __name__ == "__main__":
    sys.exit(main())
