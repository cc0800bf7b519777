# fast_PowerCurveReporter/core/model.py
from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Callable
import io

@dataclass(frozen=True)
class InputFile:
    name: str                          # original file name, e.g. NTM_12mps_seed3.out
    opener: Callable[[], IO]           # returns a fresh readable stream (binary or text)

    @classmethod
    def from_path(cls, path: Path) -> "InputFile":
        path = Path(path)
        return cls(name=path.name, opener=lambda: path.open("rb"))

    @classmethod
    def from_bytes(cls, name: str, data: bytes) -> "InputFile":
        return cls(name=name, opener=lambda: io.BytesIO(data))

@dataclass(frozen=True)
class FileSummary:
    file_name: str
    group_key: str
    power: float
    torque: float
    gen_speed: float
    cp: float
    ct: float
    blade_pitch1: float
    blade_pitch2: float
    blade_pitch3: float
    wind_speed: float
    rotor_area: float
    n_rows: int = 0

@dataclass(frozen=True)
class GroupSummary:
    group: str
    wind_speed: float                  # snapped to the nearest 0.5 m/s
    power: float
    torque: float
    gen_speed: float
    cp: float
    ct: float
    blade_pitch1: float
    blade_pitch2: float
    blade_pitch3: float
    rotor_area: float
    n_files: int = 0

@dataclass
class BatchResult:
    files_processed: int
    all_file_results: list[FileSummary]
    power_curve: list[GroupSummary]
    global_rt_area_mean: float
    global_rt_area_max: float
    warnings: list[str] = field(default_factory=list)
    exports: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """JSON-ready payload with the keys the web front end reads."""
        return {
            "filesProcessed": self.files_processed,
            "allFileResults": [_file_row(s) for s in self.all_file_results],
            "powerCurve": [_group_row(g) for g in self.power_curve],
            "globalRtAreaMean": self.global_rt_area_mean,
            "globalRtAreaMax": self.global_rt_area_max,
            "warnings": list(self.warnings),
            **self.exports,
        }

def _file_row(s: FileSummary) -> dict:
    return {
        "windSpeedGroup": s.group_key, "fileName": s.file_name,
        "power": s.power, "torque": s.torque, "genSpeed": s.gen_speed,
        "cp": s.cp, "ct": s.ct,
        "bladePitch1": s.blade_pitch1, "bladePitch2": s.blade_pitch2, "bladePitch3": s.blade_pitch3,
        "windSpeed": s.wind_speed,
    }

def _group_row(g: GroupSummary) -> dict:
    return {
        "group": g.group, "windSpeed": g.wind_speed,
        "power": g.power, "torque": g.torque, "genSpeed": g.gen_speed,
        "cp": g.cp, "ct": g.ct,
        "bladePitch1": g.blade_pitch1, "bladePitch2": g.blade_pitch2, "bladePitch3": g.blade_pitch3,
    }
