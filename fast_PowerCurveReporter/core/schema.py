# fast_PowerCurveReporter/core/schema.py
from __future__ import annotations
from dataclasses import dataclass, fields, replace

@dataclass(frozen=True)
class ColumnSchema:
    """Header labels of the OpenFAST .out channels we read.

    One instance is built at startup and shared read-only by every parser.
    """
    time: str = "Time"
    genPwr: str = "GenPwr"
    torque: str = "GenTq"
    rpm: str = "GenSpeed"
    cp: str = "RtAeroCp"
    ct: str = "RtAeroCt"
    thrustForce: str = "YawBrFxp"
    bladePitch1: str = "BldPitch1"
    bladePitch2: str = "BldPitch2"
    bladePitch3: str = "BldPitch3"
    windX: str = "WindHubVelX"
    windY: str = "WindHubVelY"
    windZ: str = "WindHubVelZ"
    rtArea: str = "RtArea"

    @classmethod
    def from_config(cls, cfg: dict | None) -> "ColumnSchema":
        """Apply label overrides from the ``schema:`` section of config.yaml."""
        overrides = (cfg or {}).get("schema", {}) or {}
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ValueError(f"unknown schema field(s) in config: {', '.join(unknown)}")
        return replace(cls(), **{k: str(v).strip() for k, v in overrides.items()})

# fields folded into running sums (time and thrust are resolved but not averaged)
SUMMED_FIELDS: tuple[str, ...] = (
    "genPwr", "torque", "rpm", "cp", "ct",
    "bladePitch1", "bladePitch2", "bladePitch3",
    "windX", "windY", "windZ", "rtArea",
)

DEFAULT_SCHEMA = ColumnSchema()
