# watermeter/core/types.py
"""
Shared value types for the meter simulation.

Keep this file small and stable: the model, the controller and the presentation
layer all exchange these.

- FlowDirection: which way water moves through the inlet
- OutageState: stage of a supply-outage episode
- Reading: immutable (volume, pressure) pair handed to publishers
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, is_dataclass
from enum import Enum
from typing import Any, Mapping


# ----------------------------
# Enums
# ----------------------------

class FlowDirection(str, Enum):
    FORWARD = "FORWARD"
    REVERSE = "REVERSE"
    NONE = "NONE"


class OutageState(str, Enum):
    """Stage of the water-supply outage state machine."""
    NORMAL = "NORMAL"                        # Base pressure, forward flow
    OUTAGE_TOTAL = "OUTAGE_TOTAL"            # No water at all (pressure 0)
    OUTAGE_AIR_RETURN = "OUTAGE_AIR_RETURN"  # Water returning, pushing air ahead of it


# ----------------------------
# Readings
# ----------------------------

@dataclass(frozen=True)
class Reading:
    """
    Snapshot of what the meter shows.

    - volume_m3: accumulated volume on the odometer
    - pressure_bar: inlet pressure at the moment of the snapshot
    """
    volume_m3: float
    pressure_bar: float

    @property
    def whole_m3(self) -> int:
        return int(self.volume_m3)


# ----------------------------
# JSON helpers
# ----------------------------

def to_jsonable(obj: Any) -> Any:
    """
    Convert dataclasses, enums and tuples into JSON-serializable forms.
    Safe to call on nested structures.
    """
    if obj is None:
        return None

    if isinstance(obj, Enum):
        return obj.value

    if is_dataclass(obj) and not isinstance(obj, type):
        return to_jsonable(asdict(obj))

    if isinstance(obj, Mapping):
        return {(k.value if isinstance(k, Enum) else str(k)): to_jsonable(v) for k, v in obj.items()}

    if isinstance(obj, (list, tuple)):
        return [to_jsonable(v) for v in obj]

    if isinstance(obj, (str, int, float, bool)):
        return obj

    return str(obj)

