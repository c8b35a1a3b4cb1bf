# watermeter/core/output.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List

import json

from watermeter.core.config import canonical_yaml_dump


@dataclass
class RunArtifacts:
    normalized_config: Dict[str, Any]
    summary: Dict[str, Any]
    readings_rows: List[Dict[str, Any]]  # one row per published reading


READINGS_COLUMNS = ("t_s", "volume_m3", "pressure_bar", "outage_state")


def _write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def _write_json(path: Path, obj: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(obj, indent=2, sort_keys=True) + "\n", encoding="utf-8")


def _write_csv(path: Path, rows: List[Dict[str, Any]]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    lines = [",".join(READINGS_COLUMNS)]
    for r in rows:
        parts = []
        for c in READINGS_COLUMNS:
            v = r.get(c, "")
            if v is None:
                s = ""
            elif isinstance(v, float):
                s = f"{v:.10g}"
            else:
                s = str(v)
            parts.append(s)
        lines.append(",".join(parts))
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def write_output_contract(outputs_root: Path, run_name: str, artifacts: RunArtifacts) -> Path:
    """
    Always writes:
      outputs/<run_name>/
        config.yaml
        summary.json
        readings.csv
    Returns the run output directory.
    """
    out_dir = Path(outputs_root) / run_name
    out_dir.mkdir(parents=True, exist_ok=True)

    _write_text(out_dir / "config.yaml", canonical_yaml_dump(artifacts.normalized_config))
    _write_json(out_dir / "summary.json", artifacts.summary)
    _write_csv(out_dir / "readings.csv", artifacts.readings_rows)
    return out_dir
