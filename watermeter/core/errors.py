# watermeter/core/errors.py
from __future__ import annotations
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional


@dataclass
class ConfigError(Exception):
    """
    Invalid or unreadable configuration.

    path is the offending key ("yaml" for file-level problems), source the
    file the values came from when known.
    """
    path: str
    message: str
    hint: Optional[str] = None
    source: Optional[Path] = None

    def with_source(self, source: Path) -> "ConfigError":
        return replace(self, source=Path(source))

    def __str__(self) -> str:
        where = f"{self.path} ({self.source})" if self.source is not None else self.path
        out = [f"Config error at {where}:", f"  {self.message}"]
        if self.hint:
            out.append("hint:")
            out.append(f"  {self.hint}")
        return "\n".join(out)
