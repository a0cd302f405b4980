"""
Utility functions for sst-lowre.

Provides config loading, run metadata, console tables, history CSV and
field diagnostics.
"""

from __future__ import annotations

import csv
import dataclasses
import json
import math
import platform
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, TypeVar

import numpy as np

T = TypeVar("T")


def load_json_config(config_path: str | Path) -> dict[str, Any]:
    """Load JSON configuration file."""
    p = Path(config_path)
    if not p.exists():
        raise FileNotFoundError(f"Config not found: {p}")
    return json.loads(p.read_text())


def dc_from_dict(cls: type[T], data: Mapping[str, Any] | None, *, name: str = "config") -> T:
    """
    Build a dataclass instance from a mapping with strict validation.

    Unknown keys and missing required fields raise ValueError.
    Keys starting with "_" are ignored (JSON comments).
    """
    data = {} if data is None else dict(data)
    data = {k: v for k, v in data.items() if not str(k).startswith("_")}

    fields = dataclasses.fields(cls)
    unknown = sorted(set(data) - {f.name for f in fields})
    if unknown:
        raise ValueError(f"Unknown keys in {name}: {unknown}")

    missing = sorted(
        f.name
        for f in fields
        if f.default is dataclasses.MISSING
        and f.default_factory is dataclasses.MISSING
        and f.name not in data
    )
    if missing:
        raise ValueError(f"Missing keys in {name}: {missing}")

    return cls(**data)


def print_dc_json(obj: Any) -> None:
    """Print a dataclass (or dict) as stable, sorted JSON."""
    payload = dataclasses.asdict(obj) if dataclasses.is_dataclass(obj) else obj
    print(json.dumps(payload, indent=2, sort_keys=True))


def write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, sort_keys=True))


@dataclasses.dataclass(frozen=True)
class CasePaths:
    case_dir: Path
    history_csv: Path
    profiles_csv: Path
    run_info_json: Path
    config_used_json: Path


def prepare_case_dir(
    out_dir: str | Path,
    *,
    config_path: Path | None,
    cfg: Mapping[str, Any],
) -> CasePaths:
    """
    Create the results folder and write reproducibility metadata.

    Creates <out_dir>/config_used.json and <out_dir>/run_info.json.
    """
    from sst_lowre import __version__

    case_dir = Path(out_dir)
    case_dir.mkdir(parents=True, exist_ok=True)
    paths = CasePaths(
        case_dir=case_dir,
        history_csv=case_dir / "history.csv",
        profiles_csv=case_dir / "profiles.csv",
        run_info_json=case_dir / "run_info.json",
        config_used_json=case_dir / "config_used.json",
    )

    write_json(paths.config_used_json, dict(cfg))
    write_json(paths.run_info_json, {
        "timestamp_utc": datetime.now(timezone.utc).isoformat(),
        "config_path": str(config_path) if config_path else None,
        "python": {"executable": sys.executable, "version": sys.version},
        "platform": {
            "system": platform.system(),
            "release": platform.release(),
            "machine": platform.machine(),
        },
        "numpy": np.__version__,
        "sst_lowre_version": __version__,
    })
    return paths


def fmt_sci(x: float, *, prec: int = 1, sign: bool = False) -> str:
    """Scientific notation with NaN/Inf handling."""
    if not math.isfinite(float(x)):
        return "nan"
    s = "+" if sign else ""
    return f"{float(x):{s}.{prec}e}"


def fmt_pair_sci(a: float, b: float, *, prec: int = 1, sign: bool = True) -> str:
    """Format a min,max pair as 'a,b' in scientific notation."""
    return f"{fmt_sci(a, prec=prec, sign=sign)},{fmt_sci(b, prec=prec, sign=sign)}"


class StepTablePrinter:
    """
    Compact step logs for iteration output.

    Example:
        table = StepTablePrinter([("iter", 6), ("res", 9)])
        table.row(["100", "1.2e-04"])
    """

    def __init__(self, columns: list[tuple[str, int]], *, gap: str = " ") -> None:
        self.columns = list(columns)
        self.gap = gap
        self._printed_header = False

    def header(self) -> None:
        if self._printed_header:
            return
        self._printed_header = True
        print(self.gap.join(label.rjust(width) for label, width in self.columns), flush=True)

    def row(self, values: list[object]) -> None:
        self.header()
        if len(values) != len(self.columns):
            raise ValueError(f"Expected {len(self.columns)} columns, got {len(values)} values")
        parts = []
        for (_, width), v in zip(self.columns, values):
            s = str(v)
            parts.append(s if len(s) > width else s.rjust(width))
        print(self.gap.join(parts), flush=True)


class HistoryWriterCSV:
    """Append-only CSV writer for per-iteration scalar diagnostics."""

    def __init__(self, path: Path, fieldnames: list[str], *, enabled: bool = True) -> None:
        self.enabled = enabled
        self.path = Path(path)
        self.fieldnames = list(fieldnames)
        self._fh = None
        self._writer = None
        if not self.enabled:
            return

        self.path.parent.mkdir(parents=True, exist_ok=True)
        new_file = not self.path.exists()
        self._fh = open(self.path, "a", newline="")
        self._writer = csv.DictWriter(self._fh, fieldnames=self.fieldnames)
        if new_file:
            self._writer.writeheader()
            self._fh.flush()

    def write(self, row: Mapping[str, object]) -> None:
        if self._writer is None:
            return
        cleaned = {
            k: (f"{row[k]:.16e}" if isinstance(row[k], float) else row[k])
            for k in self.fieldnames
            if k in row
        }
        self._writer.writerow(cleaned)
        self._fh.flush()

    def close(self) -> None:
        if self._fh is not None:
            try:
                self._fh.close()
            finally:
                self._fh = None
                self._writer = None

    def __enter__(self) -> HistoryWriterCSV:
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def diagnostics_array(values, comm=None) -> dict[str, float | bool]:
    """Global min/max/finite summary of a per-cell array (MPI-safe if comm given)."""
    a = np.asarray(values, dtype=float)
    finite = bool(np.isfinite(a).all())
    vmin = float(np.nanmin(a)) if a.size else float("inf")
    vmax = float(np.nanmax(a)) if a.size else float("-inf")
    if comm is not None:
        from mpi4py import MPI

        finite = bool(comm.allreduce(finite, op=MPI.LAND))
        vmin = float(comm.allreduce(vmin, op=MPI.MIN))
        vmax = float(comm.allreduce(vmax, op=MPI.MAX))
    return {"min": vmin, "max": vmax, "finite": finite}


def relative_change(new: np.ndarray, old: np.ndarray, comm=None) -> float:
    """||new - old|| / ||new|| (MPI-safe if comm given)."""
    diff2 = float(np.dot(new - old, new - old))
    norm2 = float(np.dot(new, new))
    if comm is not None:
        from mpi4py import MPI

        diff2 = float(comm.allreduce(diff2, op=MPI.SUM))
        norm2 = float(comm.allreduce(norm2, op=MPI.SUM))
    return float(np.sqrt(diff2) / max(np.sqrt(norm2), 1e-10))
