"""Recorded-track location sources.

Readers turn a recorded drive (GPX or CSV) into timestamp-ordered
:class:`LocationSample` values so it can be replayed through a trip feed
exactly as a live ~1 Hz location source would deliver it.
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Iterable, List, Optional
from xml.etree.ElementTree import Element

import pandas as pd
from defusedxml import ElementTree as ET

from .errors import LocationSourceError
from .models import LocationSample
from .utils import parse_iso_datetime, to_utc_aware

LOGGER = logging.getLogger(__name__)

CSV_REQUIRED_COLUMNS = ("timestamp", "latitude", "longitude")
CSV_SPEED_COLUMN = "speed"


def _local_name(tag: object) -> str:
    """Strip the ``{namespace}`` prefix so GPX 1.0 and 1.1 parse alike."""

    text = str(tag)
    return text.rsplit("}", 1)[-1] if "}" in text else text


def _coerce_float(value: object) -> float | None:
    try:
        result = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if not math.isfinite(result):
        return None
    return result


def _trackpoint_speed(trkpt: Element) -> Optional[float]:
    # GPX 1.0 carries <speed> directly; 1.1 exporters nest it in <extensions>.
    for child in trkpt.iter():
        if child is trkpt:
            continue
        if _local_name(child.tag) == "speed":
            return _coerce_float((child.text or "").strip())
    return None


def _trackpoint_time(trkpt: Element) -> Optional[str]:
    for child in trkpt:
        if _local_name(child.tag) == "time":
            return (child.text or "").strip()
    return None


def read_gpx_samples(path: str | Path) -> List[LocationSample]:
    """Read trackpoints (and optional speeds) from a GPX file."""

    try:
        tree = ET.parse(str(path))
    except (OSError, ET.ParseError, ValueError) as exc:
        raise LocationSourceError(f"Unable to read GPX track {path}: {exc}") from exc

    samples: List[LocationSample] = []
    skipped = 0
    for element in tree.getroot().iter():
        if _local_name(element.tag) != "trkpt":
            continue
        lat = _coerce_float(element.get("lat"))
        lon = _coerce_float(element.get("lon"))
        timestamp = parse_iso_datetime(_trackpoint_time(element))
        if lat is None or lon is None or timestamp is None:
            skipped += 1
            continue
        samples.append(
            LocationSample(
                timestamp=to_utc_aware(timestamp),
                latitude=lat,
                longitude=lon,
                speed_mps=_trackpoint_speed(element),
            )
        )
    if skipped:
        LOGGER.warning("Skipped %d GPX trackpoints without time/position", skipped)
    return _ordered(samples)


def read_csv_samples(path: str | Path) -> List[LocationSample]:
    """Read ``timestamp, latitude, longitude[, speed]`` rows (speed in m/s)."""

    try:
        df = pd.read_csv(path)
    except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise LocationSourceError(f"Unable to read CSV track {path}: {exc}") from exc

    df.columns = [str(col).strip().lower() for col in df.columns]
    missing = [col for col in CSV_REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        raise LocationSourceError(
            f"CSV track {path} is missing columns: {', '.join(missing)}"
        )

    df["timestamp"] = pd.to_datetime(df["timestamp"], errors="coerce", utc=True)
    df["latitude"] = pd.to_numeric(df["latitude"], errors="coerce")
    df["longitude"] = pd.to_numeric(df["longitude"], errors="coerce")
    if CSV_SPEED_COLUMN in df.columns:
        df[CSV_SPEED_COLUMN] = pd.to_numeric(df[CSV_SPEED_COLUMN], errors="coerce")
    else:
        df[CSV_SPEED_COLUMN] = float("nan")

    valid = df.dropna(subset=list(CSV_REQUIRED_COLUMNS))
    skipped = len(df) - len(valid)
    if skipped:
        LOGGER.warning("Skipped %d CSV rows with unparseable time/position", skipped)

    samples = [
        LocationSample(
            timestamp=row.timestamp.to_pydatetime(),
            latitude=float(row.latitude),
            longitude=float(row.longitude),
            speed_mps=_coerce_float(row.speed),
        )
        for row in valid.itertuples(index=False)
    ]
    return _ordered(samples)


def _ordered(samples: Iterable[LocationSample]) -> List[LocationSample]:
    # Stable: fixes sharing a timestamp keep their recorded order.
    return sorted(samples, key=lambda sample: sample.timestamp)


def load_samples(path: str | Path) -> List[LocationSample]:
    """Load a recorded track, choosing the reader from the file suffix."""

    suffix = Path(path).suffix.lower()
    if suffix == ".gpx":
        samples = read_gpx_samples(path)
    elif suffix == ".csv":
        samples = read_csv_samples(path)
    else:
        raise LocationSourceError(
            f"Unsupported track format '{suffix or path}'; expected .gpx or .csv"
        )
    LOGGER.info("Loaded %d samples from %s", len(samples), path)
    return samples


__all__ = ["load_samples", "read_csv_samples", "read_gpx_samples"]
