# src/geo_assign/io/inputs.py
import json
import logging
from collections.abc import Iterable, Mapping

from geo_assign.domain.entities.geography import GeoPoint

log = logging.getLogger(__name__)


def _parse_points(records: Iterable[Mapping]) -> list[GeoPoint]:
    """Parse records in order; malformed or out-of-range records are logged and skipped."""
    points: list[GeoPoint] = []
    for n, rec in enumerate(records):
        try:
            p = GeoPoint.from_record(rec)
        except (KeyError, TypeError, ValueError) as exc:
            log.warning("malformed_point_skipped", extra={"extra": {"record": n, "error": repr(exc)}})
            continue
        if not p.is_valid():
            log.warning("invalid_point_skipped", extra={"extra": {"record": n, "point": str(p)}})
            continue
        points.append(p)
    return points


def split_points(records: Iterable[Mapping]) -> tuple[list[GeoPoint], list[GeoPoint]]:
    """
    Turn `{latitude, longitude, category}` records into (individuals, facilities),
    keeping input order.
    """
    individuals: list[GeoPoint] = []
    facilities: list[GeoPoint] = []
    for p in _parse_points(records):
        (facilities if p.is_facility else individuals).append(p)
    return individuals, facilities


def load_points(path: str) -> tuple[list[GeoPoint], list[GeoPoint]]:
    """
    Read a JSON file holding either a list of records or
    `{"individuals": [...], "facilities": [...]}`.
    """
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        individuals, _ = split_points(data.get("individuals", []))
        facilities = [GeoPoint.facility(p.latitude, p.longitude) for p in _parse_points(data.get("facilities", []))]
        return individuals, facilities
    return split_points(data)
