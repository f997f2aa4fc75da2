"""
Generic record transforms: sort, filter, group, sum, paginate.

These primitives know nothing about business entities. They read records only
through ``get_field`` and never raise on malformed input: a missing field, a
None value or a non-numeric value is treated as absent and defaulted.
"""

import math
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional

from tallyboard.models.records import FilterSpec, Page, Record, SortSpec

# Group key used for records whose group field is missing or None.
MISSING_KEY = "None"


def get_field(record: Any, field: str) -> Optional[Any]:
    """Return ``record[field]`` for mapping records, otherwise None."""
    if isinstance(record, Mapping):
        return record.get(field)
    return None


def is_number(value: Any) -> bool:
    """True for int/float/Decimal values (bool and NaN excluded)."""
    if isinstance(value, bool):
        return False
    if isinstance(value, float):
        return not math.isnan(value)
    if isinstance(value, Decimal):
        return not value.is_nan()
    return isinstance(value, int)


def sort_records(records: Iterable[Record], spec: SortSpec) -> list[Record]:
    """
    Stable single-field sort.

    Records missing the field (or holding None) are equal to each other, keep
    their input order, and are placed after every record that has a value.
    Numbers come before strings and strings compare by code point; the
    direction reverses the order inside each of those groups, never the groups
    themselves. Python's sort stays stable with ``reverse=True``, so equal
    values keep their input order in both directions.
    """
    numbers: list[Record] = []
    strings: list[Record] = []
    missing: list[Record] = []
    for record in records:
        value = get_field(record, spec.field)
        if value is None:
            missing.append(record)
        elif is_number(value):
            numbers.append(record)
        else:
            strings.append(record)

    numbers.sort(key=lambda r: get_field(r, spec.field), reverse=spec.descending)
    strings.sort(key=lambda r: str(get_field(r, spec.field)), reverse=spec.descending)
    return numbers + strings + missing


def filter_records(records: Iterable[Record], spec: Optional[FilterSpec]) -> list[Record]:
    """Keep records whose fields equal every entry of ``spec``. Empty spec keeps all."""
    if not spec:
        return list(records)
    return [
        record
        for record in records
        if all(get_field(record, field) == value for field, value in spec.items())
    ]


def group_by(records: Iterable[Record], field: str) -> dict[str, list[Record]]:
    """
    Group records by the string form of ``field``.

    Groups appear in order of first occurrence and keep input order inside.
    """
    groups: dict[str, list[Record]] = {}
    for record in records:
        value = get_field(record, field)
        key = MISSING_KEY if value is None else str(value)
        groups.setdefault(key, []).append(record)
    return groups


def aggregate_sum(records: Iterable[Record], field: str) -> float:
    """Sum the numeric values of ``field``; anything else contributes 0."""
    total = 0.0
    for record in records:
        value = get_field(record, field)
        if is_number(value):
            total += float(value)
    return total


def paginate(records: list[Record], page: Optional[Page]) -> list[Record]:
    """Return ``records[offset:offset + limit]``, clamped to bounds."""
    if page is None:
        return list(records)
    if page.offset >= len(records):
        return []
    if page.limit is None:
        return records[page.offset:]
    return records[page.offset:page.offset + page.limit]


def to_float(value: Any, default: float = 0.0) -> float:
    """Coerce a scalar to float, falling back to ``default``."""
    if is_number(value):
        return float(value)
    if isinstance(value, str):
        try:
            parsed = float(value)
        except ValueError:
            return default
        return default if math.isnan(parsed) else parsed
    return default
