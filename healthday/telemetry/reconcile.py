"""Reconciliation engine: merge an incoming fragment into a stored day record.

The merge policy is an explicit parameter.  Three named modes exist:

``TRUTHY_WINS`` (default)
    Per category, per field.  An incoming field replaces the stored one only
    if the incoming value is truthy, or the stored field has no value at all.
    A category absent on the fragment is kept untouched.  Packed timeseries
    strings and sample lists are atomic fields.

``CLOUD_AUTHORITATIVE``
    Used only when migrating local records into the cloud store.  A category
    already stored wins outright; only missing categories are filled from
    the fragment.

``CATEGORY_REPLACE``
    Manual edits.  A category present on the fragment replaces the stored
    category wholesale, so a user can deliberately set a field back to 0.

The engine is pure: it never reads or writes a store.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import fields, replace
from enum import Enum
from typing import TypeVar

from healthday.telemetry.base import CATEGORIES, CategoryData, DayRecord
from healthday.telemetry.errors import InvalidFragmentError

logger = logging.getLogger("healthday.telemetry.reconcile")

_C = TypeVar("_C", bound=CategoryData)


class MergeMode(str, Enum):
    TRUTHY_WINS = "truthy_wins"
    CLOUD_AUTHORITATIVE = "cloud_authoritative"
    CATEGORY_REPLACE = "category_replace"


def require_date(fragment: DayRecord) -> str:
    """Return the fragment's date or raise ``InvalidFragmentError``."""
    if not fragment.date:
        raise InvalidFragmentError("Fragment has no date key")
    return fragment.date


def merge_category(existing: _C | None, incoming: _C | None) -> _C | None:
    """Truthy-wins merge of a single category slot.

    Args:
        existing: Stored slot, or None.
        incoming: Fragment slot, or None.

    Returns:
        The merged slot (a new object; inputs are not mutated).
    """
    if incoming is None:
        return copy.deepcopy(existing)
    if existing is None:
        return copy.deepcopy(incoming)
    updates = {}
    for f in fields(incoming):  # type: ignore[arg-type]
        new_value = getattr(incoming, f.name)
        old_value = getattr(existing, f.name)
        if new_value is None:
            continue
        if new_value or old_value is None:
            updates[f.name] = copy.deepcopy(new_value)
    return replace(copy.deepcopy(existing), **updates)


def _merge_truthy(existing: DayRecord, incoming: DayRecord) -> DayRecord:
    slots = {
        name: merge_category(getattr(existing, name), getattr(incoming, name))
        for name in CATEGORIES
    }
    return DayRecord(
        date=existing.date,
        source=incoming.source or existing.source,
        events=list(incoming.events or existing.events),
        **slots,
    )


def _merge_cloud_authoritative(existing: DayRecord, incoming: DayRecord) -> DayRecord:
    slots = {}
    for name in CATEGORIES:
        stored = getattr(existing, name)
        slots[name] = copy.deepcopy(stored if stored is not None else getattr(incoming, name))
    return DayRecord(
        date=existing.date,
        source=existing.source or incoming.source,
        events=list(existing.events or incoming.events),
        **slots,
    )


def _merge_category_replace(existing: DayRecord, incoming: DayRecord) -> DayRecord:
    slots = {}
    for name in CATEGORIES:
        supplied = getattr(incoming, name)
        slots[name] = copy.deepcopy(supplied if supplied is not None else getattr(existing, name))
    return DayRecord(
        date=existing.date,
        source=incoming.source or existing.source,
        events=list(incoming.events or existing.events),
        **slots,
    )


_MERGERS = {
    MergeMode.TRUTHY_WINS: _merge_truthy,
    MergeMode.CLOUD_AUTHORITATIVE: _merge_cloud_authoritative,
    MergeMode.CATEGORY_REPLACE: _merge_category_replace,
}


def merge(
    existing: DayRecord | None,
    incoming: DayRecord,
    mode: MergeMode = MergeMode.TRUTHY_WINS,
) -> DayRecord:
    """Merge ``incoming`` into ``existing`` under ``mode``.

    If ``existing`` is None the result is a copy of ``incoming`` with absent
    categories left absent.

    Args:
        existing: The stored record for the same date, or None.
        incoming: The fragment to apply.  Must carry a date.
        mode:     Merge policy.

    Returns:
        A new merged ``DayRecord``.

    Raises:
        InvalidFragmentError: If ``incoming`` has no date.
        ValueError:           If the two records are for different dates.
    """
    require_date(incoming)
    if existing is None:
        return copy.deepcopy(incoming)
    if existing.date != incoming.date:
        raise ValueError(f"Cannot merge {incoming.date} into record for {existing.date}")
    merged = _MERGERS[MergeMode(mode)](existing, incoming)
    logger.debug(
        "Merged %s (%s): incoming=%s result=%s",
        incoming.date,
        MergeMode(mode).value,
        incoming.categories_present,
        merged.categories_present,
    )
    return merged
