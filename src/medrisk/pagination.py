"""
Page decoding and collection across the paginated patients endpoint.

The same endpoint answers in one of two shapes, chosen by the server:

  modern : {"data": [...], "pagination": {"hasNext": bool, ...}}
  legacy : {"patients": [...], "current_page": int}

`decode_page` turns a payload into one of three explicit variants (ModernPage,
LegacyPage, EmptyPage) and `collect_all` walks pages until the variant's own
completion rule says stop.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Set, Union

from .patient import PatientRecord

logger = logging.getLogger(__name__)

DEFAULT_MAX_PAGES = 100


@dataclass(frozen=True)
class ModernPage:
    patients: List[PatientRecord]
    has_next: bool
    pagination: dict = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class LegacyPage:
    patients: List[PatientRecord]
    current_page: Optional[int]


@dataclass(frozen=True)
class EmptyPage:
    """A payload that carried neither a usable `data` nor `patients` array."""

    requested_page: int

    @property
    def patients(self) -> List[PatientRecord]:
        return []


PageResponse = Union[ModernPage, LegacyPage, EmptyPage]


def _patient_entries(payload: dict) -> list:
    # first non-empty list wins, `data` before `patients`
    for key in ("data", "patients"):
        entries = payload.get(key)
        if isinstance(entries, list) and entries:
            return entries
    return []


def _to_page_number(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def decode_page(payload: Any, requested_page: int) -> PageResponse:
    """
    Decode one response body into a PageResponse variant.

    - a dict `pagination` object makes it a ModernPage (hasNext anything but JSON true → False)
    - otherwise a `data`/`patients` array or a `current_page` makes it a LegacyPage
    - anything else is an EmptyPage
    """
    if not isinstance(payload, dict):
        logger.warning("Page %d: expected a JSON object, got %s", requested_page, type(payload).__name__)
        return EmptyPage(requested_page)

    entries = _patient_entries(payload)
    patients: List[PatientRecord] = []
    for entry in entries:
        if not isinstance(entry, dict):
            logger.warning("Page %d: skipping non-object patient entry %r", requested_page, entry)
            continue
        patients.append(PatientRecord.from_payload(entry))

    pagination = payload.get("pagination")
    if isinstance(pagination, dict):
        return ModernPage(
            patients=patients,
            has_next=pagination.get("hasNext") is True,
            pagination=dict(pagination),
        )

    has_array = isinstance(payload.get("data"), list) or isinstance(payload.get("patients"), list)
    if has_array or "current_page" in payload:
        return LegacyPage(patients=patients, current_page=_to_page_number(payload.get("current_page")))

    logger.warning("Page %d: no patient array in response keys %s", requested_page, sorted(payload))
    return EmptyPage(requested_page)


def collect_all(
    fetch_page: Callable[[int], PageResponse],
    *,
    max_pages: int = DEFAULT_MAX_PAGES,
) -> List[PatientRecord]:
    """
    Fetch pages 1, 2, ... through `fetch_page` and concatenate their patients.

    Stops when:
      - a ModernPage reports hasNext false
      - a LegacyPage is empty, brings no patient id not seen before, or echoes a
        page number already seen (such a page is not added)
      - an EmptyPage arrives
      - `max_pages` pages have been fetched (logged as a warning)

    Records keep arrival order; duplicates across pages are kept.
    """
    if max_pages <= 0:
        raise ValueError(f"max_pages must be positive, got {max_pages}")

    collected: List[PatientRecord] = []
    seen_pages: Set[int] = set()
    seen_ids: Set[Any] = set()
    page_number = 1

    while page_number <= max_pages:
        page = fetch_page(page_number)

        if isinstance(page, LegacyPage):
            echoed = page.current_page if page.current_page is not None else page_number
            if echoed in seen_pages:
                logger.info("Page %d: server echoed page %d again, stopping", page_number, echoed)
                return collected
            seen_pages.add(echoed)
            if page.patients and all(p.patient_id in seen_ids for p in page.patients):
                logger.info("Page %d: no new patients, stopping", page_number)
                return collected

        collected.extend(page.patients)
        seen_ids.update(p.patient_id for p in page.patients)
        logger.info(
            "Page %d: %s with %d patients (%d total)",
            page_number,
            type(page).__name__,
            len(page.patients),
            len(collected),
        )

        if isinstance(page, EmptyPage):
            return collected
        if isinstance(page, ModernPage) and not page.has_next:
            return collected
        if isinstance(page, LegacyPage) and not page.patients:
            return collected

        page_number += 1

    logger.warning("Stopped after reaching the %d page limit; results may be incomplete", max_pages)
    return collected
