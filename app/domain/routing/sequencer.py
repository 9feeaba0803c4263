"""
Stop sequencing for a day's route.

Groups stops by ZIP code, orders the groups numerically and walks each group
street by street. This is a clustering heuristic, not a shortest-path solver:
it needs no mapping API and always gives the same answer for the same input.
"""

from typing import Callable, Optional, Sequence, TypeVar

T = TypeVar("T")

VALID_ZIP = 0
MALFORMED_ZIP = 1
MISSING_ZIP = 2


def _default_location(job):
    return getattr(job, "location", None)


def postal_code_sort_key(zip_code: Optional[str]) -> tuple:
    """
    Sort key for a ZIP group.

    Codes whose leading (up to five) characters are digits sort by that
    number. Anything else sorts after every valid code, and jobs with no
    code at all come last.
    """
    code = (zip_code or "").strip()
    if not code:
        return (MISSING_ZIP, 0, "")
    base = code[:5]
    if base.isascii() and base.isdigit():
        return (VALID_ZIP, int(base), code)
    return (MALFORMED_ZIP, 0, code)


def address_sort_key(address: Optional[str]) -> tuple:
    address = address or ""
    return (address.casefold(), address)


def optimize_stop_order(
    jobs: Sequence[T], location_of: Callable[[T], object] = _default_location
) -> list[T]:
    """
    Return ``jobs`` in crew order without touching the input sequence.

    Args:
        jobs: Jobs (or job-like objects) for one route/day
        location_of: Accessor returning an object with ``zip_code`` and
            ``address_line1`` attributes, or None

    Returns:
        New list: ZIP groups ascending, addresses ascending inside a group.
        Ties keep their input order.
    """
    groups: dict[str, list[T]] = {}
    for job in jobs:
        location = location_of(job)
        zip_code = (getattr(location, "zip_code", None) or "").strip()
        groups.setdefault(zip_code, []).append(job)

    ordered: list[T] = []
    for zip_code in sorted(groups, key=postal_code_sort_key):
        ordered.extend(
            sorted(
                groups[zip_code],
                key=lambda j: address_sort_key(getattr(location_of(j), "address_line1", None)),
            )
        )
    return ordered
