"""Coach catalogue and coach-selection expansion.

Coaches are the tenant scopes that partition document visibility.  Operators
usually target either a handful of coaches or a named group; the ``all-diet``
group covers every diet coach.

Group names are resolved here, at the CLI/API edge, so the ingestion
pipeline only ever receives concrete coach ids.
"""

from __future__ import annotations

from typing import Iterable, Mapping

ALL_DIET_COACHES: tuple[str, ...] = (
    "carnivore",
    "carnivore-pro",
    "paleo",
    "lowcarb",
    "keto",
    "ketovore",
    "lion",
)

COACH_GROUPS: Mapping[str, tuple[str, ...]] = {
    "all-diet": ALL_DIET_COACHES,
}


def expand_coach_selection(
    selection: str | Iterable[str],
    groups: Mapping[str, tuple[str, ...]] = COACH_GROUPS,
) -> list[str]:
    """Turn a CSV string or iterable of coach ids / group names into coach ids.

    Group names are replaced by their members.  Blank entries are dropped and
    duplicates collapsed, keeping first-seen order.

    >>> expand_coach_selection("keto, paleo,keto")
    ['keto', 'paleo']
    """
    if isinstance(selection, str):
        items: Iterable[str] = selection.split(",")
    else:
        items = selection

    coaches: list[str] = []
    for raw in items:
        name = raw.strip()
        if not name:
            continue
        for coach_id in groups.get(name, (name,)):
            if coach_id not in coaches:
                coaches.append(coach_id)
    return coaches
