"""Duration estimation for generated menus.

Item time is always derived from distance, circle and sets; the value a model
reports is never trusted. Estimation is pure and idempotent.
"""

import math
import re

from swim_menu.menus.types import GeneratedMenu, MenuItem

_NON_DIGIT_RE = re.compile(r"\D")


def parse_distance(distance: str | int | float) -> int:
    """Parse a distance such as ``"400m"`` or ``400`` into whole meters.

    Unparseable values count as 0.
    """
    if isinstance(distance, bool):
        return 0
    if isinstance(distance, int | float):
        return max(0, int(distance))
    digits = _NON_DIGIT_RE.sub("", distance)
    return int(digits) if digits else 0


def _parse_clock_part(part: str) -> int:
    digits = _NON_DIGIT_RE.sub("", part)
    return int(digits) if digits else 0


def parse_circle_minutes(circle: str) -> float:
    """Parse a circle interval ``"m:ss"`` into fractional minutes.

    Missing seconds default to 0 (``"2"`` -> 2.0).
    """
    parts = circle.split(":")
    minutes = _parse_clock_part(parts[0])
    seconds = _parse_clock_part(parts[1]) if len(parts) > 1 else 0
    return minutes + seconds / 60


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def estimate_item_time(distance: str | int | float, circle: str, sets: int) -> int:
    """Estimate minutes for one item: distance/100 * circle pace * sets, at least 1."""
    base = (parse_distance(distance) / 100) * parse_circle_minutes(circle) * sets
    return max(_round_half_up(base), 1)


def _estimated_item(item: MenuItem) -> MenuItem:
    return item.model_copy(update={"time": estimate_item_time(item.distance, item.circle, item.sets)})


def estimate_menu(menu: GeneratedMenu) -> GeneratedMenu:
    """Return a copy of ``menu`` with item, section and menu times recomputed.

    Args:
        menu: Parsed menu (input is not modified)

    Returns:
        New GeneratedMenu whose totals are sums of derived item times
    """
    sections = []
    for section in menu.sections:
        items = [_estimated_item(item) for item in section.items]
        sections.append(
            section.model_copy(update={"items": items, "total_time": sum(item.time for item in items)})
        )

    return menu.model_copy(
        update={"sections": sections, "total_time": sum(section.total_time for section in sections)}
    )
