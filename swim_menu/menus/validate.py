"""Structural validation of a parsed model response.

Checks run in a fixed order and stop at the first failure. The failing field
path is logged so a rejected response can be diagnosed from the logs alone.
"""

from dataclasses import dataclass
from typing import Any

from loguru import logger

from swim_menu.menus.types import GeneratedMenu


@dataclass(frozen=True)
class MenuCheck:
    """Tagged result of a structural check.

    Attributes:
        ok: True when the candidate has the required shape
        field: Path of the first failing field (e.g. "menu[1].items[0].sets")
        reason: Short description of the failure
    """

    ok: bool
    field: str | None = None
    reason: str | None = None


_PASSED = MenuCheck(ok=True)


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _is_text(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _fail(field: str, reason: str, value: Any) -> MenuCheck:
    logger.error("Menu validation failed", field=field, reason=reason, value=repr(value)[:100])
    return MenuCheck(ok=False, field=field, reason=reason)


def _check_item(item: Any, path: str) -> MenuCheck:
    if not isinstance(item, dict):
        return _fail(path, "item is not an object", item)

    description = item.get("description")
    if not _is_text(description):
        return _fail(f"{path}.description", "must be a non-empty string", description)

    distance = item.get("distance")
    if not (_is_text(distance) or (_is_number(distance) and distance > 0)):
        return _fail(f"{path}.distance", "must be a positive number or a non-empty string", distance)

    sets = item.get("sets")
    if not (_is_number(sets) and sets >= 1 and float(sets).is_integer()):
        return _fail(f"{path}.sets", "must be a positive whole number", sets)

    circle = item.get("circle")
    if not _is_text(circle):
        return _fail(f"{path}.circle", "must be a non-empty string", circle)

    return _PASSED


def check_menu(candidate: Any) -> MenuCheck:
    """Check that ``candidate`` has the GeneratedMenu shape.

    Args:
        candidate: Result of ``json.loads`` on sanitized model output

    Returns:
        MenuCheck; never raises
    """
    if not isinstance(candidate, dict):
        return _fail("$", "response is not a JSON object", candidate)

    title = candidate.get("title")
    if not _is_text(title):
        return _fail("title", "must be a non-empty string", title)

    sections = candidate.get("menu")
    if not isinstance(sections, list):
        return _fail("menu", "must be a list of sections", sections)
    if not sections:
        return _fail("menu", "must contain at least one section", sections)

    total_time = candidate.get("totalTime")
    if not _is_number(total_time):
        return _fail("totalTime", "must be a number", total_time)

    for section_index, section in enumerate(sections):
        path = f"menu[{section_index}]"
        if not isinstance(section, dict):
            return _fail(path, "section is not an object", section)

        name = section.get("name")
        if not _is_text(name):
            return _fail(f"{path}.name", "must be a non-empty string", name)

        items = section.get("items")
        if not isinstance(items, list):
            return _fail(f"{path}.items", "must be a list of items", items)
        if not items:
            return _fail(f"{path}.items", "must contain at least one item", items)

        for item_index, item in enumerate(items):
            result = _check_item(item, f"{path}.items[{item_index}]")
            if not result.ok:
                return result

    return _PASSED


def validate_menu(candidate: Any) -> bool:
    """Return True when ``candidate`` has the GeneratedMenu shape."""
    return check_menu(candidate).ok


def parse_menu(candidate: dict[str, Any]) -> GeneratedMenu:
    """Build a GeneratedMenu from a candidate that passed ``check_menu``.

    Raises:
        ValueError: If the candidate was not checked first and is malformed
    """
    return GeneratedMenu.model_validate(candidate)
