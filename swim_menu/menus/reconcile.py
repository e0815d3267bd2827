"""Duration reconciliation.

Forces an estimated menu under a time budget by repeatedly applying the least
destructive applicable trim, one mutation per iteration:

1. Reduce sets: in trim order, decrement the last item with sets > 1.
2. Drop trailing item: in trim order, pop the last item of the first section
   that has more than one.
3. Drop section: in trim order, remove the first non-Main section while more
   than one section remains.
4. Force-reduce Main: tactic 1 restricted to the Main section.

Trim order follows the section role: cool-down, drill, kick, pull, warm-up,
then main. Sections with an unknown role rank with main and keep their menu
order. Whether a section counts as Main for tactics 3 and 4 comes from its
name alone, so "Main Kick Set" trims with kick sets but is never dropped. The loop stops when the menu fits, when no tactic applies (fixed
point), or at the iteration cap. A surviving section is never emptied and the
last section is never removed, so the result is never degenerate.
"""

from collections.abc import Callable

from loguru import logger

from swim_menu.menus.timing import estimate_menu
from swim_menu.menus.types import GeneratedMenu, MenuSection, SectionRole

DEFAULT_MAX_ITERATIONS = 200

TRIM_RANK: dict[SectionRole, int] = {
    SectionRole.COOL_DOWN: 0,
    SectionRole.DRILL: 1,
    SectionRole.KICK: 2,
    SectionRole.PULL: 3,
    SectionRole.WARM_UP: 4,
    SectionRole.MAIN: 5,
    SectionRole.UNKNOWN: 5,
}

Tactic = Callable[[list[MenuSection]], bool]


def trim_order(sections: list[MenuSection]) -> list[int]:
    """Return section indices sorted by trim rank (stable)."""
    return sorted(range(len(sections)), key=lambda index: TRIM_RANK[sections[index].role])


def _decrement_last_reducible(section: MenuSection) -> bool:
    for item in reversed(section.items):
        if item.sets > 1:
            item.sets -= 1
            return True
    return False


def _reduce_sets(sections: list[MenuSection]) -> bool:
    return any(_decrement_last_reducible(sections[index]) for index in trim_order(sections))


def _drop_trailing_item(sections: list[MenuSection]) -> bool:
    for index in trim_order(sections):
        if len(sections[index].items) > 1:
            sections[index].items.pop()
            return True
    return False


def _drop_section(sections: list[MenuSection]) -> bool:
    if len(sections) <= 1:
        return False
    for index in trim_order(sections):
        if not sections[index].is_main:
            del sections[index]
            return True
    return False


def _force_reduce_main(sections: list[MenuSection]) -> bool:
    for section in sections:
        if section.is_main:
            return _decrement_last_reducible(section)
    return False


TACTICS: list[tuple[str, Tactic]] = [
    ("reduce_sets", _reduce_sets),
    ("drop_trailing_item", _drop_trailing_item),
    ("drop_section", _drop_section),
    ("force_reduce_main", _force_reduce_main),
]


def trim_once(menu: GeneratedMenu) -> tuple[GeneratedMenu, str | None]:
    """Apply the first applicable tactic to a copy of ``menu``.

    Returns:
        (re-estimated copy, tactic name), or (menu, None) at a fixed point
    """
    working = menu.model_copy(deep=True)
    for name, tactic in TACTICS:
        if tactic(working.sections):
            return estimate_menu(working), name
    return menu, None


def reconcile_steps(
    menu: GeneratedMenu,
    target_duration: int,
    *,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
) -> list[GeneratedMenu]:
    """Run reconciliation and return every intermediate menu.

    The first element is the estimated input, the last is the result.
    """
    current = estimate_menu(menu)
    steps = [current]

    for _ in range(max_iterations):
        if current.total_time <= target_duration:
            break
        trimmed, tactic = trim_once(current)
        if tactic is None:
            break
        logger.debug(
            "Applied trim tactic",
            tactic=tactic,
            total_before=current.total_time,
            total_after=trimmed.total_time,
            target=target_duration,
        )
        current = trimmed
        steps.append(current)
    return steps


def reconcile(
    menu: GeneratedMenu,
    target_duration: int,
    *,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
) -> GeneratedMenu:
    """Trim ``menu`` until its total time fits ``target_duration``.

    Args:
        menu: Validated menu (not modified)
        target_duration: Time budget in minutes
        max_iterations: Safety cap on the number of trims

    Returns:
        Re-estimated menu. Its total may still exceed the target when the menu
        cannot be reduced further; that case is logged, not raised.
    """
    steps = reconcile_steps(menu, target_duration, max_iterations=max_iterations)
    result = steps[-1]

    if result.total_time > target_duration:
        logger.warning(
            "Menu could not be reduced to the target duration",
            total_time=result.total_time,
            target=target_duration,
            trims=len(steps) - 1,
        )
    elif len(steps) > 1:
        logger.info(
            "Menu reconciled to target duration",
            original_total=steps[0].total_time,
            total_time=result.total_time,
            target=target_duration,
            trims=len(steps) - 1,
        )
    return result
