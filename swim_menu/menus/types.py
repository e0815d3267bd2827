"""Menu data model.

AI responses are untrusted. They are checked structurally by
``swim_menu.menus.validate`` first and only then parsed into these models.
Derived fields (item ``time`` and the section/menu totals) are never read
from the model output; they are always recomputed by the estimator.
"""

import re
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class LoadLevel(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


LOAD_LEVEL_LABELS: dict[LoadLevel, str] = {
    LoadLevel.LOW: "Low load",
    LoadLevel.MEDIUM: "Medium load",
    LoadLevel.HIGH: "High load",
}


def load_level_label(load_levels: list[LoadLevel]) -> str:
    """Combine load levels into a single human-readable label."""
    return " / ".join(LOAD_LEVEL_LABELS.get(level, str(level)) for level in load_levels)


class SectionRole(StrEnum):
    """Training role of a menu section.

    Member order is the trim order used by the duration reconciler: earlier
    roles are trimmed first. UNKNOWN sections are protected like MAIN.
    """

    COOL_DOWN = "cool_down"
    DRILL = "drill"
    KICK = "kick"
    PULL = "pull"
    WARM_UP = "warm_up"
    MAIN = "main"
    UNKNOWN = "unknown"


# Checked in this order; first hit wins. A tag must start a word, so
# "Cooldown" and "Drills" match but "Breakdown" and "Remaining" do not.
_ROLE_TAGS: list[tuple[SectionRole, tuple[str, ...]]] = [
    (SectionRole.COOL_DOWN, ("down", "cool")),
    (SectionRole.DRILL, ("drill",)),
    (SectionRole.KICK, ("kick",)),
    (SectionRole.PULL, ("pull",)),
    (SectionRole.WARM_UP, ("w-up", "warm")),
    (SectionRole.MAIN, ("main",)),
]

_MAIN_TAG = re.compile(r"\bmain", re.IGNORECASE)


def _has_tag(lowered: str, tag: str) -> bool:
    return re.search(r"\b" + re.escape(tag), lowered) is not None


def resolve_section_role(name: str) -> SectionRole:
    """Resolve a section name to its trim role by English tag.

    Localized names that carry no English tag resolve to UNKNOWN.
    """
    lowered = name.lower()
    for role, tags in _ROLE_TAGS:
        if any(_has_tag(lowered, tag) for tag in tags):
            return role
    return SectionRole.UNKNOWN


def is_main_section_name(name: str) -> bool:
    """Whether a section is the primary set, independent of its trim role.

    "Main Kick Set" ranks as KICK for trimming but is still never dropped.
    """
    return _MAIN_TAG.search(name) is not None


def _is_minutes(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


class MenuItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    description: str
    distance: str | int | float
    sets: int = Field(..., ge=1)
    circle: str
    equipment: str | None = None
    notes: str | None = None
    time: int = Field(default=0, ge=0, description="Derived minutes, never taken from the model")

    @model_validator(mode="before")
    @classmethod
    def _drop_untrusted_time(cls, data: Any) -> Any:
        if isinstance(data, dict) and "time" in data and not _is_minutes(data["time"]):
            data = {k: v for k, v in data.items() if k != "time"}
        return data

    @field_validator("equipment", "notes", mode="before")
    @classmethod
    def _coerce_optional_text(cls, value: Any) -> str | None:
        if value is None or value == "":
            return None
        return str(value)


class MenuSection(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    items: list[MenuItem]
    total_time: int = Field(default=0, ge=0, alias="totalTime")
    role: SectionRole = SectionRole.UNKNOWN
    is_main: bool = Field(default=False, alias="isMain")

    @model_validator(mode="before")
    @classmethod
    def _resolve_role(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if "totalTime" in data and not _is_minutes(data["totalTime"]):
            data.pop("totalTime")
        name = data.get("name")
        if isinstance(name, str):
            if "role" not in data:
                data["role"] = resolve_section_role(name)
            if "isMain" not in data and "is_main" not in data:
                data["isMain"] = is_main_section_name(name)
        return data


class GeneratedMenu(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    title: str
    sections: list[MenuSection] = Field(..., min_length=1, alias="menu")
    total_time: int = Field(default=0, ge=0, alias="totalTime")
    intensity: str | None = None
    target_skills: list[str] | None = Field(default=None, alias="targetSkills")

    @model_validator(mode="before")
    @classmethod
    def _drop_untrusted_total(cls, data: Any) -> Any:
        if isinstance(data, dict) and "totalTime" in data and not _is_minutes(data["totalTime"]):
            data = {k: v for k, v in data.items() if k != "totalTime"}
        return data

    @field_validator("intensity", mode="before")
    @classmethod
    def _coerce_intensity(cls, value: Any) -> str | None:
        if value is None or value == "":
            return None
        return str(value)

    @field_validator("target_skills", mode="before")
    @classmethod
    def _coerce_skills(cls, value: Any) -> list[str] | None:
        if value is None:
            return None
        if isinstance(value, str):
            return [value] if value else []
        if isinstance(value, list):
            return [str(skill) for skill in value]
        return None

    def to_wire(self) -> dict[str, Any]:
        """Serialize with the camelCase field names used by clients and storage."""
        return self.model_dump(mode="json", by_alias=True)


class GenerationRequest(BaseModel):
    """Input to the generation pipeline.

    Levels, duration and credentials are checked by the orchestrator, which
    raises ``InvalidRequestError``; the model itself only coerces types.
    """

    load_levels: list[LoadLevel]
    duration: int
    notes: str | None = None
    model: str
    credentials: str = ""
    use_retrieval: bool = False
    retrieval_credentials: str | None = None

    @field_validator("load_levels", mode="after")
    @classmethod
    def _dedupe_levels(cls, value: list[LoadLevel]) -> list[LoadLevel]:
        return list(dict.fromkeys(value))


@dataclass
class GenerationResult:
    """Outcome of one generation call.

    Attributes:
        menu_id: Identifier the menu was (or would have been) stored under
        menu: Estimated and reconciled menu
        saved: Whether the persistence stage succeeded
        within_duration: False when reconciliation hit its fixed point above the target
        remaining_time: Requested duration minus the menu total
    """

    menu_id: str
    menu: GeneratedMenu
    saved: bool
    within_duration: bool
    remaining_time: int
