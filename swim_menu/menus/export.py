"""Export of generated menus as CSV and printable text."""

import csv
import io
import time
from dataclasses import dataclass

from swim_menu.menus.types import GeneratedMenu

CSV_HEADER = ["Section", "Description", "Distance", "Sets", "Circle", "Time (min)", "Intensity"]


@dataclass(frozen=True)
class ExportResult:
    content: str
    file_name: str
    media_type: str


def _file_stem(menu_id: str | None) -> str:
    return f"menu-{menu_id or int(time.time() * 1000)}"


def menu_to_csv(menu: GeneratedMenu, menu_id: str | None = None) -> ExportResult:
    """Render one CSV row per item."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for section in menu.sections:
        for item in section.items:
            writer.writerow(
                [
                    section.name,
                    item.description,
                    item.distance,
                    item.sets,
                    item.circle,
                    item.time,
                    menu.intensity or "",
                ]
            )
    return ExportResult(content=buffer.getvalue(), file_name=f"{_file_stem(menu_id)}.csv", media_type="text/csv")


def menu_to_text(menu: GeneratedMenu, menu_id: str | None = None) -> ExportResult:
    """Render the printable plain-text version of a menu."""
    lines = [
        f"Title: {menu.title}",
        f"Total time: {menu.total_time} min",
        f"Intensity: {menu.intensity or 'not specified'}",
        "",
    ]
    for section in menu.sections:
        lines.append(f"--- {section.name} ({section.total_time} min) ---")
        for item in section.items:
            line = f"- {item.description} ({item.distance}) x {item.sets} on {item.circle}"
            if item.equipment:
                line += f" [{item.equipment}]"
            if item.notes:
                line += f" - {item.notes}"
            lines.append(line)
        lines.append("")
    if menu.target_skills:
        lines.append(f"Target skills: {', '.join(menu.target_skills)}")
    return ExportResult(content="\n".join(lines), file_name=f"{_file_stem(menu_id)}.txt", media_type="text/plain")
