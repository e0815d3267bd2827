"""Prompts for menu generation.

Pure templating: the same inputs always produce the same prompts.
"""

from dataclasses import dataclass

from swim_menu.menus.types import LoadLevel, load_level_label

OUTPUT_SHAPE = """{
  "title": "Menu title",
  "menu": [
    {
      "name": "Section name (e.g. Warm-up)",
      "items": [
        {
          "description": "Stroke and drill details, e.g. 4 x 100m freestyle",
          "distance": "Distance of ONE repetition in meters, e.g. \\"100m\\"",
          "sets": 4,
          "circle": "Circle time per repetition as m:ss, e.g. \\"1:45\\"",
          "equipment": "Equipment (optional)",
          "notes": "Technical focus (optional)"
        }
      ],
      "totalTime": 0
    }
  ],
  "totalTime": 0,
  "intensity": "Overall load of the menu (low / medium / high)",
  "targetSkills": ["Skills or abilities the menu develops"]
}"""


@dataclass(frozen=True)
class Prompts:
    system: str
    user: str


def build_system_prompt(duration: int) -> str:
    """Build the system prompt for a session of ``duration`` minutes."""
    return f"""You are an expert swim coach who writes training menus for a swim team.
Create the best possible swim practice for the given conditions.

Structure the menu with these sections:
1. Warm-up: raise body temperature and prepare for the main set
2. Kick: leg strength and kick technique
3. Pull: upper-body strength and pull technique
4. Main: the primary training objective of the day
5. Drill: technique work to improve form
6. Down: cool-down to reduce fatigue

Every item must state:
- the stroke (freestyle, backstroke, breaststroke, butterfly, individual medley, ...)
- "distance": the distance of ONE repetition (25m, 50m, 100m, ...)
- "sets": the number of repetitions as a whole number
- "circle": the send-off interval for one repetition as m:ss (100m on 2:00 -> "2:00")
- equipment and technical notes where useful

Rules:
- "sets" MUST match the repetition count written in the description: "4 x 100m" means distance "100m" and sets 4.
- The practice time of an item is distance / 100 x circle x sets.
- The total practice time MUST NOT exceed {duration} minutes. Plan for {duration} minutes or slightly less.
- Build intensity gradually and finish easy.

Output format:
- Respond with a single raw JSON object and nothing else.
- Do NOT wrap the JSON in Markdown code fences and do NOT add explanations.
- The object must match this shape:
{OUTPUT_SHAPE}"""


def build_user_prompt(
    load_levels: list[LoadLevel],
    duration: int,
    notes: str | None = None,
    retrieved_context: str | None = None,
) -> str:
    """Build the user prompt.

    Args:
        load_levels: Requested load levels
        duration: Session length in minutes
        notes: Optional coach notes
        retrieved_context: Optional summary of similar stored menus

    Returns:
        Prompt text
    """
    prompt_parts = [f"Create a {duration}-minute swim practice menu. Load: {load_level_label(load_levels)}."]

    if notes:
        prompt_parts.append(f"Special notes: {notes}")

    if retrieved_context:
        prompt_parts.append("")
        prompt_parts.append("Previous menus to use as reference:")
        prompt_parts.append(retrieved_context)

    prompt_parts.append("")
    prompt_parts.append("IMPORTANT: respond with valid JSON only. No explanations and no code blocks.")

    return "\n".join(prompt_parts)


def build_prompts(
    load_levels: list[LoadLevel],
    duration: int,
    notes: str | None = None,
    retrieved_context: str | None = None,
) -> Prompts:
    """Build the system and user prompts for one generation request."""
    return Prompts(
        system=build_system_prompt(duration),
        user=build_user_prompt(load_levels, duration, notes, retrieved_context),
    )
