"""Reusable combatant templates kept outside the encounter."""

from __future__ import annotations

import math
from typing import Any

from .damage import sparse_resistances
from .dice import Rng, is_dice_expression, roll_max_hps
from .models import DAMAGE_TYPES, RESISTANCE_KINDS, SIDES
from .state import new_id, utc_now_iso


def normalize_max_hp_spec(value: Any) -> int | str:
    """Keep dice expressions as text; turn anything else into an integer >= 1."""
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 1
        if is_dice_expression(text):
            return text
        try:
            number = float(text)
        except ValueError:
            return 1
        return max(1, math.floor(number)) if math.isfinite(number) else 1
    if isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value):
        return max(1, math.floor(value))
    return 1


def _optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return math.floor(number) if math.isfinite(number) else None


def sanitize_template(raw: Any) -> dict[str, Any] | None:
    """Coerce a stored template blob into shape, or return None if it is unusable."""
    if not isinstance(raw, dict):
        return None
    name = raw.get("name")
    side = raw.get("side")
    if not isinstance(name, str) or side not in SIDES:
        return None

    now = utc_now_iso()
    resistances = raw.get("resistances") if isinstance(raw.get("resistances"), dict) else {}
    conditions = raw.get("conditions")
    buff_library = raw.get("buffLibrary")
    return {
        "id": raw["id"] if isinstance(raw.get("id"), str) and raw["id"] else new_id("tpl"),
        "name": name,
        "side": side,
        "maxHP": normalize_max_hp_spec(raw.get("maxHP", 1)),
        "ac": _optional_int(raw.get("ac")),
        "notes": raw["notes"] if isinstance(raw.get("notes"), str) else "",
        "url": raw["url"] if isinstance(raw.get("url"), str) and raw["url"].strip() else None,
        "resistances": sparse_resistances(
            {k: v for k, v in resistances.items() if k in DAMAGE_TYPES and v in RESISTANCE_KINDS}
        ),
        "conditions": [str(c) for c in conditions] if isinstance(conditions, list) else [],
        "buffLibrary": [str(b) for b in buff_library] if isinstance(buff_library, list) else [],
        "createdAt": raw["createdAt"] if isinstance(raw.get("createdAt"), str) else now,
        "updatedAt": raw["updatedAt"] if isinstance(raw.get("updatedAt"), str) else now,
    }


def sanitize_templates(raw: Any) -> list[dict[str, Any]]:
    if not isinstance(raw, list):
        return []
    templates = [sanitize_template(item) for item in raw]
    return [template for template in templates if template is not None]


def template_from_combatant(combatant: dict[str, Any]) -> dict[str, Any]:
    now = utc_now_iso()
    return {
        "id": f"tpl_{combatant['id']}",
        "name": combatant["name"],
        "side": combatant["side"],
        "maxHP": combatant["maxHP"],
        "ac": combatant.get("ac"),
        "notes": combatant.get("notes") or "",
        "url": combatant.get("url"),
        "resistances": dict(combatant.get("resistances", {})),
        "conditions": list(combatant.get("conditions", [])),
        "buffLibrary": list(combatant.get("buffLibrary", [])),
        "createdAt": now,
        "updatedAt": now,
    }


def find_template_for_combatant(templates: list[dict[str, Any]], combatant: dict[str, Any]) -> dict[str, Any] | None:
    """Match on side plus case-insensitive, trimmed name."""
    wanted = combatant["name"].strip().lower()
    for template in templates:
        if template["side"] == combatant["side"] and template["name"].strip().lower() == wanted:
            return template
    return None


def upsert_template(templates: list[dict[str, Any]], template: dict[str, Any]) -> list[dict[str, Any]]:
    updated = {**template, "updatedAt": utc_now_iso()}
    if not any(t["id"] == template["id"] for t in templates):
        return [*templates, updated]
    return [updated if t["id"] == template["id"] else t for t in templates]


def delete_template(templates: list[dict[str, Any]], template_id: str) -> list[dict[str, Any]]:
    return [t for t in templates if t["id"] != template_id]


def save_combatant_as_template(templates: list[dict[str, Any]], combatant: dict[str, Any]) -> list[dict[str, Any]]:
    """Store ``combatant`` as a template, overwriting a same-named one of its side.

    An existing template keeps its id, creation time and dice-based max HP.
    """
    template = template_from_combatant(combatant)
    existing = find_template_for_combatant(templates, combatant)
    if existing is not None:
        template = {
            **template,
            "id": existing["id"],
            "createdAt": existing["createdAt"],
            "maxHP": existing["maxHP"] if isinstance(existing["maxHP"], str) else template["maxHP"],
        }
    return upsert_template(templates, template)


def payload_from_template(template: dict[str, Any], count: int, rng: Rng) -> dict[str, Any]:
    """Build an ``ADD_COMBATANT`` payload, rolling max HP once per creature."""
    rolled = roll_max_hps(template.get("maxHP"), count, rng)
    return {
        "name": template["name"],
        "side": template["side"],
        "initiative": None,
        "maxHP": rolled[0],
        "tempHP": 0,
        "ac": template.get("ac"),
        "notes": template.get("notes") or "",
        "url": template.get("url"),
        "conditions": list(template.get("conditions", [])),
        "resistances": dict(template.get("resistances", {})),
        "buffLibrary": list(template.get("buffLibrary", [])),
        "count": max(1, count),
        "rolledMaxHps": rolled,
    }
