"""JSON export and validated import for encounters and template lists."""

from __future__ import annotations

import json
from typing import Any

from pydantic import TypeAdapter, ValidationError

from .damage import clamp_hp, normalize_after_hp_change, sparse_resistances
from .models import EncounterDocument, TemplateDocument
from .state import ensure_sort_orders

_TEMPLATE_LIST = TypeAdapter(list[TemplateDocument])


class InvalidEncounterError(ValueError):
    """Raised when an import payload is not a structurally valid encounter."""


class InvalidTemplateError(ValueError):
    """Raised when an import payload is not a valid template list."""


def _decode(raw: str | bytes | dict[str, Any] | list[Any], error_cls: type[ValueError]) -> Any:
    if not isinstance(raw, (str, bytes)):
        return raw
    try:
        return json.loads(raw)
    except UnicodeDecodeError as exc:
        raise error_cls(f"Not valid JSON: {exc.reason}") from exc
    except json.JSONDecodeError as exc:
        raise error_cls(f"Not valid JSON: {exc.msg}") from exc


def _validation_message(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    return f"{location}: {first['msg']}" if location else first["msg"]


def export_encounter(encounter: dict[str, Any]) -> str:
    return json.dumps(encounter, indent=2, ensure_ascii=False)


def import_encounter(raw: str | bytes | dict[str, Any]) -> dict[str, Any]:
    """Validate an exported encounter and return it in canonical form.

    Missing optional fields are filled with defaults, ``normal`` resistance
    entries are dropped, absent ``sortOrder`` values are re-derived and
    duplicate combatant ids are rejected.
    """
    data = _decode(raw, InvalidEncounterError)
    if isinstance(data, dict) and isinstance(data.get("encounter"), dict):
        data = data["encounter"]
    try:
        document = EncounterDocument.model_validate(data)
    except ValidationError as exc:
        raise InvalidEncounterError(_validation_message(exc)) from exc

    encounter = document.model_dump(mode="json")
    seen: set[str] = set()
    combatants = []
    for combatant in encounter["combatants"]:
        if combatant["id"] in seen:
            raise InvalidEncounterError(f"combatants: duplicate id '{combatant['id']}'")
        seen.add(combatant["id"])
        # hp is clamped and status re-derived exactly as after a reducer hp change
        combatant = {
            **combatant,
            "hp": clamp_hp(combatant["hp"], combatant["maxHP"]),
            "resistances": sparse_resistances(combatant["resistances"]),
        }
        combatants.append(normalize_after_hp_change(combatant))
    return ensure_sort_orders({**encounter, "combatants": combatants})


def export_templates(templates: list[dict[str, Any]]) -> str:
    return json.dumps(templates, indent=2, ensure_ascii=False)


def import_templates(raw: str | bytes | list[Any]) -> list[dict[str, Any]]:
    data = _decode(raw, InvalidTemplateError)
    try:
        documents = _TEMPLATE_LIST.validate_python(data)
    except ValidationError as exc:
        raise InvalidTemplateError(_validation_message(exc)) from exc

    templates = [document.model_dump(mode="json") for document in documents]
    for template in templates:
        template["resistances"] = sparse_resistances(template["resistances"])
    return templates
