"""FastAPI endpoints for dispatching encounter actions, import/export and templates."""

from __future__ import annotations

import logging
import random
from typing import Any

from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from .codec import InvalidEncounterError, InvalidTemplateError, export_encounter, import_templates
from .config import load_settings
from .dice import DiceExpressionError, Rng, roll_dice_expression
from .grouping import build_pending_groups, build_turn_groups, resolve_current_group_index
from .session import EncounterSession
from .state import utc_now_iso
from .store import EncounterStore, TemplateStore, create_stores
from .templates import (
    delete_template,
    payload_from_template,
    sanitize_template,
    save_combatant_as_template,
    upsert_template,
)

logger = logging.getLogger(__name__)


class ActionEnvelope(BaseModel):
    action: dict[str, Any]


class EncounterStateResponse(BaseModel):
    state: dict[str, Any]
    events: list[dict[str, Any]] = Field(default_factory=list)
    canUndo: bool = False


class ImportRequest(BaseModel):
    encounter: dict[str, Any]


class DiceRollRequest(BaseModel):
    expression: str = Field(min_length=1, max_length=200)


class TemplateSpawnRequest(BaseModel):
    templateId: str = Field(min_length=1)
    count: int = Field(default=1, ge=1, le=100)


class TemplatesResponse(BaseModel):
    templates: list[dict[str, Any]]


def create_app(
    encounter_store: EncounterStore | None = None,
    template_store: TemplateStore | None = None,
    rng: Rng | None = None,
) -> FastAPI:
    app = FastAPI(title="Combat Tracker API", version="0.3.0")
    if encounter_store is None or template_store is None:
        default_encounters, default_templates = create_stores(load_settings())
        encounter_store = encounter_store if encounter_store is not None else default_encounters
        template_store = template_store if template_store is not None else default_templates

    session = EncounterSession(store=encounter_store)
    roll = rng if rng is not None else random.random
    app.state.session = session

    def get_session() -> EncounterSession:
        return session

    def get_templates() -> TemplateStore:
        return template_store

    def state_response(
        local_session: EncounterSession, events: list[dict[str, Any]] | None = None
    ) -> EncounterStateResponse:
        return EncounterStateResponse(
            state=local_session.encounter,
            events=events or [],
            canUndo=bool(local_session.state.undo_stack),
        )

    @app.get("/api/encounter", response_model=EncounterStateResponse)
    def get_encounter(local_session: EncounterSession = Depends(get_session)) -> EncounterStateResponse:
        return state_response(local_session)

    @app.post("/api/encounter/actions", response_model=EncounterStateResponse)
    def post_action(
        payload: ActionEnvelope,
        local_session: EncounterSession = Depends(get_session),
    ) -> EncounterStateResponse:
        result = local_session.dispatch(payload.action)
        return state_response(local_session, result.engine_events)

    @app.get("/api/encounter/turn-groups")
    def get_turn_groups(local_session: EncounterSession = Depends(get_session)) -> dict[str, Any]:
        encounter = local_session.encounter
        groups = build_turn_groups(encounter["combatants"])
        current = groups[resolve_current_group_index(encounter, groups)].key if groups else None
        return {
            "round": encounter["round"],
            "currentKey": current,
            "groups": [group.to_dict() for group in groups],
            "pending": [group.to_dict() for group in build_pending_groups(encounter["combatants"])],
        }

    @app.get("/api/encounter/export", response_class=PlainTextResponse)
    def get_export(local_session: EncounterSession = Depends(get_session)) -> PlainTextResponse:
        return PlainTextResponse(export_encounter(local_session.encounter), media_type="application/json")

    @app.post("/api/encounter/import", response_model=EncounterStateResponse)
    def post_import(
        payload: ImportRequest,
        local_session: EncounterSession = Depends(get_session),
    ) -> EncounterStateResponse:
        try:
            local_session.import_document(payload.encounter)
        except InvalidEncounterError as exc:
            logger.info("Rejected encounter import: %s", exc)
            raise HTTPException(status_code=422, detail=f"Invalid encounter: {exc}") from exc
        return state_response(local_session)

    @app.post("/api/encounter/combatants/from-template", response_model=EncounterStateResponse)
    def post_spawn_template(
        payload: TemplateSpawnRequest,
        local_session: EncounterSession = Depends(get_session),
        local_templates: TemplateStore = Depends(get_templates),
    ) -> EncounterStateResponse:
        template = next((t for t in local_templates.load() if t["id"] == payload.templateId), None)
        if template is None:
            raise HTTPException(status_code=404, detail="Template not found")
        spawn = payload_from_template(template, payload.count, roll)
        result = local_session.dispatch({"type": "ADD_COMBATANT", "payload": spawn})
        return state_response(local_session, result.engine_events)

    @app.get("/api/templates", response_model=TemplatesResponse)
    def get_templates_list(local_templates: TemplateStore = Depends(get_templates)) -> TemplatesResponse:
        return TemplatesResponse(templates=local_templates.load())

    @app.put("/api/templates/{template_id}", response_model=TemplatesResponse)
    def put_template(
        template_id: str,
        template: dict[str, Any],
        local_templates: TemplateStore = Depends(get_templates),
    ) -> TemplatesResponse:
        now = utc_now_iso()
        try:
            (validated,) = import_templates([{"createdAt": now, "updatedAt": now, **template, "id": template_id}])
        except InvalidTemplateError as exc:
            raise HTTPException(status_code=422, detail=f"Invalid template: {exc}") from exc
        templates = upsert_template(local_templates.load(), sanitize_template(validated))
        local_templates.save(templates)
        return TemplatesResponse(templates=templates)

    @app.delete("/api/templates/{template_id}", response_model=TemplatesResponse)
    def remove_template(
        template_id: str,
        local_templates: TemplateStore = Depends(get_templates),
    ) -> TemplatesResponse:
        templates = delete_template(local_templates.load(), template_id)
        local_templates.save(templates)
        return TemplatesResponse(templates=templates)

    @app.post("/api/templates/from-combatant/{combatant_id}", response_model=TemplatesResponse)
    def post_template_from_combatant(
        combatant_id: str,
        local_session: EncounterSession = Depends(get_session),
        local_templates: TemplateStore = Depends(get_templates),
    ) -> TemplatesResponse:
        combatant = next((c for c in local_session.encounter["combatants"] if c["id"] == combatant_id), None)
        if combatant is None:
            raise HTTPException(status_code=404, detail="Combatant not found")
        templates = save_combatant_as_template(local_templates.load(), combatant)
        local_templates.save(templates)
        return TemplatesResponse(templates=templates)

    @app.post("/api/dice/roll")
    def post_dice_roll(payload: DiceRollRequest) -> dict[str, Any]:
        try:
            return roll_dice_expression(payload.expression, roll).to_dict()
        except DiceExpressionError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc

    return app


app = create_app()
