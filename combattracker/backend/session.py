"""Single dispatch point that runs the reducer and persists the result."""

from __future__ import annotations

import logging
from typing import Any

from combattracker.backend.codec import import_encounter
from combattracker.backend.engine import ActionResult, apply_action
from combattracker.backend.state import TrackerState, make_initial_state
from combattracker.backend.store import EncounterStore

logger = logging.getLogger(__name__)


class EncounterSession:
    """Holds the live tracker state; every change goes through ``dispatch``."""

    def __init__(self, store: EncounterStore) -> None:
        self._store = store
        self.state: TrackerState = make_initial_state(store.load())

    @property
    def encounter(self) -> dict[str, Any]:
        return self.state.encounter

    def dispatch(self, action: dict[str, Any]) -> ActionResult:
        result = apply_action(state=self.state, action=action)
        for event in result.engine_events:
            logger.info("Encounter event %s", event.get("kind"), extra={"event": event})
        if result.state is self.state:
            logger.debug("Action %s left the encounter unchanged", action.get("type"))
            return result

        self.state = result.state
        self._store.save(self.state.encounter)
        return result

    def import_document(self, raw: str | bytes | dict[str, Any]) -> dict[str, Any]:
        """Replace the encounter with an imported one.

        Raises ``InvalidEncounterError`` and keeps the current encounter when
        the document is not valid.
        """
        encounter = import_encounter(raw)
        self.dispatch({"type": "IMPORT_ENCOUNTER", "encounter": encounter})
        return self.encounter
