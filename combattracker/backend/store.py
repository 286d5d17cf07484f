"""Persistence ports and implementations for encounter and template blobs."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
import json
import logging
import os
from pathlib import Path
from typing import Any, Protocol

from combattracker.backend.codec import InvalidEncounterError, import_encounter
from combattracker.backend.config import BackendSettings
from combattracker.backend.templates import sanitize_templates

logger = logging.getLogger(__name__)

ENCOUNTER_KEY = "combat_tracker_v1"
TEMPLATES_KEY = "combatant_templates"
ENCOUNTER_FILE = "encounter.json"
TEMPLATES_FILE = "templates.json"


class EncounterStore(Protocol):
    def load(self) -> dict[str, Any] | None:
        """Return the saved encounter, or None when missing or unreadable."""

    def save(self, encounter: dict[str, Any]) -> None:
        """Persist the encounter; failures are logged, never raised."""


class TemplateStore(Protocol):
    def load(self) -> list[dict[str, Any]]:
        """Return saved templates, or an empty list when missing or unreadable."""

    def save(self, templates: list[dict[str, Any]]) -> None:
        """Persist the template list; failures are logged, never raised."""


def _encounter_from_blob(blob: Any) -> dict[str, Any] | None:
    if blob is None:
        return None
    try:
        return import_encounter(blob)
    except InvalidEncounterError as exc:
        logger.warning("Discarding stored encounter: %s", exc)
        return None


@dataclass
class InMemoryEncounterStore:
    encounter: dict[str, Any] | None = None

    def load(self) -> dict[str, Any] | None:
        return _encounter_from_blob(copy.deepcopy(self.encounter))

    def save(self, encounter: dict[str, Any]) -> None:
        self.encounter = copy.deepcopy(encounter)


@dataclass
class InMemoryTemplateStore:
    templates: list[dict[str, Any]] = field(default_factory=list)

    def load(self) -> list[dict[str, Any]]:
        return sanitize_templates(copy.deepcopy(self.templates))

    def save(self, templates: list[dict[str, Any]]) -> None:
        self.templates = copy.deepcopy(templates)


def _read_json(path: Path) -> Any:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Could not read %s: %s", path, exc)
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.warning("Ignoring corrupt JSON in %s: %s", path, exc)
        return None


def _write_json(path: Path, payload: Any) -> None:
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path.write_text(json.dumps(payload), encoding="utf-8")
        os.replace(tmp_path, path)
    except OSError as exc:
        logger.warning("Could not write %s: %s", path, exc)


@dataclass
class JsonFileEncounterStore:
    path: Path

    def load(self) -> dict[str, Any] | None:
        return _encounter_from_blob(_read_json(self.path))

    def save(self, encounter: dict[str, Any]) -> None:
        _write_json(self.path, {"encounter": encounter})


@dataclass
class JsonFileTemplateStore:
    path: Path

    def load(self) -> list[dict[str, Any]]:
        return sanitize_templates(_read_json(self.path))

    def save(self, templates: list[dict[str, Any]]) -> None:
        _write_json(self.path, templates)


@dataclass
class PostgresBlobStore:
    database_url: str
    key: str

    def _connect(self) -> Any:
        import psycopg

        return psycopg.connect(self.database_url)

    def read_blob(self) -> Any:
        import psycopg

        try:
            with self._connect() as conn:
                with conn.cursor() as cur:
                    cur.execute("SELECT value FROM tracker_blobs WHERE key = %s", (self.key,))
                    row = cur.fetchone()
        except psycopg.Error as exc:
            logger.warning("Could not load %s from database: %s", self.key, exc)
            return None

        if row is None:
            return None
        (value,) = row
        if isinstance(value, (dict, list)):
            return value
        try:
            return json.loads(value)
        except (TypeError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring corrupt blob %s: %s", self.key, exc)
            return None

    def write_blob(self, payload: Any) -> None:
        import psycopg

        now = datetime.now(timezone.utc)
        try:
            with self._connect() as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        """
                        INSERT INTO tracker_blobs (key, value, updated_at)
                        VALUES (%s, %s::jsonb, %s)
                        ON CONFLICT (key) DO UPDATE
                        SET value = EXCLUDED.value, updated_at = EXCLUDED.updated_at
                        """,
                        (self.key, json.dumps(payload), now),
                    )
                conn.commit()
        except psycopg.Error as exc:
            logger.warning("Could not save %s to database: %s", self.key, exc)


class PostgresEncounterStore(PostgresBlobStore):
    def __init__(self, database_url: str, key: str = ENCOUNTER_KEY) -> None:
        super().__init__(database_url=database_url, key=key)

    def load(self) -> dict[str, Any] | None:
        return _encounter_from_blob(self.read_blob())

    def save(self, encounter: dict[str, Any]) -> None:
        self.write_blob({"encounter": encounter})


class PostgresTemplateStore(PostgresBlobStore):
    def __init__(self, database_url: str, key: str = TEMPLATES_KEY) -> None:
        super().__init__(database_url=database_url, key=key)

    def load(self) -> list[dict[str, Any]]:
        return sanitize_templates(self.read_blob())

    def save(self, templates: list[dict[str, Any]]) -> None:
        self.write_blob(templates)


def create_stores(settings: BackendSettings) -> tuple[EncounterStore, TemplateStore]:
    if settings.database_url:
        return PostgresEncounterStore(settings.database_url), PostgresTemplateStore(settings.database_url)
    if settings.data_dir:
        data_dir = Path(settings.data_dir)
        return JsonFileEncounterStore(data_dir / ENCOUNTER_FILE), JsonFileTemplateStore(data_dir / TEMPLATES_FILE)
    return InMemoryEncounterStore(), InMemoryTemplateStore()
