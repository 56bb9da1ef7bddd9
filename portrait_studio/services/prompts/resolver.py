"""
Prompt Resolver: style selector -> literal instruction text plus provenance.

Resolution never fails. Unknown ids and Record Store errors are logged and
fall through to the next option, ending at the configured default prompt.
"""
import logging
from typing import Literal

from pydantic import BaseModel
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from portrait_studio.models.generation import Generation
from portrait_studio.models.preset import Preset
from portrait_studio.services.app_settings.settings_service import RuntimeConfig
from portrait_studio.services.prompts.presets import get_builtin

logger = logging.getLogger(__name__)

# remixFrom="seed:<preset id>" remixes a preset instead of a prior generation.
SEED_MARKER = "seed:"

Provenance = Literal["remix", "preset", "custom"]


class StyleSelector(BaseModel):
    model_config = {"frozen": True}

    prompt_id: str | None = None
    remix_from: str | None = None
    custom_prompt: str | None = None


class ResolvedPrompt(BaseModel):
    model_config = {"frozen": True}

    text: str
    provenance: Provenance
    stored_preset_id: str | None = None
    remixed_from: str | None = None


def _clean(value: str | None) -> str | None:
    value = (value or "").strip()
    return value or None


class PresetService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, preset_id: str) -> Preset | None:
        return self.db.query(Preset).filter(Preset.id == preset_id).one_or_none()

    def increment_usage(self, preset_id: str) -> None:
        self.db.execute(
            update(Preset)
            .where(Preset.id == preset_id)
            .values(usage_count=Preset.usage_count + 1)
        )
        self.db.commit()


class PromptResolver:
    def __init__(self, db: Session, config: RuntimeConfig) -> None:
        self.db = db
        self.config = config
        self.presets = PresetService(db)

    def _lookup_preset(self, preset_id: str) -> tuple[str, str | None] | None:
        """(prompt text, stored preset id or None for built-ins), or None when unknown."""
        builtin = get_builtin(preset_id)
        if builtin:
            return builtin.prompt, None
        try:
            stored = self.presets.get(preset_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning("preset_lookup_failed", extra={"preset_id": preset_id, "error": str(e)})
            return None
        if stored and _clean(stored.prompt):
            return stored.prompt, stored.id
        logger.info("preset_not_found", extra={"preset_id": preset_id})
        return None

    def _lookup_generation_prompt(self, generation_id: str) -> str | None:
        try:
            prompt = (
                self.db.query(Generation.prompt)
                .filter(Generation.id == generation_id)
                .scalar()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning("remix_lookup_failed", extra={"generation_id": generation_id, "error": str(e)})
            return None
        if not _clean(prompt):
            logger.info("remix_source_not_found", extra={"generation_id": generation_id})
            return None
        return prompt

    def _resolve_remix(self, remix_from: str) -> ResolvedPrompt | None:
        if remix_from.startswith(SEED_MARKER):
            seed_id = remix_from[len(SEED_MARKER):]
            found = self._lookup_preset(seed_id) if seed_id else None
            if found:
                text, stored_id = found
                return ResolvedPrompt(text=text, provenance="remix", stored_preset_id=stored_id, remixed_from=seed_id)
            return None
        text = self._lookup_generation_prompt(remix_from)
        if text:
            return ResolvedPrompt(text=text, provenance="remix", remixed_from=remix_from)
        return None

    def resolve(self, selector: StyleSelector | None) -> ResolvedPrompt:
        selector = selector or StyleSelector()

        remix_from = _clean(selector.remix_from)
        if remix_from:
            resolved = self._resolve_remix(remix_from)
            if resolved:
                return resolved

        prompt_id = _clean(selector.prompt_id)
        if prompt_id:
            found = self._lookup_preset(prompt_id)
            if found:
                text, stored_id = found
                return ResolvedPrompt(text=text, provenance="preset", stored_preset_id=stored_id)

        custom = _clean(selector.custom_prompt)
        if custom:
            return ResolvedPrompt(text=custom, provenance="custom")

        return ResolvedPrompt(text=self.config.default_prompt, provenance="custom")
