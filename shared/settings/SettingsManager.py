"""Owns the process-wide VectorSettings.

Settings are loaded once and merged with the defaults key by key, so
documents written by older or newer versions keep working. All changes go
through update_settings() or mark_dirty(); both schedule a debounced save.
"""

import asyncio
from typing import Any

from pydantic import ValidationError

from shared.helper.HelperConfig import HelperConfig
from shared.models.config import VectorSettings
from shared.settings.SettingsStoreInterface import SettingsStoreInterface


def deep_merge(base: dict, patch: dict) -> dict:
    """Recursively merge patch into a copy of base. Dicts merge, everything else is replaced."""
    merged = dict(base)
    for key, value in patch.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class SettingsManager:
    def __init__(self, helper_config: HelperConfig, store: SettingsStoreInterface):
        self.logging = helper_config.get_logger()
        self._store = store
        self._debounce = helper_config.get_number_val("SETTINGS_SAVE_DEBOUNCE", default=1.0)
        self._settings = VectorSettings()
        self._save_task: asyncio.Task | None = None

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_settings(self) -> VectorSettings:
        return self._settings

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    def load(self) -> VectorSettings:
        """Load the stored document and merge it over the defaults.

        Top-level fields that fail validation fall back to their defaults
        instead of discarding the whole document.

        Returns:
            VectorSettings: The active settings.
        """
        stored = self._store.load()
        merged = deep_merge(VectorSettings().model_dump(mode="json"), stored)
        try:
            self._settings = VectorSettings.model_validate(merged)
        except ValidationError as e:
            defaults = VectorSettings().model_dump(mode="json")
            broken = {err["loc"][0] for err in e.errors() if err["loc"]}
            self.logging.warning("Invalid stored settings for %s, using defaults for those fields.", ", ".join(sorted(map(str, broken))))
            for key in broken:
                if key in defaults:
                    merged[key] = defaults[key]
                else:
                    merged.pop(key, None)
            self._settings = VectorSettings.model_validate(merged)

        # write the repaired document back
        self.schedule_save()
        return self._settings

    def update_settings(self, patch: dict[str, Any]) -> VectorSettings:
        """Apply a partial update as one step.

        Args:
            patch (dict[str, Any]): Nested partial settings, e.g. {"selected_content": {"chat": {"enabled": True}}}.

        Returns:
            VectorSettings: The new active settings.

        Raises:
            ValidationError: If the patched document is invalid. Nothing is changed.
        """
        merged = deep_merge(self._settings.model_dump(mode="json"), patch)
        self._settings = VectorSettings.model_validate(merged)
        self.logging.debug("Settings updated: %s", sorted(patch))
        self.schedule_save()
        return self._settings

    def mark_dirty(self) -> None:
        """Schedule a save after an in-place mutation of the active settings."""
        self.schedule_save()

    ##########################################
    ############### PERSISTENCE ##############
    ##########################################

    def schedule_save(self) -> None:
        """Debounce a save: only the last call within the window writes."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.save_now()
            return
        if self._save_task and not self._save_task.done():
            self._save_task.cancel()
        self._save_task = loop.create_task(self._delayed_save())

    async def _delayed_save(self) -> None:
        await asyncio.sleep(self._debounce)
        self.save_now()

    def save_now(self) -> None:
        self._store.save(self._settings.model_dump(mode="json"))

    async def flush(self) -> None:
        """Write pending changes immediately (used on shutdown)."""
        if self._save_task and not self._save_task.done():
            self._save_task.cancel()
        self._save_task = None
        self.save_now()
