import json
import os

from shared.helper.HelperConfig import HelperConfig
from shared.settings.SettingsStoreInterface import SettingsStoreInterface


class SettingsStoreFile(SettingsStoreInterface):
    """Keeps the settings document as a JSON file (SETTINGS_FILE, default $ROOT_DIR/data/settings.json)."""

    def __init__(self, helper_config: HelperConfig, path: str | None = None):
        self.logging = helper_config.get_logger()
        default_path = os.path.join(os.getenv("ROOT_DIR", os.getcwd()), "data", "settings.json")
        self._path = path or helper_config.get_string_val("SETTINGS_FILE", default=default_path)

    def get_path(self) -> str:
        return self._path

    def load(self) -> dict:
        if not os.path.exists(self._path):
            self.logging.info("No settings file at %s, starting from defaults.", self._path)
            return {}
        with open(self._path, encoding="utf-8") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                self.logging.error("Settings file %s is not valid JSON (%s), starting from defaults.", self._path, e)
                return {}
        if not isinstance(data, dict):
            self.logging.error("Settings file %s does not hold an object, starting from defaults.", self._path)
            return {}
        return data

    def save(self, data: dict) -> None:
        directory = os.path.dirname(self._path)
        if directory and not os.path.exists(directory):
            os.makedirs(directory)
        tmp_path = f"{self._path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, self._path)
        self.logging.debug("Settings saved to %s", self._path)
