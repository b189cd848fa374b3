from .i18n import normalize_language
from .kv import KeyValueStore


KEYS = {
    "language": "todo:language",        # 'he' | 'en'
    "updates_opt_in": "todo:updatesOptIn",  # '1' | '0'
    "theme": "todo:theme",              # 'light' | 'dark'
}


class LocalSettings:
    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    def get_language(self) -> str:
        return "en" if self.store.get(KEYS["language"]) == "en" else "he"

    def set_language(self, language: str) -> None:
        self.store.set(KEYS["language"], normalize_language(language))

    def get_updates_opt_in(self) -> bool:
        return self.store.get(KEYS["updates_opt_in"]) == "1"

    def set_updates_opt_in(self, enabled: bool) -> None:
        self.store.set(KEYS["updates_opt_in"], "1" if enabled else "0")

    def get_theme(self) -> str:
        return "dark" if self.store.get(KEYS["theme"]) == "dark" else "light"

    def set_theme(self, theme: str) -> None:
        self.store.set(KEYS["theme"], "dark" if theme == "dark" else "light")
