from abc import ABC, abstractmethod


class SettingsStoreInterface(ABC):
    """Port to wherever the host keeps the persisted settings document."""

    @abstractmethod
    def load(self) -> dict:
        """
        Returns the stored settings document, or an empty dict when nothing was stored yet.
        """
        pass

    @abstractmethod
    def save(self, data: dict) -> None:
        """
        Persists the full settings document.
        """
        pass
