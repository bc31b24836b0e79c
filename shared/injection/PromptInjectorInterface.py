from abc import ABC, abstractmethod

from shared.models.retrieval import PromptInjection


class PromptInjectorInterface(ABC):
    """The host's prompt-injection point."""

    @abstractmethod
    def set_extension_prompt(self, injection: PromptInjection) -> None:
        """
        Replaces whatever was injected under injection.tag. Empty text clears the tag.
        """
        pass

    @abstractmethod
    def get_extension_prompt(self, tag: str) -> PromptInjection | None:
        pass
