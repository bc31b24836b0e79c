from shared.injection.PromptInjectorInterface import PromptInjectorInterface
from shared.models.retrieval import PromptInjection


class PromptInjectionRecorder(PromptInjectorInterface):
    """Keeps the current injection per tag so the host can pick it up over the API."""

    def __init__(self):
        self._prompts: dict[str, PromptInjection] = {}

    def set_extension_prompt(self, injection: PromptInjection) -> None:
        if not injection.text:
            self._prompts.pop(injection.tag, None)
            return
        self._prompts[injection.tag] = injection

    def get_extension_prompt(self, tag: str) -> PromptInjection | None:
        return self._prompts.get(tag)

    def get_all(self) -> dict[str, PromptInjection]:
        return dict(self._prompts)
