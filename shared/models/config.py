"""Configuration models.

EnvConfig describes a single environment variable a client needs.
VectorSettings is the feature configuration persisted through the settings
store; it is loaded once, merged with these defaults and mutated only through
SettingsManager.update_settings().
"""

from enum import IntEnum

from pydantic import BaseModel, Field

from shared.models.task import VectorTask


class EnvConfig(BaseModel):
    """
    Represents a single configuration parameter required for a env setting.

    Attributes:
        env_key (str): The key/name of the environment variable to read.
        val_type (str): The expected type of the environment variable's value. Supported types are "string", "number", "bool", and "list".
        default (str | int | bool | list | None): An optional default value if the environment variable is not set. If None, the variable is required and an error will be raised if it is not set.
    """

    env_key: str
    val_type: str
    default: str | int | float | bool | list | None = None


class PromptPosition(IntEnum):
    """Where the host places the injected block."""
    NONE = -1
    IN_PROMPT = 0
    IN_CHAT = 1
    BEFORE_PROMPT = 2


class PromptRole(IntEnum):
    """Role of the injected block when placed in-chat at a depth."""
    SYSTEM = 0
    USER = 1
    ASSISTANT = 2


DEFAULT_TEMPLATE = (
    "<must_know>The following was retrieved from the background knowledge base "
    "and contains important context, settings or details:\n{{text}}</must_know>"
)


class ContentTags(BaseModel):
    """Wrapper tag names used per content type in the injected block."""
    chat: str = "past_chat"
    file: str = "databank"
    world_info: str = "world_part"


class ChatRange(BaseModel):
    start: int = 0
    end: int = -1  # -1 = up to the last message


class ChatTypes(BaseModel):
    user: bool = True
    assistant: bool = True


class ChatSelection(BaseModel):
    enabled: bool = False
    range: ChatRange = Field(default_factory=ChatRange)
    types: ChatTypes = Field(default_factory=ChatTypes)
    tags: str = ""  # comma-separated tag expressions
    include_hidden: bool = False

    def get_tag_list(self) -> list[str]:
        """Split the comma-separated tag setting into trimmed, non-empty expressions.

        A piece starting with a closing tag is joined back onto the previous
        one, so complex "START,</end>" expressions survive the split. A comma
        always starts a new expression otherwise: "a - b,c" yields "a - b" and
        "c", so an expression can carry only one exclusion token, and a regex
        exclusion must not contain a comma.

        Returns:
            list[str]: The configured tag expressions in order.
        """
        expressions: list[str] = []
        for piece in self.tags.split(","):
            piece = piece.strip()
            if not piece:
                continue
            if piece.startswith("</") and expressions:
                expressions[-1] = f"{expressions[-1]},{piece}"
            else:
                expressions.append(piece)
        return expressions


class FileSelection(BaseModel):
    enabled: bool = False
    selected: list[str] = []  # attachment urls


class WorldInfoSelection(BaseModel):
    enabled: bool = False
    selected: dict[str, list[int]] = {}  # world name -> entry uids


class SelectedContent(BaseModel):
    chat: ChatSelection = Field(default_factory=ChatSelection)
    files: FileSelection = Field(default_factory=FileSelection)
    world_info: WorldInfoSelection = Field(default_factory=WorldInfoSelection)


class VectorSettings(BaseModel):
    """Process-wide feature configuration.

    Attributes:
        master_enabled:        Master switch for every feature of the bridge.
        source:                Active embedding source ("transformers", "vllm", "ollama").
        local_model:           Model name for the transformers source.
        vllm_model, vllm_url:  Connection for the vLLM source.
        ollama_model, ollama_url, ollama_keep: Connection for the Ollama source.
        auto_vectorize:        Whether chat events trigger the automatic pass.
        chunk_size:            Maximum characters per chunk before overlap.
        overlap_percent:       Share of chunk_size stitched in from neighbours.
        score_threshold:       Minimum similarity score returned by the backend.
        force_chunk_delimiter: Delimiter tried before the default ones.
        enabled:               Whether retrieval runs on generation turns.
        query_messages:        Number of recent messages forming the query.
        max_results:           Per-task top-k and global result cap.
        template:              Injection template with a {{text}} placeholder.
        position, depth, depth_role, include_wi: Host prompt-injection parameters.
        content_tags:          Wrapper tags per content type.
        selected_content:      What the collector reads.
        content_blacklist:     Keywords dropping an extracted block.
        vector_tasks:          Task lists keyed by chat id.
    """

    master_enabled: bool = True

    # embedding source
    source: str = "transformers"
    local_model: str = ""
    vllm_model: str = ""
    vllm_url: str = ""
    ollama_model: str = "rjmalagon/gte-qwen2-1.5b-instruct-embed-f16"
    ollama_url: str = ""
    ollama_keep: bool = False

    # vectorization
    auto_vectorize: bool = True
    chunk_size: int = Field(default=1000, gt=0)
    overlap_percent: int = Field(default=10, ge=0, lt=100)
    score_threshold: float = 0.25
    force_chunk_delimiter: str = ""

    # query
    enabled: bool = True
    query_messages: int = Field(default=3, ge=1)
    max_results: int = Field(default=10, ge=1)

    # injection
    template: str = DEFAULT_TEMPLATE
    position: PromptPosition = PromptPosition.IN_PROMPT
    depth: int = 2
    depth_role: PromptRole = PromptRole.SYSTEM
    include_wi: bool = False

    content_tags: ContentTags = Field(default_factory=ContentTags)
    selected_content: SelectedContent = Field(default_factory=SelectedContent)
    content_blacklist: list[str] = []

    vector_tasks: dict[str, list[VectorTask]] = {}
