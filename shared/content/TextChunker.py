"""Recursive text splitting with sentence-aware overlap stitching."""

from pydantic import BaseModel

DEFAULT_DELIMITERS = ["\n\n", "\n", " ", ""]

_END_PUNCTUATION = frozenset(
    [".", "!", "?", "*", '"', ")", "}", "`", "]", "$", "。", "！", "？", "”", "）", "】", "’", "」", "_"]
)
_START_MARKERS = (".", "!", "?", "\n")


class ChunkSegment(BaseModel):
    """A chunk split into its own core text and the overlap borrowed from neighbours.

    Attributes:
        core: The text produced by the recursive split. Never longer than the target size.
        head: Tail of the previous chunk, trimmed forward to a sentence start.
        tail: Head of the next chunk, trimmed back to a sentence end.
    """

    core: str
    head: str = ""
    tail: str = ""

    @property
    def text(self) -> str:
        return " ".join(part for part in (self.head, self.core, self.tail) if part)


def trim_to_end_sentence(text: str) -> str:
    """Cut text after the last sentence-ending punctuation mark."""
    if not text:
        return ""
    last = -1
    for i in range(len(text) - 1, -1, -1):
        if text[i] in _END_PUNCTUATION:
            last = i - 1 if i > 0 and text[i - 1].isspace() else i
            break
    if last == -1:
        return text.rstrip()
    return text[:last + 1].rstrip()


def trim_to_start_sentence(text: str) -> str:
    """Drop everything up to the first sentence boundary in text."""
    if not text:
        return ""
    positions = [(text.find(marker), marker) for marker in _START_MARKERS]
    positions = [(pos, marker) for pos, marker in positions if pos > 0]
    if not positions:
        return text
    first, marker = min(positions)
    if marker == "\n":
        return text[first + 1:]
    return text[first + 2:]


def split_recursive(text: str, length: int, delimiters: list[str]) -> list[str]:
    """Split text into pieces of at most `length` characters.

    Tries each delimiter in order and only descends to the next one for
    segments that are still too long. Adjacent short pieces are merged back
    with the delimiter they were split on while they fit.
    """
    if length <= 0:
        return [text]

    delimiter = delimiters[0] if delimiters else ""
    parts = list(text) if delimiter == "" else text.split(delimiter)

    flat_parts: list[str] = []
    for part in parts:
        if len(part) < length or delimiter == "":
            flat_parts.append(part)
        else:
            flat_parts.extend(split_recursive(part, length, delimiters[1:]))

    result: list[str] = []
    i = 0
    while i < len(flat_parts):
        current = [flat_parts[i]]
        current_length = len(flat_parts[i])
        for next_part in flat_parts[i + 1:]:
            if current_length + len(delimiter) + len(next_part) > length:
                break
            current.append(next_part)
            current_length += len(delimiter) + len(next_part)
        i += len(current)
        result.append(delimiter.join(current))
    return result


class TextChunker:
    """Splits text into bounded chunks with optional overlap between neighbours."""

    def __init__(self, chunk_size: int, overlap_percent: int = 0, force_delimiter: str = ""):
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self.chunk_size = chunk_size
        self.overlap_percent = overlap_percent
        self.force_delimiter = force_delimiter

    def get_delimiters(self) -> list[str]:
        if self.force_delimiter:
            return [self.force_delimiter, *DEFAULT_DELIMITERS]
        return list(DEFAULT_DELIMITERS)

    def get_overlap_size(self) -> int:
        # round half up, not Python's banker's rounding
        return int(self.chunk_size * self.overlap_percent / 100 + 0.5)

    def get_target_size(self) -> int:
        overlap_size = self.get_overlap_size()
        if overlap_size <= 0:
            return self.chunk_size
        return max(self.chunk_size - overlap_size, 1)

    def split_segments(self, text: str) -> list[ChunkSegment]:
        """Split text and attach the overlap of each chunk's neighbours.

        Returns:
            list[ChunkSegment]: One segment per chunk, empty for blank text.
        """
        if not text or not text.strip():
            return []

        cores = split_recursive(text, self.get_target_size(), self.get_delimiters())
        overlap_size = self.get_overlap_size()
        if overlap_size <= 0:
            return [ChunkSegment(core=core) for core in cores]

        half = overlap_size // 2
        segments = []
        for index, core in enumerate(cores):
            head = ""
            tail = ""
            if half > 0 and index > 0:
                head = trim_to_start_sentence(cores[index - 1][-half:])
            if half > 0 and index + 1 < len(cores):
                tail = trim_to_end_sentence(cores[index + 1][:half])
            segments.append(ChunkSegment(core=core, head=head, tail=tail))
        return segments

    def split(self, text: str) -> list[str]:
        """Split text into the chunk strings that get embedded."""
        return [segment.text for segment in self.split_segments(text)]
