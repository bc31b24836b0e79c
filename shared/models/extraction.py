"""Models for tag-expression parsing and extraction results."""

from typing import Literal

from pydantic import BaseModel, Field


class ExcludeRule(BaseModel):
    """One exclusion inside a tag expression.

    Attributes:
        type:    "regex" for a /pattern/flags token, "tag" for a tag name.
        pattern: Regex source, set when type is "regex".
        flags:   Regex flags as written (g, i, m, u, y), "gi" when omitted.
        name:    Tag name as written (bare or in <tag> form), set when type is "tag".
    """

    type: Literal["regex", "tag"]
    pattern: str | None = None
    flags: str = ""
    name: str | None = None


class TagExpression(BaseModel):
    main_tag: str
    exclude_tags: list[ExcludeRule] = []


class Diagnostic(BaseModel):
    """Something the tag filter skipped or worked around."""

    expression: str
    message: str
    level: Literal["warning", "error"] = "warning"


class ExtractionStats(BaseModel):
    original_blocks: int = 0
    excluded_blocks: int = 0
    blacklisted_blocks: int = 0
    final_blocks: int = 0

    def add(self, other: "ExtractionStats") -> None:
        self.original_blocks += other.original_blocks
        self.excluded_blocks += other.excluded_blocks
        self.blacklisted_blocks += other.blacklisted_blocks
        self.final_blocks += other.final_blocks


class ExtractionResult(BaseModel):
    """Outcome of applying tag expressions to one text.

    Attributes:
        text:        Joined surviving blocks, or the original text when nothing was extracted.
        blocks:      Surviving blocks in expression order.
        fell_back:   True when the original text was returned unchanged.
        diagnostics: Expressions that were skipped and why.
        stats:       Block counts per filtering stage.
    """

    text: str
    blocks: list[str] = []
    fell_back: bool = False
    diagnostics: list[Diagnostic] = []
    stats: ExtractionStats = Field(default_factory=ExtractionStats)
