"""Results handed back to the host editor."""

from enum import Enum

from pydantic import BaseModel, Field


class ThingCategory(str, Enum):
    """Coarse navigable categories of syntax nodes."""

    DEFINITION = "definition"
    EXPRESSION = "expression"
    STATEMENT = "statement"
    COMMENT = "comment"
    STRING = "string"
    TEXT = "text"


class HighlightSpan(BaseModel):
    """A tagged byte span of the highlighting overlay."""

    start_byte: int = Field(ge=0, description="Start of the span (inclusive)")
    end_byte: int = Field(ge=0, description="End of the span (exclusive)")
    tag: str = Field(description="Highlight tag, e.g. 'comment' or 'keyword'")
    feature: str = Field(description="Feature that produced the tag")

    @property
    def span(self) -> tuple[int, int]:
        return (self.start_byte, self.end_byte)

    def __str__(self) -> str:
        return f"[{self.start_byte},{self.end_byte}) {self.tag} ({self.feature})"


class IndentResult(BaseModel):
    """Resolved anchor column plus signed offset for one line."""

    row: int = Field(ge=0, description="Row (0-indexed) the result is for")
    anchor_column: int = Field(description="Column the anchor resolved to")
    offset: int = Field(description="Signed offset added to the anchor")
    rule_name: str | None = Field(default=None, description="Rule that matched, if any")

    @property
    def column(self) -> int:
        """Final column, never negative."""
        return max(0, self.anchor_column + self.offset)


class OutlineEntry(BaseModel):
    """A classified node for outline/index construction."""

    category: ThingCategory = Field(description="Thing category of the node")
    name: str | None = Field(default=None, description="Name for definitions")
    node_type: str = Field(description="Grammar node type")
    start_byte: int = Field(ge=0)
    end_byte: int = Field(ge=0)
    start_line: int = Field(ge=1, description="Start line number (1-indexed)")
    end_line: int = Field(ge=1, description="End line number (1-indexed)")

    def __str__(self) -> str:
        label = self.name or self.node_type
        return f"{label} ({self.category.value}) lines {self.start_line}-{self.end_line}"
