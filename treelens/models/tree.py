"""Read-only accessor over a tree-sitter syntax tree."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator, Optional

from pydantic import BaseModel, Field
from tree_sitter import Node, Tree

from treelens.errors import MalformedTreeError


class ParsedSource(BaseModel):
    """Represents a successfully parsed source buffer."""

    model_config = {"arbitrary_types_allowed": True}

    path: Path = Field(description="Path to the source file")
    language: str = Field(description="Programming language of the buffer")
    tree: Tree = Field(description="Tree-sitter syntax tree")
    source: bytes = Field(description="Source bytes the tree was parsed from")

    @property
    def root_node(self) -> Node:
        """Get the root node of the tree."""
        return self.tree.root_node

    def syntax(self, tab_width: int = 8) -> "SyntaxTree":
        """Get a read-only accessor over this snapshot."""
        return SyntaxTree(self.tree, self.source, self.language, tab_width=tab_width)


class SyntaxTree:
    """Snapshot view over a tree and the exact bytes it was parsed from.

    The accessor never mutates the tree. Node references handed out are only
    valid for this snapshot.
    """

    def __init__(self, tree: Tree, source: bytes, language: str, tab_width: int = 8):
        self.tree = tree
        self.source = source
        self.language = language
        self.tab_width = tab_width
        self._line_starts = [0]
        for index, byte in enumerate(source):
            if byte == 0x0A:
                self._line_starts.append(index + 1)

    @property
    def root(self) -> Node:
        return self.tree.root_node

    @property
    def line_count(self) -> int:
        return len(self._line_starts)

    def check_fresh(self) -> None:
        """Fail fast if the tree no longer describes the source."""
        root = self.tree.root_node
        if root.has_changes:
            raise MalformedTreeError("Tree was edited but not re-parsed")
        if root.end_byte > len(self.source):
            raise MalformedTreeError(
                f"Tree spans {root.end_byte} bytes but source has only {len(self.source)}"
            )

    def check_node(self, node: Node) -> None:
        """Fail fast if a node reference is stale."""
        if node.has_changes:
            raise MalformedTreeError(f"Node '{node.type}' at byte {node.start_byte} is stale")
        if node.end_byte > len(self.source) or node.start_byte > node.end_byte:
            raise MalformedTreeError(
                f"Node '{node.type}' spans {node.start_byte}-{node.end_byte} outside the source"
            )

    def check_row(self, row: int) -> None:
        if row < 0 or row >= self.line_count:
            raise MalformedTreeError(f"Line {row} is outside the buffer (0-{self.line_count - 1})")

    def check_byte(self, byte: int) -> None:
        if byte < 0 or byte > len(self.source):
            raise MalformedTreeError(f"Position {byte} is outside the buffer (0-{len(self.source)})")

    def node_text(self, node: Node) -> str:
        return self.source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")

    def row_of(self, byte: int) -> int:
        """Row containing a byte offset."""
        low, high = 0, len(self._line_starts) - 1
        while low < high:
            mid = (low + high + 1) // 2
            if self._line_starts[mid] <= byte:
                low = mid
            else:
                high = mid - 1
        return low

    def line_start_byte(self, row: int) -> int:
        return self._line_starts[row]

    def line_end_byte(self, row: int) -> int:
        """Byte offset of the newline ending the row (or end of source)."""
        if row + 1 < len(self._line_starts):
            return self._line_starts[row + 1] - 1
        return len(self.source)

    def line_text(self, row: int) -> str:
        start = self.line_start_byte(row)
        return self.source[start : self.line_end_byte(row)].decode("utf-8", errors="replace")

    def line_bol(self, row: int) -> int:
        """Byte of the first non-blank character on a row (line end if blank)."""
        position = self.line_start_byte(row)
        end = self.line_end_byte(row)
        while position < end and self.source[position] in b" \t\r\f":
            position += 1
        return position

    def is_blank_line(self, row: int) -> bool:
        return self.line_bol(row) == self.line_end_byte(row)

    def column_of(self, byte: int) -> int:
        """Display column of a byte offset, expanding tabs."""
        start = self.line_start_byte(self.row_of(byte))
        prefix = self.source[start:byte].decode("utf-8", errors="replace")
        return len(prefix.expandtabs(self.tab_width))

    def current_indentation(self, row: int) -> int:
        return self.column_of(self.line_bol(row))

    def bol_column(self, node: Node) -> int:
        """Column of the first non-blank character on the node's start line."""
        return self.current_indentation(self.row_of(node.start_byte))

    def starts_own_line(self, node: Node) -> bool:
        """True if only whitespace precedes the node on its start line."""
        return self.line_bol(self.row_of(node.start_byte)) == node.start_byte

    def field_name(self, node: Node) -> Optional[str]:
        """Field name under which the node hangs off its parent."""
        parent = node.parent
        if parent is None:
            return None
        for index, child in enumerate(parent.children):
            if child == node:
                return parent.field_name_for_child(index)
        return None

    def smallest_enclosing(self, byte: int) -> Optional[Node]:
        """Smallest node whose span contains the byte (None for an empty buffer)."""
        if not self.source.strip():
            return None
        return self.root.descendant_for_byte_range(byte, byte)

    def walk(self, byte_range: Optional[tuple[int, int]] = None) -> Iterator[Node]:
        """Pre-order traversal, optionally restricted to nodes touching a byte range."""
        stack = [self.root]
        while stack:
            node = stack.pop()
            if byte_range is not None:
                start, end = byte_range
                if node.end_byte < start or node.start_byte > end:
                    continue
            yield node
            stack.extend(reversed(node.children))

    def position_target(self, row: int) -> "MatchTarget":
        """Resolve the start of a line to the node/parent pair indentation rules see.

        - a token starts the line: the largest node starting there (below the
          root) and its parent;
        - the line is blank: no node, parent is the smallest enclosing node;
        - the line is the interior of a multi-line token: no node, the token
          is the parent;
        - the buffer is empty: neither.
        """
        self.check_row(row)
        bol = self.line_bol(row)
        if not self.source.strip():
            return MatchTarget(self, None, None, bol=bol, row=row)

        root = self.root
        smallest = root.descendant_for_byte_range(bol, bol)
        if self.is_blank_line(row) or smallest is None:
            return MatchTarget(self, None, smallest, bol=bol, row=row)
        if smallest.start_byte < bol:
            return MatchTarget(self, None, smallest, bol=bol, row=row)

        node = smallest
        while (
            node.parent is not None
            and node.parent != root
            and node.parent.start_byte == bol
        ):
            node = node.parent
        return MatchTarget(self, node, node.parent, bol=bol, row=row)


@dataclass
class MatchTarget:
    """What a predicate is evaluated against: a node, or a line position."""

    syntax: SyntaxTree
    node: Optional[Node]
    parent: Optional[Node]
    bol: Optional[int] = None
    row: Optional[int] = None
    # (query, capture) -> captured node keys, shared for one request
    captures: dict[tuple[str, str], set[tuple[int, int, str]]] = field(default_factory=dict)

    @classmethod
    def for_node(
        cls,
        syntax: SyntaxTree,
        node: Node,
        captures: Optional[dict[Any, Any]] = None,
    ) -> "MatchTarget":
        row = syntax.row_of(node.start_byte)
        return cls(
            syntax,
            node,
            node.parent,
            bol=syntax.line_bol(row),
            row=row,
            captures=captures if captures is not None else {},
        )

    @property
    def grandparent(self) -> Optional[Node]:
        return self.parent.parent if self.parent is not None else None
