"""Data models for the rules system.

Predicates are a closed set of frozen dataclasses built once when a table is
loaded. Every predicate is a pure function of the syntax tree.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, Optional, TypeVar, Union

from treelens.errors import InvalidPredicateError
from treelens.models.results import ThingCategory

_LITERAL_TYPE = re.compile(r"[A-Za-z0-9_]+")


@dataclass(frozen=True)
class TypePattern:
    """Node type matcher: a literal type name or a full-match regex."""

    pattern: str
    regex: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        try:
            compiled = re.compile(self.pattern)
        except re.error as e:
            raise InvalidPredicateError(f"Invalid type pattern '{self.pattern}': {e}") from e
        object.__setattr__(self, "regex", compiled)

    @property
    def is_literal(self) -> bool:
        return _LITERAL_TYPE.fullmatch(self.pattern) is not None

    def matches(self, node_type: str) -> bool:
        if self.is_literal:
            return node_type == self.pattern
        return self.regex.fullmatch(node_type) is not None


class _Nil:
    """Marker for an ancestor that must not exist."""

    _instance: Optional["_Nil"] = None

    def __new__(cls) -> "_Nil":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NIL"


NIL = _Nil()

ChainElement = Union[TypePattern, _Nil, None]


def _pattern(value: Union[str, TypePattern]) -> TypePattern:
    return value if isinstance(value, TypePattern) else TypePattern(value)


def _chain_element(value: Union[str, TypePattern, _Nil, None]) -> ChainElement:
    if value is None or isinstance(value, _Nil):
        return value
    if value == "nil":
        return NIL
    return _pattern(value)


class Predicate:
    """Base class of the predicate variants."""

    def __and__(self, other: "Predicate") -> "And":
        return And(self, other)

    def __or__(self, other: "Predicate") -> "Or":
        return Or(self, other)

    def __invert__(self) -> "Not":
        return Not(self)


@dataclass(frozen=True)
class NodeIs(Predicate):
    """Target node type matches the pattern."""

    type_pattern: TypePattern

    def __init__(self, pattern: Union[str, TypePattern]):
        object.__setattr__(self, "type_pattern", _pattern(pattern))


@dataclass(frozen=True)
class ParentIs(Predicate):
    """Parent node type matches the pattern."""

    type_pattern: TypePattern

    def __init__(self, pattern: Union[str, TypePattern]):
        object.__setattr__(self, "type_pattern", _pattern(pattern))


@dataclass(frozen=True)
class AncestorChain(Predicate):
    """Node, parent and grandparent types; None is a wildcard, NIL means absent."""

    node: ChainElement = None
    parent: ChainElement = None
    grandparent: ChainElement = None

    def __init__(
        self,
        node: Union[str, TypePattern, _Nil, None] = None,
        parent: Union[str, TypePattern, _Nil, None] = None,
        grandparent: Union[str, TypePattern, _Nil, None] = None,
    ):
        object.__setattr__(self, "node", _chain_element(node))
        object.__setattr__(self, "parent", _chain_element(parent))
        object.__setattr__(self, "grandparent", _chain_element(grandparent))


@dataclass(frozen=True)
class Always(Predicate):
    """Catch-all."""


@dataclass(frozen=True)
class FieldIs(Predicate):
    """Node hangs off its parent under a field, and the nested predicate holds."""

    field_name: str
    predicate: Predicate = field(default_factory=Always)


@dataclass(frozen=True)
class StructuralQuery(Predicate):
    """Node is captured under a name by a tree-sitter query."""

    query: str
    capture: str


@dataclass(frozen=True)
class TextMatches(Predicate):
    """Text of the node (or of its child under a field) contains a regex match."""

    pattern: str
    field_name: Optional[str] = None
    regex: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "regex", re.compile(self.pattern))
        except re.error as e:
            raise InvalidPredicateError(f"Invalid text pattern '{self.pattern}': {e}") from e


@dataclass(frozen=True)
class LineMatches(Predicate):
    """Text of the target line, from its first non-blank character, matches a regex."""

    pattern: str
    regex: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "regex", re.compile(self.pattern))
        except re.error as e:
            raise InvalidPredicateError(f"Invalid line pattern '{self.pattern}': {e}") from e


@dataclass(frozen=True)
class NoNode(Predicate):
    """No node starts at the target position (blank line, token interior, empty buffer)."""


@dataclass(frozen=True)
class And(Predicate):
    predicates: tuple[Predicate, ...]

    def __init__(self, *predicates: Predicate):
        object.__setattr__(self, "predicates", tuple(predicates))


@dataclass(frozen=True)
class Or(Predicate):
    predicates: tuple[Predicate, ...]

    def __init__(self, *predicates: Predicate):
        object.__setattr__(self, "predicates", tuple(predicates))


@dataclass(frozen=True)
class Not(Predicate):
    predicate: Predicate


A = TypeVar("A")


@dataclass(frozen=True)
class Rule(Generic[A]):
    """An ordered (predicate, action) pair."""

    predicate: Predicate
    action: A
    name: str = ""


@dataclass
class RuleTable(Generic[A]):
    """Ordered rules; the first matching rule wins unless accumulating."""

    name: str
    rules: list[Rule[A]] = field(default_factory=list)
    accumulating: bool = False

    @property
    def has_catch_all(self) -> bool:
        return bool(self.rules) and isinstance(self.rules[-1].predicate, Always)

    def __iter__(self):
        return iter(self.rules)

    def __len__(self) -> int:
        return len(self.rules)


class Anchor(Enum):
    """Anchor policies for indentation."""

    COLUMN_0 = "column-0"
    PARENT_BOL = "parent-bol"
    STANDALONE_PARENT = "standalone-parent"
    GRAND_PARENT = "grand-parent"
    PREV_ADAPTIVE_PREFIX = "prev-adaptive-prefix"
    PARENT = "parent"
    FIRST_SIBLING = "first-sibling"
    PREV_SIBLING = "prev-sibling"
    PREV_LINE = "prev-line"
    MEMBER_CHAIN = "member-chain"


_OFFSET = re.compile(r"^\s*(?:(-?\d+)\s*\*\s*)?(-)?indent\s*$")


@dataclass(frozen=True)
class IndentOffset:
    """Signed offset: a literal number of columns plus a number of indent units."""

    columns: int = 0
    units: int = 0

    @classmethod
    def parse(cls, value: Union[int, str, "IndentOffset"]) -> "IndentOffset":
        """Parse 4, -2, 'indent', '-indent' or '2*indent'."""
        if isinstance(value, IndentOffset):
            return value
        if isinstance(value, bool):
            raise InvalidPredicateError(f"Invalid indent offset {value!r}")
        if isinstance(value, int):
            return cls(columns=value)
        stripped = value.strip()
        if re.fullmatch(r"-?\d+", stripped):
            return cls(columns=int(stripped))
        match = _OFFSET.match(stripped)
        if not match:
            raise InvalidPredicateError(f"Invalid indent offset {value!r}")
        units = int(match.group(1)) if match.group(1) else 1
        if match.group(2):
            units = -units
        return cls(units=units)

    def resolve(self, indent_offset: int) -> int:
        return self.columns + self.units * indent_offset

    def __str__(self) -> str:
        if not self.units:
            return f"{self.columns:+d}"
        units = {1: "+indent", -1: "-indent"}.get(self.units, f"{self.units:+d}*indent")
        return f"{units}{self.columns:+d}" if self.columns else units


@dataclass(frozen=True)
class IndentAction:
    """Anchor plus offset; chain lists node types a member-chain anchor flattens."""

    anchor: Anchor
    offset: IndentOffset = field(default_factory=IndentOffset)
    chain: tuple[str, ...] = ()


@dataclass(frozen=True)
class ThingAction:
    category: ThingCategory


@dataclass(frozen=True)
class NameSource:
    """Where a definition's name lives: a field, a child index or a named-child index."""

    field_name: Optional[str] = "name"
    child: Optional[int] = None
    named_child: Optional[int] = None


class OverrideMode(Enum):
    """How a highlight capture layers over tags already present."""

    APPEND = "append"  # keep both
    OVERRIDE = "override"  # replace earlier tags under the span
    KEEP = "keep"  # only fill uncovered gaps


@dataclass
class HighlightRule:
    """A query whose captures become tags for one feature."""

    feature: str
    query: str
    override: OverrideMode = OverrideMode.APPEND
    # An accumulating RuleTable gives a capture every matching tag
    refine: Union[list[Rule[Optional[str]]], RuleTable[Optional[str]]] = field(default_factory=list)
    name: str = ""


@dataclass
class FeatureSet:
    """Highlight rules grouped into features, features grouped into levels."""

    levels: list[list[str]] = field(default_factory=list)
    rules: list[HighlightRule] = field(default_factory=list)

    @property
    def features(self) -> list[str]:
        return [feature for level in self.levels for feature in level]

    def enabled(
        self,
        level: int,
        enable: Optional[list[str]] = None,
        disable: Optional[list[str]] = None,
    ) -> list[str]:
        """Active features in declaration order."""
        active = {feature for lvl in self.levels[:level] for feature in lvl}
        active.update(enable or [])
        active.difference_update(disable or [])
        return [feature for feature in self.features if feature in active]

    def rules_for(self, feature: str) -> list[HighlightRule]:
        return [rule for rule in self.rules if rule.feature == feature]


@dataclass
class LanguageRules:
    """All rule tables for one grammar."""

    language: str
    highlight: FeatureSet = field(default_factory=FeatureSet)
    indent: RuleTable[IndentAction] = field(default_factory=lambda: RuleTable("indent"))
    things: RuleTable[ThingAction] = field(default_factory=lambda: RuleTable("things"))
    names: dict[str, NameSource] = field(default_factory=dict)
