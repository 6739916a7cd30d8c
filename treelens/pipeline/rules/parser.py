"""Parser for YAML rule tables."""

from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

from treelens.errors import InvalidPredicateError, RuleParseError
from treelens.models.results import ThingCategory

from .models import (
    Always,
    Anchor,
    AncestorChain,
    And,
    FeatureSet,
    FieldIs,
    HighlightRule,
    IndentAction,
    IndentOffset,
    LanguageRules,
    LineMatches,
    NameSource,
    NodeIs,
    NoNode,
    Not,
    Or,
    OverrideMode,
    ParentIs,
    Predicate,
    Rule,
    RuleTable,
    StructuralQuery,
    TextMatches,
    ThingAction,
)

_PREDICATE_KEYS = {
    "node",
    "parent",
    "chain",
    "field",
    "query",
    "capture",
    "text",
    "text_field",
    "line",
    "no_node",
    "always",
    "all",
    "any",
    "not",
}


def _parse_chain(value: Any) -> AncestorChain:
    if not isinstance(value, list) or not 1 <= len(value) <= 3:
        raise RuleParseError(f"'chain' must be a list of 1 to 3 elements, got {value!r}")
    return AncestorChain(*value)


def _parse_field(value: Any) -> FieldIs:
    if isinstance(value, str):
        return FieldIs(value)
    if isinstance(value, dict) and "name" in value:
        nested = parse_predicate(value["match"]) if "match" in value else Always()
        return FieldIs(value["name"], nested)
    raise RuleParseError(f"'field' must be a name or {{name, match}}, got {value!r}")


def _parse_query(entry: dict[str, Any]) -> StructuralQuery:
    if "capture" not in entry:
        raise RuleParseError(f"Query predicate {entry['query']!r} missing required 'capture'")
    return StructuralQuery(entry["query"], entry["capture"])


def _parse_list(key: str, value: Any) -> list[Predicate]:
    if not isinstance(value, list) or not value:
        raise RuleParseError(f"'{key}' must be a non-empty list of predicates")
    return [parse_predicate(item) for item in value]


def _parse_predicate_parts(entry: dict[str, Any]) -> list[Predicate]:
    unknown = set(entry) - _PREDICATE_KEYS
    if unknown:
        raise RuleParseError(
            f"Unknown predicate key(s) {', '.join(sorted(unknown))}. "
            f"Valid keys: {', '.join(sorted(_PREDICATE_KEYS))}"
        )

    parts: list[Predicate] = []
    if "node" in entry:
        parts.append(NodeIs(entry["node"]))
    if "parent" in entry:
        parts.append(ParentIs(entry["parent"]))
    if "chain" in entry:
        parts.append(_parse_chain(entry["chain"]))
    if "field" in entry:
        parts.append(_parse_field(entry["field"]))
    if "query" in entry:
        parts.append(_parse_query(entry))
    if "text" in entry:
        parts.append(TextMatches(entry["text"], entry.get("text_field")))
    if "line" in entry:
        parts.append(LineMatches(entry["line"]))
    if entry.get("no_node"):
        parts.append(NoNode())
    if entry.get("always"):
        parts.append(Always())
    if "all" in entry:
        parts.append(And(*_parse_list("all", entry["all"])))
    if "any" in entry:
        parts.append(Or(*_parse_list("any", entry["any"])))
    if "not" in entry:
        parts.append(Not(parse_predicate(entry["not"])))
    return parts


def parse_predicate(entry: Any) -> Predicate:
    """
    Parse a predicate from its YAML form.

    Examples:
        always
        no-node
        {node: block}
        {parent: "argument_list|parameters"}
        {chain: [null, if_statement, nil]}
        {field: {name: body, match: {node: block}}}
        {query: "(if_statement consequence: (block) @body)", capture: body}
        {all: [{no_node: true}, {parent: block}]}

    Several keys in one mapping are combined with 'and'.

    Raises:
        RuleParseError: If the predicate is malformed
    """
    if isinstance(entry, str):
        if entry in ("always", "catch-all"):
            return Always()
        if entry == "no-node":
            return NoNode()
        raise RuleParseError(f"Unknown predicate '{entry}'")
    if not isinstance(entry, dict) or not entry:
        raise RuleParseError(f"Predicate must be a non-empty mapping, got {entry!r}")

    try:
        parts = _parse_predicate_parts(entry)
    except InvalidPredicateError as e:
        raise RuleParseError(str(e)) from e
    if not parts:
        raise RuleParseError(f"Predicate {entry!r} does not test anything")
    if len(parts) == 1:
        return parts[0]
    return And(*parts)


def _parse_enum(enum_cls: Any, value: Any, what: str) -> Any:
    try:
        return enum_cls(value)
    except ValueError:
        valid = [member.value for member in enum_cls]
        raise RuleParseError(f"Invalid {what} '{value}'. Valid values: {', '.join(valid)}")


def _require(rule_dict: dict[str, Any], fields: list[str], kind: str) -> None:
    for field in fields:
        if field not in rule_dict:
            name_info = f" '{rule_dict['name']}'" if "name" in rule_dict else ""
            raise RuleParseError(f"{kind} rule{name_info} missing required '{field}' field")


def _parse_override(value: Any) -> OverrideMode:
    if value is True:
        return OverrideMode.OVERRIDE
    if value is False or value is None:
        return OverrideMode.APPEND
    return _parse_enum(OverrideMode, value, "override mode")


def _parse_refine_rule(rule_dict: dict[str, Any]) -> Rule[str | None]:
    _require(rule_dict, ["match"], "Refine")
    return Rule(
        predicate=parse_predicate(rule_dict["match"]),
        action=rule_dict.get("tag"),
        name=rule_dict.get("name", ""),
    )


def _parse_highlight_rule(rule_dict: dict[str, Any]) -> HighlightRule:
    _require(rule_dict, ["feature", "query"], "Highlight")
    return HighlightRule(
        feature=rule_dict["feature"],
        query=rule_dict["query"],
        override=_parse_override(rule_dict.get("override")),
        refine=RuleTable(
            f"{rule_dict.get('name') or rule_dict['feature']} refine",
            [_parse_refine_rule(r) for r in rule_dict.get("refine", [])],
            accumulating=bool(rule_dict.get("accumulate", False)),
        ),
        name=rule_dict.get("name", ""),
    )


def _parse_indent_rule(rule_dict: dict[str, Any]) -> Rule[IndentAction]:
    _require(rule_dict, ["match", "anchor"], "Indent")
    try:
        offset = IndentOffset.parse(rule_dict.get("offset", 0))
    except InvalidPredicateError as e:
        raise RuleParseError(str(e)) from e
    action = IndentAction(
        anchor=_parse_enum(Anchor, rule_dict["anchor"], "anchor"),
        offset=offset,
        chain=tuple(rule_dict.get("chain", ())),
    )
    return Rule(parse_predicate(rule_dict["match"]), action, rule_dict.get("name", ""))


def _parse_thing_rule(rule_dict: dict[str, Any]) -> Rule[ThingAction]:
    _require(rule_dict, ["match", "category"], "Thing")
    category = _parse_enum(ThingCategory, rule_dict["category"], "category")
    return Rule(parse_predicate(rule_dict["match"]), ThingAction(category), rule_dict.get("name", ""))


def _parse_name_source(node_type: str, value: Any) -> NameSource:
    if not isinstance(value, dict) or len(value) != 1:
        raise RuleParseError(f"Name source for '{node_type}' must be one of field/child/named_child")
    key, item = next(iter(value.items()))
    if key == "field":
        return NameSource(field_name=item)
    if key == "child":
        return NameSource(field_name=None, child=int(item))
    if key == "named_child":
        return NameSource(field_name=None, named_child=int(item))
    raise RuleParseError(f"Unknown name source '{key}' for '{node_type}'")


def _parse_ruleset(ruleset: dict[str, Any], base: LanguageRules | None, ruleset_name: str) -> LanguageRules:
    """Parse one ruleset on top of the ruleset it extends.

    Own indent and thing rules take priority over inherited ones; own
    highlight rules are layered after inherited ones.
    """
    language = ruleset.get("language") or (base.language if base else None)
    if not language:
        raise RuleParseError(f"Ruleset '{ruleset_name}' missing 'language'")

    highlight = ruleset.get("highlight", {})
    levels = highlight.get("levels") or (base.highlight.levels if base else [])
    highlight_rules = [_parse_highlight_rule(r) for r in highlight.get("rules", [])]
    indent_rules = [_parse_indent_rule(r) for r in ruleset.get("indent", [])]
    thing_rules = [_parse_thing_rule(r) for r in ruleset.get("things", [])]
    names = {k: _parse_name_source(k, v) for k, v in ruleset.get("names", {}).items()}

    if base is not None:
        highlight_rules = base.highlight.rules + highlight_rules
        indent_rules = indent_rules + base.indent.rules
        thing_rules = thing_rules + base.things.rules
        names = {**base.names, **names}

    return LanguageRules(
        language=language,
        highlight=FeatureSet(levels=[list(level) for level in levels], rules=highlight_rules),
        indent=RuleTable(f"{ruleset_name} indent", indent_rules),
        things=RuleTable(f"{ruleset_name} things", thing_rules),
        names=names,
    )


def _inheritance_chain(rulesets: dict[str, Any], ruleset_name: str) -> list[tuple[str, dict[str, Any]]]:
    """Follow 'extends' links from a ruleset, returning the chain base first."""
    chain: list[tuple[str, dict[str, Any]]] = []
    seen: list[str] = []
    current: str | None = ruleset_name
    while current is not None:
        if current in seen:
            cycle = " -> ".join(seen + [current])
            raise RuleParseError(f"Circular dependency detected in ruleset '{ruleset_name}': {cycle}")
        if current not in rulesets:
            raise RuleParseError(f"Ruleset '{current}' not found (extended by '{seen[-1]}')")
        body = rulesets[current]
        if not isinstance(body, dict):
            raise RuleParseError(f"Ruleset '{current}' must be a mapping")
        seen.append(current)
        chain.append((current, body))
        current = body.get("extends")
    chain.reverse()
    return chain


def _rulesets_of(data: Any) -> dict[str, Any]:
    if not isinstance(data, dict) or "rulesets" not in data:
        raise RuleParseError("Rules document is missing 'rulesets' mapping")
    rulesets = data["rulesets"]
    if not isinstance(rulesets, dict):
        raise RuleParseError("'rulesets' must map ruleset names to rulesets")
    return rulesets


def parse_yaml_rules(data: Any, ruleset_name: str = "default") -> LanguageRules:
    """Parse rule tables from already-loaded YAML data."""
    rulesets = _rulesets_of(data)
    if ruleset_name not in rulesets:
        raise RuleParseError(
            f"Ruleset '{ruleset_name}' not found. Available rulesets: {', '.join(rulesets)}"
        )

    (base_name, base_body), *derived = _inheritance_chain(rulesets, ruleset_name)
    rules = _parse_ruleset(base_body, None, base_name)
    for name, body in derived:
        rules = _parse_ruleset(body, rules, name)
    return rules


def parse_yaml_rules_file(file_path: str, ruleset_name: str = "default") -> LanguageRules:
    """
    Parse rule tables from a YAML file with ruleset support.

    Args:
        file_path: Path to the YAML rules file
        ruleset_name: Ruleset to load; its 'extends' chain is applied first

    Returns:
        The language's highlight, indent and thing tables

    Raises:
        RuleParseError: If the YAML is invalid or rules are malformed
        FileNotFoundError: If the file doesn't exist
    """
    path = Path(file_path)
    if not path.is_file():
        raise FileNotFoundError(f"Rules file not found: {file_path}")
    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise RuleParseError(f"Invalid YAML in {file_path}: {e}") from e
    return parse_yaml_rules(data, ruleset_name)
