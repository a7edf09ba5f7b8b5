"""
Entity and Action Extraction
============================

Heuristic mining of entities (data structures) and actions (commands,
queries, events) from detected patterns.
"""

from __future__ import annotations

import json
import logging
import re

from ..models.domain_models import (
    ActionType,
    EntityKind,
    ExtractedAction,
    ExtractedEntity,
    ExtractedField,
    generate_id,
)
from ..models.pattern_models import DetectedPattern, PatternType

logger = logging.getLogger(__name__)

# Hook-derived queries are inferred, not declared
HOOK_QUERY_DISCOUNT = 0.8

_BRACE_RE = re.compile(r"\{([^}]+)\}")
_BUILTIN_EFFECTS = {"useEffect", "useLayoutEffect"}


def to_camel_case(action_name: str) -> str:
    """LOGIN_SUCCESS -> loginSuccess."""
    return re.sub(r"_([a-z])", lambda m: m.group(1).upper(), action_name.lower())


def classify_action(action_name: str) -> ActionType:
    """Infer an intent type from an upper-snake action constant."""
    upper = action_name.upper()
    if any(marker in upper for marker in ("SUCCESS", "FAILURE", "ERROR")):
        return ActionType.EVENT
    if any(marker in upper for marker in ("FETCH", "GET", "LOAD")):
        return ActionType.QUERY
    return ActionType.COMMAND


def _strip_quotes(value: str) -> str:
    return value.strip().strip("\"'")


def parse_context_value_fields(context_value: str | dict) -> list[ExtractedField]:
    """
    Extract fields from a context's declared value shape.

    Structured data (a mapping, or a JSON object string) is used directly;
    otherwise the first brace-delimited "key: Type" list is scanned.

    Args:
        context_value: Mapping or source text such as "{ user: User, login: Function }"

    Returns:
        Extracted fields (types default to "unknown")
    """
    if isinstance(context_value, dict):
        return [
            ExtractedField(name=str(name), type=value if isinstance(value, str) else "object")
            for name, value in context_value.items()
        ]

    try:
        parsed = json.loads(context_value)
    except (json.JSONDecodeError, TypeError):
        parsed = None
    if isinstance(parsed, dict):
        return [
            ExtractedField(name=_strip_quotes(str(name)), type=_strip_quotes(str(value)))
            for name, value in parsed.items()
        ]

    match = _BRACE_RE.search(context_value or "")
    if not match:
        return []

    fields = []
    for part in match.group(1).split(","):
        name, _, declared = part.partition(":")
        name = _strip_quotes(name)
        if not name:
            continue
        fields.append(ExtractedField(name=name, type=_strip_quotes(declared) or "unknown"))
    return fields


def extract_entities_from_patterns(patterns: list[DetectedPattern]) -> list[ExtractedEntity]:
    """
    Mine entities from component props, context values, reducer state and
    explicit structural types.

    Args:
        patterns: Patterns belonging to one domain

    Returns:
        Entities deduplicated by lowercase name
    """
    entities = []

    for pattern in patterns:
        meta = pattern.metadata

        if pattern.type == PatternType.COMPONENT and meta.props:
            entities.append(
                ExtractedEntity(
                    id=generate_id(f"entity-props-{pattern.name}"),
                    name=f"{pattern.name}Props",
                    type=EntityKind.ENTITY,
                    fields=[ExtractedField(name=prop, type="unknown", optional=True) for prop in meta.props],
                    source_patterns=[pattern.name],
                    confidence=pattern.confidence,
                )
            )

        if pattern.type == PatternType.CONTEXT and meta.context_value:
            entities.append(
                ExtractedEntity(
                    id=generate_id(f"entity-context-{pattern.name}"),
                    name=meta.context_name or pattern.name,
                    type=EntityKind.ENTITY,
                    fields=parse_context_value_fields(meta.context_value),
                    source_patterns=[pattern.name],
                    confidence=pattern.confidence,
                )
            )

        if pattern.type == PatternType.REDUCER and meta.state_shape and pattern.name != "initialState":
            name = pattern.name if pattern.name.endswith("State") else f"{pattern.name}State"
            entities.append(
                ExtractedEntity(
                    id=generate_id(f"entity-state-{pattern.name}"),
                    name=name,
                    type=EntityKind.ENTITY,
                    fields=[
                        ExtractedField(name=key, type=declared)
                        for key, declared in meta.state_shape.items()
                    ],
                    source_patterns=[pattern.name],
                    confidence=pattern.confidence,
                )
            )

        if pattern.type == PatternType.UNKNOWN and meta.is_entity and meta.entity_fields:
            entities.append(
                ExtractedEntity(
                    id=generate_id(f"entity-interface-{pattern.name}"),
                    name=pattern.name,
                    type=EntityKind.ENTITY,
                    fields=[
                        ExtractedField(name=spec.name, type=spec.type, optional=spec.optional)
                        for spec in meta.entity_fields
                    ],
                    source_patterns=[pattern.name],
                    confidence=pattern.confidence,
                )
            )

    return deduplicate_entities(entities)


def extract_actions_from_patterns(patterns: list[DetectedPattern]) -> list[ExtractedAction]:
    """
    Mine actions from reducer constants, action-type declarations, custom
    hooks and named effects.

    Args:
        patterns: Patterns belonging to one domain

    Returns:
        Actions deduplicated by lowercase name
    """
    actions = []

    for pattern in patterns:
        meta = pattern.metadata

        if pattern.type == PatternType.REDUCER and meta.actions:
            for action_name in meta.actions:
                actions.append(
                    ExtractedAction(
                        id=generate_id(f"action-{action_name}"),
                        name=to_camel_case(action_name),
                        type=classify_action(action_name),
                        source_patterns=[pattern.name],
                        confidence=pattern.confidence,
                    )
                )

        if meta.is_action_type and meta.actions:
            for action_name in meta.actions:
                upper = action_name.upper()
                is_event = "SUCCESS" in upper or "FAILURE" in upper
                actions.append(
                    ExtractedAction(
                        id=generate_id(f"action-type-{action_name}"),
                        name=to_camel_case(action_name),
                        type=ActionType.EVENT if is_event else ActionType.COMMAND,
                        source_patterns=[pattern.name],
                        confidence=pattern.confidence,
                    )
                )

        if pattern.type == PatternType.HOOK and meta.is_custom_hook:
            hook_name = pattern.name[3:] if pattern.name.startswith("use") else pattern.name
            if hook_name:
                actions.append(
                    ExtractedAction(
                        id=generate_id(f"action-{hook_name}-query"),
                        name=f"get{hook_name[0].upper()}{hook_name[1:]}",
                        type=ActionType.QUERY,
                        source_patterns=[pattern.name],
                        confidence=pattern.confidence * HOOK_QUERY_DISCOUNT,
                    )
                )

        if pattern.type == PatternType.EFFECT and pattern.name not in _BUILTIN_EFFECTS:
            actions.append(
                ExtractedAction(
                    id=generate_id(f"action-effect-{pattern.name}"),
                    name=pattern.name,
                    type=ActionType.EVENT,
                    source_patterns=[pattern.name],
                    confidence=pattern.confidence,
                )
            )

    return deduplicate_actions(actions)


def deduplicate_entities(entities: list[ExtractedEntity]) -> list[ExtractedEntity]:
    """
    Collapse entities with the same lowercase name.

    The highest-confidence copy wins; fields and source patterns it lacks
    are merged in from the others.
    """
    groups: dict[str, list[ExtractedEntity]] = {}
    for entity in entities:
        groups.setdefault(entity.name.lower(), []).append(entity)

    result = []
    for members in groups.values():
        best = max(members, key=lambda e: e.confidence)
        fields = list(best.fields)
        field_names = {f.name for f in fields}
        sources = list(best.source_patterns)

        for other in members:
            if other is best:
                continue
            for extra in other.fields:
                if extra.name not in field_names:
                    field_names.add(extra.name)
                    fields.append(extra)
            sources.extend(s for s in other.source_patterns if s not in sources)

        result.append(
            ExtractedEntity(
                id=best.id,
                name=best.name,
                type=best.type,
                fields=fields,
                source_patterns=sources,
                confidence=best.confidence,
            )
        )

    return result


def deduplicate_actions(actions: list[ExtractedAction]) -> list[ExtractedAction]:
    """Collapse actions with the same lowercase name, keeping the best copy."""
    groups: dict[str, list[ExtractedAction]] = {}
    for action in actions:
        groups.setdefault(action.name.lower(), []).append(action)

    result = []
    for members in groups.values():
        best = max(members, key=lambda a: a.confidence)
        sources = list(best.source_patterns)
        for other in members:
            sources.extend(s for s in other.source_patterns if s not in sources)
        result.append(
            ExtractedAction(
                id=best.id,
                name=best.name,
                type=best.type,
                source_patterns=sources,
                confidence=best.confidence,
            )
        )

    return result
