"""
Schema Enrichment Prompts
=========================

Prompt templates for LLM-assisted domain naming and for entity, action and
schema extraction.
Every prompt asks for a JSON document; responses are parsed with
json_utils.parse_json_response.
"""

from __future__ import annotations

import json

from ..models.domain_models import DomainSummary
from ..models.pattern_models import DetectedPattern

# Per-handler excerpt limit in the actions prompt
MAX_HANDLER_CHARS = 500


def identify_domain_prompt(patterns: list[DetectedPattern], files: list[str]) -> str:
    """Ask which business domain a group of files represents."""
    pattern_lines = "\n".join(
        f"- {p.type.value}: {p.name} ({p.location.file or 'unknown'})" for p in patterns
    )
    file_lines = "\n".join(f"- {f}" for f in files)
    return f"""You are analyzing React patterns to identify a business domain.

Detected Patterns:
{pattern_lines}

Files in Group:
{file_lines}

Instructions:
1. Identify the primary business domain these patterns represent
2. Consider naming conventions, component purposes, and data flow
3. Determine if this is a cohesive domain or should be split

Respond in JSON format:
{{
  "domainName": "suggested domain name",
  "description": "Brief description of what this domain handles",
  "confidence": 0.0 - 1.0,
  "isCohesive": true | false,
  "splitSuggestion": "If not cohesive, how to split",
  "relatedDomains": ["list of potentially related domains"]
}}"""


def extract_entities_prompt(patterns: list[DetectedPattern], domain_name: str) -> str:
    pattern_lines = "\n\n".join(
        f"- {p.type.value}: {p.name}\n  Metadata: {json.dumps(p.metadata.compact())}" for p in patterns
    )
    return f"""You are extracting business entities from React patterns for the "{domain_name}" domain.

Patterns:
{pattern_lines}

Instructions:
1. Identify distinct business entities from these patterns
2. For each entity, extract:
   - Name (singular noun, PascalCase)
   - Fields with their types
   - Description of the entity's purpose
3. Avoid duplicates - merge similar patterns into one entity
4. Focus on business concepts, not UI components

Respond in JSON format:
{{
  "entities": [
    {{
      "name": "EntityName",
      "description": "What this entity represents",
      "fields": [
        {{ "name": "fieldName", "type": "string | number | boolean | etc", "description": "purpose" }}
      ],
      "source": "pattern name this came from"
    }}
  ]
}}"""


def _handler_excerpt(pattern: DetectedPattern) -> str:
    code = json.dumps(pattern.metadata.compact())
    if len(code) > MAX_HANDLER_CHARS:
        return code[:MAX_HANDLER_CHARS] + "..."
    return code


def extract_actions_prompt(patterns: list[DetectedPattern], domain_name: str) -> str:
    handler_lines = "\n\n".join(f"- {p.name}:\n```\n{_handler_excerpt(p)}\n```" for p in patterns)
    return f"""You are extracting business actions from React event handlers for the "{domain_name}" domain.

Handlers:
{handler_lines}

Instructions:
1. Identify the business operations these handlers perform
2. Classify each as:
   - "command": Modifies state (create, update, delete)
   - "query": Reads data without modification
   - "event": Responds to external events
3. Extract input parameters needed
4. Describe the expected output or effect

Respond in JSON format:
{{
  "actions": [
    {{
      "name": "actionName",
      "type": "command" | "query" | "event",
      "description": "What this action does",
      "input": [
        {{ "name": "paramName", "type": "paramType" }}
      ],
      "effects": ["list of side effects"],
      "source": "handler name this came from"
    }}
  ]
}}"""


def generate_schema_prompt(domain: DomainSummary, max_alternatives: int = 3) -> str:
    """Ask for alternative schema layouts for a domain."""
    files = "\n".join(f"- {f}" for f in domain.source_files)
    entities = "\n".join(
        f"- {e.name} ({e.type.value})\n  Fields: {json.dumps([f.to_dict() for f in e.fields])}"
        for e in domain.entities
    )
    actions = "\n".join(f"- {a.name} ({a.type.value})" for a in domain.actions)
    boundaries = domain.boundaries

    return f"""You are generating a domain schema from analyzed React patterns.

Domain: {domain.name}
Description: {domain.description}

Source Files:
{files}

Entities:
{entities}

Actions:
{actions}

Boundaries:
- Imports: {', '.join(boundaries.imports)}
- Exports: {', '.join(boundaries.exports)}
- Shared State: {', '.join(boundaries.shared_state)}

Instructions:
Propose up to {max_alternatives} alternative schemas for this domain. Each schema has:
1. entities: Define data structures with fields and types
2. state: Define domain state with semantic paths
3. intents: Define actions as commands, queries, or events

Respond in JSON format:
{{
  "alternatives": [
    {{
      "domain": "{domain.name}",
      "entities": {{
        "EntityName": {{
          "type": "object",
          "description": "entity description",
          "fields": {{
            "fieldName": {{ "type": "string", "description": "field purpose" }}
          }}
        }}
      }},
      "state": {{
        "statePath": {{ "type": "EntityName | null", "description": "state purpose" }}
      }},
      "intents": {{
        "actionName": {{ "type": "command", "description": "action purpose" }}
      }}
    }}
  ]
}}"""
