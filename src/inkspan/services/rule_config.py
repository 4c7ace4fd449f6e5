"""Load highlight rule sets from JSON or YAML documents.

A rule-set document is either a list of rule objects or a mapping with a
``rules`` list. Each rule object names its ``kind`` and carries the fields of
the matching rule dataclass, for example::

    rules:
      - kind: keyword
        label: glossary
        entries:
          - term: invoice
            description: Billing document
      - kind: tag
        collapsed: true
      - kind: quote
        options:
          escape_patterns: french
"""

from __future__ import annotations

import json
import logging
from json import JSONDecodeError
from pathlib import Path
from typing import Any, Mapping, Sequence

import jsonschema
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from ..errors import ConfigurationError, ErrorCode
from ..highlight.quotes import OPTIONS_SCHEMA, DetectQuotesOptions
from ..highlight.rules import (
    KeywordEntry,
    KeywordRule,
    LinkRule,
    MentionRule,
    MentionUser,
    QuoteMapping,
    QuoteRule,
    Rule,
    SpellcheckRule,
    SpellcheckValidation,
    TagRule,
)

__all__ = ["RULE_SET_SCHEMA", "dump_rules", "load_rules", "parse_rules"]

LOGGER = logging.getLogger(__name__)

MAX_SCHEMA_ERRORS = 25
_YAML_SUFFIXES = {".yaml", ".yml"}

_QUOTE_MAPPING_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "opening": {"type": "string"},
        "closing": {"type": "string"},
    },
    "required": ["opening", "closing"],
    "additionalProperties": False,
}

_KIND_SCHEMAS: dict[str, dict[str, Any]] = {
    "spellcheck": {
        "properties": {
            "kind": True,
            "relocate_stale": {"type": "boolean"},
            "validations": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "start": {"type": "integer"},
                        "end": {"type": "integer"},
                        "content": {"type": "string"},
                        "message": {"type": "string"},
                        "short_message": {"type": "string"},
                        "category_id": {"type": "string"},
                        "suggestions": {"type": "array", "items": {"type": "string"}},
                        "dictionaries": {"type": "array", "items": {"type": "string"}},
                    },
                    "required": ["start", "end"],
                    "additionalProperties": False,
                },
            },
        },
    },
    "keyword": {
        "properties": {
            "kind": True,
            "label": {"type": "string", "minLength": 1},
            "entries": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "term": {"type": "string"},
                        "pattern": {"type": "string"},
                        "description": {"type": "string"},
                        "atomic": {"type": "boolean"},
                        "display_symbol": {"type": "string"},
                        "case_sensitive": {"type": "boolean"},
                    },
                    "anyOf": [{"required": ["term"]}, {"required": ["pattern"]}],
                    "additionalProperties": False,
                },
            },
        },
        "required": ["label"],
    },
    "tag": {
        "properties": {
            "kind": True,
            "pattern": {"type": "string"},
            "detect_inner": {"type": "boolean"},
            "collapsed": {"type": "boolean"},
            "collapse_scope": {"enum": ["all", "html-only"]},
        },
    },
    "quote": {
        "properties": {
            "kind": True,
            "single_quote": _QUOTE_MAPPING_SCHEMA,
            "double_quote": _QUOTE_MAPPING_SCHEMA,
            "detect_in_tags": {"type": "boolean"},
            "options": OPTIONS_SCHEMA,
        },
    },
    "link": {
        "properties": {
            "kind": True,
            "pattern": {"type": "string"},
        },
    },
    "mention": {
        "properties": {
            "kind": True,
            "trigger": {"type": "string", "minLength": 1},
            "pattern": {"type": "string"},
            "users": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {"id": {"type": "string"}, "name": {"type": "string"}},
                    "required": ["id", "name"],
                    "additionalProperties": False,
                },
            },
        },
    },
}

RULE_SET_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "array",
    "items": {
        "type": "object",
        "properties": {"kind": {"enum": sorted(_KIND_SCHEMAS)}},
        "required": ["kind"],
        "allOf": [
            {
                "if": {"properties": {"kind": {"const": kind}}, "required": ["kind"]},
                "then": {**schema, "additionalProperties": False},
            }
            for kind, schema in _KIND_SCHEMAS.items()
        ],
    },
}


def load_rules(path: str | Path, *, escape_patterns: str | None = None) -> list[Rule]:
    """Read a rule-set document from ``path`` (``.json``, ``.yaml`` or ``.yml``)."""

    target = Path(path)
    text = target.read_text(encoding="utf-8")
    suffix = target.suffix.lower()
    if suffix in _YAML_SUFFIXES:
        payload = _load_yaml(text, target)
    elif suffix == ".json":
        try:
            payload = json.loads(text)
        except JSONDecodeError as exc:
            raise ConfigurationError(
                error_code=ErrorCode.INVALID_RULE_SET,
                message=f"Rule set {target} is not valid JSON",
                details={"path": str(target), "line": exc.lineno, "column": exc.colno},
                issues=(exc.msg,),
            ) from exc
    else:
        raise ConfigurationError(
            error_code=ErrorCode.UNSUPPORTED_FORMAT,
            message=f"Unsupported rule set format: {suffix or '<none>'}",
            details={"path": str(target)},
        )
    rules = parse_rules(payload, escape_patterns=escape_patterns)
    LOGGER.debug("Loaded %d rules from %s", len(rules), target)
    return rules


def parse_rules(payload: Any, *, escape_patterns: str | None = None) -> list[Rule]:
    """Validate ``payload`` and build the rule objects it describes.

    ``escape_patterns`` is the default contraction table for quote rules whose
    options do not name one.
    """

    items = payload.get("rules", []) if isinstance(payload, Mapping) else payload
    if items is None:
        items = []
    issues = _schema_issues(items)
    if issues:
        raise ConfigurationError(
            error_code=ErrorCode.INVALID_RULE_SET,
            message="Invalid rule set",
            issues=tuple(issues),
        )
    rules: list[Rule] = []
    for index, item in enumerate(items):
        try:
            rules.append(_build_rule(item, escape_patterns))
        except ConfigurationError as exc:
            raise ConfigurationError(
                error_code=ErrorCode.INVALID_RULE,
                message=f"Rule #{index} ({item.get('kind')}) is invalid: {exc.message}",
                details={"index": index},
                issues=exc.issues,
            ) from exc
    return rules


def dump_rules(rules: Sequence[Rule]) -> list[dict[str, Any]]:
    """Serialize ``rules`` back into plain rule-set mappings."""

    return [_dump_rule(rule) for rule in rules]


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------
def _build_rule(item: Mapping[str, Any], escape_patterns: str | None) -> Rule:
    kind = item["kind"]
    if kind == "spellcheck":
        return SpellcheckRule(
            validations=tuple(
                SpellcheckValidation(
                    start=entry["start"],
                    end=entry["end"],
                    content=entry.get("content", ""),
                    message=entry.get("message", ""),
                    short_message=entry.get("short_message", ""),
                    category_id=entry.get("category_id", ""),
                    suggestions=tuple(entry.get("suggestions", ())),
                    dictionaries=tuple(entry.get("dictionaries", ())),
                )
                for entry in item.get("validations", ())
            ),
            relocate_stale=item.get("relocate_stale", False),
        )
    if kind == "keyword":
        return KeywordRule(
            label=item["label"],
            entries=tuple(KeywordEntry(**entry) for entry in item.get("entries", ())),
        )
    if kind == "tag":
        return TagRule(**{key: value for key, value in item.items() if key != "kind"})
    if kind == "quote":
        options = dict(item.get("options") or {})
        if escape_patterns is not None:
            options.setdefault("escape_patterns", escape_patterns)
        kwargs: dict[str, Any] = {
            "detect_in_tags": item.get("detect_in_tags", False),
            "detect_options": DetectQuotesOptions.from_mapping(options),
        }
        for key in ("single_quote", "double_quote"):
            if key in item:
                kwargs[key] = QuoteMapping(**item[key])
        return QuoteRule(**kwargs)
    if kind == "link":
        return LinkRule(pattern=item.get("pattern"))
    if kind == "mention":
        kwargs = {key: item[key] for key in ("trigger", "pattern") if key in item}
        return MentionRule(
            users=tuple(MentionUser(**user) for user in item.get("users", ())),
            **kwargs,
        )
    raise ConfigurationError(
        error_code=ErrorCode.INVALID_RULE,
        message=f"Unknown rule kind {kind!r}",
    )


def _dump_rule(rule: Rule) -> dict[str, Any]:
    if isinstance(rule, SpellcheckRule):
        return {
            "kind": rule.kind,
            "relocate_stale": rule.relocate_stale,
            "validations": [
                {
                    "start": v.start,
                    "end": v.end,
                    "content": v.content,
                    "message": v.message,
                    "short_message": v.short_message,
                    "category_id": v.category_id,
                    "suggestions": list(v.suggestions),
                    "dictionaries": list(v.dictionaries),
                }
                for v in rule.validations
            ],
        }
    if isinstance(rule, KeywordRule):
        entries = []
        for entry in rule.entries:
            data = {
                "term": entry.term,
                "pattern": entry.pattern,
                "description": entry.description,
                "display_symbol": entry.display_symbol,
            }
            payload = {key: value for key, value in data.items() if value is not None}
            payload["atomic"] = entry.atomic
            payload["case_sensitive"] = entry.case_sensitive
            entries.append(payload)
        return {"kind": rule.kind, "label": rule.label, "entries": entries}
    if isinstance(rule, TagRule):
        payload = {
            "kind": rule.kind,
            "detect_inner": rule.detect_inner,
            "collapsed": rule.collapsed,
            "collapse_scope": rule.collapse_scope,
        }
        if rule.pattern is not None:
            payload["pattern"] = rule.pattern
        return payload
    if isinstance(rule, QuoteRule):
        options = rule.detect_options
        patterns = options.escape_patterns
        return {
            "kind": rule.kind,
            "single_quote": {"opening": rule.single_quote.opening, "closing": rule.single_quote.closing},
            "double_quote": {"opening": rule.double_quote.opening, "closing": rule.double_quote.closing},
            "detect_in_tags": rule.detect_in_tags,
            "options": {
                "escape_contractions": options.escape_contractions,
                "escape_patterns": patterns if isinstance(patterns, str) else {k: list(v) for k, v in patterns.items()},
                "allow_nesting": options.allow_nesting,
                "detect_inner_quotes": options.detect_inner_quotes,
            },
        }
    if isinstance(rule, LinkRule):
        return {"kind": rule.kind, **({"pattern": rule.pattern} if rule.pattern is not None else {})}
    payload = {
        "kind": rule.kind,
        "trigger": rule.trigger,
        "users": [{"id": user.id, "name": user.name} for user in rule.users],
    }
    if rule.pattern is not None:
        payload["pattern"] = rule.pattern
    return payload


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------
def _load_yaml(text: str, target: Path) -> Any:
    parser = YAML(typ="safe")
    parser.allow_duplicate_keys = False
    try:
        return parser.load(text)
    except YAMLError as exc:
        mark = getattr(exc, "problem_mark", None)
        line = int(mark.line) + 1 if mark is not None else None
        raise ConfigurationError(
            error_code=ErrorCode.INVALID_RULE_SET,
            message=f"Rule set {target} is not valid YAML",
            details={"path": str(target), "line": line},
            issues=(str(getattr(exc, "problem", None) or exc),),
        ) from exc


def _schema_issues(items: Any) -> list[str]:
    validator = jsonschema.Draft202012Validator(RULE_SET_SCHEMA)
    issues: list[str] = []
    for issue in validator.iter_errors(items):
        path = _format_schema_path(issue.absolute_path)
        issues.append(f"{path}: {issue.message}" if path else issue.message)
        if len(issues) >= MAX_SCHEMA_ERRORS:
            issues.append("Too many validation errors; stopping early.")
            break
    return issues


def _format_schema_path(path: Sequence[Any]) -> str:
    if not path:
        return ""
    components: list[str] = []
    for segment in path:
        if isinstance(segment, int):
            if components:
                components[-1] = f"{components[-1]}[{segment}]"
            else:
                components.append(f"[{segment}]")
        else:
            components.append(str(segment))
    return ".".join(filter(None, components))
