from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from policybridge.config import get_max_policy_name_length
from policybridge.errors import PolicyNameTooLong, StructuralParseError, UnsupportedShapeError
from policybridge.model.types import WILDCARD, AbstractRule, Effect


logger = logging.getLogger(__name__)

POLICY_LANGUAGE_VERSION = "2012-10-17"

EFFECT_KEY = "Effect"
ACTION_KEY = "Action"
NOT_ACTION_KEY = "NotAction"
RESOURCE_KEY = "Resource"
STATEMENT_KEY = "Statement"

ANY_SUFFIX = "ANY"
EXCEPT_SUFFIX = "EXCEPT"
NAME_SEPARATOR = "+"

_EFFECT_TOKENS: Dict[Effect, str] = {
    Effect.ALLOW: "Allow",
    Effect.DENY: "Deny",
}


@dataclass(frozen=True)
class EncodedStatement:
    policy_name: str
    statement: Dict[str, Any]

    def document(self) -> Dict[str, Any]:
        return policy_document([self.statement])


def normalize_action_field(value: Any) -> Tuple[str, ...]:
    if isinstance(value, str):
        if not value.strip():
            raise ValueError("action must not be blank")
        return (value,)
    if isinstance(value, (list, tuple)):
        if not all(isinstance(item, str) for item in value):
            raise UnsupportedShapeError("action list entries must be strings")
        if not value:
            raise ValueError("action list must not be empty")
        if not all(item.strip() for item in value):
            raise ValueError("action list entries must not be blank")
        return tuple(value)
    raise UnsupportedShapeError(f"action must be a string or a list of strings, got {type(value).__name__}")


class StatementRecord(BaseModel):
    """Validated view of one wire statement."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    effect: Effect = Field(alias=EFFECT_KEY)
    action: Optional[Tuple[str, ...]] = Field(default=None, alias=ACTION_KEY)
    not_action: Optional[Tuple[str, ...]] = Field(default=None, alias=NOT_ACTION_KEY)
    resource: str = Field(alias=RESOURCE_KEY)

    @field_validator("effect", mode="before")
    @classmethod
    def _parse_effect(cls, value: Any) -> Effect:
        text = value.strip().lower() if isinstance(value, str) else ""
        if text == "allow":
            return Effect.ALLOW
        if text == "deny":
            return Effect.DENY
        raise ValueError(f"Effect must be 'Allow' or 'Deny', got {value!r}")

    @field_validator("action", "not_action", mode="before")
    @classmethod
    def _parse_actions(cls, value: Any) -> Optional[Tuple[str, ...]]:
        if value is None:
            return None
        return normalize_action_field(value)

    @field_validator("resource", mode="before")
    @classmethod
    def _parse_resource(cls, value: Any) -> str:
        if isinstance(value, (list, tuple)) and len(value) == 1:
            value = value[0]
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Resource must be a single non-empty string")
        return value

    @model_validator(mode="after")
    def _require_actions(self) -> "StatementRecord":
        if self.action is None and self.not_action is None:
            raise ValueError("statement has neither Action nor NotAction")
        return self

    def to_rule(self) -> AbstractRule:
        if self.action is not None:
            return AbstractRule(effect=self.effect, actions=self.action, negated=False, resource=self.resource)
        return AbstractRule(effect=self.effect, actions=self.not_action or (), negated=True, resource=self.resource)


def _unsupported_shape(exc: ValidationError) -> Optional[UnsupportedShapeError]:
    for err in exc.errors():
        cause = (err.get("ctx") or {}).get("error")
        if isinstance(cause, UnsupportedShapeError):
            return cause
    return None


def parse_statement(raw: Any, *, index: int = 0) -> StatementRecord:
    if not isinstance(raw, Mapping):
        raise StructuralParseError(f"statement {index} must be an object, got {type(raw).__name__}")
    try:
        return StatementRecord.model_validate(dict(raw))
    except ValidationError as exc:
        shape = _unsupported_shape(exc)
        if shape is not None:
            raise UnsupportedShapeError(f"statement {index}: {shape}") from exc
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ())) or 'statement'}: {err.get('msg')}" for err in exc.errors()
        )
        raise StructuralParseError(f"statement {index}: {problems}") from exc


def decode_statements(statements: Sequence[Any]) -> List[AbstractRule]:
    """
    Decode a statement array into abstract rules.
    The first malformed statement fails the whole array; nothing partial is returned.
    """
    if isinstance(statements, Mapping):
        statements = [statements]
    if not isinstance(statements, (list, tuple)):
        raise StructuralParseError(f"Statement must be an array, got {type(statements).__name__}")
    rules = [parse_statement(raw, index=i).to_rule() for i, raw in enumerate(statements)]
    return rules


def rules_from_document(document: Mapping[str, Any]) -> List[AbstractRule]:
    if STATEMENT_KEY not in document:
        return []
    return decode_statements(document[STATEMENT_KEY])


def encode_statement(rule: AbstractRule) -> Dict[str, Any]:
    actions = list(dict.fromkeys(rule.actions))
    if rule.negated and not actions:
        raise ValueError("a negated rule must list at least one action")
    if not actions:
        actions = [WILDCARD]
    return {
        EFFECT_KEY: _EFFECT_TOKENS[Effect(rule.effect)],
        (NOT_ACTION_KEY if rule.negated else ACTION_KEY): actions[0] if len(actions) == 1 else actions,
        RESOURCE_KEY: rule.resource or WILDCARD,
    }


def action_suffix(action_id: str) -> str:
    if action_id == WILDCARD:
        return ANY_SUFFIX
    return action_id.replace(":", "_")


def _checked_name(name: str, max_length: int) -> str:
    if len(name) > max_length:
        raise PolicyNameTooLong(name, max_length)
    return name


def encode_rule(
    name: str,
    rule: AbstractRule,
    *,
    max_name_length: Optional[int] = None,
) -> List[EncodedStatement]:
    """
    Fan a rule out into independently named statements, one per action.

    Names are ``<name>+<suffix>`` where the suffix is ``ANY`` for the wildcard
    and the action id with ``:`` replaced by ``_`` otherwise. Negated rules
    stay a single ``<name>+EXCEPT`` statement carrying the whole exclusion list.
    """
    base = str(name or "").strip()
    if not base:
        raise ValueError("policy name is required")
    limit = max_name_length or get_max_policy_name_length()

    if rule.negated:
        encoded = [EncodedStatement(_checked_name(f"{base}{NAME_SEPARATOR}{EXCEPT_SUFFIX}", limit), encode_statement(rule))]
    else:
        encoded = []
        seen = set()
        for action_id in dict.fromkeys(rule.actions or (WILDCARD,)):
            policy_name = _checked_name(f"{base}{NAME_SEPARATOR}{action_suffix(action_id)}", limit)
            if policy_name in seen:
                raise ValueError(f"actions produce colliding policy name '{policy_name}'")
            seen.add(policy_name)
            single = AbstractRule(effect=rule.effect, actions=(action_id,), negated=False, resource=rule.resource)
            encoded.append(EncodedStatement(policy_name, encode_statement(single)))

    logger.debug("Encoded rule %s into %s statement(s)", base, len(encoded), extra={"items": len(encoded)})
    return encoded


def policy_document(statements: Iterable[Mapping[str, Any]]) -> Dict[str, Any]:
    return {
        "Version": POLICY_LANGUAGE_VERSION,
        STATEMENT_KEY: [dict(s) for s in statements],
    }


def serialize_document(document: Mapping[str, Any]) -> str:
    return json.dumps(document, sort_keys=True, ensure_ascii=False, separators=(",", ":"))
