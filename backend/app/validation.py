"""
X Tracking API — Declarative Request Validation
=================================================

What:  Per-field validation rules attached to a route, one generic evaluator,
       and the FastAPI dependency that runs them against the JSON body.
Why:   Routes declare WHAT to check as plain data; the evaluator owns HOW.
       Every failed rule is reported, not just the first.
When:  After the route's auth gate has passed and before the handler runs.

Rule variants:
    NonEmpty(field, message)        value, coerced to text, is not ""
    IsEmail(field, message)         value is a syntactically valid email address
    MinLength(field, n, message)    value, coerced to text, has at least n chars
    Exists(field, message)          key is present in the body (null counts)
    IntRange(field, lo, hi, message) value, coerced to text, is a whole number
                                    between lo and hi inclusive
    OptionalRule(rule)              skip `rule` when the key is absent

Text coercion (used by NonEmpty, MinLength and IntRange):
    absent / null → ""      booleans → "true" / "false"
    numbers → decimal text  [] / {} → ""

Bodies are read as JSON only when the request declares a JSON media type
(application/json or +json). Anything else reads as {}, so presence rules
report the missing fields. The non-standard constants NaN and Infinity are
rejected as malformed JSON.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Sequence, Tuple, Type, TypeVar, Union

from email_validator import EmailNotValidError, validate_email
from fastapi import Request
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from app.exceptions import ValidationError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

VALIDATION_MESSAGE = "Invalid request data"


# ══════════════════════════════════════════════════════════════════════════
# Rule Variants
# ══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class NonEmpty:
    field: str
    message: str


@dataclass(frozen=True)
class IsEmail:
    field: str
    message: str


@dataclass(frozen=True)
class MinLength:
    field: str
    min_length: int
    message: str


@dataclass(frozen=True)
class Exists:
    field: str
    message: str


@dataclass(frozen=True)
class IntRange:
    field: str
    min_value: int
    max_value: int
    message: str


@dataclass(frozen=True)
class OptionalRule:
    rule: "Rule"

    @property
    def field(self) -> str:
        return self.rule.field

    @property
    def message(self) -> str:
        return self.rule.message


Rule = Union[NonEmpty, IsEmail, MinLength, Exists, IntRange, OptionalRule]
RuleSet = Tuple[Rule, ...]


# ══════════════════════════════════════════════════════════════════════════
# Evaluator
# ══════════════════════════════════════════════════════════════════════════

_ABSENT = object()

_INTEGER_TEXT = re.compile(r"[+-]?[0-9]+")


def _as_text(value: Any) -> str:
    if value is None or value is _ABSENT:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (list, dict)):
        return json.dumps(value) if value else ""
    return str(value)


def is_email(value: Any) -> bool:
    """Syntax-only email check (no DNS / deliverability lookups)."""
    if not isinstance(value, str) or not value:
        return False
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def is_int_in_range(value: Any, min_value: int, max_value: int) -> bool:
    text = _as_text(value)
    if not _INTEGER_TEXT.fullmatch(text):
        return False
    return min_value <= int(text) <= max_value


def rule_passes(rule: Rule, body: Mapping[str, Any]) -> bool:
    """Evaluate a single rule against the request body."""
    value = body.get(rule.field, _ABSENT)

    if isinstance(rule, OptionalRule):
        if value is _ABSENT:
            return True
        return rule_passes(rule.rule, body)
    if isinstance(rule, Exists):
        return value is not _ABSENT
    if isinstance(rule, NonEmpty):
        return _as_text(value) != ""
    if isinstance(rule, MinLength):
        return len(_as_text(value)) >= rule.min_length
    if isinstance(rule, IntRange):
        return is_int_in_range(value, rule.min_value, rule.max_value)
    if isinstance(rule, IsEmail):
        return value is not _ABSENT and is_email(value)
    raise TypeError(f"Unknown validation rule: {rule!r}")


def violation(field: str, message: str, location: str = "body") -> Dict[str, str]:
    return {"field": field, "message": message, "location": location}


def evaluate(rules: Sequence[Rule], body: Mapping[str, Any]) -> List[Dict[str, str]]:
    """
    Run every rule in declaration order and collect the failures.

    Returns:
        [] when the body passes, otherwise one {"field", "message", "location"}
        entry per failed rule, in rule order.
    """
    return [
        violation(rule.field, rule.message)
        for rule in rules
        if not rule_passes(rule, body)
    ]


# ══════════════════════════════════════════════════════════════════════════
# FastAPI Integration
# ══════════════════════════════════════════════════════════════════════════

def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def is_json_media_type(content_type: str) -> bool:
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type == "application/json" or media_type.endswith("+json")


async def read_json_body(request: Request) -> Dict[str, Any]:
    """
    Read the request body as a JSON object.

    An empty body, or one not sent as JSON, reads as {} so that presence
    rules report the missing fields. Malformed JSON or a non-object payload
    is a single violation on the pseudo-field "body".
    """
    if not is_json_media_type(request.headers.get("content-type", "")):
        return {}
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        body = json.loads(raw, parse_constant=_reject_constant)
    except ValueError:
        raise ValidationError(
            message="Request body must be valid JSON",
            violations=[violation("body", "Request body must be valid JSON")],
        )
    if not isinstance(body, dict):
        raise ValidationError(
            message="Request body must be a JSON object",
            violations=[violation("body", "Request body must be a JSON object")],
        )
    return body


def validate_body(rules: RuleSet) -> Callable[[Request], Awaitable[Dict[str, Any]]]:
    """
    Build a dependency that parses the JSON body and enforces `rules`.

    The dependency returns the body dict when every rule passes and raises
    ValidationError carrying all violations otherwise.
    """

    async def dependency(request: Request) -> Dict[str, Any]:
        body = await read_json_body(request)
        violations = evaluate(rules, body)
        if violations:
            logger.debug(
                "%s %s failed %d rule(s): %s",
                request.method,
                request.url.path,
                len(violations),
                ", ".join(v["field"] for v in violations),
            )
            raise ValidationError(message=VALIDATION_MESSAGE, violations=violations)
        return body

    return dependency


def parse_payload(model: Type[ModelT], data: Any, location: str = "body") -> ModelT:
    """
    Validate handler-level payloads with a Pydantic model, reporting failures
    in the same shape as route rules.
    """
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        violations = [
            violation(".".join(str(part) for part in err["loc"]) or location, err["msg"], location)
            for err in e.errors()
        ]
        raise ValidationError(message=VALIDATION_MESSAGE, violations=violations)
