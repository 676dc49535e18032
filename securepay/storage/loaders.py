"""
Schema-validated loading of persisted slots.

Raw slot contents are never trusted. Each loader parses JSON, validates it
with pydantic, and returns a LoadResult tagged with where the value came
from. Malformed payloads fall back to built-in defaults:

- rules / integration targets: keep valid entries, else the defaults
- threshold config: merge valid fields over the defaults
- feedback: keep valid entries, else empty
- runtime settings: stored object if valid, else the defaults

The audit ledger reads its own slot (see securepay.audit.ledger): a damaged
chain is kept and reported, never replaced.
"""

import json
import math
from dataclasses import dataclass, field
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from securepay.engine.rules import DEFAULT_RULES
from securepay.engine.thresholds import clamp_threshold
from securepay.schemas.feedback import FeedbackItem
from securepay.schemas.integrations import DEFAULT_INTEGRATION_TARGETS, IntegrationTarget
from securepay.schemas.rules import RuleDefinition
from securepay.schemas.settings import RuntimeSettings
from securepay.schemas.thresholds import DEFAULT_THRESHOLD_CONFIG, ThresholdConfig
from securepay.schemas.transaction import TransactionType

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

SOURCE_STORED = "stored"
SOURCE_DEFAULT = "default"

_MISSING = object()
_TYPE_VALUES = frozenset(t.value for t in TransactionType)


@dataclass(frozen=True)
class LoadResult(Generic[T]):
    """A loaded value plus provenance and any validation errors."""
    value: T
    source: str
    errors: list[str] = field(default_factory=list)

    @property
    def used_defaults(self) -> bool:
        return self.source == SOURCE_DEFAULT


def _decode(raw: Optional[str], errors: list[str]) -> Any:
    if raw is None or raw == "":
        return _MISSING
    try:
        return json.loads(raw)
    except ValueError as e:
        errors.append(f"invalid JSON: {e}")
        return _MISSING


def _valid_items(payload: Any, model: type[M], errors: list[str]) -> list[M]:
    if not isinstance(payload, list):
        errors.append(f"expected a list, got {type(payload).__name__}")
        return []

    adapter = TypeAdapter(model)
    items: list[M] = []
    for index, item in enumerate(payload):
        try:
            items.append(adapter.validate_python(item))
        except ValidationError as e:
            errors.append(f"entry {index} discarded: {e.error_count()} validation error(s)")
    return items


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def load_rules(raw: Optional[str]) -> LoadResult[list[RuleDefinition]]:
    errors: list[str] = []
    payload = _decode(raw, errors)
    if payload is not _MISSING:
        rules = _valid_items(payload, RuleDefinition, errors)
        if rules:
            return LoadResult(rules, SOURCE_STORED, errors)
    return LoadResult([r.model_copy() for r in DEFAULT_RULES], SOURCE_DEFAULT, errors)


def load_threshold_config(raw: Optional[str]) -> LoadResult[ThresholdConfig]:
    """Merge a (possibly partial) stored config over the defaults."""
    errors: list[str] = []
    payload = _decode(raw, errors)
    config = DEFAULT_THRESHOLD_CONFIG.model_copy(deep=True)

    if payload is _MISSING:
        return LoadResult(config, SOURCE_DEFAULT, errors)
    if not isinstance(payload, dict):
        errors.append(f"expected an object, got {type(payload).__name__}")
        return LoadResult(config, SOURCE_DEFAULT, errors)

    default_threshold = payload.get("default_threshold")
    if _is_number(default_threshold):
        config.default_threshold = clamp_threshold(float(default_threshold))
    elif default_threshold is not None:
        errors.append("default_threshold ignored: not a number")

    by_type = payload.get("by_type") or {}
    if isinstance(by_type, dict):
        for key, value in by_type.items():
            if key in _TYPE_VALUES and _is_number(value):
                config.by_type[TransactionType(key)] = float(value)
            else:
                errors.append(f"by_type[{key}] ignored")
    else:
        errors.append("by_type ignored: not an object")

    by_country = payload.get("by_country") or {}
    if isinstance(by_country, dict):
        for key, value in by_country.items():
            if _is_number(value):
                config.by_country[str(key)] = float(value)
            else:
                errors.append(f"by_country[{key}] ignored")
    else:
        errors.append("by_country ignored: not an object")

    for name in ("night_shift_delta", "weekend_delta"):
        value = payload.get(name)
        if _is_number(value):
            setattr(config, name, float(value))
        elif value is not None:
            errors.append(f"{name} ignored: not a number")

    return LoadResult(config, SOURCE_STORED, errors)


def load_feedback(raw: Optional[str]) -> LoadResult[list[FeedbackItem]]:
    errors: list[str] = []
    payload = _decode(raw, errors)
    if payload is _MISSING:
        return LoadResult([], SOURCE_DEFAULT, errors)
    items = _valid_items(payload, FeedbackItem, errors)
    return LoadResult(items, SOURCE_STORED if items else SOURCE_DEFAULT, errors)


def load_integration_targets(raw: Optional[str]) -> LoadResult[list[IntegrationTarget]]:
    errors: list[str] = []
    payload = _decode(raw, errors)
    if payload is not _MISSING:
        targets = _valid_items(payload, IntegrationTarget, errors)
        if targets:
            return LoadResult(targets, SOURCE_STORED, errors)
    return LoadResult(
        [t.model_copy() for t in DEFAULT_INTEGRATION_TARGETS], SOURCE_DEFAULT, errors
    )


def load_runtime_settings(raw: Optional[str]) -> LoadResult[RuntimeSettings]:
    errors: list[str] = []
    payload = _decode(raw, errors)
    if payload is not _MISSING:
        try:
            return LoadResult(RuntimeSettings.model_validate(payload), SOURCE_STORED, errors)
        except ValidationError as e:
            errors.append(f"runtime settings discarded: {e.error_count()} validation error(s)")
    return LoadResult(RuntimeSettings(), SOURCE_DEFAULT, errors)


def dump_models(items: list[BaseModel]) -> str:
    """Serialize a list of models for a slot."""
    return json.dumps([item.model_dump(mode="json") for item in items])
