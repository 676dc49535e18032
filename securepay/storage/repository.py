"""
Settings Repository - typed access to the persisted data sets.

Reads go through the validating loaders; malformed or missing slots come
back as defaults and are logged. Writes are best effort (see write_slot).
"""

from typing import Optional

import structlog

from securepay.schemas.feedback import FeedbackItem
from securepay.schemas.integrations import IntegrationTarget
from securepay.schemas.rules import RuleDefinition
from securepay.schemas.settings import RuntimeSettings
from securepay.schemas.thresholds import ThresholdConfig
from securepay.storage.base import (
    FEEDBACK_KEY,
    INTEGRATIONS_KEY,
    RULES_KEY,
    RUNTIME_SETTINGS_KEY,
    THRESHOLD_CONFIG_KEY,
    KeyValueStore,
    read_slot,
    write_slot,
)
from securepay.storage.loaders import (
    LoadResult,
    dump_models,
    load_feedback,
    load_integration_targets,
    load_rules,
    load_runtime_settings,
    load_threshold_config,
)

logger = structlog.get_logger(__name__)


def _report(key: str, result: LoadResult) -> None:
    if result.errors:
        logger.warning(
            "stored_payload_invalid",
            key=key,
            source=result.source,
            errors=result.errors,
        )


class SettingsRepository:
    """Rules, threshold config, integrations, runtime settings and feedback."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    async def _load(self, key: str, loader) -> LoadResult:
        result = loader(await read_slot(self.store, key))
        _report(key, result)
        return result

    # ── Rules ─────────────────────────────────────────────────────────────

    async def get_rules(self) -> list[RuleDefinition]:
        return (await self._load(RULES_KEY, load_rules)).value

    async def save_rules(self, rules: list[RuleDefinition]) -> bool:
        return await write_slot(self.store, RULES_KEY, dump_models(rules))

    # ── Threshold config ──────────────────────────────────────────────────

    async def get_threshold_config(self) -> ThresholdConfig:
        return (await self._load(THRESHOLD_CONFIG_KEY, load_threshold_config)).value

    async def save_threshold_config(self, config: ThresholdConfig) -> bool:
        return await write_slot(self.store, THRESHOLD_CONFIG_KEY, config.model_dump_json())

    # ── Integration targets ───────────────────────────────────────────────

    async def get_integration_targets(self) -> list[IntegrationTarget]:
        return (await self._load(INTEGRATIONS_KEY, load_integration_targets)).value

    async def save_integration_targets(self, targets: list[IntegrationTarget]) -> bool:
        return await write_slot(self.store, INTEGRATIONS_KEY, dump_models(targets))

    async def get_integration_target(self, target_id: str) -> Optional[IntegrationTarget]:
        for target in await self.get_integration_targets():
            if target.id == target_id:
                return target
        return None

    # ── Runtime settings ──────────────────────────────────────────────────

    async def get_runtime_settings(
        self, default: Optional[RuntimeSettings] = None
    ) -> RuntimeSettings:
        result = await self._load(RUNTIME_SETTINGS_KEY, load_runtime_settings)
        if result.used_defaults and default is not None:
            return default
        return result.value

    async def save_runtime_settings(self, runtime: RuntimeSettings) -> bool:
        return await write_slot(self.store, RUNTIME_SETTINGS_KEY, runtime.model_dump_json())

    # ── Analyst feedback ──────────────────────────────────────────────────

    async def get_feedback(self) -> list[FeedbackItem]:
        return (await self._load(FEEDBACK_KEY, load_feedback)).value

    async def save_feedback(self, items: list[FeedbackItem]) -> bool:
        return await write_slot(self.store, FEEDBACK_KEY, dump_models(items))
