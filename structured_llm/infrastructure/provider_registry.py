"""Provider Registry — maps a complexity tier to a concrete provider configuration.

Invariants:
    - HIGH → ChatGPT, LOW → DeepSeek (static table, deterministic)
    - Missing credential raises ProviderConfigError for that tier only
    - Resolution performs no IO and touches no shared state

Design Decisions:
    - One small class per vendor behind the ProviderSpec protocol, selected by a
      tier-keyed factory table (adding a vendor = one class + one table entry)
    - Settings read at call time, not import time: tests pass explicit Settings
"""

from typing import Protocol

from structured_llm.config import Settings
from structured_llm.core.domain_types import Complexity, ProviderConfig, ProviderName
from structured_llm.core.errors import ProviderConfigError


class ProviderSpec(Protocol):
    name: ProviderName
    credential_setting: str

    def build(self, settings: Settings) -> ProviderConfig: ...


class ChatGptProvider:
    name = ProviderName.CHATGPT
    credential_setting = "CHATGPT_API_KEY"

    def build(self, settings: Settings) -> ProviderConfig:
        if not settings.chatgpt_api_key:
            raise ProviderConfigError(self.credential_setting)
        return ProviderConfig(
            provider=self.name,
            base_url=settings.chatgpt_base_url,
            api_key=settings.chatgpt_api_key,
            model=settings.chatgpt_model,
        )


class DeepSeekProvider:
    name = ProviderName.DEEPSEEK
    credential_setting = "DEEPSEEK_API_KEY"

    def build(self, settings: Settings) -> ProviderConfig:
        if not settings.deepseek_api_key:
            raise ProviderConfigError(self.credential_setting)
        return ProviderConfig(
            provider=self.name,
            base_url=settings.deepseek_base_url,
            api_key=settings.deepseek_api_key,
            model=settings.deepseek_model,
        )


PROVIDERS_BY_TIER: dict[Complexity, ProviderSpec] = {
    Complexity.HIGH: ChatGptProvider(),
    Complexity.LOW: DeepSeekProvider(),
}


def resolve_provider(complexity: Complexity, settings: Settings) -> ProviderConfig:
    """Return the provider config for a tier or raise ProviderConfigError."""
    return PROVIDERS_BY_TIER[complexity].build(settings)


def configured_tiers(settings: Settings) -> dict[str, bool]:
    """Which tiers have credentials. For readiness probes — never exposes keys."""
    status = {}
    for tier, spec in PROVIDERS_BY_TIER.items():
        try:
            spec.build(settings)
            status[tier.value] = True
        except ProviderConfigError:
            status[tier.value] = False
    return status
