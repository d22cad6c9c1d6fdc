"""
Configuration management and loading.

Handles engine settings: tier limits, batch sizes, provider rates,
cache lifetimes and queue pacing.
"""

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping

import yaml

from suggestion_engine.storage.models import Provider, SuggestionType, Tier


@dataclass(frozen=True)
class TierLimits:
    """Request ceilings for one tier. -1 means unlimited."""
    daily: int
    session: int

    def __post_init__(self):
        """Validate limits are positive or the unlimited marker."""
        for name in ("daily", "session"):
            value = getattr(self, name)
            if value != -1 and value <= 0:
                raise ValueError(f"{name} limit must be > 0 or -1 for unlimited")


@dataclass(frozen=True)
class CacheConfig:
    """Cache lifetimes."""
    batch_ttl_hours: float = 8.0
    query_ttl_seconds: float = 3600.0
    trending_ttl_seconds: float = 3600.0
    personalized_ttl_seconds: float = 7200.0
    default_ttl_seconds: float = 8 * 3600.0

    def __post_init__(self):
        """Validate lifetimes are positive."""
        for f in fields(self):
            if getattr(self, f.name) <= 0:
                raise ValueError(f"{f.name} must be > 0")


@dataclass(frozen=True)
class QueueConfig:
    """Pacing of the deferred batch queue."""
    delay_seconds: float = 1.0

    def __post_init__(self):
        if self.delay_seconds < 0:
            raise ValueError("delay_seconds must be >= 0")


@dataclass(frozen=True)
class ProviderConfig:
    """Model names and reply budget for the two providers."""
    openai_model: str = "gpt-4o"
    anthropic_model: str = "claude-sonnet-4-20250514"
    max_tokens: int = 3000

    def __post_init__(self):
        if not self.openai_model or not self.anthropic_model:
            raise ValueError("model names cannot be empty")
        if self.max_tokens <= 0:
            raise ValueError("max_tokens must be > 0")


DEFAULT_TIERS: Dict[Tier, TierLimits] = {
    Tier.FREE: TierLimits(daily=20, session=10),
    Tier.PRO: TierLimits(daily=200, session=50),
    Tier.ENTERPRISE: TierLimits(daily=-1, session=-1),
}

DEFAULT_BATCH_SIZES: Dict[SuggestionType, int] = {
    SuggestionType.CREATIVE: 15,
    SuggestionType.STRUCTURED: 20,
    SuggestionType.TECHNICAL: 12,
    SuggestionType.TRENDING: 10,
}

# Cost per 1K tokens
DEFAULT_PROVIDER_RATES: Dict[Provider, float] = {
    Provider.OPENAI: 0.03,
    Provider.ANTHROPIC: 0.025,
}


@dataclass(frozen=True)
class EngineConfig:
    """Complete engine configuration. EngineConfig() is a valid default."""
    tiers: Dict[Tier, TierLimits] = field(default_factory=lambda: dict(DEFAULT_TIERS))
    batch_sizes: Dict[SuggestionType, int] = field(default_factory=lambda: dict(DEFAULT_BATCH_SIZES))
    provider_rates: Dict[Provider, float] = field(default_factory=lambda: dict(DEFAULT_PROVIDER_RATES))
    cache: CacheConfig = field(default_factory=CacheConfig)
    queue: QueueConfig = field(default_factory=QueueConfig)
    providers: ProviderConfig = field(default_factory=ProviderConfig)

    def __post_init__(self):
        """Validate every tier, type and provider is covered."""
        missing_tiers = set(Tier) - set(self.tiers)
        if missing_tiers:
            raise ValueError(f"Missing tier limits: {sorted(t.value for t in missing_tiers)}")
        missing_types = set(SuggestionType) - set(self.batch_sizes)
        if missing_types:
            raise ValueError(f"Missing batch sizes: {sorted(t.value for t in missing_types)}")
        for type_, size in self.batch_sizes.items():
            if size <= 0:
                raise ValueError(f"batch size for {type_.value} must be > 0")
        missing_providers = set(Provider) - set(self.provider_rates)
        if missing_providers:
            raise ValueError(f"Missing provider rates: {sorted(p.value for p in missing_providers)}")
        for provider, rate in self.provider_rates.items():
            if rate < 0:
                raise ValueError(f"rate for {provider.value} must be >= 0")

    def get_tier_limits(self, tier: Tier) -> TierLimits:
        """Get the limits for a tier."""
        return self.tiers[tier]


def load_engine_config(path: str) -> EngineConfig:
    """Load and validate engine configuration from a YAML file.

    Any section may be omitted and falls back to its defaults. Unknown
    keys are rejected so a typo never silently loosens a quota.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated EngineConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Engine config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not raw_config:
        raise ValueError("Configuration file is empty")
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a dictionary")

    allowed_top_keys = {'tiers', 'batch_sizes', 'provider_rates', 'cache', 'queue', 'providers'}
    unknown_keys = set(raw_config.keys()) - allowed_top_keys
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    kwargs: Dict[str, Any] = {}

    if 'tiers' in raw_config:
        tiers = dict(DEFAULT_TIERS)
        for name, limits in _section(raw_config, 'tiers').items():
            tier = _parse_enum(Tier, name, 'tiers')
            if not isinstance(limits, dict):
                raise ValueError(f"Tier '{name}' must be a dictionary")
            _reject_unknown(limits, {'daily', 'session'}, f"tiers.{name}")
            if 'daily' not in limits or 'session' not in limits:
                raise ValueError(f"Tier '{name}' requires both 'daily' and 'session'")
            tiers[tier] = TierLimits(
                daily=_parse_int(limits['daily'], f"tiers.{name}.daily"),
                session=_parse_int(limits['session'], f"tiers.{name}.session"),
            )
        kwargs['tiers'] = tiers

    if 'batch_sizes' in raw_config:
        sizes = dict(DEFAULT_BATCH_SIZES)
        for name, size in _section(raw_config, 'batch_sizes').items():
            sizes[_parse_enum(SuggestionType, name, 'batch_sizes')] = _parse_int(size, f"batch_sizes.{name}")
        kwargs['batch_sizes'] = sizes

    if 'provider_rates' in raw_config:
        rates = dict(DEFAULT_PROVIDER_RATES)
        for name, rate in _section(raw_config, 'provider_rates').items():
            rates[_parse_enum(Provider, name, 'provider_rates')] = _parse_number(rate, f"provider_rates.{name}")
        kwargs['provider_rates'] = rates

    if 'cache' in raw_config:
        kwargs['cache'] = _parse_dataclass(CacheConfig, _section(raw_config, 'cache'), 'cache')
    if 'queue' in raw_config:
        kwargs['queue'] = _parse_dataclass(QueueConfig, _section(raw_config, 'queue'), 'queue')
    if 'providers' in raw_config:
        kwargs['providers'] = _parse_dataclass(ProviderConfig, _section(raw_config, 'providers'), 'providers')

    return EngineConfig(**kwargs)


def _section(raw_config: Mapping[str, Any], name: str) -> Dict[str, Any]:
    data = raw_config[name]
    if not isinstance(data, dict):
        raise ValueError(f"'{name}' must be a dictionary")
    return data


def _reject_unknown(data: Mapping[str, Any], allowed: set, path: str) -> None:
    unknown_keys = set(data.keys()) - allowed
    if unknown_keys:
        raise ValueError(f"Unknown keys in {path}: {unknown_keys}")


def _parse_enum(enum_cls, value: Any, path: str):
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        valid = [member.value for member in enum_cls]
        raise ValueError(f"Unknown key '{value}' in {path}; must be one of: {valid}")


def _parse_int(value: Any, path: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"'{path}' must be an integer")
    return value


def _parse_number(value: Any, path: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"'{path}' must be a number")
    return float(value)


def _parse_dataclass(cls, data: Dict[str, Any], path: str):
    """Build a flat settings dataclass from a YAML mapping.

    Args:
        cls: Dataclass to build
        data: Section contents
        path: Section name for error messages

    Returns:
        Validated instance of cls

    Raises:
        ValueError: On unknown keys or wrongly typed values
    """
    declared = {f.name: f for f in fields(cls)}
    _reject_unknown(data, set(declared), path)

    values: Dict[str, Any] = {}
    for key, value in data.items():
        default = getattr(cls(), key)
        if isinstance(default, str):
            if not isinstance(value, str):
                raise ValueError(f"'{path}.{key}' must be a string")
            values[key] = value
        elif isinstance(default, int) and not isinstance(default, bool) and not isinstance(default, float):
            values[key] = _parse_int(value, f"{path}.{key}")
        else:
            values[key] = _parse_number(value, f"{path}.{key}")
    return cls(**values)
