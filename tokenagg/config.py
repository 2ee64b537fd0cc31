"""Configuration management.

Settings are read from environment variables and a local ``.env`` file, with
values in the real environment taking precedence over the file. Engine and
service code never reads :data:`settings` directly; :mod:`tokenagg.builder`
passes the relevant values in.
"""

from __future__ import annotations

import json
from typing import Annotated, Any, Dict, List

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

SORT_CHOICES = ("most-swapped", "most-swapped-accounting-for-gas")


def _parse_json_value(value: Any) -> Any:
    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        return json.loads(raw)
    return value


def _normalize_source_config(data: Any) -> dict[str, dict[str, Any]]:
    """Return a per-source config mapping keyed by lower-case source id.

    Parameters
    ----------
    data:
        Mapping or JSON string shaped ``{source_id: {key: value}}``. Entries
        whose value is not a mapping are skipped.
    """

    try:
        data = _parse_json_value(data)
    except ValueError as exc:
        raise ValueError(f"SOURCE_CONFIG is not valid JSON: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError("SOURCE_CONFIG must be a JSON object")

    normalized: dict[str, dict[str, Any]] = {}
    for source_id, cfg in data.items():
        key = str(source_id).strip().lower()
        if not key or not isinstance(cfg, dict):
            continue
        normalized.setdefault(key, {}).update(cfg)
    return normalized


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    env: str = "dev"
    log_level: str = "INFO"
    # Optional log file path; when set, logs also write to this file.
    log_file: str | None = None
    log_max_bytes: int = 1_000_000
    log_backup_count: int = 3

    # Aggregate call defaults
    default_timeout: str = "10s"
    ignored_failed: bool = True
    sort_by: str = "most-swapped"

    # Enabled quote sources, in registration (tie-break) order
    sources: Annotated[List[str], NoDecode] = ["jupiter", "li-fi"]
    # Extra per-source config, e.g. {"jupiter": {"slippage_bps": 50}}
    source_config: Annotated[Dict[str, Dict[str, Any]], NoDecode] = {}

    jupiter_api_key: str | None = None
    lifi_api_key: str | None = None
    lifi_integrator: str | None = None

    solana_rpc_url: str | None = None
    # Optional RPC override per EVM chain id, as JSON: {"1": "https://..."}
    evm_rpc_urls: Annotated[Dict[int, str], NoDecode] = {}

    prom_port: int = 9109
    metrics_enabled: bool = False

    model_config = SettingsConfigDict(env_file=".env", env_prefix="", extra="ignore")

    @field_validator("sources", mode="before")
    @classmethod
    def _validate_sources(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            raw = value.strip()
            if not raw:
                return []
            try:
                parsed = json.loads(raw)
            except ValueError:
                parsed = raw.split(",")
            value = [parsed] if isinstance(parsed, str) else parsed
        cleaned: list[str] = []
        for entry in value:
            s = str(entry).strip().strip("\"'").lower()
            if s and s not in cleaned:
                cleaned.append(s)
        return cleaned

    @field_validator("source_config", mode="before")
    @classmethod
    def _validate_source_config(cls, value: Any) -> dict[str, dict[str, Any]]:
        return _normalize_source_config(value)

    @field_validator("evm_rpc_urls", mode="before")
    @classmethod
    def _validate_evm_rpc_urls(cls, value: Any) -> dict[int, str]:
        data = _parse_json_value(value) or {}
        if not isinstance(data, dict):
            raise ValueError("EVM_RPC_URLS must be a JSON object")
        return {int(k): str(v) for k, v in data.items() if v}

    @field_validator("sort_by")
    @classmethod
    def _validate_sort_by(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in SORT_CHOICES:
            raise ValueError(f"sort_by must be one of {', '.join(SORT_CHOICES)}")
        return value


# Singleton settings instance populated on import.
settings = Settings()


def config_for_source(source_id: str, cfg: Settings | None = None) -> dict[str, Any]:
    """Return the global config of *source_id*.

    Credentials from dedicated settings come first; ``source_config`` entries
    for the same source override them.
    """

    cfg = cfg or settings
    source_id = source_id.lower()
    base: dict[str, Any] = {}
    if source_id == "jupiter" and cfg.jupiter_api_key:
        base["api_key"] = cfg.jupiter_api_key
    elif source_id == "li-fi":
        if cfg.lifi_api_key:
            base["api_key"] = cfg.lifi_api_key
        if cfg.lifi_integrator:
            base["integrator"] = cfg.lifi_integrator
    base.update(cfg.source_config.get(source_id, {}))
    return base
