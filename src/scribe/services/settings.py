"""Settings dataclass and persistence helpers."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Callable, Dict, Mapping

import httpx

from ..ai.client import DEFAULT_ENDPOINT_URL, DEFAULT_MODEL
from ..ai.stream_decoder import DEFAULT_FRAMING, FRAMING_CHOICES

__all__ = [
    "SETTING_COERCERS",
    "Settings",
    "SettingsStore",
    "apply_overrides",
    "coerce_debug_logging",
    "coerce_endpoint_url",
    "coerce_model",
    "coerce_request_timeout",
    "normalize_framing",
    "settings_from_payload",
    "settings_to_payload",
]

LOGGER = logging.getLogger(__name__)
_SETTINGS_DIR = Path.home() / ".scribe"
_DEFAULT_SETTINGS_PATH = _SETTINGS_DIR / "settings.json"
_SETTINGS_VERSION = 1
_ENV_OVERRIDES: Mapping[str, str] = {
    "SCRIBE_ENDPOINT_URL": "endpoint_url",
    "SCRIBE_MODEL": "model",
    "SCRIBE_FRAMING": "framing",
    "SCRIBE_DEBUG_LOGGING": "debug_logging",
    "SCRIBE_REQUEST_TIMEOUT": "request_timeout",
}
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_FALSE_VALUES = {"0", "false", "no", "off", "disabled"}
_NONE_VALUES = {"", "none", "null"}


@dataclass(slots=True)
class Settings:
    """User-configurable plugin settings persisted between sessions."""

    endpoint_url: str = DEFAULT_ENDPOINT_URL
    model: str = DEFAULT_MODEL
    framing: str = DEFAULT_FRAMING
    request_timeout: float | None = None
    debug_logging: bool = False
    default_headers: dict[str, str] = field(default_factory=dict)


def normalize_framing(value: Any) -> str:
    """Return a supported framing name or raise ``ValueError``."""

    framing = str(value or "").strip().lower()
    if framing not in FRAMING_CHOICES:
        raise ValueError(
            f"Unsupported framing {value!r}; expected one of {', '.join(FRAMING_CHOICES)}"
        )
    return framing


def coerce_endpoint_url(value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError(f"Endpoint URL must be a string, got {type(value).__name__}")
    text = value.strip()
    try:
        url = httpx.URL(text)
    except httpx.InvalidURL as exc:
        raise ValueError(f"Invalid endpoint URL {value!r}: {exc}") from exc
    if url.scheme not in {"http", "https"} or not url.host:
        raise ValueError(f"Endpoint URL must be an absolute http(s) URL, got {value!r}")
    return text


def coerce_model(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Model name must be a non-empty string, got {value!r}")
    return value.strip()


def coerce_request_timeout(value: Any) -> float | None:
    """Accept a positive number of seconds; ``None`` or an empty string waits indefinitely."""

    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        if text.lower() in _NONE_VALUES:
            return None
        try:
            value = float(text)
        except ValueError as exc:
            raise ValueError(f"Timeout must be a number of seconds, got {text!r}") from exc
    elif isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"Timeout must be a number of seconds, got {value!r}")
    if value <= 0:
        raise ValueError("Timeout must be positive; leave it empty to wait indefinitely")
    return float(value)


def coerce_debug_logging(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    lowered = str(value).strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Cannot coerce {value!r} to a boolean")


def _coerce_headers(value: Any) -> dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"default_headers must be a mapping, got {type(value).__name__}")
    return {str(key): str(item) for key, item in value.items()}


SETTING_COERCERS: Mapping[str, Callable[[Any], Any]] = {
    "endpoint_url": coerce_endpoint_url,
    "model": coerce_model,
    "framing": normalize_framing,
    "request_timeout": coerce_request_timeout,
    "debug_logging": coerce_debug_logging,
    "default_headers": _coerce_headers,
}


def _coerce_known(values: Mapping[str, Any], *, source: str) -> Dict[str, Any]:
    """Coerce the known keys of ``values``, dropping invalid ones with a warning."""

    coerced: Dict[str, Any] = {}
    for key, value in values.items():
        coerce = SETTING_COERCERS.get(key)
        if coerce is None:
            continue
        try:
            coerced[key] = coerce(value)
        except ValueError as exc:
            LOGGER.warning("Ignoring %s setting %s: %s", source, key, exc)
    return coerced


def settings_from_payload(payload: Mapping[str, Any] | None) -> Settings:
    """Merge stored data over the defaults, ignoring unknown or invalid keys."""

    if not payload:
        return Settings()
    allowed = {item.name for item in fields(Settings)}
    unknown = sorted(set(payload) - allowed - {"version"})
    if unknown:
        LOGGER.debug("Ignoring unknown settings keys: %s", unknown)
    return Settings(**_coerce_known(payload, source="stored"))


def settings_to_payload(settings: Settings) -> Dict[str, Any]:
    data = asdict(settings)
    data["version"] = _SETTINGS_VERSION
    return data


class SettingsStore:
    """Persistence adapter for :class:`Settings` backed by a JSON file."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or _DEFAULT_SETTINGS_PATH

    @property
    def path(self) -> Path:
        """Return the resolved path backing this store."""

        return self._path

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> Settings:
        """Load settings from disk, then apply runtime and environment overrides."""

        settings = settings_from_payload(self.read_payload())
        if overrides:
            settings = apply_overrides(settings, overrides, source="CLI")
        return self._apply_env_overrides(settings)

    def save(self, settings: Settings) -> Path:
        """Persist settings to disk with an atomic rename."""

        self.write_payload(settings_to_payload(settings))
        LOGGER.debug("Settings saved to %s", self._path)
        return self._path

    def read_payload(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as exc:
            LOGGER.warning("Settings file %s is not valid JSON: %s", self._path, exc)
            return {}
        if not isinstance(payload, dict):
            LOGGER.warning("Settings file %s does not contain a JSON object", self._path)
            return {}
        return payload

    def write_payload(self, payload: Mapping[str, Any]) -> None:
        body = json.dumps(dict(payload), indent=2, sort_keys=True)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        tmp_path.write_text(body, encoding="utf-8")
        tmp_path.replace(self._path)

    def _apply_env_overrides(self, settings: Settings) -> Settings:
        overrides = {
            field_name: os.environ[env_name]
            for env_name, field_name in _ENV_OVERRIDES.items()
            if env_name in os.environ
        }
        if overrides:
            settings = apply_overrides(settings, overrides, source="environment")
        return settings


def apply_overrides(
    settings: Settings,
    overrides: Mapping[str, Any],
    *,
    source: str = "runtime",
) -> Settings:
    """Return ``settings`` with the known, valid keys of ``overrides`` replaced."""

    filtered = _coerce_known(overrides, source=source)
    if filtered:
        LOGGER.debug("Applying %s settings overrides: %s", source, sorted(filtered))
        settings = replace(settings, **filtered)
    return settings
