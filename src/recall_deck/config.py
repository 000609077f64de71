"""Settings loader: built-in defaults, then an optional YAML file, then environment.

The YAML file may use flat keys matching the ``Settings`` fields or group them
under ``storage:`` and ``flashcards:`` sections::

    storage:
      cards_path: ~/.local/share/recall_deck/flashcards.json
      auto_save: true
    flashcards:
      maximum_interval_days: 180
      default_tags: [spanish]
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping

import yaml

PACKAGE_ROOT = Path(__file__).resolve().parent
PROJECT_ROOT = PACKAGE_ROOT.parent.parent
DATA_DIR = PROJECT_ROOT / "data"
DEFAULT_CONFIG_PATH = DATA_DIR / "config.yaml"

_SECTIONS: tuple[str, ...] = ("storage", "flashcards")
_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}

_ENV_KEYS: dict[str, str] = {
    "RECALL_DECK_CARDS_PATH": "cards_path",
    "RECALL_DECK_HISTORY_PATH": "history_path",
    "RECALL_DECK_EXPORT_PATH": "export_path",
    "RECALL_DECK_AUTO_SAVE": "auto_save",
    "RECALL_DECK_TARGET_RETENTION": "target_retention",
    "RECALL_DECK_MAX_INTERVAL": "maximum_interval_days",
    "RECALL_DECK_LEARN_AHEAD_DAYS": "learn_ahead_days",
    "RECALL_DECK_FUZZY": "fuzzy_intervals",
    "RECALL_DECK_DEFAULT_TAGS": "default_tags",
}


@dataclass(slots=True, frozen=True)
class Settings:
    cards_path: Path = DATA_DIR / "flashcards.json"
    history_path: Path = DATA_DIR / "history.json"
    export_path: Path = Path("~/recall_deck_flashcards.txt").expanduser()
    auto_save: bool = True
    target_retention: float = 0.9
    maximum_interval_days: int = 365
    learn_ahead_days: float = 0
    fuzzy_intervals: bool = True
    default_tags: tuple[str, ...] = ("language-learning",)


def _to_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError(f"{key} must be a boolean, got {value!r}")


def _to_tags(key: str, value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple, set)):
        items = [str(item) for item in value]
    else:
        raise ValueError(f"{key} must be a list of tags, got {value!r}")
    return tuple(tag.strip() for tag in items if tag.strip())


def _coerce(key: str, value: Any) -> Any:
    try:
        if key in ("cards_path", "history_path", "export_path"):
            return Path(str(value)).expanduser()
        if key in ("auto_save", "fuzzy_intervals"):
            return _to_bool(key, value)
        if key == "default_tags":
            return _to_tags(key, value)
        if key == "maximum_interval_days":
            number = int(value)
            if number < 1:
                raise ValueError(f"{key} must be at least 1")
            return number
        if key == "target_retention":
            ratio = float(value)
            if not 0 < ratio < 1:
                raise ValueError(f"{key} must be between 0 and 1")
            return ratio
        if key == "learn_ahead_days":
            days = float(value)
            if days < 0:
                raise ValueError(f"{key} must not be negative")
            return days
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid value for {key}: {exc}") from exc
    raise ValueError(f"Unknown setting: {key}")


def _flatten(data: Mapping[str, Any]) -> dict[str, Any]:
    flat: dict[str, Any] = {}
    for key, value in data.items():
        if key in _SECTIONS and isinstance(value, Mapping):
            flat.update(value)
        else:
            flat[key] = value
    return flat


def _read_yaml(path: Path) -> dict[str, Any]:
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, Mapping):
        raise ValueError(f"{path} must contain a mapping of settings")
    return _flatten(data)


def load_settings(
    path: str | os.PathLike[str] | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Build Settings from defaults, the YAML file and environment variables."""
    env = os.environ if environ is None else environ
    settings = Settings()

    config_path: Path | None
    if path is not None:
        config_path = Path(path)
    elif env.get("RECALL_DECK_CONFIG"):
        config_path = Path(env["RECALL_DECK_CONFIG"])
    elif DEFAULT_CONFIG_PATH.exists():
        config_path = DEFAULT_CONFIG_PATH
    else:
        config_path = None

    known = {f.name for f in fields(Settings)}
    if config_path is not None:
        raw = _read_yaml(config_path)
        unknown = sorted(set(raw) - known)
        if unknown:
            raise ValueError(f"Unknown settings in {config_path}: {', '.join(unknown)}")
        settings = replace(settings, **{key: _coerce(key, value) for key, value in raw.items()})

    overrides = {
        field_name: _coerce(field_name, env[env_key])
        for env_key, field_name in _ENV_KEYS.items()
        if env.get(env_key) not in (None, "")
    }
    if overrides:
        settings = replace(settings, **overrides)
    return settings


__all__ = ["DATA_DIR", "Settings", "load_settings"]
