"""Configuration loading helpers for the harvester."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

import yaml

from .models import GlobalConfig, ScrapeConfig

CONFIG_EXTENSIONS = (".yaml", ".yml", ".json")
GLOBAL_CONFIG_FILENAME = "global_config.yaml"
HOME_ENV_VAR = "FUUKA_HARVESTER_HOME"


def _slugify(name: str) -> str:
    return "".join(ch.lower() if ch.isalnum() else "-" for ch in name).strip("-")


def _read_file(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    if path.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")
    return data


def _write_file(path: Path, payload: dict) -> None:
    with path.open("w", encoding="utf-8") as stream:
        if path.suffix in (".yaml", ".yml"):
            yaml.safe_dump(payload, stream, allow_unicode=True, sort_keys=False)
        else:
            json.dump(payload, stream, indent=2, ensure_ascii=False)


@dataclass(slots=True)
class ConfigLocator:
    """Resolve important paths from project root."""

    project_root: Path | None = None
    data_dir: Path | None = None
    outputs_dir: Path | None = None
    state_dir: Path | None = None
    profiles_dir: Path | None = None
    logs_dir: Path | None = None

    def __post_init__(self) -> None:
        env_root = os.environ.get(HOME_ENV_VAR)
        if env_root:
            root = Path(env_root).expanduser().resolve()
        else:
            root = (self.project_root or Path(__file__).resolve().parents[2]).resolve()
        self.project_root = root
        self.data_dir = (root / "data").resolve()
        self.outputs_dir = (self.data_dir / "outputs").resolve()
        self.state_dir = (self.data_dir / "state").resolve()
        self.profiles_dir = (self.data_dir / "profiles").resolve()
        self.logs_dir = (root / "logs").resolve()
        self.ensure_directories()

    def ensure_directories(self) -> None:
        for directory in (
            self.data_dir,
            self.outputs_dir,
            self.state_dir,
            self.profiles_dir,
            self.logs_dir,
        ):
            directory.mkdir(parents=True, exist_ok=True)

    def global_config_path(self) -> Path:
        return self.data_dir / GLOBAL_CONFIG_FILENAME


class ConfigRepository:
    """Repository encapsulating config IO and schema validation."""

    def __init__(self, locator: ConfigLocator | None = None) -> None:
        self.locator = locator or ConfigLocator()
        self._global_cache: GlobalConfig | None = None

    # ------------------------------------------------------------------
    # Global configuration helpers
    # ------------------------------------------------------------------
    def load_global_config(self) -> GlobalConfig:
        if self._global_cache is not None:
            return self._global_cache
        path = self.locator.global_config_path()
        if path.exists():
            payload = _read_file(path)
            global_cfg = GlobalConfig.model_validate(payload)
        else:
            global_cfg = GlobalConfig()
            self.save_global_config(global_cfg)
        global_cfg = self._anchor_paths(global_cfg)
        self._global_cache = global_cfg
        return global_cfg

    def save_global_config(self, config: GlobalConfig) -> None:
        path = self.locator.global_config_path()
        payload = config.model_dump(mode="json")
        _write_file(path, payload)
        self._global_cache = self._anchor_paths(config)

    def _anchor_paths(self, config: GlobalConfig) -> GlobalConfig:
        root = self.locator.project_root
        updates: dict[str, Path] = {}
        for name in ("outputs_dir", "state_dir"):
            value: Path = getattr(config, name)
            if not value.is_absolute():
                updates[name] = (root / value).resolve()
        if not updates:
            return config
        return config.model_copy(update=updates)

    # ------------------------------------------------------------------
    # Run profiles
    # ------------------------------------------------------------------
    def profile_path(self, name: str) -> Path:
        return self.locator.profiles_dir / f"{_slugify(name)}.yaml"

    def load_profile(self, identifier: str | Path) -> ScrapeConfig:
        if isinstance(identifier, Path) or Path(identifier).suffix in CONFIG_EXTENSIONS:
            path = Path(identifier)
        else:
            path = self.profile_path(identifier)
        if not path.exists():
            raise FileNotFoundError(f"Profile not found: {identifier}")
        return ScrapeConfig.model_validate(_read_file(path))

    def save_profile(self, name: str, config: ScrapeConfig) -> Path:
        path = self.profile_path(name)
        _write_file(path, config.model_dump(mode="json"))
        return path


__all__ = ["CONFIG_EXTENSIONS", "ConfigLocator", "ConfigRepository", "HOME_ENV_VAR"]
