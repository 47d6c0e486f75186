"""Scanner configuration (Pydantic v2). Load from framescan.yml with optional env override."""

import math
import os
import re
from pathlib import Path
from typing import Mapping

import yaml
from pydantic import BaseModel, field_validator

DEFAULT_CONFIG_ENV_VAR = "FRAMESCAN_CONFIG"
DEFAULT_CONFIG_FILENAME = "framescan.yml"
SUBSCRIPTION_KEY_ENV_VAR = "OCR_SUBSCRIPTION_KEY"
DEFAULT_OCR_ENDPOINT = "https://westus.api.cognitive.microsoft.com"

_FRAME_SIZE_RE = re.compile(r"^\d+x\d+$")


class Settings(BaseModel):
    """
    Scanner config loaded from YAML.

    Sampling fields (start_second, max_second, frame_interval_seconds) describe the
    timestamps a scan visits; error_tolerance_threshold is the number of OCR failures
    tolerated before the run is aborted.
    """

    model_config = {"extra": "ignore"}

    data_dir: str = "./data"
    start_second: float = 0.0
    max_second: float = 300.0
    frame_interval_seconds: float = 5.0
    error_tolerance_threshold: int = 20
    cancel_in_flight_on_failure: bool = True
    frame_size: str = "1920x1080"
    classifier: str = "azure"
    ocr_endpoint: str = DEFAULT_OCR_ENDPOINT
    ocr_subscription_key: str | None = None
    ocr_language: str = "unk"
    ocr_timeout_seconds: float = 30.0
    log_level: str = "WARNING"
    forensics_dir: str = "./logs/forensics"

    @field_validator("frame_interval_seconds")
    @classmethod
    def interval_positive(cls, v: float) -> float:
        if not math.isfinite(v) or v <= 0:
            raise ValueError("frame_interval_seconds must be a finite number > 0")
        return v

    @field_validator("start_second", "max_second")
    @classmethod
    def bound_non_negative(cls, v: float) -> float:
        if not math.isfinite(v) or v < 0:
            raise ValueError("sample bounds must be finite and >= 0")
        return v

    @field_validator("error_tolerance_threshold")
    @classmethod
    def tolerance_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("error_tolerance_threshold must be >= 0")
        return v

    @field_validator("frame_size")
    @classmethod
    def frame_size_format(cls, v: str) -> str:
        if not _FRAME_SIZE_RE.match(v):
            raise ValueError(f"frame_size must look like 1920x1080, got {v!r}")
        return v

    @field_validator("ocr_subscription_key", mode="before")
    @classmethod
    def empty_key_is_none(cls, v: object) -> str | None:
        if v is not None and v != "":
            return str(v)
        return None


_config: Settings | None = None


class ConfigLoader:
    """
    Helper responsible for loading Settings from YAML and environment.

    - load_from_yaml(path, apply_env_override): read a YAML file and optionally apply env overrides.
    - load_default(): resolve the default config path from FRAMESCAN_CONFIG / framescan.yml and
      apply OCR_SUBSCRIPTION_KEY override when present.
    """

    def __init__(self, env: Mapping[str, str] | None = None) -> None:
        self._env: Mapping[str, str] = env if env is not None else os.environ

    def load_from_yaml(self, path: Path, apply_env_override: bool) -> Settings:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = yaml.safe_load(f)
        if not data:
            data = {}
        if apply_env_override and self._env.get(SUBSCRIPTION_KEY_ENV_VAR):
            data["ocr_subscription_key"] = self._env[SUBSCRIPTION_KEY_ENV_VAR]
        return Settings.model_validate(data)

    def load_default(self) -> Settings:
        """
        Load the default Settings, using FRAMESCAN_CONFIG or framescan.yml.

        The subscription key is a secret, so OCR_SUBSCRIPTION_KEY (if set) wins over the YAML
        value whenever no explicit config_path is provided.
        """
        path_str = self._env.get(DEFAULT_CONFIG_ENV_VAR) or DEFAULT_CONFIG_FILENAME
        path = Path(path_str)
        if path.exists():
            return self.load_from_yaml(path, apply_env_override=True)

        settings = Settings()
        if self._env.get(SUBSCRIPTION_KEY_ENV_VAR):
            settings = settings.model_copy(
                update={"ocr_subscription_key": self._env[SUBSCRIPTION_KEY_ENV_VAR]}
            )
        return settings


def get_config(config_path: str | Path | None = None) -> Settings:
    """
    Return singleton config.

    - If config_path is given, load from it (without env overrides) and update the cache.
    - Otherwise, return the cached config if available, or load via ConfigLoader.load_default().
    """
    global _config
    if config_path is not None:
        _config = ConfigLoader().load_from_yaml(Path(config_path), apply_env_override=False)
        return _config
    if _config is not None:
        return _config
    _config = ConfigLoader().load_default()
    return _config


def reset_config() -> None:
    """Clear cached config (for tests)."""
    global _config
    _config = None
