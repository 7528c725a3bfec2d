"""
Settings: ~/.campus-fetch/config.json overlaid by CAMPUS_* environment variables.
"""

import json
import os
from pathlib import Path
from typing import Any, Literal, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError

from campus_fetch.errors import ConfigError
from campus_fetch.models.request import RetryPolicy

CONFIG_FILE = Path.home() / ".campus-fetch" / "config.json"

ENV_VARS = {
    "CAMPUS_APPS_SCRIPT_URL": "apps_script_url",
    "CAMPUS_TRANSPORT": "transport",
    "CAMPUS_ENABLE_SAMPLE_FALLBACK": "enable_sample_fallback",
    "CAMPUS_SAMPLE_DIR": "sample_dir",
    "CAMPUS_MAX_ATTEMPTS": "max_attempts",
    "CAMPUS_TIMEOUT_MS": "per_attempt_timeout_ms",
    "CAMPUS_BACKOFF_MS": "backoff_ms",
    "CAMPUS_JITTER_MS": "jitter_ms",
}


class Settings(BaseModel):
    apps_script_url: Optional[str] = None
    transport: Literal["jsonp", "http"] = "jsonp"
    enable_sample_fallback: bool = False
    sample_dir: Optional[Path] = None
    max_attempts: int = Field(default=2, ge=1)
    per_attempt_timeout_ms: int = Field(default=12000, gt=0)
    backoff_ms: int = Field(default=800, ge=0)
    jitter_ms: int = Field(default=0, ge=0)

    def policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            per_attempt_timeout_ms=self.per_attempt_timeout_ms,
            backoff_ms=self.backoff_ms,
            jitter_ms=self.jitter_ms,
        )

    @classmethod
    def load(cls, path: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        values = load_config(path)
        env = os.environ if environ is None else environ
        for var, field in ENV_VARS.items():
            if env.get(var):
                values[field] = env[var]
        try:
            return cls.model_validate(values)
        except ValidationError as e:
            raise ConfigError(f"Invalid settings: {e}") from e


def load_config(path: Optional[Path] = None) -> dict[str, Any]:
    try:
        data = json.loads((path or CONFIG_FILE).read_text())
    except (FileNotFoundError, json.JSONDecodeError):
        return {}
    return data if isinstance(data, dict) else {}


def save_config(cfg: dict[str, Any], path: Optional[Path] = None) -> None:
    path = path or CONFIG_FILE
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(cfg, indent=2))
