from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

from ..exceptions import ParserConfigError


class Settings(BaseSettings):
    """Application configuration loaded from environment variables or .env file."""

    # Cache validation
    structure_version: int = Field(
        7, ge=0, description="Artifact structure version accepted as a valid cache"
    )

    # Parser engine settings
    preferred_engine: Optional[str] = Field(None, description="Preferred parser engine backend")
    parser_executable: Optional[str] = Field(None, description="Path to the external parser")
    parser_config_path: Optional[str] = Field(None, description="YAML/JSON parser options file")
    cancel_grace_period: float = Field(
        5.0, description="Seconds to wait after terminating a cancelled parser before killing it"
    )
    progress_pattern: str = Field(
        r"^PROGRESS\s+(?P<value>[0-9]*\.?[0-9]+)\s*$",
        description="Regex matched against parser stdout lines to extract progress",
    )

    # Logging
    log_level: str = Field("INFO", description="Level for sniff_loader loggers")

    class Config:
        env_prefix = "SNIFF_LOADER_"
        env_file = ".env"


class ParserConfig(BaseModel):
    """Options forwarded to the external parser engine."""

    options: Dict[str, str] = Field(default_factory=dict)
    extra_args: List[str] = Field(default_factory=list)

    def to_args(self) -> List[str]:
        """Render options as ``--key=value`` arguments followed by ``extra_args``."""
        args = [f"--{key}={value}" for key, value in sorted(self.options.items())]
        args.extend(self.extra_args)
        return args

    @classmethod
    def from_file(cls, path: str | Path) -> "ParserConfig":
        """Create a parser configuration from a YAML or JSON file."""
        config_path = Path(path)
        with config_path.open("r", encoding="utf-8") as fh:
            suffix = config_path.suffix.lower()
            if suffix in {".yaml", ".yml"}:
                data = yaml.safe_load(fh)
            elif suffix == ".json":
                data = json.load(fh)
            else:
                raise ValueError(
                    f"Unsupported configuration file format: '{config_path.suffix}'. "
                    "Supported formats are YAML (.yaml, .yml) and JSON (.json)."
                )
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ValueError(f"Parser configuration in '{config_path}' must be a mapping")
        options = {str(k): str(v) for k, v in (data.get("options") or {}).items()}
        return cls(options=options, extra_args=[str(a) for a in data.get("extra_args") or []])


@lru_cache()
def get_settings() -> Settings:
    """Return a singleton settings instance."""
    return Settings()


def load_parser_config(current: Settings | None = None) -> ParserConfig:
    """Return the parser configuration named by ``parser_config_path``, if any."""
    current = current or get_settings()
    if not current.parser_config_path:
        return ParserConfig()
    try:
        return ParserConfig.from_file(current.parser_config_path)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        raise ParserConfigError(
            f"Cannot load parser configuration: {exc}",
            context=current.parser_config_path,
            suggestion="Fix or unset SNIFF_LOADER_PARSER_CONFIG_PATH.",
        ) from exc


settings = get_settings()
