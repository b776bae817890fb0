"""TOML configuration loader with env overrides."""

import logging
import os
import tomllib
from pathlib import Path

from src.domain.ports.config import (
    AppConfig,
    GuardrailsConfig,
    ModelConfig,
    OllamaConfig,
    PersistenceConfig,
    RoutingConfig,
    SecurityConfig,
    ServerConfig,
    TaskModelsConfig,
    WorkspaceConfig,
)

logger = logging.getLogger(__name__)

_TRUE_VALUES = ("1", "true", "yes", "on")


def _load_toml(path: Path) -> dict:
    """Load TOML file."""
    with open(path, "rb") as f:
        return tomllib.load(f)


def _set_int(config: dict, section: str, key: str, env_name: str) -> None:
    raw = os.getenv(env_name)
    if not raw:
        return
    try:
        config.setdefault(section, {})[key] = int(raw)
    except ValueError:
        logger.warning("Invalid %s env value: %r, ignoring", env_name, raw)


def _set_bool(config: dict, section: str, key: str, env_name: str) -> None:
    raw = os.getenv(env_name)
    if raw is None or raw.strip() == "":
        return
    config.setdefault(section, {})[key] = raw.strip().lower() in _TRUE_VALUES


def _apply_env_overrides(config: dict) -> dict:
    """Apply environment variable overrides."""
    if host := os.getenv("OLLAMA_HOST"):
        config.setdefault("ollama", {})["host"] = host
    _set_int(config, "server", "port", "PORT")
    if level := os.getenv("LOG_LEVEL"):
        config.setdefault("logging", {})["level"] = level.upper()
    if path := os.getenv("LOG_FILE"):
        config.setdefault("logging", {})["file"] = path.strip()
    if origins := os.getenv("CORS_ORIGINS"):
        config.setdefault("security", {})["cors_origins"] = [o.strip() for o in origins.split(",")]
    _set_int(config, "security", "rate_limit_requests_per_minute", "RATE_LIMIT_PER_MINUTE")
    if model := os.getenv("DEFAULT_MODEL"):
        config.setdefault("models", {})["default"] = model.strip()
    if model := os.getenv("ROUTER_MODEL"):
        config.setdefault("models", {})["router"] = model.strip()
    if root := os.getenv("PROJECT_ROOT"):
        config.setdefault("workspace", {})["project_root"] = root.strip()
    _set_int(config, "guardrails", "max_correction_attempts", "MAX_CORRECTION_ATTEMPTS")
    _set_int(config, "guardrails", "max_autofix_attempts", "MAX_AUTOFIX_ATTEMPTS")
    _set_bool(config, "guardrails", "enable_fast_correction", "ENABLE_FAST_CORRECTION")
    _set_bool(config, "guardrails", "enable_realtime_monitoring", "ENABLE_REALTIME_MONITORING")
    _set_bool(config, "guardrails", "enable_auto_fix_problems", "ENABLE_AUTO_FIX_PROBLEMS")
    _set_bool(config, "routing", "enable_ai_router", "ENABLE_AI_ROUTER")
    return config


def load_config(config_dir: Path | None = None) -> AppConfig:
    """Load configuration from TOML files with env overrides.

    Loads default.toml, then development.toml if exists.
    """
    if config_dir is None:
        config_dir = Path(__file__).resolve().parent.parent.parent.parent / "config"

    config: dict = {}

    default_path = config_dir / "default.toml"
    if default_path.exists():
        config = _load_toml(default_path)

    dev_path = config_dir / "development.toml"
    if dev_path.exists():
        dev_config = _load_toml(dev_path)
        for key, value in dev_config.items():
            if isinstance(value, dict) and key in config and isinstance(config[key], dict):
                config[key] = {**config[key], **value}
            else:
                config[key] = value

    config = _apply_env_overrides(config)

    logging_raw = config.get("logging") or {}

    return AppConfig(
        server=ServerConfig(**(config.get("server") or {})),
        ollama=OllamaConfig(**(config.get("ollama") or {})),
        models=ModelConfig(**(config.get("models") or {})),
        task_models=TaskModelsConfig(**(config.get("task_models") or {})),
        routing=RoutingConfig(**(config.get("routing") or {})),
        guardrails=GuardrailsConfig(**(config.get("guardrails") or {})),
        workspace=WorkspaceConfig(**(config.get("workspace") or {})),
        security=SecurityConfig(**(config.get("security") or {})),
        persistence=PersistenceConfig(**(config.get("persistence") or {})),
        log_level=logging_raw.get("level", "INFO"),
        log_file=(logging_raw.get("file") or "").strip(),
        log_rotation_max_mb=int(logging_raw.get("log_rotation_max_mb", 5)),
        log_rotation_backups=int(logging_raw.get("log_rotation_backups", 3)),
    )
