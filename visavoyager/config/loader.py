"""Configuration loader with Pydantic validation and env var expansion."""

import logging
import os
import re
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "profiles.yaml"


class ProviderConfig(BaseModel):
    """Configuration for the generative completion backend."""

    backend: Literal["gemini", "openrouter", "mock"] = "gemini"
    model: str | None = None
    api_key: str | None = None
    base_url: str | None = None  # OpenRouter only


class PersonaConfig(BaseModel):
    """Per-persona overrides."""

    model: str | None = None
    temperature: float | None = None


class PersonasConfig(BaseModel):
    """Configuration for the fixed persona set."""

    consultant: PersonaConfig = PersonaConfig()
    advisor: PersonaConfig = PersonaConfig()
    drafter: PersonaConfig = PersonaConfig(temperature=0.2)  # Deterministic drafting


class EvaluatorConfig(BaseModel):
    """Configuration for the output auditor."""

    model: str | None = None
    temperature: float | None = 0.0
    max_content_chars: int = 3000  # Candidate content is truncated before auditing


class SearchLoopConfig(BaseModel):
    """Configuration for the self-correcting visa search."""

    max_retries: int = 2  # 3 attempts in total
    accept_score: float = 8.0  # Stop retrying at or above this score
    missing_source_cap: float = 5.0  # Score ceiling when no source was found
    score_floor: float = 0.0
    score_ceiling: float = 10.0
    exhaustion_strategy: Literal["last", "best"] = "last"


class VisionConfig(BaseModel):
    """Configuration for image field extraction."""

    model: str | None = None


class ProfileConfig(BaseModel):
    """Configuration profile containing all backend configs."""

    provider: ProviderConfig
    personas: PersonasConfig = PersonasConfig()
    evaluator: EvaluatorConfig = EvaluatorConfig()
    search_loop: SearchLoopConfig = SearchLoopConfig()
    vision: VisionConfig = VisionConfig()


class ConfigFile(BaseModel):
    """Root configuration file structure."""

    profiles: dict[str, ProfileConfig]


def expand_env_vars(value: str) -> str:
    """Expand ${VAR} references in string with environment variables.

    Args:
        value: String potentially containing env var references

    Returns:
        String with env vars expanded
    """
    if not isinstance(value, str):
        return value

    pattern = r"\$\{([^}]+)\}"

    def replacer(match):
        var_name = match.group(1)
        return os.environ.get(var_name, match.group(0))

    return re.sub(pattern, replacer, value)


def expand_env_vars_recursive(data):
    """Recursively expand env vars in nested dict/list structures.

    Args:
        data: Dict, list, or primitive value

    Returns:
        Data structure with all env vars expanded
    """
    if isinstance(data, dict):
        return {k: expand_env_vars_recursive(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [expand_env_vars_recursive(item) for item in data]
    elif isinstance(data, str):
        return expand_env_vars(data)
    else:
        return data


def _drop_unexpanded_keys(config: ProfileConfig) -> ProfileConfig:
    """Treat an api_key still reading ``${VAR}`` as unset."""
    api_key = config.provider.api_key
    if api_key and api_key.startswith("${"):
        config.provider.api_key = None
    return config


def load_config_from_yaml(config_path: Path, profile_name: str) -> ProfileConfig:
    """Load configuration from YAML file.

    Args:
        config_path: Path to config YAML file
        profile_name: Name of profile to load

    Returns:
        ProfileConfig for the requested profile

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValidationError: If config is invalid
        KeyError: If profile doesn't exist
    """
    with open(config_path) as f:
        raw_data = yaml.safe_load(f)

    expanded_data = expand_env_vars_recursive(raw_data)
    config_file = ConfigFile(**expanded_data)

    if profile_name not in config_file.profiles:
        available = ", ".join(config_file.profiles.keys())
        raise KeyError(
            f"Profile '{profile_name}' not found. " f"Available profiles: {available}"
        )

    return _drop_unexpanded_keys(config_file.profiles[profile_name])


def list_profiles(config_path: Path | None = None) -> dict[str, ProfileConfig]:
    """Return every profile defined in the config file."""
    with open(config_path or DEFAULT_CONFIG_PATH) as f:
        raw_data = yaml.safe_load(f)
    return ConfigFile(**expand_env_vars_recursive(raw_data)).profiles


def load_config_from_env() -> ProfileConfig:
    """Load configuration from environment variables (fallback mode).

    Uses OpenRouter when only OPENROUTER_API_KEY is set, Gemini otherwise.

    Returns:
        ProfileConfig constructed from environment variables
    """
    gemini_key = os.environ.get("GEMINI_API_KEY") or os.environ.get("GOOGLE_API_KEY")
    openrouter_key = os.environ.get("OPENROUTER_API_KEY")

    if openrouter_key and not gemini_key:
        provider = ProviderConfig(
            backend="openrouter",
            model=os.environ.get("OPENROUTER_DEFAULT_MODEL"),
            api_key=openrouter_key,
            base_url=os.environ.get("OPENROUTER_BASE_URL"),
        )
    else:
        provider = ProviderConfig(
            backend="gemini",
            model=os.environ.get("GEMINI_DEFAULT_MODEL"),
            api_key=gemini_key,
        )

    return ProfileConfig(provider=provider)


def load_config(
    profile: str | None = None,
    config_path: Path | None = None,
) -> ProfileConfig:
    """Load configuration from YAML file or environment variables.

    Tries the YAML config file first and falls back to environment
    variables if the file doesn't exist.

    Args:
        profile: Profile name to load. If None, uses VISA_PROFILE env var
                or "dev" as default.
        config_path: Path to config file. If None, uses the bundled
                    profiles.yaml.

    Returns:
        ProfileConfig with all backend configurations

    Raises:
        ValidationError: If configuration is invalid
        KeyError: If requested profile doesn't exist
    """
    if profile is None:
        profile = os.environ.get("VISA_PROFILE", "dev")

    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if config_path.exists():
        return load_config_from_yaml(config_path, profile)

    logger.warning(f"Config file {config_path} not found, using environment variables")
    return load_config_from_env()
