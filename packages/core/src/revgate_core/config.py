import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

from revgate_core.errors import ConfigurationError

DEFAULT_API_URL = "https://api.revgate.dev"
DEFAULT_RULESETS = ("security", "architecture", "deception")

DEFAULT_CONFIG: dict = {
    "api_url": DEFAULT_API_URL,
    "rulesets": list(DEFAULT_RULESETS),
    "threshold": 0.8,
    "fail_on_critical": True,
    "post_comment": True,
    "timeout": 120,
    "poll_interval": 5,
    "extensions": None,  # None = use the built-in allow-list
    "exclude": [],  # fnmatch patterns or directory names to skip (e.g. "vendor/", "*.min.js")
}

# Environment variables read after .revgate.yml and before CLI overrides.
ENV_VARS = {
    "api_key": "REVGATE_API_KEY",
    "api_url": "REVGATE_API_URL",
    "rulesets": "REVGATE_RULESETS",
    "threshold": "REVGATE_THRESHOLD",
    "fail_on_critical": "REVGATE_FAIL_ON_CRITICAL",
    "post_comment": "REVGATE_POST_COMMENT",
    "timeout": "REVGATE_TIMEOUT",
}

_TRUE = {"true", "yes", "1", "on"}
_FALSE = {"false", "no", "0", "off"}


def load_config(config_path: str = ".revgate.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .revgate.yml in the current directory
      3. REVGATE_* environment variables
      4. CLI argument overrides

    Values are returned as found; parse_gate_config() and
    parse_service_settings() turn them into typed settings.
    """
    config = {**DEFAULT_CONFIG, "rulesets": list(DEFAULT_CONFIG["rulesets"]), "exclude": list(DEFAULT_CONFIG["exclude"])}

    path = Path(config_path)
    if path.exists():
        try:
            with open(path) as f:
                file_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Could not parse {config_path}: {e}")
        if not isinstance(file_config, dict):
            raise ConfigurationError(f"{config_path} must contain a mapping at the top level.")
        # Accept the dashed spelling used by the action inputs (post-comment).
        config.update({str(k).replace("-", "_"): v for k, v in file_config.items()})

    for key, env_name in ENV_VARS.items():
        value = os.environ.get(env_name)
        if value:
            config[key] = value

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    config["github_token"] = os.environ.get("GITHUB_TOKEN")

    return config


def parse_bool(value, name: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigurationError(f"{name} must be true or false, got {value!r}.")


def parse_float(value, name: str, low: Optional[float] = None, high: Optional[float] = None) -> float:
    if isinstance(value, bool):
        raise ConfigurationError(f"{name} must be a number, got {value!r}.")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be a number, got {value!r}.")
    if number != number:  # NaN
        raise ConfigurationError(f"{name} must be a number, got {value!r}.")
    if low is not None and number < low or high is not None and number > high:
        raise ConfigurationError(f"{name} must be between {low} and {high}, got {value!r}.")
    return number


def parse_rulesets(value) -> tuple[str, ...]:
    """Parse ``"security,architecture:2"`` or a YAML list into ``name:version`` identifiers.

    A ruleset without a version pins to ``latest``. Duplicates collapse, first wins.
    """
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = [str(v) for v in value]
    else:
        raise ConfigurationError(f"rulesets must be a comma-separated string or a list, got {value!r}.")

    rulesets: list[str] = []
    for item in items:
        item = item.strip()
        if not item:
            continue
        name, sep, version = item.partition(":")
        name, version = name.strip(), version.strip()
        if not name or (sep and not version):
            raise ConfigurationError(f"Malformed ruleset identifier: {item!r} (expected name or name:version).")
        ident = f"{name}:{version or 'latest'}"
        if ident not in rulesets:
            rulesets.append(ident)

    if not rulesets:
        raise ConfigurationError("At least one ruleset must be requested.")
    return tuple(rulesets)


def parse_patterns(value, name: str) -> tuple[str, ...]:
    """Parse a YAML list or a comma-separated string into a de-duplicated tuple of strings."""
    if value is None:
        return ()
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = value
    else:
        raise ConfigurationError(f"{name} must be a comma-separated string or a list, got {value!r}.")

    patterns: list[str] = []
    for item in items:
        if not isinstance(item, str):
            raise ConfigurationError(f"{name} entries must be strings, got {item!r}.")
        item = item.strip()
        if item and item not in patterns:
            patterns.append(item)
    return tuple(patterns)


def parse_extensions(value) -> Optional[tuple[str, ...]]:
    """None keeps the built-in allow-list; anything else must name at least one extension."""
    if value is None:
        return None
    extensions = parse_patterns(value, "extensions")
    if not extensions:
        raise ConfigurationError("extensions must name at least one file extension.")
    return extensions


@dataclass(frozen=True)
class GateConfiguration:
    threshold: float = 0.8
    fail_on_critical: bool = True
    post_comment: bool = True
    rulesets: tuple[str, ...] = tuple(f"{name}:latest" for name in DEFAULT_RULESETS)
    extensions: Optional[tuple[str, ...]] = None
    exclude: tuple[str, ...] = ()


@dataclass(frozen=True)
class ServiceSettings:
    api_key: str
    api_url: str = DEFAULT_API_URL
    timeout: float = 120.0
    poll_interval: float = 5.0
    max_retries: int = 3
    base_delay: float = 2.0
    backoff: float = 2.0


def parse_gate_config(config: dict) -> GateConfiguration:
    return GateConfiguration(
        threshold=parse_float(config.get("threshold", 0.8), "threshold", 0.0, 1.0),
        fail_on_critical=parse_bool(config.get("fail_on_critical", True), "fail-on-critical"),
        post_comment=parse_bool(config.get("post_comment", True), "post-comment"),
        rulesets=parse_rulesets(config.get("rulesets", DEFAULT_RULESETS)),
        extensions=parse_extensions(config.get("extensions")),
        exclude=parse_patterns(config.get("exclude"), "exclude"),
    )


def parse_service_settings(config: dict) -> ServiceSettings:
    api_key = str(config.get("api_key") or "").strip()
    if not api_key:
        raise ConfigurationError("API key is required. Set REVGATE_API_KEY or pass --api-key.")

    api_url = str(config.get("api_url") or DEFAULT_API_URL).strip().rstrip("/")
    if not api_url.startswith(("https://", "http://")):
        raise ConfigurationError(f"api-url must be an http(s) URL, got {api_url!r}.")

    timeout = parse_float(config.get("timeout", 120), "timeout")
    if timeout <= 0:
        raise ConfigurationError(f"timeout must be positive, got {timeout!r}.")
    poll_interval = parse_float(config.get("poll_interval", 5), "poll-interval")
    if poll_interval <= 0:
        raise ConfigurationError(f"poll-interval must be positive, got {poll_interval!r}.")

    return ServiceSettings(api_key=api_key, api_url=api_url, timeout=timeout, poll_interval=poll_interval)
