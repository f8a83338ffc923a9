import os
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_CONFIG: dict = {
    "model": "anthropic",
    "model_name": None,  # None = provider default
    "context_padding": 2,  # unchanged lines shown around every changed line
    "max_lines_per_file": 400,
    "instructions": "instructions/modules.md",  # module instruction document; None disables it
    "require_modules": True,  # skip PRs that touch no NN-name module directory
    "language": "English",
    "fetch_workers": 8,
}

_INT_KEYS = ("context_padding", "max_lines_per_file", "fetch_workers")


def load_config(config_path: str = ".prmentor.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .prmentor.yml in the current directory
      3. CLI argument overrides
    """
    config = dict(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        if not isinstance(file_config, dict):
            raise ValueError(f"{config_path} must contain a YAML mapping, got {type(file_config).__name__}")
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    for key in _INT_KEYS:
        value = config[key]
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValueError(f"{key} must be a non-negative integer, got {value!r}")
    if config["fetch_workers"] < 1:
        raise ValueError("fetch_workers must be at least 1")

    # Resolve credentials from environment variables
    config["github_token"] = os.environ.get("GITHUB_TOKEN")
    config["anthropic_api_key"] = os.environ.get("ANTHROPIC_API_KEY")
    config["openai_api_key"] = os.environ.get("OPENAI_API_KEY")

    return config
