import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from tokensync.rules.models import TokenSyncRules

DEFAULT_RULES_PATH = "tokensync.yaml"
RULES_ENV_VAR = "TOKENSYNC_RULES"


def find_project_root(start: Path | None = None) -> Path:
    """Find project root by looking for marker files."""
    current = start or Path.cwd()

    for parent in [current, *current.parents]:
        if (parent / DEFAULT_RULES_PATH).exists() or (parent / ".git").exists():
            return parent

    return current


def default_rules_path() -> Path:
    env_path = os.environ.get(RULES_ENV_VAR)
    if env_path:
        return Path(env_path)
    return find_project_root() / DEFAULT_RULES_PATH


def load_rules(path: Path) -> TokenSyncRules:
    """
    Load and validate the configuration file.
    Raises FileNotFoundError if file missing.
    Raises ValueError if the YAML or the schema is invalid.
    """
    if not path.exists():
        raise FileNotFoundError(f"Rules file not found at: {path}")

    with open(path, encoding="utf-8") as f:
        content = f.read()

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML syntax in rules file: {e}") from e

    try:
        return TokenSyncRules.model_validate(data or {})
    except ValidationError as e:
        raise ValueError(f"Rules validation failed:\n{e}") from e


def load_rules_or_default(path: Path | None = None) -> TokenSyncRules:
    """Load the configuration file if present, otherwise return defaults."""
    path = path or default_rules_path()
    if not path.exists():
        return TokenSyncRules()
    return load_rules(path)
