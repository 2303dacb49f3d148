import logging
import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from src.rules.models import Rules

logger = logging.getLogger(__name__)

RULES_PATH_ENV = "NOTARY_ANALYTICS_RULES"


def default_rules_path(base_dir: Path | None = None) -> Path:
    """rules.yaml in base_dir (cwd by default), unless overridden by the environment."""
    override = os.environ.get(RULES_PATH_ENV)
    if override:
        return Path(override)
    return (base_dir or Path.cwd()) / "rules.yaml"


def extract_yaml(content: str) -> str:
    """
    Return the first fenced ```yaml block if the file has one,
    otherwise the whole content.
    """
    yaml_lines = []
    in_block = False
    found_block = False

    for line in content.splitlines():
        stripped = line.strip()
        if stripped.startswith("```yaml"):
            in_block = True
            found_block = True
            continue
        if in_block and stripped.startswith("```"):
            break
        if in_block:
            yaml_lines.append(line)

    return "\n".join(yaml_lines) if found_block else content


def load_rules(path: Path) -> Rules:
    """
    Load and validate the rules file.
    Raises FileNotFoundError if file missing.
    Raises ValueError if the YAML or the schema is invalid.
    """
    if not path.exists():
        raise FileNotFoundError(f"Rules file not found at: {path}")

    content = path.read_text(encoding="utf-8")

    try:
        data = yaml.safe_load(extract_yaml(content))
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML syntax in rules file: {e}") from e

    try:
        rules = Rules.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Rules validation failed:\n{e}") from e

    logger.info(
        "Rules %s loaded: %d funnel steps, timezone %s",
        rules.project.rules_version,
        len(rules.analytics.funnel_steps),
        rules.analytics.timezone,
    )
    return rules
