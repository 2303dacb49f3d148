import logging
import os
from pathlib import Path

from src.rules.models import Rules

logger = logging.getLogger(__name__)


def validate_ops_rules(rules: Rules, data_dir: Path) -> None:
    """
    Validate operational requirements before startup.

    Raises:
        RuntimeError: If required environment variables are missing.
    """
    missing = [env_var for env_var in rules.ops.required_env if env_var not in os.environ]
    if missing:
        raise RuntimeError(f"Missing required environment variables: {', '.join(missing)}")

    data_dir.mkdir(parents=True, exist_ok=True)
    logger.info("Configuration validated (data dir: %s)", data_dir)
