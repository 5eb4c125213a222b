import logging
import os
import yaml
from pathlib import Path
from pydantic import BaseModel
from typing import Optional

from backend.app.models.enums import PairingMode

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "backend/config/engine.yaml"

class EngineSettings(BaseModel):
    log_level: str = "INFO"
    # How many times a command re-reads state and retries after a ConflictError
    conflict_retries: int = 1
    placeholder_name: str = "BYE"
    default_pairing_mode: PairingMode = PairingMode.RANDOM
    default_seeded_group_size: int = 2

def load_settings(config_path: Optional[str] = None) -> EngineSettings:
    path = Path(config_path or os.getenv("ENGINE_CONFIG", DEFAULT_CONFIG_PATH))
    if not path.exists():
        logger.info("No engine config at %s, using defaults", path)
        return EngineSettings()

    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    return EngineSettings(**data.get("engine", {}))

# Singleton instance
settings = load_settings()
