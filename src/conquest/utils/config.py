import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


@dataclass
class EngineConfig:
    data_dir: Optional[str]
    default_map: str
    placement_mode: str
    battle_speed: str
    resource_level: str
    seed: Optional[str]
    log_file: Optional[str]
    api_host: str
    api_port: int
    ai_step_delay: float


def load_config() -> EngineConfig:
    """Read engine configuration from the environment."""
    return EngineConfig(
        data_dir=os.getenv('CONQUEST_DATA_DIR') or None,
        default_map=os.getenv('CONQUEST_DEFAULT_MAP', 'world'),
        placement_mode=os.getenv('CONQUEST_PLACEMENT_MODE', 'random'),
        battle_speed=os.getenv('CONQUEST_BATTLE_SPEED', 'normal'),
        resource_level=os.getenv('CONQUEST_RESOURCE_LEVEL', 'medium'),
        seed=os.getenv('CONQUEST_SEED') or None,
        log_file=os.getenv('CONQUEST_LOG_FILE') or None,
        api_host=os.getenv('CONQUEST_API_HOST', '0.0.0.0'),
        api_port=int(os.getenv('CONQUEST_API_PORT', '8080')),
        ai_step_delay=float(os.getenv('CONQUEST_AI_STEP_DELAY', '0.25'))
    )


def get_default_data_dir() -> str:
    """
    Determine the directory used for saved games.
    CONQUEST_DATA_DIR wins; otherwise a data/ directory under the working directory.
    """
    if data_dir := os.getenv('CONQUEST_DATA_DIR'):
        return data_dir
    return os.path.join(os.getcwd(), 'data')
