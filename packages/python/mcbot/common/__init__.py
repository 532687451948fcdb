from .config import BotConfig, ConfigError, load_config
from .id import generate_id
from .setup import setup, get_log_level

__all__ = [
    "BotConfig",
    "ConfigError",
    "load_config",
    "generate_id",
    "setup",
    "get_log_level",
]
