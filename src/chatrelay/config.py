"""Configuration handling for the chat relay."""

import yaml
import logging
import os
import sys
from pathlib import Path
from typing import Dict, Any

from dotenv import load_dotenv
from pythonjsonlogger import jsonlogger

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# One JSON object per line, on the console and in logs/relay.log
relay_logger = logging.getLogger("relay")
relay_logger.setLevel(logging.INFO)
relay_logger.propagate = False

log_dir = Path(__file__).parent.parent.parent / "logs"
os.makedirs(log_dir, exist_ok=True)

relay_log_file = log_dir / "relay.log"

# Reloading this module must not stack handlers
if not relay_logger.handlers:
    json_formatter = jsonlogger.JsonFormatter(
        "%(levelname)s %(message)s",
        rename_fields={"levelname": "level"},
        timestamp=True,
    )
    console_handler = logging.StreamHandler(sys.stdout)
    file_handler = logging.FileHandler(str(relay_log_file), mode="a")
    for handler in (console_handler, file_handler):
        handler.setFormatter(json_formatter)
        relay_logger.addHandler(handler)

# Provider URLs, keys and models live in the environment
load_dotenv()

DEFAULT_PROVIDERS: Dict[str, Dict[str, str]] = {
    "openrouter": {
        "url_env": "OPENROUTER_URL",
        "key_env": "OPENROUTER_API_KEY",
        "model_env": "OPENROUTER_MODEL",
    },
    "aimlapi": {
        "url_env": "AIMLAPI_URL",
        "key_env": "AIMLAPI_KEY",
        "model_env": "AIMLAPI_MODEL",
    },
}

DEFAULT_SETTINGS: Dict[str, Any] = {
    "timeout": 60,
    "host": "0.0.0.0",
    "port": 3000,
    "cors_origins": ["*"],
}


def load_config() -> Dict[str, Any]:
    """
    Load configuration from config.yaml file.
    Returns a dictionary containing the configuration.
    """
    try:
        config_path = Path(__file__).parent.parent.parent / "config.yaml"
        config_yaml = config_path.read_text()
        config = yaml.safe_load(config_yaml)
        logger.info("Successfully loaded configuration from config.yaml")
        return config
    except Exception as e:
        logger.error(f"Error loading config.yaml: {str(e)}")
        return {
            "providers": {name: dict(entry) for name, entry in DEFAULT_PROVIDERS.items()},
            "settings": dict(DEFAULT_SETTINGS),
        }


config = load_config()

if not config.get("providers"):
    logger.warning("No providers set in config.yaml, using default providers")
    config["providers"] = {name: dict(entry) for name, entry in DEFAULT_PROVIDERS.items()}

settings = config.get("settings") or {}

TIMEOUT = settings.get("timeout", DEFAULT_SETTINGS["timeout"])
HOST = settings.get("host", DEFAULT_SETTINGS["host"])
PORT = settings.get("port", DEFAULT_SETTINGS["port"])
CORS_ORIGINS = settings.get("cors_origins", DEFAULT_SETTINGS["cors_origins"])
