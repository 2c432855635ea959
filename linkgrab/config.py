"""
Configuration module for the link download bot.

Handles loading and validation of configuration from various sources:
- Environment variables (highest priority)
- .env file
- config.json file
- Default values (lowest priority)
"""

import os
import re
import json
import copy
import shutil
import logging

# Configuration file path
CONFIG_FILE_PATH = os.environ.get("LINKGRAB_CONFIG", "config.json")

# Placeholder written to a fresh config file
PLACEHOLDER_TOKEN = "YOUR_BOT_TOKEN_HERE"

# Default configuration values
DEFAULT_CONFIG = {
    "telegram": {
        "token": PLACEHOLDER_TOKEN,
        "admin_ids": [],
        "max_file_size": 2000,
    },
    "download_dir": "downloads",
    "auto_cleanup_minutes": 2,
}


def _parse_admin_ids(raw):
    """Parses a comma separated list of Telegram user IDs."""
    admin_ids = []
    for part in raw.split(','):
        part = part.strip()
        if part:
            admin_ids.append(part)
    return admin_ids


def load_config(config_path=None, env=None, load_env_file=True, ensure_downloads_dir=False):
    """
    Loads configuration from config.json or environment variables.
    Priority: environment variables > .env file > config.json > default values

    Args:
        config_path: Path to JSON config file (defaults to CONFIG_FILE_PATH)
        env: Mapping used instead of os.environ (tests)
        load_env_file: Whether to load a .env file with python-dotenv
        ensure_downloads_dir: Create the download directory if missing

    Returns:
        dict: Configuration dictionary
    """
    config_path = config_path or CONFIG_FILE_PATH
    config = copy.deepcopy(DEFAULT_CONFIG)

    if load_env_file:
        from dotenv import load_dotenv
        load_dotenv()
        logging.info("Loaded .env file (if exists)")

    if env is None:
        env = os.environ

    # Try to load from file
    try:
        if os.path.exists(config_path):
            with open(config_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            config["telegram"].update(data.get("telegram", {}))
            for key in ("download_dir", "auto_cleanup_minutes"):
                if key in data:
                    config[key] = data[key]
            logging.info(f"Loaded configuration from {config_path}")
        else:
            logging.warning(f"Configuration file {config_path} does not exist.")
    except (json.JSONDecodeError, ValueError, IOError) as e:
        logging.error(f"Error loading configuration from {config_path}: {e}")

    # Override with environment variables
    if env.get("TELEGRAM_BOT_TOKEN"):
        config["telegram"]["token"] = env["TELEGRAM_BOT_TOKEN"]
        logging.info("Using environment variable for TELEGRAM_BOT_TOKEN")
    if env.get("ADMIN_IDS"):
        config["telegram"]["admin_ids"] = _parse_admin_ids(env["ADMIN_IDS"])
        logging.info("Using environment variable for ADMIN_IDS")
    if env.get("MAX_FILE_SIZE_MB"):
        config["telegram"]["max_file_size"] = env["MAX_FILE_SIZE_MB"]
        logging.info("Using environment variable for MAX_FILE_SIZE_MB")
    if env.get("DOWNLOAD_DIR"):
        config["download_dir"] = env["DOWNLOAD_DIR"]
        logging.info("Using environment variable for DOWNLOAD_DIR")

    validate_config(config)

    if ensure_downloads_dir:
        os.makedirs(config["download_dir"], exist_ok=True)

    return config


def validate_config(config):
    """
    Validates configuration, normalizes value types and displays warnings.

    Args:
        config: Configuration dictionary to validate
    """
    telegram = config["telegram"]

    token = telegram.get("token", "")
    if not is_token_configured(token):
        logging.error(f"ERROR: Missing bot token! Set it in {CONFIG_FILE_PATH} or TELEGRAM_BOT_TOKEN.")
    elif not re.match(r'^\d{8,10}:[A-Za-z0-9_-]{35}$', token):
        logging.warning("WARNING: Telegram bot token format may be invalid!")

    admin_ids = set()
    for admin_id in telegram.get("admin_ids", []):
        try:
            admin_ids.add(int(admin_id))
        except (TypeError, ValueError):
            logging.warning(f"WARNING: Ignoring invalid admin id: {admin_id!r}")
    telegram["admin_ids"] = sorted(admin_ids)
    if not admin_ids:
        logging.warning("WARNING: No admin ids configured, admin commands are disabled.")

    try:
        max_size = float(telegram.get("max_file_size"))
        if max_size <= 0:
            raise ValueError(max_size)
    except (TypeError, ValueError):
        logging.warning(
            f"WARNING: Invalid max_file_size {telegram.get('max_file_size')!r}, "
            f"using {DEFAULT_CONFIG['telegram']['max_file_size']} MB"
        )
        max_size = DEFAULT_CONFIG["telegram"]["max_file_size"]
    telegram["max_file_size"] = max_size

    try:
        minutes = float(config.get("auto_cleanup_minutes"))
        if minutes <= 0:
            raise ValueError(minutes)
    except (TypeError, ValueError):
        logging.warning("WARNING: Invalid auto_cleanup_minutes, using 2 minutes")
        minutes = DEFAULT_CONFIG["auto_cleanup_minutes"]
    config["auto_cleanup_minutes"] = minutes


def is_token_configured(token):
    """Returns True if token is set and is not the placeholder."""
    return bool(token) and token != PLACEHOLDER_TOKEN


def write_default_config(config_path=None):
    """
    Writes the default configuration with a placeholder token.

    Args:
        config_path: Destination path (defaults to CONFIG_FILE_PATH)

    Returns:
        bool: True if the file was written
    """
    config_path = config_path or CONFIG_FILE_PATH
    try:
        # Write to temp file then move (atomic write)
        temp_file = config_path + '.tmp'
        with open(temp_file, 'w', encoding='utf-8') as f:
            json.dump(DEFAULT_CONFIG, f, indent=4, ensure_ascii=False)

        shutil.move(temp_file, config_path)

        # Token lives in this file (Unix only)
        if hasattr(os, 'chmod'):
            os.chmod(config_path, 0o600)

        logging.info(f"Wrote default configuration to {config_path}")
        return True

    except (IOError, OSError) as e:
        logging.error(f"Error writing {config_path}: {e}")
        return False


# Initialize configuration on module load
CONFIG = load_config(ensure_downloads_dir=True)
BOT_TOKEN = CONFIG["telegram"]["token"]
ADMIN_IDS = set(CONFIG["telegram"]["admin_ids"])
MAX_FILE_SIZE_MB = CONFIG["telegram"]["max_file_size"]
DOWNLOAD_PATH = CONFIG["download_dir"]
FILE_RETENTION_SECONDS = int(CONFIG["auto_cleanup_minutes"] * 60)
