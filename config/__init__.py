import os
import json
from pathlib import Path
from dotenv import load_dotenv
from .logging_config import setup_app_logging
import logging

# Load environment variables from .env file
load_dotenv()

# Get the config directory path (where this file is located)
CONFIG_DIR = Path(__file__).parent

PROJECT_ROOT = CONFIG_DIR.parent

# Load configuration from config.json
config_path = CONFIG_DIR / 'config.json'
with open(config_path, 'r', encoding='utf-8') as f:
    CONFIG = json.load(f)

CONFIG['project_root'] = str(PROJECT_ROOT)

# Sentinel that switches the assistant into offline demo mode.
DEMO_API_KEY = "demo"

# Environment variables. Both are optional: a missing model key selects demo mode.
ENV = {
    'LLM_API_KEY': os.getenv('ANTHROPIC_API_KEY') or os.getenv('CLAUDE_API_KEY'),
    'WEATHER_API_KEY': os.getenv('WEATHER_API_KEY'),
}


def parse_demo_seed(raw):
    """Return the demo seed as an int, or None when unset.

    Raises:
        ValueError: If the value is not an integer.
    """
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None
    if isinstance(raw, int) and not isinstance(raw, bool):
        return raw
    try:
        return int(str(raw).strip())
    except ValueError:
        raise ValueError(
            f"Invalid demo seed {raw!r}: DEMO_SEED / demo.seed must be an integer or empty"
        ) from None


def validate_config():
    """Validate that the configuration sections the service relies on are present.

    Unlike the credentials, which may legitimately be absent (the assistant then
    runs in demo mode), the structural sections below must exist in config.json.
    """
    required_sections = ['llm', 'weather', 'demo', 'streaming']
    for section in required_sections:
        if section not in CONFIG:
            raise ValueError(f"Missing configuration section: {section}")

    required_llm_keys = ['model', 'max_tokens']
    for key in required_llm_keys:
        if key not in CONFIG['llm']:
            raise ValueError(f"Missing configuration for LLM setting: {key}")

    if not CONFIG['weather'].get('default_api_key') and not ENV['WEATHER_API_KEY']:
        raise ValueError("Missing configuration for weather.default_api_key")

    parse_demo_seed(os.getenv('DEMO_SEED', CONFIG['demo'].get('seed')))

# Validate configuration on module import
validate_config()

# --- Config lookup: environment variable, then config.json, then default ---
def _coerce_env(raw: str, default_value):
    """Convert an env string to the type of `default_value`; unconvertible values stay strings."""
    if isinstance(default_value, bool):
        lowered = raw.strip().lower()
        if lowered in ('true', '1', 'yes'):
            return True
        if lowered in ('false', '0', 'no'):
            return False
        return raw
    for kind in (int, float):
        if isinstance(default_value, kind):
            try:
                return kind(raw)
            except ValueError:
                return raw
    return raw


def get_config_value(json_keys: list, env_var_name: str, default_value: any = None):
    """
    Retrieves a configuration value.
    Priority:
    1. Environment variable (if env_var_name is provided and variable is set),
       coerced to the type of `default_value` when that is a bool, int or float.
    2. Value from CONFIG dictionary (following json_keys). JSON null counts as unset.
    3. default_value.
    """
    if env_var_name and os.getenv(env_var_name) is not None:
        return _coerce_env(os.getenv(env_var_name), default_value)

    node = CONFIG
    for key in json_keys:
        if not isinstance(node, dict) or key not in node:
            return default_value
        node = node[key]
    return default_value if node is None else node


def get_llm_api_key() -> str:
    """Return the model backend key, or the demo sentinel when none is configured."""
    return ENV['LLM_API_KEY'] or DEMO_API_KEY


def is_demo_mode() -> bool:
    """True when no live model backend credential is configured."""
    return get_llm_api_key() == DEMO_API_KEY


# Env overrides for the model backend and weather settings
CONFIG['llm']['model'] = get_config_value(['llm', 'model'], 'CLAUDE_MODEL', CONFIG['llm']['model'])
CONFIG['llm']['timeout'] = get_config_value(['llm', 'timeout'], 'CLAUDE_TIMEOUT', 30)
if ENV['WEATHER_API_KEY']:
    CONFIG['weather']['default_api_key'] = ENV['WEATHER_API_KEY']
CONFIG['demo']['seed'] = parse_demo_seed(get_config_value(['demo', 'seed'], 'DEMO_SEED', None))
CONFIG['streaming']['chunk_delay_seconds'] = get_config_value(
    ['streaming', 'chunk_delay_seconds'], 'STREAM_CHUNK_DELAY', 0.05
)

# --- Logging Configuration ---
# Defaults for logging config are also in logging_config.py's setup_app_logging function's signature
# or can be specified in config.json. Environment variables take precedence.
CONFIG['logging'] = {
    'level': get_config_value(['logging', 'level'], 'LOG_LEVEL', 'INFO'),
    'file_path': get_config_value(['logging', 'file_path'], 'LOG_FILE_PATH', 'logs/weather_assistant.log'),
    'max_bytes': get_config_value(['logging', 'max_bytes'], 'LOG_MAX_BYTES', 5*1024*1024), # 5MB
    'backup_count': get_config_value(['logging', 'backup_count'], 'LOG_BACKUP_COUNT', 3),
    'format': get_config_value(
        ['logging', 'format'],
        'LOG_FORMAT',
        '%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(lineno)d - %(message)s'
    ),
    'date_format': get_config_value(
        ['logging', 'date_format'],
        'LOG_DATE_FORMAT',
        '%Y-%m-%d %H:%M:%S'
    )
}

# --- Setup Application Logging ---
setup_app_logging(config=CONFIG.get('logging'))

config_init_logger = logging.getLogger(__name__)
config_init_logger.info(
    "[config_init] Logging initialized. Demo mode: %s\n", is_demo_mode()
)
