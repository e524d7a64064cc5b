# =============================================================================
# Configuration Loading and Merging
# =============================================================================
# Loads the YAML config layers (base defaults, custom file, CLI overrides)
# into one plain dictionary, and resolves secrets and project paths.

import os

import yaml
from dotenv import load_dotenv
from pathlib import Path


DEFAULT_CHUNK_SIZE = 1000
DEFAULT_CHUNK_OVERLAP = 100
DEFAULT_MIN_CHUNK_SIZE = 100


def get_project_root():
    """
    Get the root directory of the project.
    This is the folder containing main.py and the configs/ directory.

    Returns:
        Path: The project root directory
    """
    return Path(__file__).parent.parent


def load_yaml_file(file_path):
    """
    Load a YAML file and return its contents as a dictionary.

    Args:
        file_path: Path to the YAML file

    Returns:
        dict: The parsed YAML contents, or empty dict if file doesn't exist
    """
    path = Path(file_path)
    if not path.exists():
        return {}

    with open(path, 'r', encoding='utf-8') as f:
        return yaml.safe_load(f) or {}


def deep_merge(base, override):
    """
    Recursively merge two dictionaries.
    Values in 'override' take precedence over values in 'base'.

    Example:
        base = {'chunking': {'chunk_size': 1000, 'chunk_overlap': 100}}
        override = {'chunking': {'chunk_size': 500}}
        result = {'chunking': {'chunk_size': 500, 'chunk_overlap': 100}}
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def load_config(config_path=None, cli_overrides=None):
    """
    Load configuration from YAML files and merge with CLI overrides.

    The loading order is:
    1. configs/base.yaml (default values)
    2. Custom config file (if provided via --config)
    3. CLI overrides (highest priority)

    Args:
        config_path: Optional path to a custom config YAML file
        cli_overrides: Optional dict of CLI argument overrides

    Returns:
        dict: The merged configuration dictionary
    """
    project_root = get_project_root()

    config = load_yaml_file(project_root / 'configs' / 'base.yaml')

    if config_path:
        if not Path(config_path).exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        config = deep_merge(config, load_yaml_file(config_path))

    if cli_overrides:
        config = deep_merge(config, cli_overrides)

    return config


def get_chunking_params(config):
    """
    Read the chunking parameters from the config, applying defaults.

    Args:
        config: Configuration dictionary (the 'chunking' section is optional)

    Returns:
        tuple: (chunk_size, chunk_overlap, min_chunk_size)

    Raises:
        ValueError: If the values cannot produce a valid split
    """
    chunking = config.get('chunking') or {}
    chunk_size = int(chunking.get('chunk_size', DEFAULT_CHUNK_SIZE))
    chunk_overlap = int(chunking.get('chunk_overlap', DEFAULT_CHUNK_OVERLAP))
    min_chunk_size = int(chunking.get('min_chunk_size', DEFAULT_MIN_CHUNK_SIZE))

    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    if chunk_overlap < 0 or chunk_overlap >= chunk_size:
        raise ValueError(
            f"chunk_overlap must be in [0, chunk_size), got {chunk_overlap} "
            f"with chunk_size {chunk_size}"
        )
    if min_chunk_size < 0:
        raise ValueError(f"min_chunk_size must not be negative, got {min_chunk_size}")

    return chunk_size, chunk_overlap, min_chunk_size


def get_secrets():
    """
    Load API keys from configs/secrets.yaml, falling back to the environment.

    A .env file in the project root is loaded first, so OPENAI_API_KEY can
    live there instead of in secrets.yaml.

    Returns:
        dict: Dictionary containing secrets (e.g., openai_api_key)
    """
    project_root = get_project_root()
    load_dotenv(project_root / '.env')

    secrets = load_yaml_file(project_root / 'configs' / 'secrets.yaml')

    if not secrets.get('openai_api_key') and os.getenv('OPENAI_API_KEY'):
        secrets['openai_api_key'] = os.getenv('OPENAI_API_KEY')

    return secrets


def resolve_path(path_str):
    """
    Convert a path string to an absolute Path object.
    Relative paths are resolved from the project root.
    """
    path = Path(path_str)

    if path.is_absolute():
        return path

    return get_project_root() / path


def print_config(config, indent=0):
    """
    Pretty-print a configuration dictionary.

    Args:
        config: The configuration dictionary to print
        indent: Current indentation level (used internally for recursion)
    """
    prefix = "  " * indent
    for key, value in config.items():
        if isinstance(value, dict):
            print(f"{prefix}{key}:")
            print_config(value, indent + 1)
        else:
            print(f"{prefix}{key}: {value}")
