import copy
import os
import yaml

DEFAULT_CONFIG_PATH = os.path.join(
    os.path.dirname(__file__), '..', '..', 'config.yaml')

DEFAULTS = {
    'retry_interval': 10,
    'rescan_interval': 60,
    'notification_timeout': 5,
    'logging': {
        'level': 'INFO',
        'file': None,
    },
}


def _config_path(path: str | None = None) -> str:
    cfg_path = path or os.environ.get(
        'DHCPCD_TRAY_CONFIG') or DEFAULT_CONFIG_PATH
    return os.path.abspath(os.path.expanduser(cfg_path))


def load_config(path: str | None = None) -> dict:
    cfg_path = _config_path(path)
    if not os.path.exists(cfg_path):
        return {}
    with open(cfg_path, 'r', encoding='utf-8') as fh:
        return yaml.safe_load(fh) or {}


def load_settings(path: str | None = None) -> dict:
    """Config file values merged over DEFAULTS, one level deep."""
    settings = copy.deepcopy(DEFAULTS)
    for key, value in load_config(path).items():
        if isinstance(value, dict) and isinstance(settings.get(key), dict):
            settings[key].update(value)
        else:
            settings[key] = value

    interval = settings['retry_interval']
    if not isinstance(interval, (int, float)) or interval <= 0:
        raise ValueError(f"retry_interval must be a positive number, got {interval!r}")
    return settings
