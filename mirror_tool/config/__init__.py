from pathlib import Path
import configparser
from typing import Dict, Any, Optional

from ..core.exceptions import ConfigError

DEFAULT_CONFIG = {
    'general': {
        'threads': '4',
        'log_level': 'INFO'
    },
    'mirror': {
        'case_sensitive': 'true',
        'chunk_size': '65536',
        'strict': 'false'
    }
}

LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


def load_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """读取 INI 配置，未设置的项使用 DEFAULT_CONFIG"""
    config = configparser.ConfigParser()
    config.read_dict(DEFAULT_CONFIG)

    if config_path is not None:
        config_path = Path(config_path)
        if not config_path.is_file():
            raise ConfigError("配置文件不存在", config_path)

    try:
        if config_path is not None:
            config.read(config_path, encoding='utf-8')

        result = {
            'threads': config.getint('general', 'threads'),
            'log_level': config.get('general', 'log_level').upper(),
            'case_sensitive': config.getboolean('mirror', 'case_sensitive'),
            'chunk_size': config.getint('mirror', 'chunk_size'),
            'strict': config.getboolean('mirror', 'strict')
        }
    except (configparser.Error, ValueError) as e:
        raise ConfigError(f"配置文件加载失败（{e}）", config_path) from e

    if not 1 <= result['threads'] <= 32:
        raise ConfigError("线程数必须在1-32之间", config_path)
    if result['chunk_size'] <= 0:
        raise ConfigError("chunk_size 必须大于0", config_path)
    if result['log_level'] not in LOG_LEVELS:
        raise ConfigError(f"未知日志级别 {result['log_level']}", config_path)
    return result
