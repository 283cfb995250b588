import logging
import sys
from pathlib import Path
from typing import Optional, Union

LOGGER_NAME = 'mirror_tool'
LOG_FORMAT = '%(asctime)s [%(levelname)s] %(message)s'


class ColoredFormatter(logging.Formatter):
    """带颜色的日志格式化器
    支持颜色：
    - 警告: 黄色
    - 错误: 红色
    - 信息: 蓝色
    """
    COLORS = {
        'WARNING': '\033[93m',
        'ERROR': '\033[91m',
        'INFO': '\033[94m',
        'ENDC': '\033[0m'
    }

    def format(self, record):
        message = super().format(record)
        color = self.COLORS.get(record.levelname)
        if not color:
            return message
        return f"{color}{message}{self.COLORS['ENDC']}"


def setup_logger(log_file: Optional[Union[str, Path]] = None,
                 level: Union[int, str] = logging.INFO,
                 stream=None,
                 color: Optional[bool] = None,
                 name: str = LOGGER_NAME) -> logging.Logger:
    """配置日志：追加写入日志文件，同时输出到控制台

    重复调用时会替换之前安装的处理器。
    """
    logger = logging.getLogger(name)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8', errors='backslashreplace')
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(file_handler)

    stream = stream or sys.stderr
    if color is None:
        color = hasattr(stream, 'isatty') and stream.isatty()
    console_handler = logging.StreamHandler(stream)
    console_handler.setFormatter(ColoredFormatter(LOG_FORMAT) if color else logging.Formatter(LOG_FORMAT))
    logger.addHandler(console_handler)
    return logger


def get_logger(name=None):
    """获取配置好的日志记录器"""
    return logging.getLogger(name or LOGGER_NAME)
