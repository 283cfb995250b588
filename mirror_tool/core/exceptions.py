from enum import Enum
from pathlib import Path
from typing import Optional, Union


class ErrorKind(str, Enum):
    """错误类型"""
    ROOT_NOT_FOUND = 'RootNotFound'
    PATH_OUTSIDE_ROOT = 'PathOutsideRoot'
    SCAN_FAILED = 'ScanFailed'
    UNREADABLE = 'Unreadable'
    COMPARISON_FAILED = 'ComparisonFailed'
    CREATE_FAILED = 'CreateFailed'
    COPY_FAILED = 'CopyFailed'
    DELETE_FAILED = 'DeleteFailed'
    LOG_DESTINATION_INVALID = 'LogDestinationInvalid'
    CONFIG_INVALID = 'ConfigInvalid'
    PATH_INVALID = 'PathInvalid'


class MirrorError(Exception):
    """自定义镜像异常基类"""
    kind = ErrorKind.SCAN_FAILED

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        super().__init__(message)
        self.message = message
        self.path = Path(path) if path is not None else None

    def __str__(self):
        if self.path is not None:
            return f"{self.message}: {self.path}"
        return self.message


class RootNotFoundError(MirrorError):
    kind = ErrorKind.ROOT_NOT_FOUND


class PathOutsideRootError(MirrorError):
    kind = ErrorKind.PATH_OUTSIDE_ROOT


class ScanFailedError(MirrorError):
    kind = ErrorKind.SCAN_FAILED


class UnreadableError(MirrorError):
    kind = ErrorKind.UNREADABLE


class ComparisonFailedError(MirrorError):
    kind = ErrorKind.COMPARISON_FAILED


class CreateFailedError(MirrorError):
    kind = ErrorKind.CREATE_FAILED


class CopyFailedError(MirrorError):
    kind = ErrorKind.COPY_FAILED


class DeleteFailedError(MirrorError):
    kind = ErrorKind.DELETE_FAILED


class LogDestinationInvalidError(MirrorError):
    kind = ErrorKind.LOG_DESTINATION_INVALID


class ConfigError(MirrorError):
    kind = ErrorKind.CONFIG_INVALID


class PathInvalidError(MirrorError):
    kind = ErrorKind.PATH_INVALID
