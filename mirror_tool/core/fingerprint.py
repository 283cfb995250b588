import os
from pathlib import Path
from typing import Union

import xxhash  # 更快的非加密哈希算法

from .exceptions import UnreadableError
from .models import Digest

DEFAULT_CHUNK_SIZE = 64 * 1024


def fingerprint(path: Union[str, Path], chunk_size: int = DEFAULT_CHUNK_SIZE) -> Digest:
    """分块读取整个文件，计算 xxh64 摘要"""
    hasher = xxhash.xxh64()
    try:
        with open(path, 'rb') as f:
            while chunk := f.read(chunk_size):
                hasher.update(chunk)
    except OSError as e:
        raise UnreadableError(f"无法读取文件（{e.strerror or e}）", path) from e
    return hasher.hexdigest()


def files_differ(src: Union[str, Path], dst: Union[str, Path],
                 chunk_size: int = DEFAULT_CHUNK_SIZE) -> bool:
    """精确比较两个文件是否不同

    大小不同即可判定不同；大小相同时以摘要为准。
    """
    try:
        if os.path.getsize(src) != os.path.getsize(dst):
            return True
    except OSError as e:
        raise UnreadableError(f"无法获取文件大小（{e.strerror or e}）", e.filename or src) from e
    return fingerprint(src, chunk_size) != fingerprint(dst, chunk_size)
