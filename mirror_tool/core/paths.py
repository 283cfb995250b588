import os
from pathlib import Path, PurePosixPath
from typing import Tuple, Union

from .exceptions import PathOutsideRootError
from .models import EntryKey

PathLike = Union[str, os.PathLike]


def relative_path(path: PathLike, root: PathLike) -> str:
    """返回 path 相对 root 的路径（'/' 分隔，不带前导分隔符）

    只做字面比较，不解析符号链接；path 不在 root 之下时抛出 PathOutsideRootError。
    """
    abs_path = os.path.abspath(os.fspath(path))
    abs_root = os.path.abspath(os.fspath(root))
    try:
        common = os.path.commonpath([abs_path, abs_root])
    except ValueError:
        # Windows 下不同盘符
        raise PathOutsideRootError(f"路径不在根目录 {abs_root} 之下", abs_path) from None
    if common != abs_root or abs_path == abs_root:
        raise PathOutsideRootError(f"路径不在根目录 {abs_root} 之下", abs_path)
    rel = os.path.relpath(abs_path, abs_root)
    return PurePosixPath(*Path(rel).parts).as_posix()


def normalize_key(rel_path: str, case_sensitive: bool = True) -> EntryKey:
    return rel_path if case_sensitive else rel_path.casefold()


def to_entry_key(path: PathLike, root: PathLike, case_sensitive: bool = True) -> EntryKey:
    """绝对路径 → 跨目录树比较用的 EntryKey"""
    return normalize_key(relative_path(path, root), case_sensitive)


def key_parts(key: EntryKey) -> Tuple[str, ...]:
    return tuple(key.split('/'))


def is_within(key: EntryKey, ancestor: EntryKey) -> bool:
    """key 是否等于 ancestor 或位于其下（按路径段边界判断）"""
    return key == ancestor or key.startswith(ancestor + '/')


def ancestors(key: EntryKey):
    """由近及远生成 key 的所有上级目录键"""
    parts = key_parts(key)
    for i in range(len(parts) - 1, 0, -1):
        yield '/'.join(parts[:i])
