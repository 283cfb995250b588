"""目录树扫描

对一个根目录做完整的深度遍历（包括隐藏文件），生成 TreeSnapshot。
子目录或文件无法读取时记录为 ScanFailed 并继续扫描其余部分，
对应的键记入 snapshot.incomplete，避免后续误删副本中的内容。

普通文件和目录之外的条目（FIFO、套接字、设备文件、不跟随的符号链接）
记为 EntryKind.SPECIAL，从不打开读取。
"""
import os
import stat
from pathlib import Path
from typing import Dict, List, Optional, Set, Union

from .exceptions import MirrorError, PathOutsideRootError, RootNotFoundError, ScanFailedError
from .models import Entry, EntryKey, EntryKind, TreeSnapshot
from .paths import relative_path, normalize_key
from ..utils.logger import get_logger

logger = get_logger(__name__)


def _kind_of(mode: int) -> EntryKind:
    if stat.S_ISDIR(mode):
        return EntryKind.DIRECTORY
    if stat.S_ISREG(mode):
        return EntryKind.FILE
    return EntryKind.SPECIAL


class TreeScanner:
    """深度扫描目录并建立条目索引

    follow_symlinks 为 True 时，指向普通文件的符号链接按普通文件处理；
    其余符号链接（以及 follow_symlinks 为 False 时的全部符号链接）记为 SPECIAL。
    """

    def __init__(self, root: Union[str, Path], case_sensitive: bool = True,
                 follow_symlinks: bool = True):
        self.root = Path(os.path.abspath(root))
        self.case_sensitive = case_sensitive
        self.follow_symlinks = follow_symlinks
        self._entries: Dict[EntryKey, Entry] = {}
        self._errors: List[MirrorError] = []
        self._incomplete: Set[EntryKey] = set()
        self._collisions: List[Entry] = []

    def scan(self) -> TreeSnapshot:
        if not self.root.is_dir():
            raise RootNotFoundError("根目录不存在", self.root)

        self._entries, self._errors, self._incomplete, self._collisions = {}, [], set(), []
        for dirpath, dirnames, filenames in os.walk(self.root, onerror=self._on_walk_error):
            # 只深入已收录为目录的子目录
            dirnames[:] = [
                name for name in dirnames
                if self._add(os.path.join(dirpath, name)) is EntryKind.DIRECTORY
            ]
            for name in filenames:
                self._add(os.path.join(dirpath, name))

        logger.debug(f"扫描完成 {self.root}: {len(self._entries)} 项，{len(self._errors)} 个错误")
        return TreeSnapshot(
            root=self.root,
            entries=self._entries,
            errors=tuple(self._errors),
            incomplete=frozenset(self._incomplete),
            collisions=tuple(self._collisions),
        )

    def _add(self, full_path: str) -> Optional[EntryKind]:
        """收录一个条目，返回其类型；未收录时返回 None"""
        try:
            rel = relative_path(full_path, self.root)
        except PathOutsideRootError as e:
            self._record(e, None)
            return None
        key = normalize_key(rel, self.case_sensitive)

        try:
            st = os.lstat(full_path)
        except OSError as e:
            self._record(ScanFailedError(f"无法读取条目信息（{e.strerror or e}）", full_path), key)
            return None

        kind = _kind_of(st.st_mode)
        size = st.st_size if kind is EntryKind.FILE else None
        if stat.S_ISLNK(st.st_mode) and self.follow_symlinks:
            try:
                target = os.stat(full_path)
            except OSError:
                target = None
            if target is not None and stat.S_ISREG(target.st_mode):
                kind, size = EntryKind.FILE, target.st_size

        entry = Entry(key, kind, Path(full_path), rel, size)
        if key in self._entries:
            # 大小写不敏感时两个名字折叠成同一个键
            self._collisions.append(entry)
            return None
        self._entries[key] = entry
        return kind

    def _on_walk_error(self, error: OSError):
        path = error.filename or str(self.root)
        try:
            key = normalize_key(relative_path(path, self.root), self.case_sensitive)
        except PathOutsideRootError:
            # 根目录本身在扫描过程中变得不可读
            key = None
        self._record(ScanFailedError(f"无法读取子目录（{error.strerror or error}）", path), key)

    def _record(self, error: MirrorError, key):
        logger.error(f"[{error.kind.value}] {error}")
        self._errors.append(error)
        if key is not None:
            self._incomplete.add(key)
        else:
            self._incomplete.add('')


def scan(root: Union[str, Path], case_sensitive: bool = True,
         follow_symlinks: bool = True) -> TreeSnapshot:
    """扫描 root，返回 TreeSnapshot；root 不存在时抛出 RootNotFoundError"""
    return TreeScanner(root, case_sensitive, follow_symlinks).scan()
