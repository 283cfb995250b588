from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import FrozenSet, Iterator, List, Mapping, Optional, Tuple

from .exceptions import MirrorError

# 根目录相对路径，统一使用 '/' 分隔
EntryKey = str
Digest = str


class EntryKind(str, Enum):
    DIRECTORY = 'directory'
    FILE = 'file'
    # 符号链接（不跟随时）、FIFO、套接字、设备文件等，不读取内容
    SPECIAL = 'special'


@dataclass(frozen=True)
class Entry:
    """扫描时的条目快照

    key      -- 跨目录树比较用的键（大小写不敏感时已折叠）
    rel_path -- 磁盘上的原始相对路径
    """
    key: EntryKey
    kind: EntryKind
    path: Path
    rel_path: str
    size: Optional[int] = None

    @property
    def is_dir(self) -> bool:
        return self.kind is EntryKind.DIRECTORY


@dataclass(frozen=True)
class TreeSnapshot:
    """一次扫描得到的不可变目录树"""
    root: Path
    entries: Mapping[EntryKey, Entry]
    errors: Tuple[MirrorError, ...] = ()
    # 未能完整读取的条目/子树，其下内容视为未知
    incomplete: FrozenSet[EntryKey] = frozenset()
    # 大小写不敏感时与已有条目折叠成同一个键、未被收录的条目
    collisions: Tuple[Entry, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'entries', MappingProxyType(dict(self.entries)))

    def __len__(self):
        return len(self.entries)

    def __iter__(self) -> Iterator[EntryKey]:
        return iter(self.entries)

    def __contains__(self, key) -> bool:
        return key in self.entries

    def get(self, key: EntryKey) -> Optional[Entry]:
        return self.entries.get(key)


class ActionKind(str, Enum):
    CREATE_DIRECTORY = 'CreateDirectory'
    COPY_FILE = 'CopyFile'
    DELETE_FILE = 'DeleteFile'
    DELETE_DIRECTORY = 'DeleteDirectory'


@dataclass(frozen=True)
class Action:
    kind: ActionKind
    key: EntryKey
    target: Path
    source: Optional[Path] = None

    @property
    def is_delete(self) -> bool:
        return self.kind in (ActionKind.DELETE_FILE, ActionKind.DELETE_DIRECTORY)

    def describe(self) -> str:
        """返回可读的操作描述"""
        if self.kind is ActionKind.CREATE_DIRECTORY:
            return f"创建目录 {self.key}"
        if self.kind is ActionKind.COPY_FILE:
            return f"复制 {self.key} → {self.target}"
        if self.kind is ActionKind.DELETE_FILE:
            return f"删除文件 {self.key}"
        return f"删除目录 {self.key}（递归）"


@dataclass
class Plan:
    """对比结果：有序操作列表及对比阶段的错误"""
    actions: List[Action] = field(default_factory=list)
    errors: List[MirrorError] = field(default_factory=list)

    def __len__(self):
        return len(self.actions)

    def __iter__(self) -> Iterator[Action]:
        return iter(self.actions)


@dataclass
class RunReport:
    applied: int = 0
    failed: int = 0
    skipped: int = 0
    errors: List[MirrorError] = field(default_factory=list)
    duration: float = 0.0
    dry_run: bool = False
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return not self.errors and not self.cancelled

    def merge(self, other: 'RunReport') -> None:
        self.applied += other.applied
        self.failed += other.failed
        self.skipped += other.skipped
        self.errors.extend(other.errors)
        self.cancelled = self.cancelled or other.cancelled
