"""源目录与副本目录的对比

reconcile() 只读取两个快照，除了比较同名文件所需的摘要计算外不做任何 I/O，
输出一个满足以下顺序约束的操作列表：

* 所有删除在前：先清理副本中多余的条目和类型不匹配的条目，
  再在同一位置创建，避免名字冲突；
* 被删除目录下的条目不再单独生成删除操作，由执行器一次性递归删除；
* 创建/复制按路径段排序，父目录总在子条目之前。
"""
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, FrozenSet, List, Optional, Sequence, Tuple

from .exceptions import ComparisonFailedError, MirrorError
from .fingerprint import DEFAULT_CHUNK_SIZE, files_differ
from .models import Action, ActionKind, Entry, EntryKey, EntryKind, Plan, TreeSnapshot
from .paths import ancestors, is_within, key_parts
from ..utils.logger import get_logger

logger = get_logger(__name__)

# compare(source_path, replica_path) -> 内容是否不同
Comparator = Callable[..., bool]


def _is_unknown(key: EntryKey, incomplete: FrozenSet[EntryKey]) -> bool:
    if '' in incomplete:
        return True
    return any(is_within(key, unknown) for unknown in incomplete)


def _sort_key(key: EntryKey) -> Tuple[str, ...]:
    return key_parts(key)


class Reconciler:
    """对比两个快照并生成有序的操作列表"""

    def __init__(self, source: TreeSnapshot, replica: TreeSnapshot,
                 threads: int = 1, chunk_size: int = DEFAULT_CHUNK_SIZE,
                 compare: Optional[Comparator] = None):
        self.source = source
        self.replica = replica
        self.threads = max(1, threads)
        self.chunk_size = chunk_size
        self.compare = compare or (lambda src, dst: files_differ(src, dst, self.chunk_size))

    def reconcile(self) -> Plan:
        deletes: List[Entry] = []
        creates: List[Entry] = []
        pairs: List[Tuple[Entry, Entry]] = []

        for entry in self.source.collisions:
            logger.warning(f"{entry.rel_path} 与 {self.source.get(entry.key).rel_path} 大小写冲突，不镜像")

        for key, src_entry in self.source.entries.items():
            dst_entry = self.replica.get(key)
            if src_entry.kind is EntryKind.SPECIAL:
                logger.warning(f"跳过特殊文件或符号链接，不镜像: {src_entry.rel_path}")
                if dst_entry is not None:
                    deletes.append(dst_entry)
            elif dst_entry is None:
                creates.append(src_entry)
            elif src_entry.kind is not dst_entry.kind:
                logger.debug(f"类型冲突 {key}: {dst_entry.kind.value} → {src_entry.kind.value}")
                deletes.append(dst_entry)
                creates.append(src_entry)
            elif src_entry.kind is EntryKind.FILE:
                pairs.append((src_entry, dst_entry))

        for key, dst_entry in self.replica.entries.items():
            if key in self.source:
                continue
            if _is_unknown(key, self.source.incomplete):
                logger.debug(f"源目录中 {key} 的状态未知，保留副本")
                continue
            deletes.append(dst_entry)

        plan = Plan()
        collisions = [entry for entry in self.replica.collisions
                      if not _is_unknown(entry.key, self.source.incomplete)]
        plan.actions.extend(self._delete_actions(deletes, collisions))

        changed, errors = self._compare_pairs(pairs)
        plan.errors.extend(errors)
        creates.extend(changed)
        plan.actions.extend(self._create_actions(creates))
        return plan

    def _delete_actions(self, entries: List[Entry],
                        collisions: Sequence[Entry] = ()) -> List[Action]:
        """collisions 是副本中拼写不同、键相同的多余条目，与同键的正常条目互不覆盖"""
        actions = []
        removed_dirs = set()
        ordered = sorted(
            [(entry, False) for entry in entries] + [(entry, True) for entry in collisions],
            key=lambda item: _sort_key(item[0].key),
        )
        for entry, collided in ordered:
            # 上级目录已被递归删除
            if any(parent in removed_dirs for parent in ancestors(entry.key)):
                continue
            if entry.is_dir:
                if not collided:
                    removed_dirs.add(entry.key)
                actions.append(Action(ActionKind.DELETE_DIRECTORY, entry.key, entry.path))
            else:
                actions.append(Action(ActionKind.DELETE_FILE, entry.key, entry.path))
        return actions

    def _create_actions(self, entries: List[Entry]) -> List[Action]:
        actions = []
        for entry in sorted(entries, key=lambda e: _sort_key(e.key)):
            target = self._replica_path(entry)
            if entry.is_dir:
                actions.append(Action(ActionKind.CREATE_DIRECTORY, entry.key, target))
            else:
                actions.append(Action(ActionKind.COPY_FILE, entry.key, target, entry.path))
        return actions

    def _replica_path(self, entry: Entry) -> Path:
        """副本中的目标路径

        已存在且类型相同的条目沿用副本中的原有写法，
        新条目挂在其上级目录在副本中的路径下。
        """
        existing = self.replica.get(entry.key)
        if existing is not None and existing.kind is entry.kind:
            return existing.path
        name = key_parts(entry.rel_path)[-1]
        parent_key = next(ancestors(entry.key), None)
        parent = self.source.get(parent_key) if parent_key is not None else None
        if parent is None:
            return self.replica.root / name
        return self._replica_path(parent) / name

    def _compare_pairs(self, pairs: List[Tuple[Entry, Entry]]):
        """比较同名文件；比较失败时默认重新复制"""
        changed: List[Entry] = []
        errors: List[MirrorError] = []
        if not pairs:
            return changed, errors

        def check(pair):
            src_entry, dst_entry = pair
            try:
                return self.compare(src_entry.path, dst_entry.path), None
            except MirrorError as e:
                return True, ComparisonFailedError(f"比较失败，将强制复制（{e}）", src_entry.key)
            except OSError as e:
                return True, ComparisonFailedError(
                    f"比较失败，将强制复制（{e.strerror or e}）", src_entry.key)

        if self.threads > 1 and len(pairs) > 1:
            with ThreadPoolExecutor(max_workers=self.threads) as pool:
                results = list(pool.map(check, pairs))
        else:
            results = [check(pair) for pair in pairs]

        for (src_entry, _), (differ, error) in zip(pairs, results):
            if error is not None:
                logger.error(f"[{error.kind.value}] {error}")
                errors.append(error)
            if differ:
                changed.append(src_entry)
        return changed, errors


def reconcile(source: TreeSnapshot, replica: TreeSnapshot, threads: int = 1,
              chunk_size: int = DEFAULT_CHUNK_SIZE,
              compare: Optional[Comparator] = None) -> Plan:
    """对比两个快照，返回 Plan（有序操作 + 对比错误）"""
    return Reconciler(source, replica, threads, chunk_size, compare).reconcile()
