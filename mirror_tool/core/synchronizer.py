from pathlib import Path
import logging
import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Tuple, Union

from .exceptions import CreateFailedError, PathInvalidError, RootNotFoundError
from .executor import ActionExecutor
from .fingerprint import DEFAULT_CHUNK_SIZE
from .models import Plan, RunReport, TreeSnapshot
from .reconciler import Reconciler
from .scanner import TreeScanner
from ..utils.logger import get_logger


def validate_roots(src: Path, dst: Path):
    """校验源目录与副本目录，配置错误时直接抛出异常"""
    if not src.exists():
        raise RootNotFoundError("源目录不存在", src)
    if not src.is_dir():
        raise PathInvalidError("源路径不是目录", src)
    if dst.exists() and not dst.is_dir():
        raise PathInvalidError("副本路径不是目录", dst)

    real_src, real_dst = os.path.realpath(src), os.path.realpath(dst)
    if real_src == real_dst:
        raise PathInvalidError("源目录与副本目录相同", dst)
    try:
        common = os.path.commonpath([real_src, real_dst])
    except ValueError:
        # 不同盘符
        return
    if common in (real_src, real_dst):
        raise PathInvalidError("源目录与副本目录不能互相嵌套", dst)


class MirrorSynchronizer:
    """单向镜像：让副本目录与源目录完全一致"""

    def __init__(self,
                 src: Union[str, Path],
                 dst: Union[str, Path],
                 logger: Optional[logging.Logger] = None,
                 threads: int = 4,
                 case_sensitive: bool = True,
                 chunk_size: int = DEFAULT_CHUNK_SIZE,
                 dry_run: bool = False,
                 cancel_event: Optional[threading.Event] = None):
        self.src = Path(os.path.abspath(src))
        self.dst = Path(os.path.abspath(dst))
        self.logger = logger or get_logger()
        self.threads = threads
        self.case_sensitive = case_sensitive
        self.chunk_size = chunk_size
        self.dry_run = dry_run
        self.cancel_event = cancel_event or threading.Event()

    def prepare(self):
        validate_roots(self.src, self.dst)
        if not self.dst.exists():
            if self.dry_run:
                self.logger.info(f"[模拟] 创建副本根目录 {self.dst}")
            else:
                try:
                    self.dst.mkdir(parents=True)
                except OSError as e:
                    raise CreateFailedError(f"无法创建副本根目录（{e.strerror or e}）", self.dst) from e
                self.logger.info(f"已创建副本根目录 {self.dst}")

    def _source_scanner(self) -> TreeScanner:
        return TreeScanner(self.src, self.case_sensitive)

    def _replica_scanner(self) -> TreeScanner:
        # 副本中的符号链接一律不跟随，记为特殊条目，镜像时删除
        return TreeScanner(self.dst, self.case_sensitive, follow_symlinks=False)

    def scan(self) -> Tuple[TreeSnapshot, TreeSnapshot]:
        """并发扫描源目录和副本目录"""
        if not self.dst.exists():
            # 模拟运行时副本根目录尚未创建
            src_snapshot = self._source_scanner().scan()
            return src_snapshot, TreeSnapshot(root=self.dst, entries={})

        with ThreadPoolExecutor(max_workers=2) as pool:
            src_future = pool.submit(self._source_scanner().scan)
            dst_future = pool.submit(self._replica_scanner().scan)
            return src_future.result(), dst_future.result()

    def plan(self) -> Tuple[Plan, RunReport]:
        """扫描并对比，返回操作列表和扫描/对比阶段的错误"""
        src_snapshot, dst_snapshot = self.scan()
        self.logger.info(f"扫描完成：源 {len(src_snapshot)} 项，副本 {len(dst_snapshot)} 项")

        report = RunReport(dry_run=self.dry_run)
        report.errors.extend(src_snapshot.errors)
        report.errors.extend(dst_snapshot.errors)

        plan = Reconciler(src_snapshot, dst_snapshot, self.threads, self.chunk_size).reconcile()
        report.errors.extend(plan.errors)
        return plan, report

    def run(self) -> RunReport:
        """执行一次完整的镜像同步"""
        started = time.monotonic()
        mode = '模拟运行' if self.dry_run else '实际执行'
        self.logger.info(f"开始镜像 {self.src} → {self.dst}（{mode}）")

        self.prepare()
        plan, report = self.plan()
        self.logger.info(f"共需执行 {len(plan)} 项操作")

        executor = ActionExecutor(self.logger, self.dry_run, self.cancel_event)
        report.merge(executor.execute(plan.actions))
        report.duration = time.monotonic() - started

        self.logger.info(
            f"镜像完成：成功 {report.applied} 项，失败 {report.failed} 项，"
            f"跳过 {report.skipped} 项，错误 {len(report.errors)} 个，"
            f"耗时 {report.duration:.3f} 秒"
        )
        return report
