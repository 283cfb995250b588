import logging
import os
import shutil
import tempfile
import threading
from pathlib import Path
from typing import Iterable, Optional

from .exceptions import CopyFailedError, CreateFailedError, DeleteFailedError, MirrorError
from .models import Action, ActionKind, RunReport
from ..utils.logger import get_logger

_FAILURES = {
    ActionKind.CREATE_DIRECTORY: CreateFailedError,
    ActionKind.COPY_FILE: CopyFailedError,
    ActionKind.DELETE_FILE: DeleteFailedError,
    ActionKind.DELETE_DIRECTORY: DeleteFailedError,
}


def atomic_copy(src: Path, dst: Path):
    """先写入同目录下的临时文件，再原子替换目标文件"""
    dst.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=dst.parent, prefix=f".{dst.name}.", suffix='.tmp')
    os.close(fd)
    try:
        shutil.copyfile(src, tmp)
        # mkstemp 创建的文件权限为 0600，改回与源文件一致
        shutil.copymode(src, tmp)
        os.replace(tmp, dst)
    except BaseException:
        try:
            os.unlink(tmp)
        except FileNotFoundError:
            pass
        raise


def remove_tree(path: Path):
    """递归删除目录，作为一个完整操作执行"""
    if path.is_symlink():
        path.unlink()
    else:
        shutil.rmtree(path)


class ActionExecutor:
    """按顺序执行操作列表

    单个操作失败只记录一条错误日志并继续执行后续操作；
    cancel_event 被设置后，剩余操作全部跳过。
    """

    def __init__(self, logger: Optional[logging.Logger] = None, dry_run: bool = False,
                 cancel_event: Optional[threading.Event] = None):
        self.logger = logger or get_logger(__name__)
        self.dry_run = dry_run
        self.cancel_event = cancel_event

    def execute(self, actions: Iterable[Action]) -> RunReport:
        actions = list(actions)
        report = RunReport(dry_run=self.dry_run)
        total = len(actions)

        for index, action in enumerate(actions, 1):
            if self.cancel_event is not None and self.cancel_event.is_set():
                report.skipped = total - index + 1
                report.cancelled = True
                self.logger.warning(f"操作被用户中断，跳过剩余 {report.skipped} 项操作")
                break

            if self.dry_run:
                self.logger.info(f"[模拟] [{action.kind.value}] {action.describe()}")
                report.applied += 1
                continue

            try:
                self.apply(action)
            except OSError as e:
                error = _FAILURES[action.kind](
                    f"{action.describe()} 失败（{e.strerror or e}）", action.target)
                self._fail(report, error)
            except MirrorError as e:
                self._fail(report, e)
            else:
                report.applied += 1
                self.logger.info(f"[{action.kind.value}] {action.describe()}")
        return report

    def apply(self, action: Action):
        if action.kind is ActionKind.CREATE_DIRECTORY:
            action.target.mkdir(parents=True, exist_ok=True)
        elif action.kind is ActionKind.COPY_FILE:
            atomic_copy(action.source, action.target)
        elif action.kind is ActionKind.DELETE_FILE:
            action.target.unlink()
        elif action.kind is ActionKind.DELETE_DIRECTORY:
            remove_tree(action.target)
        else:
            raise ValueError(f"未知操作类型: {action.kind}")

    def _fail(self, report: RunReport, error: MirrorError):
        report.failed += 1
        report.errors.append(error)
        self.logger.error(f"[{error.kind.value}] {error}")


def execute(actions: Iterable[Action], logger: Optional[logging.Logger] = None,
            dry_run: bool = False, cancel_event: Optional[threading.Event] = None) -> RunReport:
    return ActionExecutor(logger, dry_run, cancel_event).execute(actions)
