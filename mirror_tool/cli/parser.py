import argparse
import os
from pathlib import Path
from typing import Optional

from .. import __version__
from ..config import LOG_LEVELS
from ..core.exceptions import LogDestinationInvalidError, MirrorError
from ..core.synchronizer import validate_roots


def validate_threads(value):
    try:
        ivalue = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"无效的线程数: {value}")
    if ivalue <= 0 or ivalue > 32:
        raise argparse.ArgumentTypeError("线程数必须在1-32之间")
    return ivalue


def create_parser() -> argparse.ArgumentParser:
    """创建并配置命令行参数解析器"""
    parser = argparse.ArgumentParser(
        prog="mirror-tool",
        description="单向目录镜像工具：让副本目录与源目录完全一致",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    io_group = parser.add_argument_group("输入输出")
    io_group.add_argument(
        "-s", "--source",
        type=Path,
        required=True,
        help="源目录路径"
    )
    io_group.add_argument(
        "-r", "--replica",
        type=Path,
        required=True,
        help="副本目录路径（不存在时自动创建）"
    )
    io_group.add_argument(
        "-l", "--log",
        type=Path,
        required=True,
        help="日志文件路径（追加写入）"
    )

    perf_group = parser.add_argument_group("性能设置")
    perf_group.add_argument(
        "-t", "--threads",
        type=validate_threads,
        default=None,
        help="计算摘要的并发线程数 (1-32)，默认取配置文件中的值"
    )

    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="INI 配置文件路径"
    )
    parser.add_argument(
        "-n", "--dry-run",
        action="store_true",
        help="试运行模式（不实际执行操作）"
    )
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        type=str.upper,
        default=None,
        help="日志级别，默认取配置文件中的值"
    )
    parser.add_argument(
        "--case-insensitive",
        action="store_true",
        default=None,
        help="按大小写不敏感的方式匹配两边的路径"
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        default=None,
        help="任何操作失败时以非零状态码退出"
    )

    parser.add_argument(
        "-v", "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    return parser


def validate_log_path(log_path: Path, replica: Optional[Path] = None):
    """检查日志文件能否写入，不能时抛出 LogDestinationInvalidError"""
    if log_path.is_dir():
        raise LogDestinationInvalidError("日志路径是目录", log_path)
    parent = log_path.parent
    if not parent.is_dir():
        raise LogDestinationInvalidError("日志文件所在目录不存在", parent)
    if not os.access(parent, os.W_OK):
        raise LogDestinationInvalidError("日志文件所在目录不可写", parent)
    if replica is not None:
        # 副本目录中的日志文件会在镜像时被删除
        real_log, real_replica = os.path.realpath(log_path), os.path.realpath(replica)
        if real_log.startswith(real_replica + os.sep):
            raise LogDestinationInvalidError("日志文件不能位于副本目录中", log_path)


def validate_args(args: argparse.Namespace) -> Optional[str]:
    """验证参数逻辑关系，返回错误信息或None"""
    try:
        validate_roots(Path(os.path.abspath(args.source)), Path(os.path.abspath(args.replica)))
        validate_log_path(args.log, args.replica)
    except MirrorError as e:
        return f"[{e.kind.value}] {e}"
    return None
