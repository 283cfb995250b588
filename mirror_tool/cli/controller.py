import signal
import threading
from typing import Optional, Sequence

from ..config import load_config
from ..core.exceptions import MirrorError
from ..core.synchronizer import MirrorSynchronizer
from ..utils.logger import setup_logger
from ..cli.parser import create_parser, validate_args, validate_log_path

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CANCELLED = 130


def _install_interrupt_handler(cancel_event: threading.Event, logger):
    """第一次 Ctrl-C 请求在两个操作之间停止，第二次直接中断"""
    def handler(signum, frame):
        if cancel_event.is_set():
            raise KeyboardInterrupt
        logger.warning("收到中断信号，当前操作完成后停止")
        cancel_event.set()

    try:
        return signal.signal(signal.SIGINT, handler)
    except ValueError:
        # 非主线程中无法安装信号处理器
        return None


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        validate_log_path(args.log, args.replica)
        log_file = args.log
    except MirrorError:
        # 日志文件不可用时只输出到控制台
        log_file = None
    logger = setup_logger(log_file)

    # 参数验证
    if error := validate_args(args):
        logger.error(error)
        return EXIT_FAILURE

    try:
        config = load_config(args.config)
    except MirrorError as e:
        logger.error(f"[{e.kind.value}] {e}")
        return EXIT_FAILURE

    logger.setLevel(args.log_level or config['log_level'])
    case_sensitive = config['case_sensitive'] if args.case_insensitive is None else not args.case_insensitive
    strict = config['strict'] if args.strict is None else args.strict

    cancel_event = threading.Event()
    syncer = MirrorSynchronizer(
        src=args.source,
        dst=args.replica,
        logger=logger,
        threads=args.threads or config['threads'],
        case_sensitive=case_sensitive,
        chunk_size=config['chunk_size'],
        dry_run=args.dry_run,
        cancel_event=cancel_event
    )

    previous = _install_interrupt_handler(cancel_event, logger)
    try:
        report = syncer.run()
    except KeyboardInterrupt:
        logger.warning("操作被用户中断")
        return EXIT_CANCELLED
    except MirrorError as e:
        logger.error(f"[{e.kind.value}] {e}")
        return EXIT_FAILURE
    finally:
        if previous is not None:
            signal.signal(signal.SIGINT, previous)

    if report.cancelled:
        return EXIT_CANCELLED
    if strict and not report.ok:
        return EXIT_FAILURE
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
