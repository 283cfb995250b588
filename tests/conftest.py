import logging
import os
from pathlib import Path
from typing import Dict, Optional

import pytest

from mirror_tool.utils.logger import LOGGER_NAME


def write_tree(root: Path, tree: Dict[str, Optional[str]]):
    """按 {相对路径: 内容} 创建目录树，内容为 None 表示目录"""
    root.mkdir(parents=True, exist_ok=True)
    for rel, content in tree.items():
        path = root / rel
        if content is None:
            path.mkdir(parents=True, exist_ok=True)
        else:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)


def read_tree(root: Path) -> Dict[str, Optional[str]]:
    result = {}
    for dirpath, dirnames, filenames in os.walk(root):
        for name in dirnames:
            result[Path(dirpath, name).relative_to(root).as_posix()] = None
        for name in filenames:
            path = Path(dirpath, name)
            result[path.relative_to(root).as_posix()] = path.read_text()
    return result


@pytest.fixture(autouse=True)
def reset_logger():
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def src(tmp_path):
    path = tmp_path / "src"
    path.mkdir()
    return path


@pytest.fixture
def dst(tmp_path):
    path = tmp_path / "dst"
    path.mkdir()
    return path


@pytest.fixture
def case_sensitive_fs(tmp_path):
    """需要能同时存放 docs 与 Docs 的文件系统"""
    marker = tmp_path / "case-marker"
    marker.write_text("")
    if (tmp_path / "CASE-MARKER").exists():
        pytest.skip("case-insensitive filesystem")
    marker.unlink()
