import os
import threading

import pytest
from pathlib import Path

from mirror_tool.core.exceptions import PathInvalidError, RootNotFoundError
from mirror_tool.core.fingerprint import fingerprint
from mirror_tool.core.models import ActionKind, EntryKind
from mirror_tool.core.scanner import scan
from mirror_tool.core.synchronizer import MirrorSynchronizer
from mirror_tool.utils.logger import get_logger

from conftest import read_tree, write_tree


@pytest.fixture
def test_syncer(src, dst):
    return MirrorSynchronizer(src, dst, get_logger(), threads=2)


def snapshot_view(root: Path):
    view = {}
    for key, entry in scan(root).entries.items():
        view[key] = (entry.kind, fingerprint(entry.path) if entry.kind is EntryKind.FILE else None)
    return view


def test_basic_sync(test_syncer):
    (test_syncer.src / "test.txt").write_text("content")

    plan, _ = test_syncer.plan()
    assert len(plan) == 1
    assert plan.actions[0].kind is ActionKind.COPY_FILE

    report = test_syncer.run()
    assert report.applied == 1
    assert (test_syncer.dst / "test.txt").read_text() == "content"


def test_empty_sync(test_syncer):
    plan, report = test_syncer.plan()
    assert len(plan) == 0
    assert report.errors == []


def test_convergence_and_idempotence(test_syncer):
    write_tree(test_syncer.src, {
        "a.txt": "alpha",
        ".dotfile": "dot",
        "nested/b.txt": "beta",
        "nested/deeper/c.bin": "gamma" * 1000,
        "empty": None,
    })
    write_tree(test_syncer.dst, {
        "a.txt": "stale",
        "nested": "was a file",
        "extra/dir/file.txt": "junk",
    })

    first = test_syncer.run()
    assert first.failed == 0
    assert snapshot_view(test_syncer.src) == snapshot_view(test_syncer.dst)

    plan, _ = test_syncer.plan()
    assert plan.actions == []


def test_deletion_completeness(test_syncer):
    write_tree(test_syncer.src, {"keep.txt": "k"})
    write_tree(test_syncer.dst, {"keep.txt": "k", "x.txt": "1", "d/e/f.txt": "2", "empty": None})

    test_syncer.run()

    assert read_tree(test_syncer.dst) == {"keep.txt": "k"}


def test_empty_source_empties_replica(test_syncer):
    write_tree(test_syncer.dst, {"x.txt": "1", "d/e/f.txt": "2", ".hidden/y": "3"})

    report = test_syncer.run()

    assert report.failed == 0
    assert read_tree(test_syncer.dst) == {}


def test_kind_mismatch_replaces_directory_with_file(test_syncer):
    write_tree(test_syncer.src, {"thing": "file now"})
    write_tree(test_syncer.dst, {"thing/a.txt": "a", "thing/sub/b.txt": "b"})

    test_syncer.run()

    assert read_tree(test_syncer.dst) == {"thing": "file now"}


def test_identical_file_is_not_rewritten(test_syncer):
    write_tree(test_syncer.src, {"same.txt": "identical", "diff.txt": "new text"})
    write_tree(test_syncer.dst, {"same.txt": "identical", "diff.txt": "old text"})
    same = test_syncer.dst / "same.txt"
    os.utime(same, ns=(1_000_000_000, 1_000_000_000))
    before = same.stat()

    test_syncer.run()

    after = same.stat()
    assert after.st_mtime_ns == before.st_mtime_ns
    assert after.st_ino == before.st_ino
    assert (test_syncer.dst / "diff.txt").read_text() == "new text"


def test_scenario_overwrite_delete_create(test_syncer):
    write_tree(test_syncer.src, {"a.txt": "hi", "dir": None})
    write_tree(test_syncer.dst, {"a.txt": "bye", "old.txt": "x"})

    plan, _ = test_syncer.plan()
    actions = {(a.kind, a.key) for a in plan.actions}
    assert actions == {
        (ActionKind.COPY_FILE, "a.txt"),
        (ActionKind.DELETE_FILE, "old.txt"),
        (ActionKind.CREATE_DIRECTORY, "dir"),
    }

    test_syncer.run()
    assert read_tree(test_syncer.dst) == {"a.txt": "hi", "dir": None}


def test_missing_replica_root_is_created(src, tmp_path):
    write_tree(src, {"a.txt": "a"})
    replica = tmp_path / "new" / "replica"

    MirrorSynchronizer(src, replica).run()

    assert read_tree(replica) == {"a.txt": "a"}


def test_dry_run_with_missing_replica(src, tmp_path):
    write_tree(src, {"a.txt": "a"})
    replica = tmp_path / "replica"

    report = MirrorSynchronizer(src, replica, dry_run=True).run()

    assert report.applied == 1
    assert not replica.exists()


def test_missing_source_root(tmp_path, dst):
    with pytest.raises(RootNotFoundError):
        MirrorSynchronizer(tmp_path / "nope", dst).run()


def test_nested_roots_are_rejected(src):
    with pytest.raises(PathInvalidError):
        MirrorSynchronizer(src, src / "inside").run()


def test_report_counts_and_duration(test_syncer):
    write_tree(test_syncer.src, {"a.txt": "a", "b/c.txt": "c"})

    report = test_syncer.run()

    assert report.applied == 3
    assert report.failed == 0
    assert report.duration >= 0
    assert report.ok


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="no symlink support")
def test_replica_directory_link_is_replaced_not_followed(test_syncer, tmp_path):
    outside = tmp_path / "outside"
    write_tree(outside, {"keep.txt": "outside data"})
    write_tree(test_syncer.src, {"d/x.txt": "x"})
    os.symlink(os.path.join("..", "outside"), test_syncer.dst / "d")

    report = test_syncer.run()

    assert report.failed == 0
    assert not (test_syncer.dst / "d").is_symlink()
    assert read_tree(test_syncer.dst) == {"d": None, "d/x.txt": "x"}
    assert read_tree(outside) == {"keep.txt": "outside data"}


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="no symlink support")
def test_extraneous_replica_links_are_deleted(test_syncer, tmp_path):
    write_tree(tmp_path / "outside", {"f.txt": "f"})
    write_tree(test_syncer.src, {"a.txt": "a"})
    write_tree(test_syncer.dst, {"a.txt": "a"})
    os.symlink(tmp_path / "outside", test_syncer.dst / "dir_link")
    os.symlink(tmp_path / "outside" / "f.txt", test_syncer.dst / "file_link")
    os.symlink(tmp_path / "missing", test_syncer.dst / "dangling")

    report = test_syncer.run()

    assert report.failed == 0
    assert sorted(os.listdir(test_syncer.dst)) == ["a.txt"]
    assert (tmp_path / "outside" / "f.txt").exists()

    plan, _ = test_syncer.plan()
    assert plan.actions == []


@pytest.mark.skipif(not hasattr(os, "mkfifo"), reason="no fifo support")
def test_fifos_are_never_opened(test_syncer):
    write_tree(test_syncer.src, {"a.txt": "a"})
    os.mkfifo(test_syncer.src / "pipe")
    os.mkfifo(test_syncer.dst / "pipe")
    os.mkfifo(test_syncer.dst / "stale_pipe")
    result = {}

    worker = threading.Thread(target=lambda: result.update(report=test_syncer.run()), daemon=True)
    worker.start()
    worker.join(10)

    assert not worker.is_alive()
    assert result["report"].failed == 0
    assert sorted(os.listdir(test_syncer.dst)) == ["a.txt"]


def test_case_insensitive_new_children_join_replica_directory(src, dst, case_sensitive_fs):
    write_tree(src, {"Docs/a.txt": "a", "Docs/new.txt": "new", "Docs/sub/deep.txt": "deep"})
    write_tree(dst, {"docs/a.txt": "a"})
    syncer = MirrorSynchronizer(src, dst, case_sensitive=False)

    report = syncer.run()

    assert report.failed == 0
    assert os.listdir(dst) == ["docs"]
    assert read_tree(dst) == {
        "docs": None,
        "docs/a.txt": "a",
        "docs/new.txt": "new",
        "docs/sub": None,
        "docs/sub/deep.txt": "deep",
    }

    plan, _ = syncer.plan()
    assert plan.actions == []


def test_case_insensitive_split_replica_converges(src, dst, case_sensitive_fs):
    write_tree(src, {"Docs/a.txt": "a", "Docs/b.txt": "b"})
    write_tree(dst, {"docs/a.txt": "a", "Docs/b.txt": "b", "DOCS/c.txt": "c"})
    syncer = MirrorSynchronizer(src, dst, case_sensitive=False)

    report = syncer.run()

    assert report.failed == 0
    assert len(os.listdir(dst)) == 1
    tree = {key.lower(): value for key, value in read_tree(dst).items()}
    assert tree == {"docs": None, "docs/a.txt": "a", "docs/b.txt": "b"}

    plan, _ = syncer.plan()
    assert plan.actions == []
