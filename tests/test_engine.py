"""Tests for diff engine module."""

import hashlib
import os
import shutil
import time

import pytest

from dirwatch import checksums as checksums_module
from dirwatch.engine import DiffEngine
from dirwatch.exceptions import ChecksumError, RootNotFoundError, WatcherNotRunningError
from dirwatch.models import EntryKind
from dirwatch.rules import RuleSet


OLD = int(time.time()) - 3600


@pytest.fixture
def root(tmp_path):
    root = tmp_path / "w"
    root.mkdir()
    return root


def touch(path, content="content", mtime=OLD):
    """Write a file and pin its mtime."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


def scanned(root, rules=None):
    engine = DiffEngine(str(root), rules)
    engine.rebuild()
    return engine


class TestRebuild:
    """Tests for the full scan."""

    def test_records_directories_and_files(self, root):
        touch(root / "a.txt")
        touch(root / "sub" / "b.txt")

        engine = scanned(root)

        assert engine.registry.kind_of(str(root / "a.txt")) is EntryKind.FILE
        assert engine.registry.kind_of(str(root / "sub")) is EntryKind.DIRECTORY
        assert engine.registry.kind_of(str(root / "sub" / "b.txt")) is EntryKind.FILE
        assert len(engine.registry) == 3

    def test_does_not_record_root(self, root):
        engine = scanned(root)
        assert not engine.registry.contains(str(root))

    def test_prunes_ignored_directories(self, root):
        touch(root / ".git" / "HEAD")
        touch(root / "keep.txt")

        engine = scanned(root, RuleSet(ignore=[".git"]))

        assert not engine.registry.contains(str(root / ".git"))
        assert engine.registry.entries_of(str(root / ".git")) == []
        assert engine.registry.contains(str(root / "keep.txt"))

    def test_skips_filtered_files_but_keeps_directories(self, root):
        touch(root / "sub" / "a.log")
        touch(root / "sub" / "a.txt")

        engine = scanned(root, RuleSet(filter=[r"\.txt$"]))

        assert engine.registry.contains(str(root / "sub"))
        assert engine.registry.contains(str(root / "sub" / "a.txt"))
        assert not engine.registry.contains(str(root / "sub" / "a.log"))

    def test_sets_diff_timestamp(self, root):
        before = int(time.time())
        engine = scanned(root)
        assert before <= engine.diffed_at <= int(time.time())

    def test_diff_before_rebuild_raises(self, root):
        engine = DiffEngine(str(root))
        with pytest.raises(WatcherNotRunningError):
            engine.diff([str(root)])

    def test_missing_root_raises(self, root):
        engine = DiffEngine(str(root))
        root.rmdir()
        with pytest.raises(RootNotFoundError):
            engine.rebuild()
        assert engine.diffed_at is None


class TestDiff:
    """Tests for incremental diffs."""

    def test_modify_then_replace_scenario(self, root):
        touch(root / "a.rb", "puts 1")
        engine = scanned(root)

        touch(root / "a.rb", "puts 2", mtime=engine.diffed_at + 1)
        changes = engine.diff([str(root)])
        assert changes.to_dict() == {"modified": ["a.rb"], "added": [], "removed": []}

        (root / "a.rb").unlink()
        touch(root / "b.rb")
        changes = engine.diff([str(root)])
        assert changes.to_dict() == {"modified": [], "added": ["b.rb"], "removed": ["a.rb"]}

    def test_second_diff_without_changes_is_empty(self, root):
        touch(root / "keep.txt")
        touch(root / "gone.txt")
        engine = scanned(root)

        touch(root / "keep.txt", "new", mtime=engine.diffed_at)
        (root / "gone.txt").unlink()
        touch(root / "new.txt")

        first = engine.diff([str(root)])
        second = engine.diff([str(root)])

        assert not first.is_empty()
        assert second.is_empty()

    def test_older_mtime_is_not_modified(self, root):
        touch(root / "a.txt")
        engine = scanned(root)

        touch(root / "a.txt", "other", mtime=OLD)

        assert engine.diff([str(root)]).is_empty()

    def test_non_recursive_skips_known_subdirectories(self, root):
        touch(root / "sub" / "b.txt")
        engine = scanned(root)

        touch(root / "sub" / "b.txt", "new", mtime=engine.diffed_at + 1)
        touch(root / "sub" / "c.txt")

        assert engine.diff([str(root)]).is_empty()

    def test_recursive_walks_known_subdirectories(self, root):
        touch(root / "sub" / "b.txt")
        engine = scanned(root)

        touch(root / "sub" / "b.txt", "new", mtime=engine.diffed_at + 1)
        touch(root / "sub" / "deep" / "c.txt")

        changes = engine.diff([str(root)], recursive=True)

        assert changes.modified == ["sub/b.txt"]
        assert changes.added == ["sub/deep/c.txt"]

    def test_new_directory_is_walked_entirely(self, root):
        engine = scanned(root)

        touch(root / "new" / "a.txt")
        touch(root / "new" / "nested" / "b.txt")

        changes = engine.diff([str(root)])

        assert changes.added == ["new/a.txt", "new/nested/b.txt"]
        assert engine.registry.kind_of(str(root / "new" / "nested")) is EntryKind.DIRECTORY

    def test_removed_directory_reports_its_files(self, root):
        touch(root / "d" / "f")
        touch(root / "d" / "sub" / "g")
        engine = scanned(root)

        shutil.rmtree(root / "d")
        changes = engine.diff([str(root)])

        assert changes.removed == ["d/f", "d/sub/g"]
        assert not engine.registry.contains(str(root / "d"))
        assert engine.registry.entries_of(str(root / "d" / "sub")) == []

    def test_directory_replaced_by_file(self, root):
        touch(root / "d" / "f")
        engine = scanned(root)

        shutil.rmtree(root / "d")
        touch(root / "d", "now a file")
        changes = engine.diff([str(root)])

        assert changes.removed == ["d/f"]
        assert changes.added == ["d"]
        assert changes.modified == []
        assert engine.registry.entries_of(str(root / "d")) == []
        assert engine.registry.kind_of(str(root / "d")) is EntryKind.FILE

    def test_file_replaced_by_directory(self, root):
        touch(root / "x")
        engine = scanned(root)

        (root / "x").unlink()
        touch(root / "x" / "y")
        changes = engine.diff([str(root)])

        assert changes.removed == ["x"]
        assert changes.added == ["x/y"]
        assert changes.modified == []
        assert engine.registry.kind_of(str(root / "x")) is EntryKind.DIRECTORY

    def test_removal_forgets_checksum(self, root):
        path = touch(root / "a.txt")
        engine = scanned(root)
        engine.diffed_at = OLD
        engine.diff([str(root)])
        assert str(path) in engine.checksums

        path.unlink()
        engine.diff([str(root)])

        assert str(path) not in engine.checksums

    def test_deepest_directories_first(self, root):
        touch(root / "a" / "b" / "f")
        engine = scanned(root)

        shutil.rmtree(root / "a")
        changes = engine.diff([str(root), str(root / "a"), str(root / "a" / "b")])

        assert changes.removed == ["a/b/f"]
        assert len(engine.registry) == 0

    def test_matches_full_rescan(self, root):
        touch(root / "a.txt")
        touch(root / "sub" / "b.txt")
        touch(root / "sub" / "deep" / "c.txt")
        touch(root / "other" / "d.txt")
        engine = scanned(root)

        touch(root / "sub" / "b.txt", "new", mtime=engine.diffed_at + 1)
        (root / "sub" / "deep" / "c.txt").unlink()
        touch(root / "sub" / "deep" / "e.txt")
        touch(root / "new" / "f.txt")
        shutil.rmtree(root / "other")

        changes = engine.diff([str(root), str(root / "sub"), str(root / "sub" / "deep")])
        fresh = scanned(root)

        assert set(engine.registry.paths()) == set(fresh.registry.paths())
        assert sorted(changes.modified) == ["sub/b.txt"]
        assert sorted(changes.added) == ["new/f.txt", "sub/deep/e.txt"]
        assert sorted(changes.removed) == ["other/d.txt", "sub/deep/c.txt"]

    def test_skips_directories_outside_root(self, root, tmp_path):
        elsewhere = tmp_path / "elsewhere"
        touch(elsewhere / "a.txt")
        engine = scanned(root)

        assert engine.diff([str(elsewhere)]).is_empty()
        assert not engine.registry.contains(str(elsewhere / "a.txt"))

    def test_missing_directory_is_not_an_error(self, root):
        engine = scanned(root)
        assert engine.diff([str(root / "never-existed")]).is_empty()

    def test_accepts_path_objects(self, root):
        engine = scanned(root)
        touch(root / "a.txt")

        assert engine.diff([root]).added == ["a.txt"]

    def test_timestamp_never_decreases(self, root):
        engine = scanned(root)
        future = int(time.time()) + 1000
        engine.diffed_at = future

        engine.diff([str(root)])

        assert engine.diffed_at == future

    @pytest.mark.skipif(not hasattr(os, "mkfifo"), reason="requires mkfifo")
    def test_special_files_are_recorded_but_not_reported(self, root):
        engine = scanned(root)
        os.mkfifo(root / "pipe")

        changes = engine.diff([str(root)])

        assert changes.added == []
        assert engine.registry.contains(str(root / "pipe"))


class TestSameSecondTieBreak:
    """Tests for modifications within the second of the last diff."""

    def test_unchanged_content_is_not_modified(self, root):
        path = touch(root / "a.txt", "one")
        engine = scanned(root)

        engine.diffed_at = OLD
        engine.diff([str(root)])  # stores the first hash

        engine.diffed_at = OLD
        assert engine.diff([str(root)]).is_empty()

    def test_changed_content_is_modified_once(self, root):
        path = touch(root / "a.txt", "one")
        engine = scanned(root)
        engine.diffed_at = OLD
        engine.diff([str(root)])

        touch(path, "two", mtime=OLD)
        engine.diffed_at = OLD
        changes = engine.diff([str(root)])

        assert changes.modified == ["a.txt"]
        assert engine.checksums.get(str(path)) == hashlib.sha1(b"two").hexdigest()

        engine.diffed_at = OLD
        assert engine.diff([str(root)]).is_empty()

    def test_first_tie_break_counts_as_modified(self, root):
        touch(root / "a.txt")
        engine = scanned(root)
        engine.diffed_at = OLD

        assert engine.diff([str(root)]).modified == ["a.txt"]

    def test_unreadable_file_aborts_diff(self, root, monkeypatch):
        touch(root / "a.txt")
        engine = scanned(root)
        engine.diffed_at = OLD

        def deny(path, algorithm="sha1"):
            raise PermissionError(13, "Permission denied", str(path))

        monkeypatch.setattr(checksums_module, "compute_file_hash", deny)

        with pytest.raises(ChecksumError):
            engine.diff([str(root)])
        assert engine.diffed_at == OLD

    def test_file_vanishing_before_hash_is_removed(self, root, monkeypatch):
        touch(root / "a.txt")
        engine = scanned(root)
        engine.diffed_at = OLD

        def vanish(path, algorithm="sha1"):
            raise FileNotFoundError(2, "No such file", str(path))

        monkeypatch.setattr(checksums_module, "compute_file_hash", vanish)

        assert engine.diff([str(root)]).removed == ["a.txt"]


class TestRules:
    """Tests for ignore and filter rules during diffs."""

    def test_ignored_directory_never_reports(self, root):
        rules = RuleSet(ignore=["ignored"], filter=[r"\.txt$"])
        touch(root / "ignored" / "a.txt")
        engine = scanned(root, rules)

        touch(root / "ignored" / "a.txt", "new", mtime=engine.diffed_at + 1)
        touch(root / "ignored" / "b.txt")
        changes = engine.diff([str(root), str(root / "ignored")], recursive=True)
        assert changes.is_empty()

        shutil.rmtree(root / "ignored")
        assert engine.diff([str(root), str(root / "ignored")], recursive=True).is_empty()

    def test_dirty_directory_inside_ignored_tree_is_skipped(self, root):
        engine = scanned(root, RuleSet(ignore=[".git"]))
        touch(root / ".git" / "objects" / "ab")

        assert engine.diff([str(root / ".git" / "objects")]).is_empty()
        assert not engine.registry.contains(str(root / ".git" / "objects" / "ab"))

    def test_filter_reports_only_matching_files(self, root):
        engine = scanned(root, RuleSet(filter=[r"\.txt$"]))

        touch(root / "a.txt")
        touch(root / "a.log")
        changes = engine.diff([str(root)])

        assert changes.added == ["a.txt"]
        assert not engine.registry.contains(str(root / "a.log"))

    def test_ignored_file_not_added(self, root):
        engine = scanned(root, RuleSet(ignore=[".swp"]))

        touch(root / ".a.swp")

        assert engine.diff([str(root)]).is_empty()
