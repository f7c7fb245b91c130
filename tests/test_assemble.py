import logging

from gitsite.assemble import build_tree_items, join_path, level_paths
from gitsite.models import DirectoryItem, FileEntry, FileItem
from gitsite.tree import FileTree

from .helpers import make_commit


def make_tree():
    return FileTree.from_files([FileEntry(p, f"oid-{p}") for p in
                                ["b.txt", "a.txt", "zeta/x.py", "alpha/y.py", "alpha/deep/z.py"]])


def test_join_path():
    assert join_path("", "a") == "a"
    assert join_path("a/b", "c") == "a/b/c"


def test_level_paths():
    tree = make_tree()
    assert level_paths(tree, "") == ["alpha", "zeta", "b.txt", "a.txt"]
    assert level_paths(tree, "alpha") == ["alpha/deep", "alpha/y.py"]


def test_directories_first_then_files_in_listing_order():
    tree = make_tree()
    commit = make_commit()
    items = build_tree_items(tree, "", {p: commit for p in level_paths(tree, "")})
    assert [type(i) for i in items] == [DirectoryItem, DirectoryItem, FileItem, FileItem]
    assert [i.name for i in items] == ["alpha", "zeta", "b.txt", "a.txt"]
    assert items[0].full_path == "alpha"
    assert items[2].full_path == "b.txt"


def test_nested_level_uses_full_paths():
    tree = make_tree()
    older, newer = make_commit("1" * 40, "old"), make_commit("2" * 40, "new")
    items = build_tree_items(tree, "alpha", {"alpha/deep": newer, "alpha/y.py": older})
    assert [(i.full_path, i.commit.summary) for i in items] == [("alpha/deep", "new"), ("alpha/y.py", "old")]


def test_entries_without_commit_are_skipped_and_logged(caplog):
    tree = make_tree()
    commit = make_commit()
    with caplog.at_level(logging.WARNING, logger="gitsite.assemble"):
        items = build_tree_items(tree, "", {"alpha": commit, "a.txt": commit})
    assert [i.name for i in items] == ["alpha", "a.txt"]
    assert "No commit found for directory zeta" in caplog.text
    assert "No commit found for file b.txt" in caplog.text


def test_unknown_directory_yields_nothing():
    assert build_tree_items(make_tree(), "missing", {}) == []
