import logging

import pytest

from gitsite import generate, git
from gitsite.config import SiteConfig
from gitsite.errors import GitsiteError, RepositoryError


@pytest.fixture
def site(sample_repo, tmp_path):
    out = tmp_path / "site"
    stats = generate.generate_site(SiteConfig(repo=sample_repo.path, output=out, name="sample"))
    return out, stats


def read(path):
    return path.read_text(encoding="utf-8")


def test_layout(site):
    out, _ = site
    for rel in ["index.html", "assets/site.css", "assets/highlight.css",
                "tree/main/index.html", "tree/main/src/index.html", "tree/main/src/util/index.html",
                "tree/main/docs/index.html",
                "blob/main/README.md.html", "blob/main/src/main.py.html", "blob/main/src/util/helpers.py.html",
                "blob/main/logo.png.html", "blob/main/logo.png",
                "commits/main/page-1.html", "tree/feature/x/index.html", "blob/feature/x/src/feature.py.html",
                "commits/feature/x/page-1.html", "tags/index.html", "tags/v1/index.html"]:
        assert (out / rel).is_file(), rel
    assert not (out / "blob/main/src/feature.py.html").exists()


def test_stats(site):
    _, stats = site
    assert set(stats.branches) == {"main", "feature/x"}
    assert stats.failed_branches == []
    assert stats.tags == 1
    main = stats.branches["main"]
    assert main.tree_pages == 4
    assert main.markdown_pages == 2
    assert main.blob_pages == 3
    assert main.skipped == 0


def test_root_index_renders_readme_and_listing(site):
    out, _ = site
    index = read(out / "index.html")
    assert '<article class="readme markdown-body">' in index
    assert "<em>sample</em>" in index
    assert 'href="tree/main/src/index.html"' in index
    assert 'href="blob/main/logo.png.html"' in index
    assert 'href="assets/site.css"' in index
    assert "3 commits" in index


def test_directory_listing_shows_last_commits(site):
    out, _ = site
    root = read(out / "tree/main/index.html")
    # src last changed by "Update main", docs only by the initial import
    src_row = root.split('src/index.html">src</a>', 1)[1].split("</div>", 1)[0]
    docs_row = root.split('docs/index.html">docs</a>', 1)[1].split("</div>", 1)[0]
    assert "Update main" in src_row
    assert "Initial import" in docs_row


def test_relative_links_respect_branch_depth(site):
    out, _ = site
    page = read(out / "tree/feature/x/src/index.html")
    assert 'href="../../../../assets/site.css"' in page
    assert 'href="../../../../blob/feature/x/src/feature.py.html"' in page


def test_blob_pages(site):
    out, _ = site
    code = read(out / "blob/main/src/main.py.html")
    assert 'class="highlight"' in code
    assert "hello, world" in code
    image = read(out / "blob/main/logo.png.html")
    assert '<img src="logo.png"' in image
    assert (out / "blob/main/logo.png").read_bytes().startswith(b"\x89PNG")
    guide = read(out / "blob/main/docs/guide.md.html")
    assert "markdown-body" in guide and "<h1" in guide


def test_binary_and_oversized_files(git_repo, tmp_path):
    git_repo.commit("files", {"data.bin": b"\x00\x01\x02", "big.txt": "x" * 100, "small.txt": "ok"})
    out = tmp_path / "site"
    stats = generate.generate_site(SiteConfig(repo=git_repo.path, output=out, max_bytes=50))
    assert "Binary file not shown" in read(out / "blob/main/data.bin.html")
    assert "File too large to display" in read(out / "blob/main/big.txt.html")
    assert "ok" in read(out / "blob/main/small.txt.html")
    assert stats.branches["main"].blob_pages == 3


def test_commit_pages_paginate(git_repo, tmp_path):
    for i in range(5):
        git_repo.commit(f"commit {i}", {"f.txt": str(i)})
    out = tmp_path / "site"
    generate.generate_site(SiteConfig(repo=git_repo.path, output=out, page_size=2))
    assert sorted(p.name for p in (out / "commits/main").iterdir()) == ["page-1.html", "page-2.html", "page-3.html"]
    assert 'href="page-2.html"' in read(out / "commits/main/page-1.html")


def test_selected_branches_only(sample_repo, tmp_path):
    out = tmp_path / "site"
    stats = generate.generate_site(SiteConfig(repo=sample_repo.path, output=out, branches=["feature/x"]))
    assert set(stats.branches) == {"feature/x"}
    assert not (out / "tree/main").exists()


def test_unknown_branch_fails_alone(sample_repo, tmp_path, caplog):
    out = tmp_path / "site"
    with caplog.at_level(logging.ERROR, logger="gitsite.generate"):
        stats = generate.generate_site(SiteConfig(repo=sample_repo.path, output=out, branches=["main", "gone"]))
    assert set(stats.branches) == {"main"}
    assert stats.failed_branches == ["gone"]
    assert "Failed to generate gone" in caplog.text


def test_attribution_failure_skips_tree_pages_only(sample_repo, tmp_path, monkeypatch, caplog):
    def broken(*args, **kwargs):
        raise RepositoryError("history unavailable")

    monkeypatch.setattr(generate, "get_last_commits_batch", broken)
    out = tmp_path / "site"
    with caplog.at_level(logging.ERROR, logger="gitsite.generate"):
        stats = generate.generate_site(SiteConfig(repo=sample_repo.path, output=out, branches=["main"]))
    assert stats.branches["main"].tree_pages == 0
    assert (out / "blob/main/src/main.py.html").is_file()
    assert not (out / "tree/main/index.html").exists()
    assert "Attribution failed for main" in caplog.text


def test_empty_repository(git_repo, tmp_path):
    out = tmp_path / "site"
    stats = generate.generate_site(SiteConfig(repo=git_repo.path, output=out))
    assert stats.branches == {}
    assert (out / "index.html").is_file()
    assert not (out / "tree").exists()


@pytest.mark.parametrize("kwargs", [{"page_size": 0}, {"max_bytes": -1}, {"theme": "no-such-style"}])
def test_invalid_config(git_repo, tmp_path, kwargs):
    with pytest.raises(GitsiteError):
        generate.generate_site(SiteConfig(repo=git_repo.path, output=tmp_path / "site", **kwargs))


def test_missing_repository(tmp_path):
    with pytest.raises(GitsiteError):
        generate.generate_site(SiteConfig(repo=tmp_path / "nope", output=tmp_path / "site"))


def test_directory_named_index_keeps_root_listing(git_repo, tmp_path):
    git_repo.commit("files", {"README.md": "# r\n", "index/page.txt": "p", "other/x.txt": "x"})
    git_repo.checkout("dev", create=True)
    out = tmp_path / "site"
    generate.generate_site(SiteConfig(repo=git_repo.path, output=out, branches=["dev"]))
    root = read(out / "tree/dev/index.html")
    assert "other" in root and "README.md" in root
    assert 'href="../../tree/dev/index/index.html"' in root
    nested = read(out / "tree/dev/index/index.html")
    assert "page.txt" in nested
    assert 'href="../../../tree/dev/index.html">..' in nested


def test_directory_named_like_listing_page_is_skipped(git_repo, tmp_path, caplog):
    git_repo.commit("files", {"a.txt": "a", "index.html/inner.txt": "i"})
    out = tmp_path / "site"
    with caplog.at_level(logging.WARNING, logger="gitsite.generate"):
        stats = generate.generate_site(SiteConfig(repo=git_repo.path, output=out))
    assert "a.txt" in read(out / "tree/main/index.html")
    assert stats.branches["main"].tree_pages == 1
    assert (out / "blob/main/index.html/inner.txt.html").is_file()
    assert "reserved for listing pages" in caplog.text


def test_tag_named_index_keeps_tag_list(git_repo, tmp_path):
    git_repo.commit("one", {"f.txt": "1"})
    git_repo.git("tag", "v1")
    git_repo.git("tag", "index")
    out = tmp_path / "site"
    generate.generate_site(SiteConfig(repo=git_repo.path, output=out))
    listing = read(out / "tags/index.html")
    assert "v1" in listing
    assert 'href="index/index.html"' in listing
    assert "<h1>index</h1>" in read(out / "tags/index/index.html")
    assert 'href="../../assets/site.css"' in read(out / "tags/v1/index.html")


def test_readme_links_point_at_generated_pages(git_repo, tmp_path, caplog):
    git_repo.commit("docs", {
        "README.md": ("[guide](docs/guide.md) [code](src/) [source](src) [site](https://example.com) "
                      "[top](#usage) [outside](../outside.md)\n\n![logo](logo.png)\n"),
        "docs/guide.md": "[back](../README.md) [main](../src/main.py#L1)\n",
        "src/main.py": "x = 1\n",
        "logo.png": b"\x89PNG\r\n\x1a\n",
    })
    out = tmp_path / "site"
    with caplog.at_level(logging.WARNING, logger="gitsite.links"):
        generate.generate_site(SiteConfig(repo=git_repo.path, output=out))

    index = read(out / "index.html")
    assert 'href="blob/main/docs/guide.md.html"' in index
    assert 'href="tree/main/src/index.html"' in index
    assert index.count('href="tree/main/src/index.html"') >= 3  # both links and the listing row
    assert 'href="https://example.com"' in index
    assert 'href="#usage"' in index
    assert 'href="../outside.md"' in index
    assert 'src="blob/main/logo.png"' in index
    assert "escapes the repository root" in caplog.text

    branch_root = read(out / "tree/main/index.html")
    assert 'href="../../blob/main/docs/guide.md.html"' in branch_root
    assert 'src="../../blob/main/logo.png"' in branch_root

    guide = read(out / "blob/main/docs/guide.md.html")
    assert 'href="../../../blob/main/README.md.html"' in guide
    assert 'href="../../../blob/main/src/main.py.html#L1"' in guide


def test_commit_pages_read_history_once(git_repo, tmp_path, monkeypatch):
    for i in range(7):
        git_repo.commit(f"commit {i}", {"f.txt": str(i)})
    full_reads = []
    real_list_commits = git.list_commits

    def counting(repo, ref=None, limit=None):
        if limit is None:
            full_reads.append(ref)
        return real_list_commits(repo, ref, limit)

    monkeypatch.setattr(git, "list_commits", counting)
    out = tmp_path / "site"
    generate.generate_site(SiteConfig(repo=git_repo.path, output=out, page_size=2))
    assert full_reads == ["main"]
    last = read(out / "commits/main/page-4.html")
    assert "commit 0" in last and "Older" not in last
    assert "commit 6" in read(out / "commits/main/page-1.html")
