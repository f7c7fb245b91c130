import pytest

from gitsite.filetype import BINARY, IMAGE, TEXT, detect_file_type, extension, is_markdown, is_readme


@pytest.mark.parametrize("path,data,expected", [
    ("main.py", b"print('hi')\n", TEXT),
    ("notes", "héllo".encode("utf-8"), TEXT),
    ("empty.txt", b"", TEXT),
    ("logo.PNG", b"\x89PNG\r\n", IMAGE),
    ("icon.svg", b"<svg/>", IMAGE),
    ("archive.zip", b"PK", BINARY),
    ("blob.dat", b"abc\x00def", BINARY),
    ("latin1.txt", "héllo".encode("latin-1"), BINARY),
])
def test_detect_file_type(path, data, expected):
    assert detect_file_type(data, path) == expected


def test_nul_after_check_window_is_text_if_utf8():
    assert detect_file_type(b"a" * 9000 + b"\x00", "big.log") == TEXT


def test_markdown_and_readme():
    assert extension("docs/Guide.MD") == ".md"
    assert is_markdown("docs/guide.markdown")
    assert not is_markdown("guide.txt")
    assert is_readme("sub/README.rst")
    assert is_readme("readme")
    assert not is_readme("docs/guide.md")
