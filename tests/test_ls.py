import io

import pytest

from xv6kit.bio import BufferCache
from xv6kit.disk import MemDisk
from xv6kit.fs import FileSystem
from xv6kit.layout import DIRSIZ, FileType, ROOTINO
from xv6kit.ls import fmtname, ls, main
from xv6kit.mkfs import ImageBuilder

README = b"hello world\n"
CAT = b"x" * 700


def _image() -> bytes:
    stream = io.BytesIO()
    builder = ImageBuilder(stream)
    builder.add_file("README", README)
    builder.add_file("_cat", CAT)
    builder.finish()
    return stream.getvalue()


@pytest.fixture
def fs():
    return FileSystem(BufferCache(MemDisk(_image())))


def _rows(text):
    return {line.split()[0]: line.split()[1:] for line in text.splitlines()}


def test_fmtname_pads_last_element():
    name = fmtname("a/b/cat")
    assert len(name) == DIRSIZ
    assert name.rstrip() == "cat"


def test_fmtname_long_name_unchanged():
    long = "x" * (DIRSIZ + 2)
    assert fmtname("/dir/" + long) == long


def test_ls_file(fs):
    out = io.StringIO()
    ls(fs, "/README", out)
    rows = _rows(out.getvalue())
    assert list(rows) == ["README"]
    assert rows["README"][0] == str(int(FileType.FILE))
    assert rows["README"][2] == str(len(README))


def test_ls_root_directory(fs):
    out = io.StringIO()
    ls(fs, "/", out)
    rows = _rows(out.getvalue())
    assert set(rows) == {".", "..", "README", "cat"}
    assert rows["."][0] == str(int(FileType.DIR))
    assert rows["."][1] == str(ROOTINO)
    assert rows["cat"][2] == str(len(CAT))


def test_ls_line_layout(fs):
    out = io.StringIO()
    ls(fs, "/README", out)
    assert out.getvalue().startswith(fmtname("README") + " ")


def test_ls_missing(fs, capsys):
    out = io.StringIO()
    ls(fs, "/nope", out)
    assert out.getvalue() == ""
    assert "ls: cannot open /nope" in capsys.readouterr().err


def test_ls_path_too_long(fs):
    out = io.StringIO()
    ls(fs, "/" * 600, out)
    assert out.getvalue() == "ls: path too long\n"


def test_main_lists_image(tmp_path, capsys):
    img = tmp_path / "fs.img"
    img.write_bytes(_image())
    assert main([str(img), "/"]) == 0
    assert set(_rows(capsys.readouterr().out)) == {".", "..", "README", "cat"}


def test_main_usage(capsys):
    assert main([]) == 1
    assert "usage" in capsys.readouterr().err