import gzip

from barry.cache import get_cached_html, save_cached_html
from barry.config import Config


def test_save_writes_gzip_round_trip(tmp_path):
    cfg = Config(output_dir=str(tmp_path))
    html = b"<html><body>hi</body></html>"
    save_cached_html(cfg, "blog/post", html)
    gz = tmp_path / "blog" / "post" / "index.html.gz"
    assert gzip.decompress(gz.read_bytes()) == html


def test_save_does_not_write_plain_html(tmp_path):
    cfg = Config(output_dir=str(tmp_path))
    save_cached_html(cfg, "about", b"x")
    assert not (tmp_path / "about" / "index.html").exists()


def test_get_missing_returns_none(tmp_path):
    cfg = Config(output_dir=str(tmp_path))
    assert get_cached_html(cfg, "nothing") is None


def test_get_reads_existing(tmp_path):
    cfg = Config(output_dir=str(tmp_path))
    target = tmp_path / "docs"
    target.mkdir()
    (target / "index.html").write_bytes(b"<p>doc</p>")
    assert get_cached_html(cfg, "docs") == b"<p>doc</p>"


def test_root_route(tmp_path):
    cfg = Config(output_dir=str(tmp_path))
    (tmp_path / "index.html").write_bytes(b"root")
    assert get_cached_html(cfg, "") == b"root"