import pytest

from barry.cli import CommandError, check, clean, info, init_project, main


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path


def _site(root):
    (root / "routes" / "blog" / "_slug").mkdir(parents=True)
    (root / "routes" / "index.html").write_text("<p>{{ Title }}</p>")
    (root / "routes" / "blog" / "_slug" / "index.html").write_text("<p>{{ slug }}</p>")
    (root / "components").mkdir()
    (root / "components" / "card.html").write_text("<div>{{ Text }}</div>")


def test_clean_nothing_to_clean(workdir, capsys):
    assert clean() is False
    assert "Nothing to clean" in capsys.readouterr().out


def test_clean_route_removes_only_that_route(workdir):
    (workdir / "barry.config.yml").write_text("outputDir: out\n")
    (workdir / "out" / "blog" / "post").mkdir(parents=True)
    (workdir / "out" / "about").mkdir(parents=True)
    assert clean("/blog") is True
    assert not (workdir / "out" / "blog").exists()
    assert (workdir / "out" / "about").is_dir()


def test_clean_whole_output_dir(workdir):
    (workdir / "cache" / "x").mkdir(parents=True)
    assert clean(None) is True
    assert not (workdir / "cache").exists()


def test_clean_file_is_an_error(workdir):
    (workdir / "cache").mkdir()
    (workdir / "cache" / "file.txt").write_text("data")
    with pytest.raises(CommandError, match="not a directory"):
        clean("file.txt")
    assert (workdir / "cache" / "file.txt").exists()


def test_main_clean_error_exit_status(workdir, capsys):
    (workdir / "cache").mkdir()
    (workdir / "cache" / "file.txt").write_text("data")
    assert main(["clean", "file.txt"]) == 1
    assert "not a directory" in capsys.readouterr().err


def test_check_valid_templates(workdir, capsys):
    _site(workdir)
    assert check() == ["", "/blog/_slug"]
    assert "All templates validated successfully." in capsys.readouterr().out


def test_check_with_layout(workdir):
    _site(workdir)
    (workdir / "layouts").mkdir()
    (workdir / "layouts" / "main.html").write_text("<html>{% block body %}{% endblock %}</html>")
    (workdir / "routes" / "index.html").write_text(
        "<!-- layout: layouts/main.html -->\n{% extends 'layout' %}"
    )
    assert "" in check()


def test_check_syntax_error(workdir, capsys):
    _site(workdir)
    (workdir / "routes" / "index.html").write_text("{% if %}")
    with pytest.raises(CommandError, match="some templates failed to compile"):
        check()
    out = capsys.readouterr().out
    assert "❌" in out
    assert "✅ /blog/_slug" in out


def test_check_missing_layout(workdir):
    _site(workdir)
    (workdir / "routes" / "index.html").write_text("<!-- layout: missing.html -->\n<p></p>")
    with pytest.raises(CommandError):
        check()


def test_info_counts(workdir, capsys):
    _site(workdir)
    (workdir / "cache" / "blog").mkdir(parents=True)
    (workdir / "cache" / "blog" / "index.html").write_text("<p></p>")
    (workdir / "cache" / "blog" / "index.html.gz").write_bytes(b"")
    assert info() == {"routes": 2, "components": 1, "cached_pages": 1}
    out = capsys.readouterr().out
    assert "Cache Enabled: false" in out
    assert "Output Directory: ./cache" in out


def test_main_info_reads_config(workdir, capsys):
    (workdir / "barry.config.yml").write_text("cache: true\ndebugHeaders: true\n")
    assert main(["info"]) == 0
    out = capsys.readouterr().out
    assert "Cache Enabled: true" in out
    assert "Debug Headers Enabled: true" in out


def test_init_project(workdir, capsys):
    written = init_project(workdir)
    assert (workdir / "main.py").is_file()
    assert (workdir / "routes" / "index.server.py").is_file()
    assert all(path.exists() for path in written)
    assert "barry dev" in capsys.readouterr().out


def test_main_init_uses_cwd(workdir):
    assert main(["init"]) == 0
    assert (workdir / "routes" / "index.server.py").is_file()


def test_main_without_command_prints_help(workdir, capsys):
    assert main([]) == 0
    assert "usage: barry" in capsys.readouterr().out