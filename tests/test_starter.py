from barry.executor import load_handler
from barry.starter import copy_starter, starter_files


def test_starter_file_names():
    assert set(starter_files()) == {"main.py", "routes/index.server.py"}


def test_copy_writes_every_file(tmp_path):
    written = copy_starter(tmp_path)
    files = starter_files()
    assert len(written) == len(files)
    for rel, content in files.items():
        assert (tmp_path / rel).read_text(encoding="utf-8") == content


def test_copy_overwrites_existing(tmp_path):
    (tmp_path / "main.py").write_text("old")
    copy_starter(tmp_path)
    assert (tmp_path / "main.py").read_text(encoding="utf-8") == starter_files()["main.py"]


def test_starter_server_file_returns_page_data(tmp_path):
    copy_starter(tmp_path)
    handler = load_handler(tmp_path / "routes" / "index.server.py")
    data = handler(None, {})
    assert data["Title"] == "barry."
    assert data["Button"] == {"Text": "Read the docs"}


def test_starter_files_returns_copy():
    original = starter_files()["main.py"]
    files = starter_files()
    files["main.py"] = "changed"
    assert starter_files()["main.py"] == original