from barry.config import Config, load_config


def test_missing_file_gives_defaults(tmp_path):
    cfg = load_config(tmp_path / "nope.yml")
    assert cfg == Config(output_dir="./cache", cache_enabled=False, debug_headers=False)


def test_values_are_read(tmp_path):
    path = tmp_path / "barry.config.yml"
    path.write_text("outputDir: out\ncache: true\ndebugHeaders: true\n")
    assert load_config(path) == Config(output_dir="out", cache_enabled=True, debug_headers=True)


def test_empty_output_dir_falls_back(tmp_path):
    path = tmp_path / "barry.config.yml"
    path.write_text("outputDir: ''\ncache: true\n")
    cfg = load_config(path)
    assert cfg.output_dir == "./cache"
    assert cfg.cache_enabled is True


def test_invalid_yaml_gives_defaults(tmp_path):
    path = tmp_path / "barry.config.yml"
    path.write_text("outputDir: [unclosed\n")
    assert load_config(path) == Config()


def test_partial_config(tmp_path):
    path = tmp_path / "barry.config.yml"
    path.write_text("debugHeaders: true\n")
    cfg = load_config(path)
    assert cfg.debug_headers is True
    assert cfg.cache_enabled is False
    assert cfg.output_dir == "./cache"