import os

import pytest

from grepedit.config import Config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in list(os.environ):
        if key.startswith("GREPEDIT_"):
            monkeypatch.delenv(key)


def test_defaults():
    cfg = Config()
    assert cfg.GRAMMAR == "grep"
    assert cfg.BASE_DIR == "."
    assert cfg.ALLOW_READONLY_FILES is False
    assert cfg.AUTO_SAVE is True
    assert cfg.TOO_MANY_FILES == 200
    assert cfg.PROTECT_HEADERS is True
    assert cfg.HEADER_REGEX == ""


def test_yaml_overrides_defaults():
    cfg = Config({"grammar": "git-grep", "too_many_files": "5", "auto_save": False})
    assert cfg.GRAMMAR == "git-grep"
    assert cfg.TOO_MANY_FILES == 5
    assert cfg.AUTO_SAVE is False


def test_env_overrides_yaml(monkeypatch):
    monkeypatch.setenv("GREPEDIT_GRAMMAR", "ripgrep")
    monkeypatch.setenv("GREPEDIT_ALLOW_READONLY", "true")
    cfg = Config({"grammar": "ag", "allow_readonly_files": False})
    assert cfg.GRAMMAR == "ripgrep"
    assert cfg.ALLOW_READONLY_FILES is True


def test_load_explicit_file(tmp_path):
    path = tmp_path / "custom.yaml"
    path.write_text("base_dir: src\nprotect_headers: false\n")
    cfg = Config.load(str(path))
    assert cfg.BASE_DIR == "src"
    assert cfg.PROTECT_HEADERS is False


def test_load_from_cwd(tmp_path, monkeypatch):
    (tmp_path / ".grepedit.yaml").write_text("encoding: latin-1\n")
    monkeypatch.chdir(tmp_path)
    assert Config.load().ENCODING == "latin-1"


def test_missing_explicit_file_uses_defaults(tmp_path):
    cfg = Config.load(str(tmp_path / "nope.yaml"))
    assert cfg.GRAMMAR == "grep"


def test_broken_yaml_uses_defaults(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("grammar: [unclosed\n")
    assert Config.load(str(path)).GRAMMAR == "grep"


def test_history_root(tmp_path):
    assert Config({"history": False}).history_root() is None
    assert Config({"history_dir": str(tmp_path)}).history_root() == str(tmp_path)
    assert Config().history_root() == os.getcwd()
