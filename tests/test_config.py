# tests/test_config.py
from __future__ import annotations

import logging
from pathlib import Path

import pytest

from beam_cli import config
from beam_cli.errors import ConfigError
from beam_cli.logs import LOGGER_NAME, configure_logging


@pytest.fixture
def tmp_home(tmp_path: Path) -> Path:
    home = tmp_path / "home"
    home.mkdir(parents=True, exist_ok=True)
    return home


# ----------------------------------------------------------------
# Paths
# ----------------------------------------------------------------


def test_paths_default_to_xdg_style_dirs(tmp_home: Path) -> None:
    paths = config.resolve_paths({"HOME": str(tmp_home)})

    assert paths.data_dir == tmp_home / ".local" / "share" / "beam"
    assert paths.state_dir == tmp_home / ".local" / "state" / "beam"
    assert paths.config_dir == tmp_home / ".config" / "beam"
    assert paths.history_path == paths.state_dir / "history.json"
    assert paths.log_path == paths.state_dir / "beam.log"
    assert paths.extensions_dir == paths.data_dir / "extensions"


def test_env_overrides_win(tmp_path: Path, tmp_home: Path) -> None:
    env = {
        "HOME": str(tmp_home),
        "BEAM_DATA_HOME": str(tmp_path / "d"),
        "BEAM_STATE_HOME": str(tmp_path / "s"),
        "BEAM_CONFIG_HOME": str(tmp_path / "c"),
        "BEAM_LOG_FILE": str(tmp_path / "beam.log"),
    }

    paths = config.resolve_paths(env)

    assert paths.data_dir == tmp_path / "d"
    assert paths.state_dir == tmp_path / "s"
    assert paths.config_path == tmp_path / "c" / "config.yaml"
    assert paths.log_path == tmp_path / "beam.log"


def test_resolve_paths_does_not_create_directories(tmp_home: Path) -> None:
    config.resolve_paths({"HOME": str(tmp_home)})

    assert list(tmp_home.iterdir()) == []


# ----------------------------------------------------------------
# Loading
# ----------------------------------------------------------------


def test_packaged_defaults_load() -> None:
    data = config.load_defaults_yaml()

    assert data["ui"]["fullscreen"] is True
    assert data["extensions"] == {}


def test_user_config_merges_over_defaults(app_paths) -> None:
    app_paths.config_dir.mkdir(parents=True)
    app_paths.config_path.write_text(
        "log_level: DEBUG\nui:\n  height: 12\nextensions:\n  gh: ./gh\n",
        encoding="utf-8",
    )

    cfg = config.load_config(app_paths)

    assert cfg.get("log_level") == "DEBUG"
    assert cfg.ui["height"] == 12
    assert cfg.ui["fullscreen"] is True
    assert cfg.extensions == {"gh": "./gh"}
    assert cfg.get_path("ui.fullscreen") is True
    assert cfg.get_path("ui.nope.deeper", "x") == "x"


def test_invalid_yaml_is_a_config_error(app_paths) -> None:
    app_paths.config_dir.mkdir(parents=True)
    app_paths.config_path.write_text("ui: [unclosed", encoding="utf-8")

    with pytest.raises(ConfigError):
        config.load_config(app_paths)


def test_non_mapping_yaml_is_a_config_error(app_paths) -> None:
    app_paths.config_dir.mkdir(parents=True)
    app_paths.config_path.write_text("- a\n- b\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        config.load_config(app_paths)


def test_root_items_are_parsed(make_config) -> None:
    cfg = make_config(
        root_items=[
            {"extension": "gh", "command": "list", "title": "Mine", "with": {"owner": "me"}}
        ]
    )

    (item,) = cfg.root_items
    assert item.extension == "gh"
    assert item.with_ == {"owner": "me"}


def test_bad_root_items_are_config_errors(make_config) -> None:
    with pytest.raises(ConfigError):
        make_config(root_items=[{"title": "no command"}]).root_items
    with pytest.raises(ConfigError):
        make_config(extensions=["not", "a", "mapping"]).extensions


# ----------------------------------------------------------------
# Logging
# ----------------------------------------------------------------


@pytest.fixture
def restore_logger():
    logger = logging.getLogger(LOGGER_NAME)
    yield logger
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


def test_configure_logging_writes_to_log_file(make_config, restore_logger) -> None:
    cfg = make_config(log_level="debug")

    logger = configure_logging(cfg)
    logging.getLogger("beam_cli.test").debug("hello log")
    for handler in logger.handlers:
        handler.flush()

    assert logger.level == logging.DEBUG
    assert "hello log" in cfg.paths.log_path.read_text(encoding="utf-8")


def test_unwritable_log_file_falls_back_to_null_handler(
    tmp_path: Path, restore_logger
) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    paths = config.AppPaths(
        data_dir=tmp_path, state_dir=tmp_path, config_dir=tmp_path,
        log_file=blocker / "beam.log",
    )

    logger = configure_logging(config.YAMLConfig({}, paths))

    assert [type(h) for h in logger.handlers] == [logging.NullHandler]
