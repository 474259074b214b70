from __future__ import annotations

import logging

from hypemaps.util import ensure_directories, setup_logging


def test_setup_logging_writes_file_and_quiets_matplotlib(tmp_path) -> None:
    log_file = tmp_path / "logs" / "hypemaps.log"
    setup_logging(log_file, verbose=True)
    logging.getLogger("hypemaps.test").debug("debug line")
    for handler in logging.getLogger().handlers:
        handler.flush()
    assert "DEBUG | hypemaps.test | debug line" in log_file.read_text(encoding="utf-8")
    assert logging.getLogger("matplotlib").level == logging.WARNING


def test_ensure_directories(tmp_path) -> None:
    ensure_directories([tmp_path / "a" / "b", tmp_path / "a" / "b", tmp_path / "c"])
    assert (tmp_path / "a" / "b").is_dir()
    assert (tmp_path / "c").is_dir()
