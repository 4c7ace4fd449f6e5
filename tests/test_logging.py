"""Tests for logging setup helpers."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

import pytest

from inkspan.utils import logging as logging_utils


@pytest.fixture(autouse=True)
def _restore_root_logger(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    asyncio_level = logging.getLogger("asyncio").level
    monkeypatch.setattr(logging_utils, "_CONFIGURED", False)
    monkeypatch.setattr(logging_utils, "_LOG_PATH", None)
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger("asyncio").setLevel(asyncio_level)
    logging.captureWarnings(False)


def test_setup_logging_writes_rotating_file(tmp_path: Path) -> None:
    log_path = logging_utils.setup_logging("debug", log_dir=tmp_path, console=False)

    logging.getLogger("inkspan.test").debug("hello log")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert log_path == tmp_path / "inkspan.log"
    assert logging_utils.get_log_path() == log_path
    assert "hello log" in log_path.read_text(encoding="utf-8")
    assert logging.getLogger("asyncio").level == logging.WARNING


def test_setup_logging_is_configured_once(tmp_path: Path) -> None:
    first = logging_utils.setup_logging(log_dir=tmp_path / "a", console=False)
    second = logging_utils.setup_logging(log_dir=tmp_path / "b", console=False)
    forced = logging_utils.setup_logging(log_dir=tmp_path / "c", console=False, force=True)

    assert first == second
    assert forced == tmp_path / "c" / "inkspan.log"


def test_log_dir_from_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("INKSPAN_LOG_DIR", str(tmp_path / "env"))

    assert logging_utils.setup_logging(console=False) == tmp_path / "env" / "inkspan.log"


def test_explicit_log_dir_beats_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("INKSPAN_LOG_DIR", str(tmp_path / "env"))

    assert logging_utils.setup_logging(log_dir=tmp_path, console=False) == tmp_path / "inkspan.log"


@pytest.mark.parametrize(
    "value,expected",
    [("debug", logging.DEBUG), ("WARNING", logging.WARNING), (5, 5), ("chatty", logging.INFO)],
)
def test_resolve_level(value: object, expected: int) -> None:
    assert logging_utils.resolve_level(value) == expected  # type: ignore[arg-type]
