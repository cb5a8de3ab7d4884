"""Tests for console / JSON debug logging."""

import asyncio
import json
import logging
from pathlib import Path

import pytest

from conftest import FakeMemorySource, make_config
from contextweave.config import Config
from contextweave.context import ContextManager, MemoryFile
from contextweave.logging import (
    ConsoleFormatter,
    JSONFormatter,
    get_debug_log_path,
    rotate_debug_log,
    setup_logging,
)


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def make_record(msg: str, **extra) -> logging.LogRecord:
    return logging.makeLogRecord({
        "name": "contextweave.context.manager",
        "levelname": "INFO",
        "levelno": logging.INFO,
        "msg": msg,
        **extra,
    })


class TestJSONFormatter:
    def test_line_shape_with_status_ctx(self):
        record = make_record(
            "Memory refreshed: 2 files",
            ctx={"file_count": 2, "trusted": True, "project_chars": 7},
        )
        entry = json.loads(JSONFormatter().format(record))

        assert entry["level"] == "INFO"
        assert entry["component"] == "manager"
        assert entry["msg"] == "Memory refreshed: 2 files"
        assert entry["file_count"] == 2
        assert "tier" not in entry
        assert entry["ctx"]["project_chars"] == 7

    def test_tier_promoted(self):
        record = make_record("Discovered", ctx={"tier": "jit", "paths": ["/a"]})
        entry = json.loads(JSONFormatter().format(record))
        assert entry["tier"] == "jit"
        assert entry["ctx"]["paths"] == ["/a"]

    def test_without_ctx(self):
        entry = json.loads(JSONFormatter().format(make_record("plain")))
        assert "ctx" not in entry
        assert "file_count" not in entry


class TestConsoleFormatter:
    def test_short_line(self):
        line = ConsoleFormatter(use_colors=False).format(make_record("hello"))
        assert line.endswith("[INF] manager: hello")


class TestDebugFile:
    def test_rotate_keeps_one_previous_run(self, tmp_path):
        log_path = tmp_path / "debug.log"
        (tmp_path / "debug.log.1").write_text("oldest\n")
        log_path.write_text("previous\n")

        rotate_debug_log(log_path)

        assert not log_path.exists()
        assert (tmp_path / "debug.log.1").read_text() == "previous\n"

    def test_rotate_without_log_is_noop(self, tmp_path):
        rotate_debug_log(tmp_path / "debug.log")
        assert list(tmp_path.iterdir()) == []

    def test_log_path_under_xdg_data_home(self, tmp_path, monkeypatch):
        monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))
        assert get_debug_log_path() == tmp_path / "contextweave" / "logs" / "debug.log"

    def test_refresh_written_as_json(self, tmp_path, monkeypatch, restore_root_logger):
        monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))
        log_path = get_debug_log_path()
        log_path.parent.mkdir(parents=True)
        log_path.write_text("last run\n")

        setup_logging(Config(), console_level="ERROR", debug_to_file=True, use_colors=False)
        source = FakeMemorySource(
            global_files=[MemoryFile("/g/INSTRUCTIONS", "Be helpful.")],
            project_files=[MemoryFile("/proj/INSTRUCTIONS", "Use TS.")],
        )
        manager = ContextManager(make_config(), source=source)
        asyncio.run(manager.refresh())
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert Path(str(log_path) + ".1").read_text() == "last run\n"
        entries = [json.loads(line) for line in log_path.read_text().splitlines()]
        assert entries[0]["msg"] == "Session started"
        assert "config" in entries[0]["ctx"]

        (refreshed,) = [e for e in entries if e["msg"].startswith("Memory refreshed")]
        assert refreshed["component"] == "manager"
        assert refreshed["file_count"] == 2
        assert refreshed["ctx"]["global_chars"] == len("Be helpful.")


class TestManagerLogContext:
    @pytest.mark.asyncio
    async def test_refresh_record_carries_status(self, trusted_config, caplog):
        caplog.set_level(logging.INFO, logger="contextweave.context.manager")
        source = FakeMemorySource(global_files=[MemoryFile("/g/INSTRUCTIONS", "g")])
        manager = ContextManager(trusted_config, source=source)

        await manager.refresh()

        (record,) = [r for r in caplog.records if r.getMessage().startswith("Memory refreshed")]
        assert record.ctx == manager.get_status()

    @pytest.mark.asyncio
    async def test_discovery_record_carries_paths(self, trusted_config, caplog):
        caplog.set_level(logging.INFO, logger="contextweave.context.manager")
        a = MemoryFile("/proj/a/INSTRUCTIONS", "a")
        manager = ContextManager(trusted_config, source=FakeMemorySource(jit={"/proj/a": [a]}))

        await manager.discover_context("/proj/a", ["/proj"])

        (record,) = [r for r in caplog.records if r.getMessage().startswith("Discovered")]
        assert record.ctx == {"tier": "jit", "paths": [a.path]}
