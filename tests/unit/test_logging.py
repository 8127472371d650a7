import json
import logging
from pathlib import Path

import pytest
import structlog

from resha.logging import configure_logging, manifest_context


def test_manifest_context_binds_only_inside_block() -> None:
    structlog.contextvars.bind_contextvars(run="outer")
    try:
        with manifest_context(Path("gen/.resha.yml")):
            assert structlog.contextvars.get_contextvars() == {
                "run": "outer",
                "manifest": "gen/.resha.yml",
            }
        assert structlog.contextvars.get_contextvars() == {"run": "outer"}
    finally:
        structlog.contextvars.clear_contextvars()


def test_json_records_carry_manifest(capsys: pytest.CaptureFixture[str]) -> None:
    configure_logging("info", json_output=True)
    log = logging.getLogger("resha.reconciler")

    with manifest_context(Path("gen/.resha.yml")):
        log.info("Updated manifest %s", "gen/.resha.yml")
    log.info("done")

    first, second = (json.loads(line) for line in capsys.readouterr().err.splitlines())
    assert first["event"] == "Updated manifest gen/.resha.yml"
    assert first["manifest"] == "gen/.resha.yml"
    assert first["level"] == "info"
    assert "manifest" not in second


def test_unknown_level_falls_back_to_warning() -> None:
    configure_logging("chatty")
    assert logging.getLogger().level == logging.WARNING
