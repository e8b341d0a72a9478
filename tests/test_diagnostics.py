from __future__ import annotations

import logging

import pytest

from codesmith.cli.diagnostics import CliEmitter
from codesmith.cli.state import set_cli_state
from codesmith.core.diagnostics import LoggingEmitter, NullEmitter, format_event_message
from codesmith.core.exceptions import PluginError, ValidationError, exception_hint


def _raise_nested_plugin_error() -> None:
    try:
        raise ValidationError("Unterminated quoted value in meta string")
    except ValidationError as exc:
        raise PluginError("frames", "preprocess_metadata", exc) from exc


def test_null_emitter_is_noop(caplog: pytest.LogCaptureFixture) -> None:
    emitter = NullEmitter()
    with caplog.at_level(logging.WARNING):
        emitter.warning("nothing to see")
        emitter.error("still quiet")
    assert not caplog.records
    emitter.event("ignored", {"value": 1})
    assert emitter.debug_enabled is False


def test_logging_emitter_logs_messages(caplog: pytest.LogCaptureFixture) -> None:
    emitter = LoggingEmitter(debug_enabled=True)
    with caplog.at_level(logging.INFO):
        emitter.error("boom")
        emitter.event("theme_loaded", {"name": "monokai", "type": "dark"})
    messages = [record.message for record in caplog.records]
    assert "boom" in messages
    assert "Loaded theme: monokai (dark)" in messages
    assert emitter.debug_enabled is True


def test_format_event_message() -> None:
    assert format_event_message("unknown_style_keys", {"keys": ["b", "a"]}) == (
        "Unknown style settings used: a, b"
    )
    assert format_event_message("language_fallback", {"language": "klingon"}) == (
        "Unknown language 'klingon', rendering as text"
    )
    assert format_event_message("unknown_style_keys", {"keys": []}) is None
    assert format_event_message("custom", {}) is None


def test_cli_emitter_bridges_state(capsys: pytest.CaptureFixture[str]) -> None:
    state = set_cli_state(verbosity=1, debug=False)
    emitter = CliEmitter(state=state)

    emitter.warning("Heads up", exc=None)
    emitter.error("Boom", exc=None)
    emitter.event("language_fallback", {"language": "klingon", "fallback": "text"})
    emitter.event("custom", {"flag": True})

    captured = capsys.readouterr()
    combined_output = f"{captured.out}\n{captured.err}"
    assert "Heads up" in combined_output
    assert "Boom" in combined_output
    assert "klingon" in combined_output
    assert state.events["custom"][-1] == {"flag": True}
    assert state.events["language_fallback"][-1] == {"language": "klingon", "fallback": "text"}


def test_exception_hint_reports_root_cause() -> None:
    with pytest.raises(PluginError) as excinfo:
        _raise_nested_plugin_error()

    assert str(excinfo.value).startswith("Plugin 'frames' failed in stage 'preprocess_metadata'")
    assert exception_hint(excinfo.value) == "Unterminated quoted value in meta string"
