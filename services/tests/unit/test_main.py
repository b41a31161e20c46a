"""Tests for the command line entry point."""

from __future__ import annotations

import importlib
from typing import Any

import pytest

from sectionai.settings import Settings

cli = importlib.import_module("sectionai.__main__")


@pytest.fixture
def uvicorn_calls(monkeypatch: pytest.MonkeyPatch) -> list[tuple[tuple[Any, ...], dict[str, Any]]]:
    calls: list[tuple[tuple[Any, ...], dict[str, Any]]] = []
    monkeypatch.setattr(cli.uvicorn, "run", lambda *args, **kwargs: calls.append((args, kwargs)))
    monkeypatch.setattr(cli, "configure_logging", lambda level: None)
    monkeypatch.setattr(cli, "get_settings", lambda: Settings(mode="mock"))
    return calls


def test_main_runs_the_app_factory(uvicorn_calls: list[tuple[tuple[Any, ...], dict[str, Any]]]) -> None:
    cli.main(["--port", "9001"])

    (args, kwargs), = uvicorn_calls
    assert args == ("sectionai.app:create_app",)
    assert kwargs["factory"] is True
    assert (kwargs["host"], kwargs["port"], kwargs["reload"]) == ("127.0.0.1", 9001, False)


def test_main_rejects_out_of_range_ports(uvicorn_calls: list[tuple[tuple[Any, ...], dict[str, Any]]]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--port", "70000"])

    assert excinfo.value.code == 2
    assert uvicorn_calls == []
