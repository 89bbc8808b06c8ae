from __future__ import annotations

from types import SimpleNamespace

import pytest
import typer
from typer.testing import CliRunner

from automemo import main as main_mod
from automemo.features import OperationResult


@pytest.fixture(autouse=True)
def _keep_pytest_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    # setup_logging replaces root handlers, which would detach pytest's capture
    monkeypatch.setattr(main_mod, "setup_logging", lambda *args, **kwargs: None)


@pytest.mark.unit
def test_feature_or_exit_unknown():
    with pytest.raises(typer.Exit):
        main_mod._feature_or_exit("does-not-exist")


@pytest.mark.unit
def test_handle_cli_result_failure_raises_exit():
    with pytest.raises(typer.Exit):
        main_mod._handle_cli_result("bench", OperationResult.fail("boom"))


@pytest.mark.unit
def test_bench_command_forwards_options(monkeypatch: pytest.MonkeyPatch):
    captured: dict[str, object] = {}

    def fake_handler(**kwargs):
        captured.update(kwargs)
        return OperationResult.ok({"calls": 2, "invocations": 1, "elapsed_ms": 0.1, "consistent": True})

    monkeypatch.setattr(
        main_mod,
        "_feature_or_exit",
        lambda _name: SimpleNamespace(handler=fake_handler),
    )

    main_mod.bench(calls=1, argument="7", no_cache=True, debug=False, verbose=False)
    assert captured == {"calls": 1, "argument": "7", "no_cache": True}


@pytest.mark.unit
def test_cli_runner_commands():
    runner = CliRunner()

    assert runner.invoke(main_mod.app, ["version"]).exit_code == 0
    assert runner.invoke(main_mod.app, ["bench", "--calls", "10"]).exit_code == 0
    assert runner.invoke(main_mod.app, ["bench", "--calls", "0"]).exit_code == 1


@pytest.mark.unit
def test_elapsed_formatter_prefixes_milliseconds():
    import logging

    formatter = main_mod.ElapsedMsFormatter("%(elapsed)s %(message)s")
    record = logging.LogRecord("automemo", logging.INFO, __file__, 1, "hello", None, None)

    line = formatter.format(record)

    assert line.startswith("[")
    assert line.endswith("ms] hello")
