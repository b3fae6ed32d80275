# tests/test_cli.py
"""
CLI wiring tests: REPL loop, script runner and main() entry modes.
"""
from __future__ import annotations

import inspect
import io
import sys
from dataclasses import dataclass, field
from pathlib import Path

import pytest

import rucli.cli as cli
from rucli.kernel import Kernel


@dataclass
class FakeUI:
    """
    UI abstraction used by CLI:
      - read(prompt) -> str
      - write(text) -> None
      - clear() -> None

    Inputs that are exception instances are raised instead of returned.
    """

    inputs: list
    outputs: list[str] = field(default_factory=list)
    clears: int = 0
    prompts: list[str] = field(default_factory=list)

    def read(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.inputs:
            raise EOFError
        item = self.inputs.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    def write(self, text: str) -> None:
        self.outputs.append(text)

    def clear(self) -> None:
        self.clears += 1


class FakeHistoryStore:
    def __init__(self) -> None:
        self.saved: list[list[str]] = []

    def load(self) -> list[str]:
        return []

    def save(self, entries: list[str]) -> None:
        self.saved.append(list(entries))


class FakeConfig:
    def __init__(self) -> None:
        self.system = {"name": "rucli", "welcome": {"message": "hi there"}}

    def get_path(self, path: str, default=None):
        return default


def make_kernel(ui: FakeUI | None = None, **kwargs) -> Kernel:
    """Create a started kernel whose output goes to the fake UI."""
    k = Kernel(config=FakeConfig(), history_store=FakeHistoryStore(), **kwargs)
    if ui is not None:
        k.output_fn = ui.write
        k.error_fn = ui.write
    k.start()
    return k


# -------------------------------------------------------------------
# run_repl behavior
# -------------------------------------------------------------------


def test_cli_requires_ui_wiring_api() -> None:
    sig = inspect.signature(cli.run_repl)
    assert list(sig.parameters) == ["kernel", "ui", "input_fn", "output_fn"]


def test_repl_runs_commands_until_exit() -> None:
    ui = FakeUI(inputs=["echo hi", "", "exit", "echo never"])
    k = make_kernel(ui)
    cli.run_repl(k, ui=ui)

    assert ui.outputs == ["hi\n", "good bye\n"]
    assert ui.prompts == ["> ", "> ", "> "]
    assert not k.running
    assert k.history_store.saved == [["echo hi", "exit"]]


def test_repl_uses_continuation_prompt() -> None:
    ui = FakeUI(inputs=["for i in 1 2", "do echo $i", "done", "exit"])
    k = make_kernel(ui)
    cli.run_repl(k, ui=ui)
    assert ui.prompts[:3] == ["> ", ">> ", ">> "]
    assert "".join(ui.outputs).startswith("1\n2\n")


def test_repl_eof_flushes_history_and_says_bye() -> None:
    ui = FakeUI(inputs=["echo a"])
    k = make_kernel(ui)
    cli.run_repl(k, ui=ui)
    assert ui.outputs[-1] == "\nBye!\n"
    assert not k.running
    assert k.history_store.saved == [["echo a"]]


def test_repl_ctrl_c_at_primary_prompt_exits() -> None:
    ui = FakeUI(inputs=[KeyboardInterrupt(), "echo never"])
    k = make_kernel(ui)
    cli.run_repl(k, ui=ui)
    assert ui.outputs == ["\nBye!\n"]
    assert not k.running


def test_repl_ctrl_c_in_block_cancels_block() -> None:
    ui = FakeUI(inputs=["if true; then", KeyboardInterrupt(), "echo ok"])
    k = make_kernel(ui)
    cli.run_repl(k, ui=ui)
    assert ui.outputs[:2] == ["\n[Cancelled]\n", "ok\n"]
    assert ui.prompts[:3] == ["> ", ">> ", "> "]


def test_repl_without_ui_uses_input_and_output_fns() -> None:
    inputs = ["echo plain", "exit"]
    outputs: list[str] = []
    k = make_kernel(output_fn=outputs.append)
    cli.run_repl(
        k, input_fn=lambda prompt: inputs.pop(0), output_fn=outputs.append
    )
    assert outputs == ["plain\n", "good bye\n"]


def test_repl_crash_is_logged_and_session_continues(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    ui = FakeUI(inputs=["boom", "echo after", "exit"])
    k = make_kernel(ui)
    logged: list[tuple[str, str]] = []

    real_feed = k.feed

    def flaky_feed(line: str):
        if line == "boom":
            raise RuntimeError("kaput")
        return real_feed(line)

    monkeypatch.setattr(k, "feed", flaky_feed)
    monkeypatch.setattr(
        cli, "write_crash_log",
        lambda e, raw_command="": logged.append((str(e), raw_command)),
    )

    cli.run_repl(k, ui=ui)
    assert logged == [("kaput", "boom")]
    assert ui.outputs[0] == "[ERROR] Unhandled exception: RuntimeError: kaput\n"
    assert "after\n" in ui.outputs


# -------------------------------------------------------------------
# run_script
# -------------------------------------------------------------------


def script_kernel(out: list[str]) -> Kernel:
    k = Kernel(
        config=FakeConfig(), interactive=False,
        output_fn=out.append, error_fn=out.append,
    )
    k.start()
    return k


def test_run_script_skips_shebang_and_comments(tmp_path: Path) -> None:
    script = tmp_path / "demo.rsh"
    script.write_text(
        "#!/usr/bin/env rucli\n"
        "# greet everyone\n"
        "\n"
        "for name in a b\n"
        "do\n"
        "    echo hi $name\n"
        "done\n"
        "cat << EOF\n"
        "body\n"
        "EOF\n",
        encoding="utf-8",
    )
    out: list[str] = []
    assert cli.run_script(script_kernel(out), script) == 0
    assert "".join(out) == "hi a\nhi b\nbody\n"


def test_run_script_stops_at_exit(tmp_path: Path) -> None:
    script = tmp_path / "exit.rsh"
    script.write_text("echo one\nexit\necho two\n", encoding="utf-8")
    out: list[str] = []
    assert cli.run_script(script_kernel(out), script) == 0
    assert "".join(out) == "one\ngood bye\n"


def test_run_script_unterminated_block_fails(tmp_path: Path) -> None:
    script = tmp_path / "bad.rsh"
    script.write_text("echo start\nif true; then\necho x\n", encoding="utf-8")
    out: list[str] = []
    assert cli.run_script(script_kernel(out), script) == 1
    assert "".join(out) == (
        "start\nrucli: syntax error: unterminated block\n"
    )


def test_run_script_waits_for_background_jobs(tmp_path: Path) -> None:
    script = tmp_path / "bg.rsh"
    script.write_text("sleep 0.2 &\n", encoding="utf-8")
    out: list[str] = []
    k = script_kernel(out)
    assert cli.run_script(k, script) == 0
    assert k.jobs.running_count() == 0


def test_run_script_missing_file(tmp_path: Path) -> None:
    out: list[str] = []
    assert cli.run_script(script_kernel(out), tmp_path / "nope") == 1
    assert out[0].startswith("rucli: ")


# -------------------------------------------------------------------
# cli.main
# -------------------------------------------------------------------


def test_parse_args() -> None:
    assert cli._parse_args([]) == (None, False)
    assert cli._parse_args(["run.rsh", "--debug"]) == ("run.rsh", True)
    with pytest.raises(SystemExit) as exc:
        cli._parse_args(["a", "b"])
    assert exc.value.code == 2


def test_main_runs_script(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    script = tmp_path / "s.rsh"
    script.write_text("echo from script\n", encoding="utf-8")
    monkeypatch.setattr(sys, "argv", ["rucli", str(script)])

    with pytest.raises(SystemExit) as exc:
        cli.main()
    assert exc.value.code == 0
    assert capsys.readouterr().out == "from script\n"


def test_main_legacy_mode_prints_banner_and_uses_input(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.setenv("RUCLI_LEGACY_UI", "1")
    monkeypatch.setenv("RUCLI_HISTFILE", str(tmp_path / "hist"))
    monkeypatch.setattr(sys, "argv", ["rucli"])

    # input() reads from sys.stdin once it is no longer the console
    monkeypatch.setattr(sys, "stdin", io.StringIO("echo legacy\nexit\n"))

    cli.main()

    out = capsys.readouterr().out
    assert out.startswith("Welcome to rucli")
    assert "> legacy\n> good bye\n" in out
    assert (tmp_path / "hist").read_text(encoding="utf-8") == (
        "echo legacy\nexit\n"
    )


def test_main_wires_prompt_toolkit_ui(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv("RUCLI_LEGACY_UI", raising=False)
    monkeypatch.setenv("RUCLI_HISTFILE", str(tmp_path / "hist"))
    monkeypatch.setattr(sys, "argv", ["rucli"])

    class TTY:
        def isatty(self) -> bool:
            return True

    monkeypatch.setattr(sys, "stdin", TTY())

    created: dict[str, object] = {}

    class StubUI(FakeUI):
        def __init__(self, kernel: Kernel) -> None:
            super().__init__(inputs=[])
            created["ui"] = self
            created["kernel"] = kernel

    monkeypatch.setattr(cli, "PromptToolkitUI", StubUI, raising=True)

    cli.main()

    ui = created["ui"]
    kernel = created["kernel"]
    assert kernel.output_fn == ui.write
    assert kernel.color is True
    assert "Welcome to" in ui.outputs[0]
    assert ui.outputs[-1] == "\nBye!\n"
