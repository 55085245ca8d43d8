"""Tests for tmux discovery parsing, fan-out and pane actions."""

from datetime import datetime, timezone

import pytest

import agentmux.tmux as tmux
from agentmux.errors import TmuxError
from agentmux.models import ProcessTable
from agentmux.providers import ProviderRegistry
from agentmux.tmux import pane_format, parse_target, parse_tmux_panes
from tests.helpers import capture_tmux, completed, make_settings


LINE = "dev:1.0\tclaude\t/home/u/proj\t4242\teditor\t1700000100"


def test_parse_tmux_panes_reads_all_fields():
    (p,) = parse_tmux_panes(LINE + "\n")

    assert (p.target, p.session, p.window, p.pane) == ("dev:1.0", "dev", "1", "0")
    assert p.command == "claude"
    assert p.path == "/home/u/proj"
    assert p.pid == 4242
    assert p.window_name == "editor"
    assert p.window_activity == 1700000100
    assert p.inline_attention is False


def test_parse_tmux_panes_drops_short_lines_and_zeroes_bad_numbers():
    out = "\n".join([
        "dev:1.0\tclaude\t/p",
        "dev:2.0\tclaude\t/p\tnope\tw\tlater",
        "",
    ])

    panes = parse_tmux_panes(out)

    assert [p.target for p in panes] == ["dev:2.0"]
    assert panes[0].pid == 0
    assert panes[0].window_activity == 0


def test_parse_tmux_panes_inline_search_field():
    out = LINE + "\t7\n" + LINE.replace("dev:1.0", "dev:1.1") + "\t0\n"

    panes = parse_tmux_panes(out, inline_search=True)

    assert [p.inline_attention for p in panes] == [True, False]
    # without the seventh field the line is short
    assert parse_tmux_panes(LINE, inline_search=True) == []


@pytest.mark.parametrize(
    ("target", "expected"),
    [
        ("foo:2.1", ("foo", "2", "1")),
        ("my:sess:3.0", ("my:sess", "3", "0")),
        ("my.sess:3.0", ("my.sess", "3", "0")),
        ("foo:2", ("foo", "2", "")),
        ("foo", ("foo", "", "")),
    ],
)
def test_parse_target(target, expected):
    assert parse_target(target) == expected


def test_pane_format_adds_inline_search_field():
    assert len(pane_format().split("\t")) == 6
    inline = pane_format(inline_search=True).split("\t")
    assert len(inline) == 7
    assert inline[-1].startswith("#{C/r:")
    assert inline[-1].endswith("}")


def _patch_fetch(monkeypatch, tmux_out: str, table: ProcessTable, history=None) -> None:  # noqa: ANN001
    monkeypatch.setattr(tmux, "list_tmux_panes", lambda inline: tmux_out)
    monkeypatch.setattr(tmux, "load_process_table", lambda: table)
    if isinstance(history, Exception):
        def _fail():
            raise history
        monkeypatch.setattr(tmux, "last_active_by_project", _fail)
    else:
        monkeypatch.setattr(tmux, "last_active_by_project", lambda: history or {})


def test_fetch_panes_joins_tmux_history_and_process_table(monkeypatch) -> None:
    seen = datetime(2026, 1, 2, tzinfo=timezone.utc)
    out = "\n".join([
        LINE,
        "dev:2.0\tnode\t/home/u/other\t500\tgem\t9",
        "dev:3.0\tzsh\t/home/u/proj\t600\tshell\t9",
    ])
    table = ProcessTable(children={500: [501]}, comm={501: "node"}, args={501: "node /x/gemini"})
    _patch_fetch(monkeypatch, out, table, {"/home/u/proj": seen})

    panes = tmux.fetch_panes(ProviderRegistry(["claude", "gemini"]), make_settings())

    assert [(p.target, p.command) for p in panes] == [("dev:1.0", "claude"), ("dev:2.0", "gemini")]
    assert panes[0].last_active == seen
    assert panes[1].last_active is None


def test_fetch_panes_survives_history_failure(monkeypatch) -> None:
    _patch_fetch(monkeypatch, LINE, ProcessTable(), OSError("disk gone"))

    panes = tmux.fetch_panes(ProviderRegistry(["claude"]), make_settings())

    assert [p.target for p in panes] == ["dev:1.0"]
    assert panes[0].last_active is None


def test_fetch_panes_raises_when_tmux_fails(monkeypatch) -> None:
    def _fail(inline):  # noqa: ANN001
        raise TmuxError(["tmux", "list-panes"], "no server running")

    monkeypatch.setattr(tmux, "list_tmux_panes", _fail)
    monkeypatch.setattr(tmux, "load_process_table", lambda: ProcessTable())
    monkeypatch.setattr(tmux, "last_active_by_project", lambda: {})

    with pytest.raises(TmuxError, match="no server running"):
        tmux.fetch_panes(ProviderRegistry(["claude"]), make_settings())


def test_list_panes_captures_content_unless_inline(monkeypatch) -> None:
    captured: list[int] = []
    monkeypatch.setattr(tmux, "fetch_panes", lambda reg, settings: [])
    monkeypatch.setattr(tmux, "capture_content", lambda panes, settings: captured.append(1))
    monkeypatch.setattr(tmux, "enrich_panes", lambda panes: None)

    tmux.list_panes(ProviderRegistry(), make_settings(inline_search=False))
    tmux.list_panes(ProviderRegistry(), make_settings(inline_search=True))

    assert captured == [1]


def test_capture_pane_content_flags_prompt(monkeypatch) -> None:
    sent = capture_tmux(monkeypatch, stdout="Edit file?\n Do you want to proceed?\n")

    digest, attention = tmux.capture_pane_content("dev:1.0", lines=15)

    assert sent == [["tmux", "capture-pane", "-t", "dev:1.0", "-p", "-S", "-15"]]
    assert len(digest) == 16
    assert attention is True


def test_capture_pane_content_failure_means_no_signal(monkeypatch) -> None:
    monkeypatch.setattr(tmux, "_run_tmux", lambda cmd, timeout=3: None)
    assert tmux.capture_pane_content("dev:1.0") == ("", False)

    monkeypatch.setattr(tmux, "_run_tmux", lambda cmd, timeout=3: completed("x?", returncode=1))
    assert tmux.capture_pane_content("dev:1.0") == ("", False)


def test_switch_to_pane_selects_window_then_pane(monkeypatch) -> None:
    sent = capture_tmux(monkeypatch)

    tmux.switch_to_pane("dev:2.1")

    assert sent == [
        ["tmux", "switch-client", "-t", "dev:2"],
        ["tmux", "select-pane", "-t", "dev:2.1"],
    ]


def test_kill_last_pane_kills_window(monkeypatch) -> None:
    sent = capture_tmux(monkeypatch, stdout="0: [80x24] %1 (active)\n")

    tmux.kill_pane("dev:2.0")

    assert sent[-1] == ["tmux", "kill-window", "-t", "dev:2"]


def test_kill_pane_in_split_window(monkeypatch) -> None:
    sent = capture_tmux(monkeypatch, stdout="0: [40x24] %1\n1: [40x24] %2 (active)\n")

    tmux.kill_pane("dev:2.1")

    assert sent[0] == ["tmux", "list-panes", "-t", "dev:2"]
    assert sent[-1] == ["tmux", "kill-pane", "-t", "dev:2.1"]


def test_failed_action_raises_tmux_error(monkeypatch) -> None:
    monkeypatch.setattr(
        tmux, "_run_tmux",
        lambda cmd, timeout=3: completed(returncode=1, stderr="can't find session: dev\n"),
    )

    with pytest.raises(TmuxError) as excinfo:
        tmux.switch_to_pane("dev:2.1")

    assert str(excinfo.value) == "tmux switch-client failed: can't find session: dev"
    assert excinfo.value.command[:2] == ["tmux", "switch-client"]


def test_missing_tmux_binary_raises_tmux_error(monkeypatch) -> None:
    monkeypatch.setattr(tmux, "_run_tmux", lambda cmd, timeout=3: None)

    with pytest.raises(TmuxError, match="not available"):
        tmux.capture_pane("dev:1.0", 40)


def test_capture_pane_content_only_checks_last_lines(monkeypatch) -> None:
    screen = "Do you want to proceed?\n" + "".join(f"line {i}\n" for i in range(40)) + "\n\n"
    capture_tmux(monkeypatch, stdout=screen)

    _, attention = tmux.capture_pane_content("dev:1.0", lines=15)

    assert attention is False


def test_capture_pane_content_ignores_trailing_blank_rows(monkeypatch) -> None:
    screen = "".join(f"line {i}\n" for i in range(40)) + "Shall I continue\n" + "\n" * 30
    capture_tmux(monkeypatch, stdout=screen)

    _, attention = tmux.capture_pane_content("dev:1.0", lines=15)

    assert attention is True
