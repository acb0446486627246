import os
import signal

import pytest

from auto_turbo import daemon
from auto_turbo.config import Config, PolicySetting
from auto_turbo.daemon import AutoTurboDaemon, apply_once, main, parse_config

from conftest import FakeMetrics, FakePolicy

ORIGINAL = PolicySetting("schedutil", 800000, 3000000)


def test_defaults_match_profiles():
    _, config = parse_config([])

    assert config == Config()
    assert config.normal_setting == PolicySetting("powersave", 400000, 2000000)
    assert config.turbo_setting == PolicySetting("performance", 400000, 5450000)


def test_flags_override_config():
    args, config = parse_config([
        "--cputype", "intel", "--max-normal", "1800", "--turbo-governor", "schedutil",
        "--cpu-usage-threshold", "75", "--verbose", "--apply", "turbo",
    ])

    assert args.apply == "turbo"
    assert config.cpu_type == "intel"
    assert config.max_normal == 1800
    assert config.turbo_governor == "schedutil"
    assert config.usage_threshold == 75.0
    assert config.verbose


@pytest.mark.parametrize("argv", [
    ["--min-normal", "3000"],
    ["--cpu-usage-threshold", "120"],
    ["--max-turbo", "-1"],
    ["--apply", "normal", "--status"],
])
def test_invalid_arguments_exit_2(argv):
    with pytest.raises(SystemExit) as exc:
        parse_config(argv)
    assert exc.value.code == 2


def test_refuses_to_run_without_root(monkeypatch, capsys):
    monkeypatch.setattr(os, "geteuid", lambda: 1000)
    monkeypatch.setattr(daemon, "AutoTurboDaemon", lambda c: pytest.fail("daemon started"))

    assert main([]) == 1
    assert "must be run as root" in capsys.readouterr().out


def test_apply_once_prints_report(capsys):
    policy = FakePolicy(cores=2)
    policy.failing.add((1, "governor"))

    report = apply_once(Config(), "turbo", policy=policy, metrics=FakeMetrics([], cores=2))

    out = capsys.readouterr().out
    assert "Applied turbo mode: governor=performance min=400MHz max=5450MHz on 2 cores" in out
    assert "WRITE FAILED: cpu1 governor" in out
    assert report.cores == 2
    assert policy.max == {0: 5450000, 1: 5450000}


def make_daemon(monkeypatch, policy, usages, config=None):
    d = AutoTurboDaemon(
        config or Config(),
        metrics=FakeMetrics(usages, cores=policy.cores),
        policy=policy,
    )
    monkeypatch.setattr(d.applier, "settle_delay", 0)
    monkeypatch.setattr(signal, "signal", lambda sig, handler: None)
    return d


def test_daemon_run_captures_then_restores_on_stop(monkeypatch, capsys):
    policy = FakePolicy(cores=2)
    d = make_daemon(monkeypatch, policy, [90], Config(save_governor="conservative"))
    governors_seen = []

    def one_tick(stop_event):
        d.controller.tick()
        governors_seen.append(dict(policy.governor))
        stop_event.set()

    monkeypatch.setattr(d.controller, "run", one_tick)

    d.run()

    out = capsys.readouterr().out
    assert d.guard.original == ORIGINAL
    assert "Original settings: governor schedutil, max freq: 3000 MHz" in out
    assert "WARNING: governor 'conservative' is not available" in out
    assert "INIT turbo mode: governor=performance min=400MHz max=5450MHz" in out
    assert "SWITCH to turbo mode" in out
    assert out.rstrip().endswith("Settings restored. Goodbye!")
    assert governors_seen == [{0: "performance", 1: "performance"}]
    assert policy.read_setting(1) == ORIGINAL


def test_signal_during_apply_restores_every_core_and_exits_zero(monkeypatch, capsys):
    class InterruptedPolicy(FakePolicy):
        def write_min_frequency(self, core, khz):
            super().write_min_frequency(core, khz)
            if core == 1 and not d.guard.stop_event.is_set():
                d.guard.handle_signal(signal.SIGTERM, None)

    policy = InterruptedPolicy(cores=4)
    d = make_daemon(monkeypatch, policy, [90] * 5)

    with pytest.raises(SystemExit) as exc:
        d.run()

    assert exc.value.code == 0
    assert d.guard.stop_event.is_set()
    # turbo got as far as cpu1 min before the signal
    assert ("min", 1, 400000) in policy.writes
    for core in range(4):
        assert policy.read_setting(core) == ORIGINAL
    assert "Settings restored. Goodbye!" in capsys.readouterr().out


def test_unreadable_snapshot_is_fatal(monkeypatch, capsys):
    policy = FakePolicy(cores=2)
    policy.max[0] = 0  # min still reads 800000
    monkeypatch.setattr(os, "geteuid", lambda: 0)
    monkeypatch.setattr(daemon, "SysfsPolicy", lambda: policy)
    monkeypatch.setattr(daemon, "SysfsMetrics", lambda cpu_type: FakeMetrics([], cores=2))

    assert main([]) == 1
    assert "Cannot read the current cpu0 policy" in capsys.readouterr().out
    assert policy.writes == []
