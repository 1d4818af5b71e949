import os
import signal

from src.watchdog.process.terminator import (
    canonical_path, iter_process_table, match_pids, terminate_all
)


def _binary(tmp_path, name):
    path = tmp_path / "bin" / name
    path.parent.mkdir(exist_ok=True)
    path.write_text("#!/bin/sh\n")
    return os.path.realpath(str(path))


def _fake_proc(tmp_path, table):
    root = tmp_path / "proc"
    root.mkdir()
    (root / "self").mkdir()
    (root / "meminfo").write_text("")
    for pid, exe in table.items():
        d = root / str(pid)
        d.mkdir()
        if exe is not None:
            os.symlink(exe, str(d / "exe"))
    return str(root)


class _Recorder:
    def __init__(self, fail_for=()):
        self.calls = []
        self.fail_for = set(fail_for)

    def __call__(self, pid, sig):
        if pid in self.fail_for:
            raise ProcessLookupError(3, "No such process")
        self.calls.append((pid, sig))


def test_match_pids_is_exact():
    table = [(1, "/usr/bin/runner"), (2, "/usr/bin/runner2"), (3, "/usr/bin/runner"), (4, "/usr/bin")]
    assert match_pids("/usr/bin/runner", table) == {1, 3}
    assert match_pids("/opt/other", table) == set()


def test_iter_process_table_skips_unresolvable(tmp_path):
    runner = _binary(tmp_path, "runner")
    proc_root = _fake_proc(tmp_path, {10: runner, 11: None, 12: "/usr/bin/sleep"})
    assert sorted(iter_process_table(proc_root)) == [(10, runner), (12, "/usr/bin/sleep")]


def test_iter_process_table_missing_root(tmp_path):
    assert list(iter_process_table(str(tmp_path / "missing"))) == []


def test_terminate_all_signals_every_match(tmp_path):
    runner = _binary(tmp_path, "runner")
    other = _binary(tmp_path, "other")
    proc_root = _fake_proc(tmp_path, {100: runner, 101: other, 102: runner, 103: None, 104: runner})
    kill = _Recorder()

    signalled = terminate_all(runner, signal.SIGTERM, proc_root=proc_root, kill=kill)

    assert signalled == {100, 102, 104}
    assert sorted(kill.calls) == [(100, signal.SIGTERM), (102, signal.SIGTERM), (104, signal.SIGTERM)]


def test_terminate_all_resolves_symlinked_target(tmp_path):
    runner = _binary(tmp_path, "runner")
    alias = tmp_path / "current-runner"
    os.symlink(runner, str(alias))
    proc_root = _fake_proc(tmp_path, {7: runner})
    kill = _Recorder()

    assert terminate_all(str(alias), proc_root=proc_root, kill=kill) == {7}


def test_terminate_all_no_match(tmp_path):
    runner = _binary(tmp_path, "runner")
    proc_root = _fake_proc(tmp_path, {1: "/sbin/init"})
    kill = _Recorder()

    assert terminate_all(runner, proc_root=proc_root, kill=kill) == set()
    assert kill.calls == []


def test_terminate_all_missing_binary_is_noop(tmp_path):
    proc_root = _fake_proc(tmp_path, {1: "/sbin/init"})
    kill = _Recorder()

    assert canonical_path(str(tmp_path / "gone")) is None
    assert terminate_all(str(tmp_path / "gone"), proc_root=proc_root, kill=kill) == set()
    assert kill.calls == []


def test_terminate_all_continues_after_delivery_failure(tmp_path):
    runner = _binary(tmp_path, "runner")
    proc_root = _fake_proc(tmp_path, {20: runner, 21: runner, 22: runner})
    kill = _Recorder(fail_for={21})

    assert terminate_all(runner, proc_root=proc_root, kill=kill) == {20, 22}
    assert [pid for pid, _ in kill.calls] == [20, 22]
