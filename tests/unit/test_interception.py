"""Tests for harness interception and nesting."""

import threading

import testgroup
from testgroup.harness import get_harness, ok
from testgroup.interception import InterceptionAdapter, activate, current_runner, deactivate
from testgroup.runner import GroupRunner


class RecordingInterceptor:
    """Interceptor that only records what reaches it."""

    def __init__(self) -> None:
        self.diags: list[str] = []
        self.oks: list[bool] = []

    def ok(self, status, name=None, *, todo=None):
        self.oks.append(bool(status))
        return bool(status)

    def skip(self, reason=None):
        pass

    def diag(self, *messages):
        self.diags.append("".join(str(m) for m in messages))


class TestActivation:
    def test_top_level_swaps_harness_and_restores_it(self, harness):
        runner = GroupRunner("top", lambda: None)

        activation = activate(runner, harness)
        assert isinstance(harness.interceptor, InterceptionAdapter)
        assert current_runner() is runner

        deactivate(activation)
        assert harness.interceptor is None
        assert current_runner() is None

    def test_nested_keeps_adapter_and_restores_parent(self, harness):
        outer = GroupRunner("outer", lambda: None)
        inner = GroupRunner("inner", lambda: None)

        outer_activation = activate(outer, harness)
        adapter = harness.interceptor
        inner_activation = activate(inner, harness)

        assert harness.interceptor is adapter
        assert current_runner() is inner
        assert not inner_activation.top_level

        deactivate(inner_activation)
        assert current_runner() is outer
        assert harness.interceptor is adapter

        deactivate(outer_activation)
        assert current_runner() is None
        assert harness.interceptor is None

    def test_adapter_without_runner_reaches_real_harness(self, harness):
        adapter = InterceptionAdapter(harness)
        adapter.ok(True, "direct")
        adapter.skip("direct skip")

        assert [r.name for r in harness.results] == ["direct", None]
        assert harness.output_lines() == ["ok 1 - direct", "ok 2 # skip direct skip"]

    def test_stale_harness_reference_is_redirected(self, harness):
        stale = get_harness()

        runner = GroupRunner("stale", lambda: stale.ok(True, "via stale"), mute=True)
        runner.run()

        assert [s.name for s in runner.subtests()] == ["via stale"]
        assert harness.results == []


class TestNesting:
    def test_subtests_are_attributed_to_innermost_group(self):
        inner_runners = []

        def inner_body():
            ok(True, "a")
            ok(False, "b")

        def outer_body():
            ok(True, "outer first")
            inner = GroupRunner("inner", inner_body)
            inner_runners.append(inner)
            inner.run()
            verdict = inner.compute_verdict()
            get_harness().ok(verdict.ok, "inner", todo=verdict.todo)
            ok(True, "outer last")

        outer = GroupRunner("outer", outer_body, mute=True)
        outer.run()

        assert [s.name for s in outer.subtests()] == ["outer first", "inner", "outer last"]
        assert [s.status for s in outer.subtests()] == [True, False, True]
        assert [s.name for s in inner_runners[0].subtests()] == ["a", "b"]
        assert outer.compute_verdict() == (False, None)

    def test_nested_test_reports_single_result(self, harness):
        def outer_body():
            ok(True, "before")
            testgroup.test("inner", lambda: ok(True, "deep"))
            ok(True, "after")

        assert testgroup.test("outer", outer_body) is True
        assert harness.output_lines() == ["ok 1 - outer"]

    def test_nested_todo_verdict_reaches_outer_group(self):
        def inner_body():
            with testgroup.todo("inner pending"):
                ok(False)

        def outer_body():
            ok(True)
            testgroup.test("inner", inner_body)

        outer = GroupRunner("outer", outer_body, mute=True)
        outer.run()

        assert [(s.status, s.todo) for s in outer.subtests()] == [
            (True, None),
            (False, "inner pending"),
        ]
        assert outer.compute_verdict() == (False, "inner pending")

    def test_inner_exception_restores_outer_runner(self):
        seen = []

        def inner_body():
            raise RuntimeError("inner died")

        def outer_body():
            inner = GroupRunner("inner", inner_body)
            inner.run()
            seen.append(current_runner())
            ok(True, "still outer")

        outer = GroupRunner("outer", outer_body, mute=True)
        outer.run()

        assert seen == [outer]
        assert [s.name for s in outer.subtests()] == ["still outer"]

    def test_parent_link_is_weak_and_set_only_when_nested(self):
        inner_runners = []

        def outer_body():
            inner = GroupRunner("inner", lambda: ok(True))
            inner.run()
            inner_runners.append(inner)

        outer = GroupRunner("outer", outer_body, mute=True)
        outer.run()

        assert outer.parent is None
        assert inner_runners[0].parent() is outer


class TestOriginalDispatch:
    def test_diag_goes_to_displaced_interceptor(self, harness):
        recorder = RecordingInterceptor()
        harness.swap_interceptor(recorder)
        inner_runners = []

        def outer_body():
            ok(False, "outer failure")
            inner = GroupRunner("inner", lambda: ok(False, "inner failure"))
            inner_runners.append(inner)
            inner.run()

        outer = GroupRunner("outer", outer_body)
        outer.run()

        assert harness.interceptor is recorder
        assert outer.original_dispatch() is recorder
        assert inner_runners[0].original_dispatch() is recorder
        assert any("outer failure" in d for d in recorder.diags)
        assert any("inner failure" in d for d in recorder.diags)
        assert harness.diagnostics() == ""

    def test_without_displaced_interceptor_diag_is_emitted(self, harness):
        runner = GroupRunner("plain", lambda: get_harness().diag("hello"))
        runner.run()

        assert runner.original_dispatch() is None
        assert harness.diagnostics() == "# hello\n"


class TestThreads:
    def test_other_threads_bypass_the_running_group(self, harness):
        def body():
            ok(True, "in group")
            worker = threading.Thread(target=lambda: harness.ok(True, "from thread"))
            worker.start()
            worker.join()

        runner = GroupRunner("threaded", body, mute=True)
        runner.run()

        assert [s.name for s in runner.subtests()] == ["in group"]
        assert [r.name for r in harness.results] == ["from thread"]
