"""Tests for the plugin chain."""

import pytest

import testgroup
from testgroup.harness import ok, pass_
from testgroup.plugins import PluginChain, next_test_plugin, plugin_chain
from testgroup.runner import GroupRunner


class TestPluginChain:
    def test_empty_chain_returns_body_unchanged(self):
        def body():
            pass

        assert PluginChain().drain_and_wrap(body) is body

    def test_first_registered_is_outermost(self):
        calls = []
        chain = PluginChain()

        def a(next_step):
            calls.append("a in")
            next_step()
            calls.append("a out")

        def b(next_step):
            calls.append("b in")
            next_step()
            calls.append("b out")

        chain.enqueue(a)
        chain.enqueue(b)
        wrapped = chain.drain_and_wrap(lambda: calls.append("body"))

        assert len(chain) == 0
        wrapped()
        assert calls == ["a in", "b in", "body", "b out", "a out"]

    def test_rejects_non_callable(self):
        with pytest.raises(TypeError, match="plugin must be callable"):
            PluginChain().enqueue("not a plugin")


class TestGroupPlugins:
    def test_plugins_apply_to_next_group_only(self, harness):
        runs = []

        @next_test_plugin
        def twice(next_step):
            next_step()
            next_step()

        testgroup.test("twice", lambda: runs.append("first") or pass_())
        testgroup.test("once", lambda: runs.append("second") or pass_())

        assert runs == ["first", "first", "second"]
        assert len(plugin_chain()) == 0

    def test_skipped_group_still_consumes_plugins(self, harness):
        calls = []
        next_test_plugin(lambda next_step: calls.append("plugin"))
        testgroup.skip_next_test("skipped")

        assert testgroup.test("skipped", pass_) is None
        assert len(plugin_chain()) == 0

        testgroup.test("later", pass_)
        assert calls == []

    def test_plugin_runs_inside_interception(self):
        def announce(next_step):
            ok(True, "from plugin")
            next_step()

        next_test_plugin(announce)
        runner = GroupRunner("plugged", lambda: ok(True, "from body"), mute=True)
        runner.run()

        assert [s.name for s in runner.subtests()] == ["from plugin", "from body"]

    def test_plugin_that_skips_body_leaves_group_empty(self):
        next_test_plugin(lambda next_step: None)
        runner = GroupRunner("never", lambda: ok(True), mute=True)
        runner.run()

        assert runner.subtests() == []
        assert runner.compute_verdict() == (False, None)

    def test_plugin_exception_is_contained(self):
        def broken(next_step):
            raise RuntimeError("plugin broke")

        next_test_plugin(broken)
        runner = GroupRunner("broken", lambda: ok(True), mute=True)
        runner.run()

        assert runner.got_exception()
        assert str(runner.exception()) == "plugin broke"
