import asyncio

from hooktest import RunnerConfig, Suite, UnitStatus
from hooktest.core.models import UnitKind


def test_hooks_wrap_concurrent_tests() -> None:
    suite = Suite("scenario")
    events = []
    gate = {}

    @suite.before
    def h1(t) -> None:
        gate["t2_started"] = asyncio.Event()
        events.append("H1")

    @suite("T1")
    async def t1(t) -> None:
        events.append("T1 start")
        await asyncio.wait_for(gate["t2_started"].wait(), 1)
        t.is_(1, 1)
        t.truthy("yes")
        events.append("T1 end")

    @suite("T2")
    async def t2(t) -> None:
        t.plan(1)
        events.append("T2 start")
        gate["t2_started"].set()
        t.deep_equal({"a": 1}, {"a": 1})
        events.append("T2 end")

    @suite.after_each
    def h2(t) -> None:
        events.append(t.title)

    @suite.after
    def h3(t) -> None:
        events.append("H3")

    result = suite.run()

    assert result.passed == 2
    assert result.failed == 0
    assert result.passed_assertions == 3
    assert result.failures == []
    assert events[0] == "H1"
    assert events[-1] == "H3"
    for title in ("T1", "T2"):
        hook_title = f'after_each hook for "{title}"'
        assert events.count(hook_title) == 1
        assert events.index(hook_title) > events.index(f"{title} end")
    assert events.index("T2 start") < events.index("T1 end")


def test_before_failure_stops_tests_but_always_hooks_run(suite: Suite) -> None:
    events = []
    suite.before("boom", lambda t: t.fail())
    suite("never", lambda t: events.append("test"))
    suite.after("regular", lambda t: events.append("after"))
    suite.after.always("cleanup", lambda t: events.append("always"))

    result = suite.run()
    assert events == ["always"]
    assert result.tests == []
    assert result.hooks_failed == 1
    assert not result.ok


def test_before_each_failure_marks_the_test_failed(suite: Suite) -> None:
    events = []

    @suite.before_each
    def guard(t) -> None:
        if t.title.endswith('"bad"'):
            raise RuntimeError("setup broke")

    suite("good", lambda t: events.append("good"))
    suite("bad", lambda t: events.append("bad"))
    suite.after_each.always("teardown", lambda t: events.append(t.title))

    result = suite.run()
    assert "bad" not in events
    assert result.get("good").passed
    bad = result.get("bad")
    assert bad.failed
    assert bad.failures[0].kind == "HookFailure"
    assert 'teardown for "bad"' in events
    hook = result.get('before_each hook for "bad"')
    assert hook.kind is UnitKind.HOOK
    assert hook.failures[0].kind == "UncaughtException"


def test_after_hooks_are_skipped_when_no_test_started(suite: Suite) -> None:
    events = []
    suite.before_each("fails", lambda t: t.fail())
    suite("only test", lambda t: None)
    suite.after("regular", lambda t: events.append("after"))
    suite.after.always("always", lambda t: events.append("always"))
    suite.run()
    assert events == ["always"]


def test_after_each_failure_only_lets_always_hooks_through(suite: Suite) -> None:
    events = []
    suite("test", lambda t: t.pass_())
    suite.after_each("first", lambda t: t.fail())
    suite.after_each("second", lambda t: events.append("second"))
    suite.after_each.always("third", lambda t: events.append("third"))
    result = suite.run()
    assert events == ["third"]
    assert result.get("test").passed
    assert result.hooks_failed == 1


def test_context_flows_from_before_and_is_isolated_per_test(suite: Suite) -> None:
    seen = {}

    @suite.before
    def seed(t) -> None:
        t.context["items"] = ["base"]

    @suite.before_each
    def per_test(t) -> None:
        t.context["items"].append("each")

    @suite("first")
    def first(t) -> None:
        t.context["items"].append("first")
        seen["first"] = list(t.context["items"])

    @suite("second")
    def second(t) -> None:
        seen["second"] = list(t.context["items"])

    @suite.after_each
    def check(t) -> None:
        seen.setdefault("after_each", []).append(list(t.context["items"]))

    @suite.after
    def final(t) -> None:
        seen["after"] = list(t.context["items"])

    suite.run()
    assert seen["first"] == ["base", "each", "first"]
    assert seen["second"] == ["base", "each"]
    assert ["base", "each", "first"] in seen["after_each"]
    assert seen["after"] == ["base"]


def test_serial_tests_never_overlap_and_keep_order(suite: Suite) -> None:
    order = []
    active = {"now": 0, "max": 0}

    def serial_body(name):
        async def body(t) -> None:
            active["now"] += 1
            active["max"] = max(active["max"], active["now"])
            order.append(name)
            await asyncio.sleep(0.01)
            active["now"] -= 1
            t.pass_()

        return body

    for name in ("s1", "s2", "s3"):
        suite.serial(name, serial_body(name))
    result = suite.run()
    assert result.passed == 3
    assert order == ["s1", "s2", "s3"]
    assert active["max"] == 1


def test_config_serial_and_concurrency_limit(suite: Suite) -> None:
    active = {"now": 0, "max": 0}

    async def body(t) -> None:
        active["now"] += 1
        active["max"] = max(active["max"], active["now"])
        await asyncio.sleep(0.01)
        active["now"] -= 1

    for name in ("a", "b", "c"):
        suite(name, body)
    suite.run(RunnerConfig(concurrency=1))
    assert active["max"] == 1
    active["max"] = 0
    suite.run(RunnerConfig(serial=True))
    assert active["max"] == 1
    active["max"] = 0
    suite.run()
    assert active["max"] == 3


def test_assertion_failures_do_not_stop_the_test(suite: Suite) -> None:
    reached = []

    @suite("keeps going")
    def body(t) -> None:
        t.is_(1, 2)
        t.true(False)
        reached.append(True)

    result = suite.run()
    unit = result.get("keeps going")
    assert reached == [True]
    assert unit.failed
    assert [record.assertion for record in unit.failures] == ["is", "true"]
    assert unit.assertions.failed == 2


def test_uncaught_exception_is_recorded(suite: Suite) -> None:
    @suite("raises")
    def body(t) -> None:
        t.pass_()
        raise KeyError("missing")

    unit = suite.run().get("raises")
    assert unit.failed
    assert unit.failures[0].kind == "UncaughtException"
    assert unit.failures[0].message.startswith("KeyError")
    assert unit.assertions.passed == 1


def test_body_timeout_error_is_an_uncaught_exception(suite: Suite) -> None:
    @suite("async wait_for")
    async def async_body(t) -> None:
        t.pass_()
        await asyncio.wait_for(asyncio.sleep(1), 0.01)

    @suite("sync raise")
    def sync_body(t) -> None:
        t.pass_()
        raise TimeoutError("upstream")

    result = suite.run(RunnerConfig(timeout=5))
    for title in ("async wait_for", "sync raise"):
        unit = result.get(title)
        assert [record.kind for record in unit.failures] == ["UncaughtException"]
        assert unit.failures[0].message.startswith("TimeoutError")
        assert unit.assertions.passed == 1


def test_plan_mismatch_and_plan_twice(suite: Suite) -> None:
    @suite("short")
    def short(t) -> None:
        t.plan(2)
        t.pass_()

    @suite("exact with failure")
    def exact(t) -> None:
        t.plan(1)
        t.fail()

    @suite("twice")
    def twice(t) -> None:
        t.plan(1)
        t.plan(1)

    @suite("over")
    def over(t) -> None:
        t.plan(1)
        t.pass_()
        t.pass_()

    @suite("zero")
    def zero(t) -> None:
        t.plan(0)

    @suite("zero with one")
    def zero_with_one(t) -> None:
        t.plan(0)
        t.pass_()

    result = suite.run()
    assert [r.kind for r in result.get("short").failures] == ["PlanMismatch"]
    assert [r.kind for r in result.get("exact with failure").failures] == ["AssertionFailure"]
    assert [r.kind for r in result.get("twice").failures] == ["PlanAlreadySet"]
    over_unit = result.get("over")
    assert [r.kind for r in over_unit.failures] == ["PlanMismatch"]
    assert over_unit.assertions.passed == 2
    assert over_unit.assertions.planned == 1
    assert result.get("zero").passed
    assert [r.kind for r in result.get("zero with one").failures] == ["PlanMismatch"]


def test_failing_modifier_inverts_the_outcome(suite: Suite) -> None:
    suite.failing("known bug", lambda t: t.is_(1, 2))
    suite.failing("fixed bug", lambda t: t.is_(1, 1))
    result = suite.run()
    known = result.get("known bug")
    assert known.passed and known.expected_failure
    fixed = result.get("fixed bug")
    assert fixed.failed
    assert fixed.failures[0].kind == "ExpectedFailureButPassed"
    assert result.known_failures == 1


def test_skip_todo_and_only_reporting(suite: Suite) -> None:
    ran = []
    suite("runs", lambda t: ran.append("runs"))
    suite.skip("skipped", lambda t: ran.append("skipped"))
    suite.todo("later")
    result = suite.run()
    assert ran == ["runs"]
    assert result.get("skipped").status is UnitStatus.SKIPPED
    assert result.get("later").status is UnitStatus.TODO
    assert (result.passed, result.skipped, result.todo) == (1, 1, 1)


def test_only_runs_only_marked_tests(suite: Suite) -> None:
    ran = []
    suite.only("T3", lambda t: ran.append("T3"))
    suite("T4", lambda t: ran.append("T4"))
    result = suite.run()
    assert ran == ["T3"]
    assert [unit.title for unit in result.units] == ["T3"]


def test_no_tests_means_no_hooks(suite: Suite) -> None:
    events = []
    suite.before(lambda t: events.append("before"))
    suite.after.always(lambda t: events.append("after"))
    suite.todo("nothing yet")
    result = suite.run()
    assert events == []
    assert result.todo == 1


def test_cb_units_complete_through_end(suite: Suite) -> None:
    @suite.cb("callback")
    def callback(t) -> None:
        loop = asyncio.get_running_loop()
        t.pass_()
        loop.call_later(0.01, t.end)

    @suite.cb("twice")
    def twice(t) -> None:
        t.end()
        t.end()

    @suite.cb("with error")
    def with_error(t) -> None:
        t.end(ValueError("bad"))

    result = suite.run()
    assert result.get("callback").passed
    assert result.get("callback").assertions.passed == 1
    assert [r.kind for r in result.get("twice").failures] == ["MultipleCallbackEnd"]
    assert [r.kind for r in result.get("with error").failures] == ["CallbackError"]


def test_cb_never_called_discards_assertions(suite: Suite) -> None:
    @suite.cb("forgotten")
    def forgotten(t) -> None:
        t.pass_()

    unit = suite.run(RunnerConfig(timeout=0.05)).get("forgotten")
    assert unit.failed
    assert unit.failures[0].kind == "CallbackNeverCalled"
    assert unit.assertions.passed == 0


def test_end_is_unavailable_outside_cb_units(suite: Suite) -> None:
    suite("plain", lambda t: t.end)
    unit = suite.run().get("plain")
    assert unit.failures[0].kind == "UncaughtException"
    assert ".cb" in unit.failures[0].message


def test_cb_units_must_not_return_awaitables(suite: Suite) -> None:
    async def body(t) -> None:
        t.end()

    suite.cb("async cb", body)
    unit = suite.run(RunnerConfig(timeout=0.5)).get("async cb")
    assert unit.failed
    assert "must not return an awaitable" in unit.failures[0].message


def test_async_timeout_discards_assertions(suite: Suite) -> None:
    async def slow(t) -> None:
        t.pass_()
        await asyncio.sleep(5)

    suite("slow", slow)
    unit = suite.run(RunnerConfig(timeout=0.05)).get("slow")
    assert [r.kind for r in unit.failures] == ["UnitTimeout"]
    assert unit.assertions.passed == 0


def test_observable_return_values_are_drained(suite: Suite) -> None:
    consumed = []

    async def stream():
        for value in range(3):
            consumed.append(value)
            yield value

    async def broken():
        yield 1
        raise RuntimeError("stream broke")

    suite("streams", lambda t: stream())
    suite("breaks", lambda t: broken())
    result = suite.run()
    assert consumed == [0, 1, 2]
    assert result.get("streams").passed
    assert result.get("breaks").failures[0].kind == "UncaughtException"


def test_unawaited_async_assertions_are_settled(suite: Suite) -> None:
    async def reject() -> None:
        raise ValueError("late")

    @suite("fire and forget")
    def body(t) -> None:
        t.throws(reject, ValueError)
        t.not_throws(reject)

    unit = suite.run().get("fire and forget")
    assert unit.assertions.passed == 1
    assert unit.assertions.failed == 1


def test_fail_fast_stops_starting_tests(suite: Suite) -> None:
    ran = []
    suite("first", lambda t: (ran.append("first"), t.fail()))
    suite("second", lambda t: ran.append("second"))
    result = suite.run(RunnerConfig(fail_fast=True, serial=True))
    assert ran == ["first"]
    assert result.interrupted
    assert [unit.title for unit in result.tests] == ["first"]


def test_match_selects_tests_by_glob(suite: Suite) -> None:
    ran = []
    suite("db: insert", lambda t: ran.append("insert"))
    suite("db: delete", lambda t: ran.append("delete"))
    suite("http: get", lambda t: ran.append("get"))
    result = suite.run(RunnerConfig(match=("db:*",)))
    assert sorted(ran) == ["delete", "insert"]
    assert len(result.tests) == 2


def test_fail_without_assertions(suite: Suite) -> None:
    suite("empty", lambda t: None)
    assert suite.run().ok
    unit = suite.run(RunnerConfig(fail_without_assertions=True)).get("empty")
    assert unit.failures[0].kind == "NoAssertions"


def test_logs_are_kept_on_the_result(suite: Suite) -> None:
    @suite("logging")
    def body(t) -> None:
        t.log("hello")
        t.log("pair", 2)
        t.pass_()

    assert suite.run().get("logging").logs == ("hello", ("pair", 2))


def test_run_async_inside_a_running_loop(suite: Suite) -> None:
    suite("works", lambda t: t.pass_())

    async def scenario():
        return await suite.run_async()

    assert asyncio.run(scenario()).passed == 1
