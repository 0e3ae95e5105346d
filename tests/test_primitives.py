import asyncio

import pytest

from corolisp.interpreter import Interpreter
from corolisp.primitives import Scheduler, Stream, blocking_call, read, wait
from corolisp.runtime_context import get_scheduler
from corolisp.types.errors import CoroArityError, CoroMisuseError, CoroResourceConflictError
from corolisp.types.nil import Nil
from corolisp.types.symbol import Symbol

S = Symbol


def test_wait_fires_only_after_driving_the_loop():
    result = []
    wait(0, result.append)
    assert result == []
    get_scheduler().run_for(0.01)
    assert result == [Nil]


def test_wait_respects_the_delay():
    scheduler = get_scheduler()
    result = []
    wait(10, result.append)
    scheduler.run_for(0.01)
    assert result == []


def test_explicit_scheduler():
    scheduler = Scheduler(asyncio.new_event_loop())
    try:
        result = []
        wait(0, result.append, scheduler=scheduler)
        get_scheduler().run_for(0.01)
        assert result == []
        scheduler.run_for(0.01)
        assert result == [Nil]
    finally:
        scheduler.close()


def test_run_for_inside_the_loop_is_misuse():
    scheduler = get_scheduler()
    errors = []

    def nested():
        try:
            scheduler.run_for(0)
        except CoroMisuseError as exc:
            errors.append(exc)

    scheduler.schedule_once(0, nested)
    scheduler.run_for(0.01)
    assert len(errors) == 1


def test_read_is_one_shot():
    stream = Stream("input")
    result = []
    read(stream, result.append)
    assert stream.has_callback()
    stream.feed("first")
    stream.feed("second")
    assert result == ["first"]
    assert not stream.has_callback()


def test_read_conflict_keeps_existing_callback():
    stream = Stream("input")
    first, second = [], []
    read(stream, first.append)
    with pytest.raises(CoroResourceConflictError):
        read(stream, second.append)
    stream.feed("data")
    assert first == ["data"]
    assert second == []


def test_read_can_be_reinstalled_from_its_continuation():
    stream = Stream("input")
    chunks = []

    def again(data):
        chunks.append(data)
        if len(chunks) < 3:
            read(stream, again)

    read(stream, again)
    for chunk in ("a", "b", "c", "d"):
        stream.feed(chunk)
    assert chunks == ["a", "b", "c"]


def test_blocking_call_returns_the_result():
    def invoker(k):
        wait(0, lambda _: k(42))

    assert blocking_call(invoker, interval=0.001) == 42


def test_blocking_call_may_not_nest():
    def invoker(k):
        k(blocking_call(lambda inner: inner(1), interval=0.001))

    with pytest.raises(CoroMisuseError):
        blocking_call(invoker, interval=0.001)
    # The guard is released after the failure.
    assert blocking_call(lambda k: k("ok"), interval=0.001) == "ok"


def test_blocking_call_uses_configured_interval(monkeypatch):
    polls = []
    scheduler = get_scheduler()
    original = scheduler.poll

    def recording_poll(interval):
        polls.append(interval)
        original(interval)

    monkeypatch.setattr(scheduler, "poll", recording_poll)
    monkeypatch.setenv("COROLISP_POLL_INTERVAL", "0.002")
    assert blocking_call(lambda k: wait(0, k)) is Nil
    assert polls and set(polls) == {0.002}


# -------------------------
# From Lisp
# -------------------------

def test_read_stream_builtin_in_a_coroutine():
    interp = Interpreter()
    stream = Stream("lines")
    interp.env.define(S("lines"), stream)
    interp.eval("""
        (defcoroutine two-lines (s)
          (let* ((a (coroutine-call read-stream s))
                 (b (coroutine-call read-stream s)))
            (list a b)))
    """)
    result = []
    interp.env.lookup(S("two-lines"))(stream, result.append)
    stream.feed("one")
    assert result == []
    stream.feed("two")
    assert result == [["one", "two"]]


def test_blocking_call_builtin():
    interp = Interpreter()
    interp.eval("""
        (defcoroutine slow-add (a b)
          (coroutine-call wait 0)
          (+ a b))
    """)
    assert interp.eval("(blocking-call slow-add 2 3)") == 5


def test_suspension_builtin_without_continuation():
    with pytest.raises(CoroArityError, match="coroutine-call wait"):
        Interpreter().eval("(wait 1)")
