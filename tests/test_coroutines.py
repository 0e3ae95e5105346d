import pytest

from corolisp.builtin.env_builtin import register
from corolisp.builtin.macro_builtin import register as register_macros
from corolisp.coroutine import CoroutineRegistry, coroutine_call, define_coroutine, get_registry
from corolisp.interpreter import Interpreter
from corolisp.reader.parser import read_all
from corolisp.runtime_context import get_scheduler
from corolisp.types.coroutine_fn import Coroutine
from corolisp.types.environment import Environment
from corolisp.types.errors import CoroMisuseError, CoroTranslationError, CoroUnboundSymbol
from corolisp.types.macro_environment import MacroEnvironment
from corolisp.types.nil import Nil
from corolisp.types.symbol import Symbol

S = Symbol


@pytest.fixture
def interp():
    return Interpreter()


@pytest.fixture
def registry():
    return CoroutineRegistry()


@pytest.fixture
def env():
    env = Environment()
    register(env)
    return env


def test_sum_then_double(interp):
    coro = interp.eval("(defcoroutine sum-then-double (a b) (* 2 (+ a b)))")
    assert isinstance(coro, Coroutine)
    result = []
    coro(3, 4, result.append)
    assert result == [14]


def test_define_coroutine_python_api(env, registry):
    body = read_all("(let ((s (+ a b))) (* s 2))")
    coro = define_coroutine(S("sum-then-double"), [S("a"), S("b")], body,
                            env=env, registry=registry)
    result = []
    coro(3, 4, result.append)
    assert result == [14]
    assert env.lookup(S("sum-then-double")) is coro
    assert registry.get(S("sum-then-double")) is coro
    assert coro.expansion is not None


def test_wait_resumes_only_after_the_timer_fires(interp):
    coro = interp.eval("""
        (defcoroutine sleepy ()
          (coroutine-call wait 0)
          'woke)
    """)
    result = []
    coro(result.append)
    assert result == []
    get_scheduler().run_for(0.01)
    assert result == [S("woke")]


def test_coroutines_call_each_other(interp):
    interp.eval("""
        (defcoroutine add-later (x y)
          (coroutine-call wait 0)
          (+ x y))
        (defcoroutine total (xs)
          (let ((sum 0))
            (while xs
              (setq sum (coroutine-call add-later sum (car xs)))
              (setq xs (cdr xs)))
            sum))
    """)
    result = []
    interp.env.lookup(S("total"))([1, 2, 3, 4], result.append)
    assert result == []
    scheduler = get_scheduler()
    for _ in range(20):
        if result:
            break
        scheduler.run_for(0.005)
    assert result == [10]


def test_recursive_coroutine(interp):
    interp.eval("""
        (defcoroutine countdown (n acc)
          (if (= n 0)
              acc
              (coroutine-call countdown (- n 1) (cons n acc))))
    """)
    result = []
    interp.env.lookup(S("countdown"))(3, [], result.append)
    assert result == [[1, 2, 3]]


def test_body_macros_are_expanded_before_conversion(interp):
    interp.eval("""
        (defmacro twice-of (x) (* 2 x))
        (defcoroutine collect (n)
          (let ((out nil))
            (dotimes (i n)
              (when (> i 0) (push (twice-of i) out)))
            out))
    """)
    result = []
    interp.env.lookup(S("collect"))(4, result.append)
    assert result == [[6, 4, 2]]


def test_calling_coroutine_without_continuation_is_misuse(interp):
    coro = interp.eval("(defcoroutine one () 1)")
    with pytest.raises(CoroMisuseError):
        coro()
    with pytest.raises(CoroMisuseError):
        interp.eval("(funcall one)")


def test_plain_call_of_coroutine_is_a_translation_error(interp):
    interp.eval("(defcoroutine one () 1)")
    with pytest.raises(CoroTranslationError, match="one"):
        interp.eval("(defcoroutine two () (+ 1 (one)))")
    with pytest.raises(CoroTranslationError):
        interp.eval("(+ 1 (one))")
    assert not interp.registry.is_coroutine(S("two"))


def test_plain_recursive_call_is_rejected(interp):
    with pytest.raises(CoroTranslationError):
        interp.eval("(defcoroutine loop-forever () (loop-forever))")
    assert S("loop-forever") not in interp.registry
    with pytest.raises(CoroUnboundSymbol):
        interp.env.lookup(S("loop-forever"))


@pytest.mark.parametrize(
    "source",
    [
        "(defcoroutine bad () (catch 'x 1))",
        "(defcoroutine bad () (define y 1))",
        "(defcoroutine bad () (defun y () 1))",
        "(defcoroutine bad (&rest xs) xs)",
        "(defcoroutine bad (x x) x)",
        "(defcoroutine bad (1) 1)",
    ]
)
def test_failed_definition_leaves_nothing_behind(interp, source):
    with pytest.raises(CoroTranslationError):
        interp.eval(source)
    assert not interp.registry.is_coroutine(S("bad"))
    assert interp.env.find(S("bad")) is None


def test_failed_redefinition_keeps_the_previous_coroutine(interp):
    first = interp.eval("(defcoroutine c () 1)")
    with pytest.raises(CoroTranslationError):
        interp.eval("(defcoroutine c () (throw 'x 1))")
    assert interp.registry.get(S("c")) is first
    assert interp.env.lookup(S("c")) is first


def test_coroutine_call_outside_a_body_names_the_call(interp):
    with pytest.raises(CoroMisuseError, match=r"\(coroutine-call fetch 1 x\)"):
        interp.eval("(coroutine-call fetch 1 x)")


def test_python_coroutine_call_is_always_misuse():
    with pytest.raises(CoroMisuseError, match=r"\(coroutine-call fetch 1 \"url\"\)"):
        coroutine_call(S("fetch"), 1, "url")


def test_define_coroutine_uses_process_registry_by_default(env):
    name = S("process-wide-example")
    macros = MacroEnvironment()
    register_macros(macros)
    try:
        define_coroutine(name, [], read_all("(when t 1)"), env=env, macros=macros)
        assert get_registry().is_coroutine(name)
    finally:
        get_registry().discard(name)


def test_expand_returns_cps_code_without_defining(interp):
    expansion = interp.expand("(defcoroutine f (x) (coroutine-call wait x) nil)")
    assert expansion[0] == S("lambda")
    params = expansion[1]
    assert params[0] == S("x") and params[1].is_generated
    assert S("f") not in interp.registry
    assert interp.env.find(S("f")) is None


def test_coroutine_returning_nil_after_wait(interp):
    coro = interp.eval("(defcoroutine f () (coroutine-call wait 0) nil)")
    result = []
    coro(result.append)
    get_scheduler().run_for(0.01)
    assert result == [Nil]
