import pytest

from corolisp.interpreter import Interpreter
from corolisp.types.coroutine_fn import Coroutine
from corolisp.types.errors import (
    CoroArityError, CoroInvalidSymbol, CoroTranslationError, CoroTypeError, CoroUnboundSymbol,
)
from corolisp.types.lambda_fn import Closure
from corolisp.types.nil import Nil
from corolisp.types.symbol import Symbol

S = Symbol


@pytest.fixture
def interp():
    return Interpreter()


@pytest.mark.parametrize(
    "source,expected",
    [
        ("", Nil),
        ("(+ 1 2 3)", 6),
        ("(- 10 4 1)", 5),
        ("(- 3)", -3),
        ("(* 2 3 4)", 24),
        ("(/ 8 2)", 4),
        ("(mod 7 3)", 1),
        ("(= 1 1 1)", True),
        ("(/= 1 2)", True),
        ("(< 1 2 3)", True),
        ("(>= 3 3 4)", False),
        ("(not nil)", True),
        ("(not 0)", False),
        ("(eq 'a 'a)", True),
        ("(eq '(1) '(1))", False),
        ("(list 1 2)", [1, 2]),
        ("(car '(1 2))", 1),
        ("(cdr '(1 2))", [2]),
        ("(cdr '(1))", Nil),
        ("(cons 0 '(1))", [0, 1]),
        ("(cons 0 nil)", [0]),
        ("(null nil)", True),
        ("(null '(1))", False),
        ("t", True),
        ("(if 0 'yes 'no)", S("yes")),
        ("(and 1 2)", 2),
        ("(and 1 nil 2)", Nil),
        ("(or nil 3)", 3),
        ("(cond ((= 1 2) 'a) ((+ 1 1)))", 2),
        ("(let ((x 1) (y 2)) (+ x y))", 3),
        ("(let* ((x 1) (y (+ x 1))) y)", 2),
        ("(prog1 1 2)", 1),
        ("(prog2 1 2 3)", 2),
        ("(funcall #'+ 1 2)", 3),
        ("(funcall (lambda (x) (* x x)) 5)", 25),
        ("((lambda (&optional a &rest r) (list a r)) 1 2 3)", [1, [2, 3]]),
    ]
)
def test_eval(interp, source, expected):
    assert interp.eval(source) == expected


def test_multiple_forms_return_a_list(interp):
    assert interp.eval("1 2 (+ 1 2)") == [1, 2, 3]


def test_define_and_defun(interp):
    assert interp.eval("(define x 10)") == S("x")
    interp.eval("(defun add-x (y) (+ x y))")
    assert isinstance(interp.env.lookup(S("add-x")), Closure)
    assert interp.eval("(add-x 5)") == 15


def test_setq_creates_globals(interp):
    interp.eval("(setq counter 1)")
    interp.eval("(let ((counter 5)) (setq counter 6))")
    assert interp.eval("counter") == 1


def test_closures_capture_their_scope(interp):
    interp.eval("""
        (defun make-counter ()
          (let ((n 0))
            (lambda () (setq n (+ n 1)))))
        (define c (make-counter))
    """)
    assert interp.eval("(funcall c) (funcall c)") == [1, 2]


def test_defmacro_then_use(interp):
    interp.eval("(defmacro swap-args (f a b) (f b a))")
    assert interp.eval("(swap-args - 1 10)") == 9


def test_while_and_builtin_macros(interp):
    assert interp.eval("""
        (let ((total 0))
          (dotimes (i 5) (incf total i))
          (unless (= total 0) (decf total))
          total)
    """) == 9


def test_print(interp, capsys):
    assert interp.eval('(print "a" 1 nil)') is Nil
    assert capsys.readouterr().out == "a 1 nil\n"


def test_defcoroutine_returns_coroutine(interp):
    coro = interp.eval("(defcoroutine c (x) x)")
    assert isinstance(coro, Coroutine)
    assert repr(coro) == "<coroutine c (x)>"


@pytest.mark.parametrize(
    "source,error",
    [
        ("undefined-name", CoroUnboundSymbol),
        ("(+ 1 'a)", CoroTypeError),
        ("(mod 1)", CoroArityError),
        ("((lambda (x) x))", CoroArityError),
        ("((lambda (x) x) 1 2)", CoroArityError),
        ("(1 2)", CoroTranslationError),
        ("(define 1 2)", CoroInvalidSymbol),
        ("(define x)", CoroArityError),
        ("(defcoroutine c)", CoroArityError),
        ("(catch 'a 1)", CoroTranslationError),
        ("(funcall 5)", CoroTypeError),
    ]
)
def test_errors(interp, source, error):
    with pytest.raises(error):
        interp.eval(source)


def test_expand_body_forms(interp):
    expansion = interp.expand("(+ 1 2)")
    assert expansion[0] == S("lambda")
    (k,) = expansion[1]
    assert k.is_generated
