import pytest

from corolisp.builtin.macro_builtin import register
from corolisp.reader.parser import read_all
from corolisp.types.environment import Environment
from corolisp.types.errors import CoroArityError, CoroTypeError
from corolisp.types.macro_environment import MacroEnvironment, TemplateMacro
from corolisp.types.symbol import GENSYM_MARKER, Symbol

S = Symbol


def read(source):
    return read_all(source)[0]


# -------------------------
# Fixtures
# -------------------------

@pytest.fixture
def base_env():
    """Base environment for macros"""
    return Environment()


@pytest.fixture
def macro_env():
    """Macro environment fixture with the builtin macros"""
    macros = MacroEnvironment()
    register(macros)
    return macros


# -------------------------
# Template macros
# -------------------------

def test_simple_template_expansion(macro_env, base_env):
    """(inc x) => (+ x 1)"""
    macro_env.define_template(S("inc"), [S("x")], read("(+ x 1)"))
    assert macro_env.macro_expand_head(read("(inc 5)"), base_env) == read("(+ 5 1)")


def test_nested_macro_expansion(macro_env, base_env):
    """(wrapinc y) -> (inc y); (inc x) -> (+ x 1)"""
    macro_env.define_template(S("inc"), [S("x")], read("(+ x 1)"))
    macro_env.define_template(S("wrapinc"), [S("y")], read("(inc y)"))
    assert macro_env.macro_expand_all(read("(wrapinc 10)"), base_env) == read("(+ 10 1)")


def test_body_parameter_is_spliced(macro_env):
    macro_env.define_template(S("twice"), [S("&body"), S("body")], read("(progn body body)"))
    expanded = macro_env.macro_expand_all(read("(twice (f) (g))"))
    assert expanded == read("(progn (f) (g) (f) (g))")


def test_rest_parameter_alone_is_a_list(macro_env):
    macro_env.define_template(S("args-of"), [S("&rest"), S("xs")], S("xs"))
    assert macro_env.expand_1(read("(args-of 1 2)")) == [1, 2]


def test_template_arity_check(macro_env, base_env):
    macro_env.define_template(S("inc"), [S("x")], read("(+ x 1)"))
    with pytest.raises(CoroArityError):
        macro_env.macro_expand_head(read("(inc 1 2)"), base_env)
    with pytest.raises(CoroArityError):
        macro_env.macro_expand_head(read("(inc)"), base_env)


def test_malformed_template_lambda_list():
    with pytest.raises(CoroArityError):
        TemplateMacro(S("bad"), [S("&rest")], [])


def test_macro_recursive_nested_lists(macro_env):
    macro_env.define_template(S("inc"), [S("x")], read("(+ x 1)"))
    expanded = macro_env.macro_expand_all(read("((inc 1) (inc 2))"))
    assert expanded == read("((+ 1 1) (+ 2 1))")


def test_quoted_data_is_not_expanded(macro_env):
    macro_env.define_template(S("inc"), [S("x")], read("(+ x 1)"))
    assert macro_env.macro_expand_all(read("'(inc 1)")) == read("'(inc 1)")
    assert macro_env.macro_expand_all(read("#'inc")) == read("#'inc")


def test_function_lambda_body_is_expanded(macro_env):
    macro_env.define_template(S("inc"), [S("x")], read("(+ x 1)"))
    expanded = macro_env.macro_expand_all(read("#'(lambda (y) (inc y))"))
    assert expanded == read("#'(lambda (y) (+ y 1))")


def test_python_transformer_receives_args_and_env(macro_env, base_env):
    seen = []

    def swap(args, env):
        seen.append(env)
        return [args[1], args[0]]

    macro_env.define_macro(S("swap"), swap)
    assert macro_env.expand_1(read("(swap a b)"), base_env) == read("(b a)")
    assert seen == [base_env]


def test_non_macro_form_is_unchanged(macro_env):
    form = read("(f 1 2)")
    assert macro_env.expand_1(form) == form
    assert not macro_env.is_macro(S("f"))
    assert not macro_env.is_macro(1)


# -------------------------
# Builtin macros
# -------------------------

@pytest.mark.parametrize(
    "source,expected",
    [
        ("(when c a b)", "(if c (progn a b))"),
        ("(unless c a b)", "(if c () a b)"),
        ("(incf x)", "(setq x (+ x 1))"),
        ("(incf x 5)", "(setq x (+ x 5))"),
        ("(decf x)", "(setq x (- x 1))"),
        ("(push v xs)", "(setq xs (cons v xs))"),
        ("(defun f (a) (g a))", "(define f (lambda (a) (g a)))"),
    ]
)
def test_builtin_macros(macro_env, source, expected):
    assert macro_env.macro_expand_all(read(source)) == read(expected)


def test_dotimes_uses_a_fresh_limit(macro_env):
    expanded = macro_env.macro_expand_all(read("(dotimes (i n) (f i))"))
    head, bindings, loop = expanded
    assert head == S("let*")
    (limit, count), (var, start) = bindings
    assert limit.id.startswith(GENSYM_MARKER)
    assert (count, var, start) == (S("n"), S("i"), 0)
    assert loop == [S("while"), [S("<"), S("i"), limit],
                    read("(f i)"), read("(setq i (+ i 1))")]


@pytest.mark.parametrize("source", ["(incf 1)", "(push 1 (f))", "(dotimes (1 2))"])
def test_builtin_macro_type_errors(macro_env, source):
    with pytest.raises(CoroTypeError):
        macro_env.macro_expand_all(read(source))


@pytest.mark.parametrize("source", ["(when)", "(incf)", "(push 1)", "(dotimes)", "(defun f)"])
def test_builtin_macro_arity_errors(macro_env, source):
    with pytest.raises(CoroArityError):
        macro_env.macro_expand_all(read(source))


# -------------------------
# Gensym uniqueness
# -------------------------

def test_gen_sym_uniqueness(macro_env):
    s1 = macro_env.gen_sym()
    s2 = macro_env.gen_sym()
    s3 = macro_env.gen_sym("X")
    assert s1 != s2
    assert s3.id.startswith(GENSYM_MARKER + "X")
    assert all(s.is_generated for s in (s1, s2, s3))
    assert not S("G1").is_generated
