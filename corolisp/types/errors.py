

class CoroError(Exception):
    """ Base class for all corolisp errors"""
    pass

class CoroInvalidSymbol(CoroError):
    """ Raised when something other than a Symbol is used as a name"""
    pass

class CoroUnboundSymbol(CoroError):
    """ Raised when a symbol is used before it is bound"""
    pass

class CoroSyntaxError(CoroError):
    """ Raised when the reader meets malformed source text"""

class CoroArityError(CoroError):
    """ Raised when the number of arguments passed to a function is incorrect"""

class CoroTypeError(CoroError):
    """ Raised when the types of arguments passed to a function are incorrect"""

class CoroTranslationError(CoroError):
    """ Raised at compile time when a form is outside the supported form set.

    Fatal for the coroutine being defined: no partial coroutine is registered.
    """

class CoroMisuseError(CoroError):
    """ Raised when a coroutine calling construct is used outside a coroutine body"""

class CoroResourceConflictError(CoroError):
    """ Raised when a one-shot stream read finds a callback already installed"""
