from __future__ import annotations
import os
from dataclasses import dataclass

_FALSE_WORDS = {"0", "false", "no", "off"}

# Defaults
_DEFAULT_POLL_INTERVAL = 0.01


def flag_from_env(var: str, default: bool) -> bool:
    raw = os.environ.get(var)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() not in _FALSE_WORDS


def float_from_env(var: str, default: float) -> float:
    raw = os.environ.get(var)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{var} must be a number of seconds, got {raw!r}") from None


@dataclass(frozen=True)
class CompileOptions:
    """Options threaded into the CPS engine.

    atomicity_check: use the atomic fast path for subtrees proven free of
    coroutine calls. Disabling it only changes the shape of generated code.
    """
    atomicity_check: bool = True


def default_options() -> CompileOptions:
    return CompileOptions(
        atomicity_check=flag_from_env("COROLISP_ATOMICITY_CHECK", True),
    )


def poll_interval() -> float:
    """Seconds between polls in blocking_call."""
    return float_from_env("COROLISP_POLL_INTERVAL", _DEFAULT_POLL_INTERVAL)
