from __future__ import annotations
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from corolisp.ambient import AmbientService
    from corolisp.primitives import Scheduler

# NOTE: process-global, like the rest of the single-threaded runtime.
# Resumption happens on the host's event loop thread only.
_ambient: Optional["AmbientService"] = None
_scheduler: Optional["Scheduler"] = None


def set_ambient(service: Optional["AmbientService"]) -> None:
    global _ambient
    _ambient = service


def get_ambient() -> "AmbientService":
    global _ambient
    if _ambient is None:
        from corolisp.ambient import Cursor
        _ambient = Cursor()
    return _ambient


def set_scheduler(scheduler: Optional["Scheduler"]) -> None:
    global _scheduler
    _scheduler = scheduler


def get_scheduler() -> "Scheduler":
    global _scheduler
    if _scheduler is None:
        from corolisp.primitives import Scheduler
        _scheduler = Scheduler()
    return _scheduler
