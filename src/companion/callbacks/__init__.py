"""External callback parsing, state validation and routing.

The router lives in :mod:`companion.callbacks.router`; it depends on the
panel registry, which in turn uses the validator exported here.
"""

from .request import CallbackRequest, CallbackRoute
from .validator import AuthStateValidator

__all__ = ["AuthStateValidator", "CallbackRequest", "CallbackRoute"]
