"""HTTP middleware and exception handlers."""
from .correlation import CorrelationIDMiddleware
from .error_handler import register_exception_handlers

__all__ = ["CorrelationIDMiddleware", "register_exception_handlers"]
