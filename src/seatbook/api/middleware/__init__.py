from .correlation import CorrelationIdMiddleware
from .security_headers import SecurityHeadersMiddleware

__all__ = ["CorrelationIdMiddleware", "SecurityHeadersMiddleware"]
