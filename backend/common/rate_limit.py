"""Rate limiting configuration using slowapi.

The module-level Limiter is wired into the app in main.py; routers import
it to tighten limits on expensive endpoints (bulk invoice generation,
trainer-set audits) with ``@limiter.limit(...)``.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from backend.config import settings

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.RATE_LIMIT_DEFAULT],
)

# Bulk / whole-table operations
BULK_OPERATION_LIMIT = "10/minute"
