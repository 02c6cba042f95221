"""
Request throttling using slowapi.

Login lockout is handled separately by ``services.rate_limiter``; this
module only caps how often expensive endpoints can be hit.
"""

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from ..core.config import get_settings


def get_user_id_or_ip(request: Request) -> str:
    """
    Key requests by the authenticated user, falling back to the client IP.

    ``request.state.user`` is set by the ``get_current_user`` dependency.
    """
    user = getattr(request.state, "user", None)
    if user is not None and getattr(user, "user_id", None):
        return f"user:{user.user_id}"
    return f"ip:{get_remote_address(request)}"


def analyze_limit() -> str:
    return get_settings().analyze_rate_limit


limiter = Limiter(
    key_func=get_user_id_or_ip,
    default_limits=[],
    storage_uri="memory://",
    strategy="fixed-window",
    enabled=get_settings().rate_limit_enabled,
)
