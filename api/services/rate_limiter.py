"""
Rate limiting and request gating for the API.

Provides the shared Limiter used by the route modules and the shared-token
check for scan requests.
"""

import hmac
from typing import Optional

from fastapi import Header, HTTPException, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from cardscan.config import SCAN_RATE_LIMIT

# Keyed by client IP
limiter = Limiter(key_func=get_remote_address)

scan_rate_limit = SCAN_RATE_LIMIT


async def verify_api_token(request: Request, x_api_token: Optional[str] = Header(None)):
    """
    Reject requests without the shared X-Api-Token when one is configured.

    The expected token lives on app.state.api_token; an empty token
    disables the check.
    """
    expected = getattr(request.app.state, 'api_token', "")
    if not expected:
        return
    if not x_api_token or not hmac.compare_digest(x_api_token, expected):
        raise HTTPException(status_code=401, detail="Unauthorized")
