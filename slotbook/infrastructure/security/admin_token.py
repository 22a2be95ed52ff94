from __future__ import annotations

import hmac
import logging


logger = logging.getLogger(__name__)


def verify_admin_token(token_header: str | None, expected_token: str | None, env: str) -> bool:
    if not expected_token:
        if env.lower() in {"dev", "local"}:
            logger.warning("ADMIN_API_TOKEN not configured; accepting admin call in dev mode")
            return True
        logger.error("ADMIN_API_TOKEN not configured; rejecting admin call")
        return False

    if not token_header:
        return False

    return hmac.compare_digest(token_header.strip().encode("utf-8"), expected_token.encode("utf-8"))
