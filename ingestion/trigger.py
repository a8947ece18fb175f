"""Framework-agnostic handler for the POST /api/ingest trigger.

The HTTP layer passes in the raw ``Authorization`` header and serializes the
returned ``(status_code, body)`` pair as JSON.
"""

from __future__ import annotations

import hmac
import logging
import re
from typing import Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

_BEARER_RE = re.compile(r"^bearer(?:\s+|$)", re.IGNORECASE)


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    token = _BEARER_RE.sub("", authorization.strip())
    return token or None


def is_authorized(authorization: Optional[str], secret: Optional[str]) -> bool:
    token = extract_bearer_token(authorization)
    if not secret or not token:
        return False
    return hmac.compare_digest(token.encode(), secret.strip().encode())


def handle_ingest_trigger(
    authorization: Optional[str],
    secret: Optional[str],
    build_pipeline: Callable[[], object],
    force: bool = False,
) -> Tuple[int, Dict]:
    if not is_authorized(authorization, secret):
        logger.warning("[TRIGGER] Rejected ingest trigger with missing or invalid token")
        return 401, {"error": "Unauthorized"}

    try:
        pipeline = build_pipeline()
    except Exception as e:
        logger.exception("[TRIGGER] Could not build pipeline")
        return 500, {"status": "error", "message": str(e)}

    result = pipeline.run(force=force)
    status_code = 500 if result.status == "error" else 200
    return status_code, result.to_dict()
