"""Utility helper functions for the coordinator."""

from datetime import datetime, timezone
from typing import Optional

from coordinator import config


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()


def gateway_url(content_identifier: Optional[str]) -> Optional[str]:
    """
    Build the public gateway URL for a content identifier.

    Returns:
        '{GATEWAY_URL}/ipfs/{cid}' or None when the identifier is not known yet
    """
    if not content_identifier:
        return None
    return f"{config.GATEWAY_URL}/ipfs/{content_identifier}"
