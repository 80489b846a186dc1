"""Identifier helpers."""

import time
from uuid import uuid4


def new_txn_id() -> str:
    """Matrix transaction id, unique per request made by this process."""
    return f"slack_{int(time.time() * 1000)}_{uuid4().hex[:12]}"
