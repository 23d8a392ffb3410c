"""
Recipient identifier parsing.

A human-entered recipient is one of:
- a bare account id (UUID)
- a handle with a leading "@"
- a bare handle

Resolution tries ById first (only when the text is UUID-shaped), then
ByHandle. Handles compare case-insensitively after trimming.
"""
import re
from enum import Enum
from typing import List, Tuple

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


class ResolutionStrategy(str, Enum):
    BY_ID = "by_id"
    BY_HANDLE = "by_handle"


def is_account_id(text: str) -> bool:
    return bool(UUID_PATTERN.match(text))


def normalize_account_id(text: str) -> str:
    return text.strip().lower()


def strip_handle_prefix(text: str) -> str:
    """Trim and drop one leading "@"."""
    handle = text.strip()
    if handle.startswith("@"):
        handle = handle[1:]
    return handle.strip()


def normalize_handle(text: str) -> str:
    return strip_handle_prefix(text).lower()


def resolution_plan(identifier: str) -> List[Tuple[ResolutionStrategy, str]]:
    """
    Ordered (strategy, lookup value) pairs to try for an identifier.

    Empty input yields an empty plan.
    """
    text = (identifier or "").strip()
    if not text:
        return []

    plan: List[Tuple[ResolutionStrategy, str]] = []
    if is_account_id(text):
        plan.append((ResolutionStrategy.BY_ID, normalize_account_id(text)))

    handle = normalize_handle(text)
    if handle:
        plan.append((ResolutionStrategy.BY_HANDLE, handle))
    return plan
