"""
Utility functions.
"""

import re
from typing import Iterable, Optional, Set, Union

from adwiser_feed.core.feed.errors import ConfigurationError


def sanitize_slug(text: str) -> str:
    """Convert text to URL-safe slug."""
    if not text:
        return ""
    slug = re.sub(r'[^\w\s-]', '', text.lower())
    slug = re.sub(r'[-\s]+', '-', slug)
    return slug.strip('-')


def parse_ip_list(value: Union[str, Iterable[str], None]) -> Set[str]:
    """
    Parse an IP whitelist.

    Accepts the settings-page text form (one address per line, commas also
    allowed) or a list of strings. Blank entries are dropped.

    Raises:
        ConfigurationError: Value is neither text nor a list
    """
    if value is None or value == '':
        return set()
    if isinstance(value, str):
        parts = re.split(r'[\s,;]+', value)
    elif isinstance(value, (list, tuple, set, frozenset)):
        parts = [str(v) for v in value if v is not None]
    else:
        raise ConfigurationError(f"Expected an address list, got {value!r}")
    return {p.strip() for p in parts if p and p.strip()}


def first_forwarded_ip(header_value: Optional[str]) -> Optional[str]:
    """First address of an X-Forwarded-For header (the original client)."""
    if not header_value:
        return None
    first = header_value.split(',')[0].strip()
    return first or None
