from __future__ import annotations

import re
import unicodedata
from typing import Optional


_TWITTER_RE = re.compile(
    r"^(?:@|%40)?(?P<bare>[a-z0-9_]+)$"
    r"|^(?:https?://)?(?:www\.)?(?:x\.com|twitter\.com)/(?:#!/)?@?(?P<path>[a-z0-9_]+)(?:[/?#].*)?$",
    re.IGNORECASE,
)

_FACEBOOK_GROUP_RE = re.compile(
    r"^(?:https?://)?(?:www\.)?facebook\.com/groups/([^/?#]+)(?:[/?#].*)?$", re.IGNORECASE
)
_FACEBOOK_PROFILE_RE = re.compile(
    r"^(?:https?://)?(?:www\.)?facebook\.com/([^/?#]+)(?:[/?#].*)?$", re.IGNORECASE
)
_FACEBOOK_NAME_RE = re.compile(r"^[a-zA-Z0-9._-]+$")

_INSTAGRAM_URL_RE = re.compile(
    r"(?:https?://)?(?:www\.)?instagram\.com/([a-zA-Z0-9._]+)/?", re.IGNORECASE
)
_INSTAGRAM_HANDLE_RE = re.compile(r"^@?([a-zA-Z0-9._]+)$")

# Word splitting compatible with lodash's kebabCase: acronyms, capitalized
# words, lowercase runs and digit runs are separate words.
_WORD_RE = re.compile(r"[A-Z]{2,}(?=[A-Z][a-z]|[^A-Za-z]|$)|[A-Z]?[a-z]+|[A-Z]+|[0-9]+")


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    cleaned = str(value).strip()
    return cleaned or None


def transform_twitter_url(twitter: Optional[str]) -> Optional[str]:
    """
    Canonicalize a Twitter/X reference to ``https://x.com/<handle>``.

    Examples:
    - "@foo" -> "https://x.com/foo"
    - "https://www.twitter.com/foo/" -> "https://x.com/foo"
    - "not a handle!!" -> None
    """
    cleaned = _clean(twitter)
    if not cleaned:
        return None

    match = _TWITTER_RE.match(cleaned)
    if not match:
        return None

    handle = match.group("bare") or match.group("path")
    return f"https://x.com/{handle}" if handle else None


def transform_facebook_url(facebook: Optional[str]) -> Optional[str]:
    """
    Canonicalize a Facebook page or group URL.

    ``profile.php?id=...`` links are returned unchanged since the id lives in
    the query string. Anything that is not a facebook.com URL yields None.
    """
    cleaned = _clean(facebook)
    if not cleaned:
        return None

    group_match = _FACEBOOK_GROUP_RE.match(cleaned)
    if group_match:
        group_name = group_match.group(1)
        if _FACEBOOK_NAME_RE.match(group_name):
            return f"https://facebook.com/groups/{group_name}"
        return None

    profile_match = _FACEBOOK_PROFILE_RE.match(cleaned)
    if profile_match:
        handle = profile_match.group(1)
        if handle.startswith("profile.php"):
            return cleaned
        if _FACEBOOK_NAME_RE.match(handle):
            return f"https://facebook.com/{handle}"

    return None


def transform_instagram_url(instagram: Optional[str]) -> Optional[str]:
    cleaned = _clean(instagram)
    if not cleaned:
        return None

    url_match = _INSTAGRAM_URL_RE.search(cleaned)
    if url_match:
        return f"https://instagram.com/{url_match.group(1)}"

    handle_match = _INSTAGRAM_HANDLE_RE.match(cleaned)
    if handle_match:
        return f"https://instagram.com/{handle_match.group(1)}"

    return None


def normalize_email(email: Optional[str]) -> Optional[str]:
    """
    Keep an email only when it looks like one.

    Rules:
    - Trim whitespace
    - Return None if empty or missing an ``@``

    Case is preserved.
    """
    cleaned = _clean(email)
    if not cleaned or "@" not in cleaned:
        return None
    return cleaned


def kebab_case(value: Optional[str]) -> str:
    """URL-safe slug: "Nashville" -> "nashville", "The Wall" -> "the-wall", "F3 Nation" -> "f-3-nation"."""
    if not value:
        return ""
    decomposed = unicodedata.normalize("NFKD", str(value))
    ascii_only = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    ascii_only = ascii_only.replace("'", "").replace("’", "")
    return "-".join(word.lower() for word in _WORD_RE.findall(ascii_only))
