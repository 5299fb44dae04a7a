"""Social handle / URL normalization for stored profile targets."""

from __future__ import annotations

import re

from core.models import Network

_HANDLE_PATTERNS: dict[Network, re.Pattern[str]] = {
    Network.INSTAGRAM: re.compile(r"(?:instagram\.com/|instagr\.am/)([a-zA-Z0-9._]+)", re.IGNORECASE),
    Network.TIKTOK: re.compile(r"tiktok\.com/@?([a-zA-Z0-9._]+)", re.IGNORECASE),
    Network.FACEBOOK: re.compile(r"(?:facebook\.com/|fb\.com/)([a-zA-Z0-9.]+)", re.IGNORECASE),
}

_URL_TEMPLATES: dict[Network, str] = {
    Network.INSTAGRAM: "https://www.instagram.com/{handle}",
    Network.TIKTOK: "https://www.tiktok.com/@{handle}",
    Network.FACEBOOK: "https://www.facebook.com/{handle}",
}

# Instagram and TikTok handles are case-insensitive; Facebook page slugs are not.
_LOWERCASE = {Network.INSTAGRAM, Network.TIKTOK}


def normalize_social_handle(network: Network, raw: str | None) -> str:
    """
    Extract the bare username from a URL, "@handle" or plain handle.

    "https://www.instagram.com/TheMaxHotel/?hl=en" -> "themaxhotel"
    Returns "" when nothing usable is found.
    """
    if not raw:
        return ""
    cleaned = raw.strip().removeprefix("@")
    if not cleaned:
        return ""

    pattern = _HANDLE_PATTERNS.get(network)
    if pattern and ("://" in cleaned or "." in cleaned):
        match = pattern.search(cleaned)
        if match:
            cleaned = match.group(1)

    cleaned = cleaned.split("/")[0].split("?")[0].split("#")[0]
    if network in _LOWERCASE:
        cleaned = cleaned.lower()
    return cleaned


def normalize_social_url(network: Network, raw: str) -> str:
    """Full profile URL for storage; URLs that already carry a scheme are kept as-is."""
    trimmed = raw.strip()
    if trimmed.startswith(("http://", "https://")):
        return trimmed

    template = _URL_TEMPLATES.get(network)
    if template is None:
        return trimmed
    return template.format(handle=normalize_social_handle(network, trimmed))
