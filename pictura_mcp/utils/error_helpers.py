from __future__ import annotations

_SETUP_TIP = " Tip: Run the 'pictura_setup' tool to store provider API keys, or export PICTURA_<PROVIDER>_API_KEY."


def _looks_like_setup_issue(text: str) -> bool:
    """Best-effort detection for credential/registration issues from provider errors."""
    if not text:
        return False
    lower = text.lower()

    keywords = [
        # auth/credentials
        "api key",
        "apikey",
        "invalid key",
        "unauthorized",
        "forbidden",
        "credentials",
        "authentication",
        "401",
        "403",
        # configuration
        "config not loaded",
        "not registered",
    ]

    return any(k in lower for k in keywords)


def augment_with_setup_tip(message: str) -> str:
    """Append a setup tip to the message when appropriate."""
    if not message:
        return message
    if _SETUP_TIP.strip() in message:
        return message
    if _looks_like_setup_issue(message):
        return message.rstrip() + _SETUP_TIP
    return message


def permission_fix_hint(path: str) -> str:
    """Remediation text for a config file with overly broad permissions."""
    return f"Run: chmod 600 {path}"


__all__ = [
    "augment_with_setup_tip",
    "permission_fix_hint",
]
