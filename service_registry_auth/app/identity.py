"""
Username normalization for the upstream directory.
"""

from typing import Optional

EMAIL_MARKER = ".."


def decode_username_to_email(username: str, default_mail_domain: Optional[str] = None) -> str:
    """Decode a registry username into the identity the upstream API expects.

    Registry usernames cannot contain ``@``, so ``@`` is written as ``..``.
    The local part of an email address can neither end with a dot nor contain
    two consecutive dots, which makes the last ``..`` unambiguous:
    ``john.doe..example.com`` becomes ``john.doe@example.com``.

    Usernames without the marker get ``@default_mail_domain`` appended when a
    default domain is configured and are passed through unchanged otherwise.
    """
    pos = username.rfind(EMAIL_MARKER)
    if pos == -1:
        if default_mail_domain:
            return f"{username}@{default_mail_domain}"
        return username

    return f"{username[:pos]}@{username[pos + len(EMAIL_MARKER):]}"
