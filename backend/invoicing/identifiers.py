# Overview: Entity identifier format shared by models and the identity resolver.

from __future__ import annotations

import re
import uuid


# Every entity id is a fixed-length 32-char hex string (uuid4 hex)
_IDENTIFIER_RE = re.compile(r"^[0-9a-fA-F]{32}$")


def new_id() -> str:
    return uuid.uuid4().hex


def is_valid_identifier(value) -> bool:
    return isinstance(value, str) and bool(_IDENTIFIER_RE.match(value))
