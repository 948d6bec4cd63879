"""
Flattened project folder names: detection, tokenizing and the forward encoding.

Session tools store per-project data under a folder named after the project's
absolute path, with every separator (and the drive colon and dots) replaced
by '-'. For example:
    /Users/alice/Source/my-app   → -Users-alice-Source-my-app
    /Users/alice/.config/app     → -Users-alice--config-app
    C:\\Users\\alice\\dev\\project → C--Users-alice-dev-project

This module only classifies the name and splits it into raw tokens. Deciding
which '-' was a separator and which was literal is left to paths.py, which
checks the tokens against the real filesystem.
"""

import re
from dataclasses import dataclass
from enum import Enum

DELIMITER = "-"

_WINDOWS_RE = re.compile(r"^([A-Z])--(.+)$")
_ENCODED_CHARS_RE = re.compile(r"[\\/:.]")


class EncodingStyle(Enum):
    UNIX = "/"
    WINDOWS = "\\"

    @property
    def sep(self):
        return self.value


@dataclass(frozen=True)
class FlattenedPath:
    """A recognized flattened name: its style, root and raw tokens."""
    style: EncodingStyle
    root: str
    tokens: tuple

    @property
    def sep(self):
        return self.style.sep


def tokenize(remainder):
    """Split the part after the root marker into raw tokens.

    An empty token comes from a doubled delimiter, i.e. the escaped leading
    dot of a hidden directory ("--config" → ".config"). It is merged with the
    token that follows it; an empty token with nothing after it is dropped.
    """
    parts = remainder.split(DELIMITER)
    tokens = []
    i = 0
    while i < len(parts):
        part = parts[i]
        if part:
            tokens.append(part)
        elif i + 1 < len(parts) and parts[i + 1]:
            tokens.append("." + parts[i + 1])
            i += 1
        i += 1
    return tuple(tokens)


def detect(flattened_name):
    """Classify a flattened folder name and tokenize it.

    Args:
        flattened_name: The folder name as found on disk.

    Returns:
        A FlattenedPath, or None when the name is not a recognized encoding
        and should be displayed as-is.
    """
    m = _WINDOWS_RE.match(flattened_name)
    if m:
        drive, rest = m.groups()
        return FlattenedPath(EncodingStyle.WINDOWS, drive + ":\\", tokenize(rest))

    if flattened_name.startswith(DELIMITER):
        return FlattenedPath(EncodingStyle.UNIX, "/", tokenize(flattened_name[1:]))

    return None


def flatten_path(real_path):
    """Encode a real absolute path the way session tools name its folder."""
    return _ENCODED_CHARS_RE.sub(DELIMITER, real_path)
