"""
Path reconstruction for flattened project folder names.

Session tools encode a project path by replacing its separators with '-'
(see flatname.py). For example:
    /Users/alice/Source/my-app  → -Users-alice-Source-my-app
    C:\\Users\\alice\\dev\\app    → C--Users-alice-dev-app

The challenge: '-' can also appear as a literal character in real directory
names (e.g., "my-app"), and dots are lost too ("jane.doe" → "jane-doe"), so we
can't simply replace all dashes. Instead, we walk the real directory tree one
level at a time. At each level we list the directory and try the longest run
of remaining tokens first (up to MAX_WINDOW), joined by '-', then shorter
runs, and take the first one that names a real entry. Tokens that match
nothing are kept verbatim, and if a directory cannot be listed the rest of
the name is appended as a single literal segment.

The walk is forward-only: once a segment is chosen it is never revisited.
"""

import logging
import os
import sys
import threading

from flatname import DELIMITER, detect
from metadata import DEFAULT_PROJECTS_DIR, lookup_recorded_path

MAX_WINDOW = 5

logger = logging.getLogger(__name__)


# ── Directory access ─────────────────────────────────────────────────────────


def list_entries(path):
    """List the names inside a directory, or None if it can't be listed.

    Missing paths, non-directories and permission errors all map to None.
    """
    try:
        return os.listdir(path)
    except OSError as exc:
        logger.debug("Cannot list %s: %s", path, exc)
        return None


def path_exists(path):
    return os.path.exists(path)


class ListingCache:
    """Memoizes a directory lister across many reconstructions.

    Batch runs probe the same parent directories (/, /Users, /Users/alice)
    for every project; pass one of these as the lister to list each of them
    only once. Safe to share between threads.
    """

    def __init__(self, lister=list_entries):
        self._lister = lister
        self._entries = {}
        self._lock = threading.Lock()

    def __call__(self, path):
        with self._lock:
            if path in self._entries:
                return self._entries[path]
        entries = self._lister(path)
        with self._lock:
            self._entries[path] = entries
        return entries

    def clear(self):
        with self._lock:
            self._entries.clear()


# ── Segment matching ─────────────────────────────────────────────────────────


def _candidates(window):
    """Directory names a run of tokens could have come from, in priority order."""
    yield DELIMITER.join(window)
    if len(window) == 2:
        # "jane.doe" flattens to two tokens
        yield ".".join(window)
    elif len(window) == 1:
        # hidden directory the tokenizer couldn't see
        yield "." + window[0]


def _find_entry(candidate, entries):
    """Exact match first, then the first entry with the candidate as prefix.

    The prefix match ignores case. When several entries share the prefix, the
    first one in listing order wins.
    """
    if candidate in entries:
        return candidate
    lowered = candidate.lower()
    for entry in entries:
        if entry.lower().startswith(lowered):
            return entry
    return None


def match_segment(tokens, entries):
    """Pick the next path segment from the front of the remaining tokens.

    Args:
        tokens:  Remaining raw tokens (non-empty).
        entries: Names inside the directory reached so far.

    Returns:
        Tuple of (segment, consumed). When nothing matches, the first token is
        returned verbatim with consumed == 1.
    """
    for size in range(min(len(tokens), MAX_WINDOW), 0, -1):
        for candidate in _candidates(tokens[:size]):
            entry = _find_entry(candidate, entries)
            if entry is not None:
                return entry, size
    return tokens[0], 1


def match_tokens(flattened, lister=list_entries):
    """Walk the filesystem from the root, consuming the flattened tokens.

    Args:
        flattened: A FlattenedPath from flatname.detect.
        lister:    Callable returning the entries of a directory, or None.

    Returns:
        The best-effort reconstructed path. It is only a candidate; check it
        with path_exists before trusting it.
    """
    tokens = flattened.tokens
    segments = []
    cursor = 0

    while cursor < len(tokens):
        current = flattened.root + flattened.sep.join(segments)
        entries = lister(current)
        if entries is None:
            tail = DELIMITER.join(tokens[cursor:])
            logger.debug("Cannot list %s, appending %r verbatim", current, tail)
            segments.append(tail)
            break

        segment, consumed = match_segment(tokens[cursor:], list(entries))
        if segment in entries:
            logger.debug("%s: matched %r (%d tokens)", current, segment, consumed)
        else:
            logger.debug("%s: no entry for %r, guessing", current, segment)
        segments.append(segment)
        cursor += consumed

    return flattened.root + flattened.sep.join(segments)


# ── Public entry point ───────────────────────────────────────────────────────


def reconstruct_path(flattened_name, projects_dir=None, lister=None):
    """Reconstruct a real filesystem path from a flattened folder name.

    A path recorded in the folder's metadata.json wins outright and no
    directory is probed. Otherwise the name is tokenized and matched against
    the filesystem. Names that are not a recognized encoding come back as-is.

    Args:
        flattened_name: The encoded folder name (e.g., "-Users-alice-my-app")
        projects_dir:   Directory holding the flattened folders; enables the
                        metadata.json shortcut.
        lister:         Directory lister to probe with (default list_entries).

    Returns:
        The reconstructed path (e.g., "/Users/alice/my-app"). Never raises for
        filesystem errors.
    """
    if projects_dir:
        recorded = lookup_recorded_path(projects_dir, flattened_name)
        if recorded:
            return recorded

    flattened = detect(flattened_name)
    if flattened is None:
        return flattened_name

    return match_tokens(flattened, lister or list_entries)


if __name__ == "__main__":
    if len(sys.argv) not in (2, 3):
        print(f"Usage: {sys.argv[0]} <flattened_name> [projects_dir]", file=sys.stderr)
        sys.exit(1)
    if os.environ.get("PROJECT_UNFLATTEN_DEBUG"):
        logging.basicConfig(level=logging.DEBUG)
    projects_dir = sys.argv[2] if len(sys.argv) == 3 else DEFAULT_PROJECTS_DIR
    print(reconstruct_path(sys.argv[1], projects_dir))
