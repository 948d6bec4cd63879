"""
Recorded project paths stored next to the flattened project folders.

A flattened folder may carry a small metadata.json sidecar holding the real
path it was created for:

    ~/.claude/projects/-Users-alice-my-app/metadata.json
    {"path": "/Users/alice/my-app"}

When present, the recorded path is authoritative and path reconstruction is
skipped entirely. Session files (<session-id>*.json) in the same folder may
also carry a "projectPath" field that serves the same purpose.
"""

import json
import logging
import os

DEFAULT_PROJECTS_DIR = os.path.expanduser("~/.claude/projects")
METADATA_FILE = "metadata.json"

logger = logging.getLogger(__name__)


def _read_json(path):
    """Load a JSON file, returning None if it is missing or malformed."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        return None
    except (OSError, ValueError) as exc:
        logger.debug("Ignoring unreadable %s: %s", path, exc)
        return None


def lookup_recorded_path(projects_dir, flattened_name):
    """Return the real path recorded for a flattened folder, if any.

    Args:
        projects_dir:   Directory holding the flattened project folders.
        flattened_name: The folder name to look up.

    Returns:
        The recorded path string, or None if there is no usable record.
    """
    data = _read_json(os.path.join(projects_dir, flattened_name, METADATA_FILE))
    if isinstance(data, dict):
        path = data.get("path")
        if isinstance(path, str) and path:
            return path
    return None


def save_recorded_path(projects_dir, flattened_name, real_path):
    """Record the real path for a flattened folder. OSError propagates."""
    metadata_path = os.path.join(projects_dir, flattened_name, METADATA_FILE)
    with open(metadata_path, "w", encoding="utf-8") as f:
        json.dump({"path": real_path}, f, indent=2)


def session_project_path(project_dir, session_id):
    """Read the projectPath field from a session's JSON file.

    Files are checked in sorted order; the first one starting with the
    session id and carrying a string projectPath wins.
    """
    try:
        names = sorted(os.listdir(project_dir))
    except OSError:
        return None

    for name in names:
        if not (name.startswith(session_id) and name.endswith(".json")):
            continue
        data = _read_json(os.path.join(project_dir, name))
        if isinstance(data, dict):
            path = data.get("projectPath")
            if isinstance(path, str) and path:
                return path
    return None
