#!/usr/bin/env python3
"""
Project indexer for flattened session folders.

Scans every flattened project folder under the projects directory,
reconstructs the real project path from its name, checks whether that path
still exists, and writes a JSON index to the cache file.

Called from the shell wrapper:

    python3 lib/indexer.py <projects_dir> <cache_file>

The resulting JSON array is sorted by modification time (newest first) and
written with 0600 permissions to prevent other users from reading it.

Environment:
    PROJECT_UNFLATTEN_WORKERS  Reconstruct paths on this many threads.
    PROJECT_UNFLATTEN_DEBUG    Log every matching decision to stderr.
"""

import json
import logging
import os
import re
import sys
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime

from flatname import flatten_path
from metadata import lookup_recorded_path, session_project_path
from paths import ListingCache, list_entries, path_exists, reconstruct_path

_SESSION_FILE_RE = re.compile(r"^\.session_.+\.json$")

logger = logging.getLogger(__name__)


def last_modified(project_dir):
    """Most recent mtime among the folder's .session_*.json files.

    Falls back to the folder's own mtime when it has no session files.
    """
    try:
        names = os.listdir(project_dir)
    except OSError:
        return int(datetime.now().timestamp())

    newest = None
    for name in names:
        if not _SESSION_FILE_RE.match(name):
            continue
        try:
            mtime = os.stat(os.path.join(project_dir, name)).st_mtime
        except OSError:
            continue
        if newest is None or mtime > newest:
            newest = mtime

    if newest is None:
        newest = os.stat(project_dir).st_mtime
    return int(newest)


def _project_record(projects_dir, folder, lister):
    project_dir = os.path.join(projects_dir, folder)
    path = reconstruct_path(folder, projects_dir=projects_dir, lister=lister)
    modified = last_modified(project_dir)
    return {
        "id": folder,
        "folder": folder,
        "path": path,
        "path_exists": path_exists(path),
        "last_modified": modified,
        "date": datetime.fromtimestamp(modified).strftime("%Y-%m-%d %H:%M"),
    }


def scan_projects(projects_dir, lister=None, workers=None):
    """Build one record per flattened project folder.

    All reconstructions in a scan share one ListingCache, so parent
    directories common to many projects are listed once.

    Args:
        projects_dir: Path to ~/.claude/projects (or override)
        lister:       Directory lister used for reconstruction
        workers:      Reconstruct on a thread pool of this size when > 1

    Returns:
        List of dicts with keys id, folder, path, path_exists,
        last_modified and date, in folder-name order.
    """
    if not os.path.isdir(projects_dir):
        return []

    folders = []
    for entry in sorted(os.listdir(projects_dir)):
        if os.path.isdir(os.path.join(projects_dir, entry)):
            folders.append(entry)
        else:
            logger.warning("Skipping non-directory %s", entry)

    cache = ListingCache(lister or list_entries)

    def record(folder):
        return _project_record(projects_dir, folder, cache)

    if workers and workers > 1:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(record, folders))
    return [record(folder) for folder in folders]


# ── Lookups ──────────────────────────────────────────────────────────────────


def find_project_directory(projects_dir, real_path):
    """Find the flattened folder that holds data for a real project path.

    Tries, in order: a folder whose metadata.json records exactly this path,
    the folder named after the flattened path, and the nearest parent
    project (for paths inside a project, e.g. /repo/app for /repo).

    Returns:
        Absolute path of the flattened folder, or None.
    """
    try:
        folders = sorted(os.listdir(projects_dir))
    except OSError:
        return None

    for folder in folders:
        if lookup_recorded_path(projects_dir, folder) == real_path:
            return os.path.join(projects_dir, folder)

    candidate = os.path.join(projects_dir, flatten_path(real_path))
    if os.path.isdir(candidate):
        return candidate

    parent = os.path.dirname(real_path)
    if parent and parent not in (real_path, "/", "."):
        return find_project_directory(projects_dir, parent)
    return None


def find_session_folder(projects_dir, session_id):
    """Name of the first flattened folder holding files for a session."""
    try:
        folders = sorted(os.listdir(projects_dir))
    except OSError:
        return None

    for folder in folders:
        try:
            names = os.listdir(os.path.join(projects_dir, folder))
        except OSError:
            continue
        if any(name.startswith(session_id) for name in names):
            return folder
    return None


def resolve_session_project(projects_dir, session_id, lister=None):
    """Find the real project path a session belongs to.

    Sources, most authoritative first: the folder's metadata.json, a
    "projectPath" in the session's own JSON file, and finally path
    reconstruction from the folder name. A reconstructed path is only
    returned if it exists.

    Returns:
        Dict with keys:
            path:    The real project path, or None
            folder:  The flattened folder holding the session, or None
            attempt: The reconstructed path that failed verification, or None
            reason:  Why no path was returned, or None
    """
    result = {"path": None, "folder": None, "attempt": None, "reason": None}

    folder = find_session_folder(projects_dir, session_id)
    if folder is None:
        result["reason"] = "No project folder contains this session"
        return result
    result["folder"] = folder

    path = lookup_recorded_path(projects_dir, folder)
    if not path:
        path = session_project_path(os.path.join(projects_dir, folder), session_id)
    if path:
        result["path"] = path
        return result

    reconstructed = reconstruct_path(folder, lister=lister)
    if path_exists(reconstructed):
        result["path"] = reconstructed
    else:
        result["attempt"] = reconstructed
        result["reason"] = "Reconstructed path does not exist"
    return result


# ── Main indexing logic ──────────────────────────────────────────────────────


def build_index(projects_dir, cache_file, workers=None):
    """Scan all flattened project folders and write the project index.

    The resulting JSON array is sorted newest-first and written to cache_file
    with restrictive permissions (umask 077 → only owner can read/write).

    Args:
        projects_dir: Path to ~/.claude/projects (or override)
        cache_file:   Path to write the JSON index to
        workers:      Thread pool size for path reconstruction
    """
    if not os.path.isdir(projects_dir):
        print(f"Projects directory not found: {projects_dir}", file=sys.stderr)
        sys.exit(1)

    projects = scan_projects(projects_dir, workers=workers)
    projects.sort(key=lambda p: p["last_modified"], reverse=True)

    old_umask = os.umask(0o077)
    try:
        cache_dir = os.path.dirname(cache_file)
        if cache_dir:
            os.makedirs(cache_dir, exist_ok=True)
        with open(cache_file, "w") as f:
            json.dump(projects, f, indent=2)
    finally:
        os.umask(old_umask)

    print(f"Indexed {len(projects)} projects.", file=sys.stderr)


if __name__ == "__main__":
    if len(sys.argv) != 3:
        print(f"Usage: {sys.argv[0]} <projects_dir> <cache_file>", file=sys.stderr)
        sys.exit(1)
    if os.environ.get("PROJECT_UNFLATTEN_DEBUG"):
        logging.basicConfig(level=logging.DEBUG)
    build_index(
        sys.argv[1],
        sys.argv[2],
        workers=int(os.environ.get("PROJECT_UNFLATTEN_WORKERS", "0") or 0),
    )
