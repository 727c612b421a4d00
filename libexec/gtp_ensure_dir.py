#! /usr/bin/env python3
"""Create directories that may already exist.

Used by gtp_log before any other gtp module is safe to import, so this
one imports none.
"""

import os


def ensure_dir(local_dir_path):
    """Create local_dir_path and any missing parents. Existing is fine."""
    try:
        os.makedirs(local_dir_path, exist_ok=True)
    except FileExistsError:
        # A regular file or a dangling link holds the name.
        if not os.path.isdir(local_dir_path):
            raise


def ensure_parent_dir(local_path):
    """Create the directory that will hold local_path."""
    ensure_dir(os.path.dirname(local_path))
