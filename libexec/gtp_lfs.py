#! /usr/bin/env python3
"""Carry git-lfs payloads from the scratch clone into the destination clone.

Cloning copies history (pointers) but not payloads. The payloads BFG moved
out of history sit in the scratch clone's lfs/objects staging area and
must be copied into the destination's .git/lfs/objects before the scratch
clone goes away. A full 'git lfs checkout' afterwards proves none went
missing.
"""

import logging
import os
import shutil

import gtp_const
from   gtp_ensure_dir import ensure_dir
import gtp_git
from   gtp_l10n import _

LOG = logging.getLogger(__name__)


def is_lfs_pointer(data):
    """Does this blob content look like a git-lfs pointer?"""
    return len(data) <= gtp_const.LFS_POINTER_MAX_SIZE \
        and data.startswith(gtp_const.LFS_POINTER_HEADER)


def lfs_store_dir(work_tree):
    """Return a work tree's LFS object store."""
    return os.path.join(work_tree, gtp_const.LFS_OBJECTS_WORK)


def copy_lfs_objects(staging_dir, store_dir):
    """Copy every payload file under staging_dir to the same place under store_dir.

    Directories that already exist, say from an earlier partial copy, are
    fine; the files inside them are still copied. Return the number of
    files copied. A missing staging_dir means nothing was converted.
    """
    if not os.path.isdir(staging_dir):
        LOG.debug("no LFS staging area at {}".format(staging_dir))
        return 0
    count = 0
    for dir_path, _dir_list, file_list in os.walk(staging_dir):
        rel = os.path.relpath(dir_path, staging_dir)
        dest_dir = os.path.normpath(os.path.join(store_dir, rel))
        ensure_dir(dest_dir)
        for file_name in file_list:
            src = os.path.join(dir_path, file_name)
            dst = os.path.join(dest_dir, file_name)
            shutil.copy2(src, dst)
            count += 1
            LOG.debug3("copied {} => {}".format(src, dst))
    LOG.debug("copied {} LFS objects from {} to {}".format(count, staging_dir, store_dir))
    return count


def parse_ls_files(text):
    """Parse 'git lfs ls-files' output into [(oid prefix, populated, gwt_path)].

    Each line is '<oid> <*|-> <path>': '*' when the work tree holds the
    payload, '-' when it still holds only the pointer.
    """
    result = []
    for line in text.splitlines():
        line = line.rstrip('\n')
        if not line.strip():
            continue
        parts = line.split(' ', 2)
        if len(parts) != 3 or parts[1] not in ('*', '-'):
            LOG.warning("unexpected 'git lfs ls-files' line: {}".format(line))
            continue
        result.append((parts[0], parts[1] == '*', parts[2]))
    return result


def verify_checkout(work_tree):
    """Check out every LFS file in work_tree and confirm each got its payload.

    Return (all LFS-tracked paths, paths still holding only a pointer).
    A failed checkout raises CommandFailedError.
    """
    gtp_git.lfs_install_local(work_tree)
    gtp_git.lfs_checkout(work_tree)
    entries = parse_ls_files(gtp_git.lfs_ls_files(work_tree))
    missing = [gwt_path for _oid, populated, gwt_path in entries if not populated]
    if missing:
        LOG.error(_('LFS payload missing for {count} file(s)').format(count=len(missing)))
    return [gwt_path for _oid, _populated, gwt_path in entries], missing
