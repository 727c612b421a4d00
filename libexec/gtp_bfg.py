#! /usr/bin/env python3
"""Rewrite every commit in a bare repo with BFG Repo-Cleaner.

Two rewrites, both across all history, never touching commit metadata:

* delete every directory whose *name* matches a glob
* replace every blob whose extension is in a set with a git-lfs pointer,
  moving the payload to <bare repo>/lfs/objects

BFG protects the tip commit's tree by default. We run it with
--no-blob-protection so the tip is cleaned too.

Also here: the pygit2 history walks that confirm a rewrite did its job.
"""

import fnmatch
import logging
import os

import gtp_const
import gtp_git
from   gtp_l10n import _, NTR
import gtp_lfs
import gtp_proc
from   gtp_stage import PreconditionError

LOG = logging.getLogger(__name__)


def normalize_extensions(extensions):
    """Return a sorted, de-duplicated list of extensions without leading dots.

    ['.PNG', 'png', ' jpg '] ==> ['PNG', 'jpg', 'png']

    Case is kept: BFG matches case-sensitively, and so do we.
    Raise PreconditionError for an empty result or an unusable entry.
    """
    result = set()
    for ext in extensions:
        ext = ext.strip().lstrip('.')
        if not ext:
            continue
        if any(c in ext for c in NTR('/\\{},*?[]')):
            raise PreconditionError(_("Invalid file extension: '{ext}'").format(ext=ext))
        result.add(ext)
    if not result:
        raise PreconditionError(_('No file extensions given for large file migration.'))
    return sorted(result)


def extensions_glob(extensions):
    """Return the BFG filename glob for a list of extensions.

    ['png']        ==> '*.png'
    ['jpg', 'png'] ==> '*.{jpg,png}'
    """
    if len(extensions) == 1:
        return NTR('*.{}').format(extensions[0])
    return NTR('*.{{{}}}').format(','.join(extensions))


def validate_folder_glob(folder_glob):
    """Reject a directory-name glob that BFG would misread or that matches a path."""
    if not folder_glob or not folder_glob.strip():
        raise PreconditionError(_('Empty directory name glob.'))
    if '/' in folder_glob or '\\' in folder_glob:
        raise PreconditionError(_("Directory glob '{glob}' must match directory names, not paths.")
                                .format(glob=folder_glob))
    return folder_glob.strip()


def _bfg(bfg_jar, args, bare_dir):
    """Run BFG against bare_dir from bare_dir's parent."""
    if not gtp_git.is_bare_git_repo(bare_dir):
        raise PreconditionError(_('{path} is not a bare repository; will not rewrite it.')
                                .format(path=bare_dir))
    cmd = [gtp_const.JAVA_BIN_DEFAULT, '-jar', bfg_jar] + args \
        + ['--no-blob-protection', os.path.basename(bare_dir)]
    return gtp_proc.wait(cmd, os.path.dirname(os.path.abspath(bare_dir)))


def delete_folders(bfg_jar, bare_dir, folder_glob):
    """Remove every directory named like folder_glob from every commit."""
    LOG.debug("delete folders '{}' from {}".format(folder_glob, bare_dir))
    return _bfg(bfg_jar, ['--delete-folders', folder_glob], bare_dir)


def convert_to_lfs(bfg_jar, bare_dir, extensions):
    """Replace every blob with an extension in extensions with an LFS pointer."""
    glob = extensions_glob(extensions)
    LOG.debug("convert '{}' to LFS in {}".format(glob, bare_dir))
    return _bfg(bfg_jar, ['--convert-to-git-lfs', glob], bare_dir)


def lfs_staging_dir(bare_dir):
    """Where BFG leaves the payloads it replaced with pointers."""
    return os.path.join(bare_dir, gtp_const.LFS_OBJECTS_BARE)


# -- verification -------------------------------------------------------------

def _extension(name):
    """Return the text after the last dot, None if there is none."""
    _root, dot, ext = name.rpartition('.')
    return ext if dot else None


def find_matching_dirs(repo, tip_sha1, folder_glob):
    """Return [(commit sha1, gwt_path)] for every directory in history named like folder_glob."""
    found = []
    for commit, gwt_path, entry in gtp_git.iter_history_trees(repo, tip_sha1):
        if entry.filemode == gtp_git.FILEMODE_TREE \
                and fnmatch.fnmatchcase(entry.name, folder_glob):
            found.append((str(commit.id), gwt_path))
    return found


def find_unconverted_blobs(repo, tip_sha1, extensions):
    """Return [(commit sha1, gwt_path)] for every blob in history that should
    be an LFS pointer but is not.
    """
    extensions = set(extensions)
    found = []
    checked = {}
    for commit, gwt_path, entry in gtp_git.iter_history_trees(repo, tip_sha1):
        if entry.filemode in (gtp_git.FILEMODE_TREE, gtp_git.FILEMODE_COMMIT,
                              gtp_git.FILEMODE_LINK):
            continue
        if _extension(entry.name) not in extensions:
            continue
        if entry.id not in checked:
            checked[entry.id] = gtp_lfs.is_lfs_pointer(repo[entry.id].data)
        if not checked[entry.id]:
            found.append((str(commit.id), gwt_path))
    return found
