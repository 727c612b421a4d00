#! /usr/bin/env python3
"""Functions for operating on Git repositories.

Commands that change a repository go through gtp_proc and git itself.
Read-only inspection of history uses pygit2.
"""

from collections import deque
import configparser
import logging
import os

import pygit2

import gtp_const
from   gtp_l10n import NTR
import gtp_proc

LOG = logging.getLogger(__name__)

FILEMODE_TREE   = 0o040000
FILEMODE_COMMIT = 0o160000     # submodule ("gitlink")
FILEMODE_LINK   = 0o120000


# -- inspection (pygit2) ------------------------------------------------------

def open_repo(path):
    """Return a pygit2.Repository for the repo at or above path, None if none."""
    try:
        repo_path = pygit2.discover_repository(path)
    except KeyError:
        return None
    if not repo_path:
        return None
    try:
        return pygit2.Repository(repo_path)
    except (KeyError, ValueError, pygit2.GitError):
        return None


def is_bare_git_repo(path):
    """Determine if path is a bare Git repository."""
    repo = open_repo(path)
    return bool(repo and repo.is_bare)


def is_work_tree(path):
    """Determine if path is the top of a non-bare Git work tree."""
    repo = open_repo(path)
    if not repo or repo.is_bare or not repo.workdir:
        return False
    return os.path.realpath(repo.workdir) == os.path.realpath(path)


def branch_sha1(repo, branch_name):
    """Return the hex sha1 of a local branch tip, None if no such branch."""
    branch = repo.lookup_branch(branch_name)
    if branch is None:
        return None
    return str(branch.target)


def head_commit(repo):
    """Return the pygit2.Commit at HEAD, None for an empty repo."""
    if repo.is_empty or repo.head_is_unborn:
        return None
    return repo[repo.head.target]


def remote_names(repo):
    """Return the names of the repo's remotes."""
    return [remote.name for remote in repo.remotes]


def find_entry(repo, tree, gwt_path):
    """Return the tree entry at the slash-separated gwt_path, None if absent."""
    entry = None
    for name in gwt_path.split('/'):
        if tree is None:
            return None
        try:
            entry = tree[name]
        except KeyError:
            return None
        tree = repo[entry.id] if entry.filemode == FILEMODE_TREE else None
    return entry


def parse_gitmodules_for_path(repo, commit, gwt_path=gtp_const.GITMODULES):
    """Parse the .gitmodules file at gwt_path in commit's tree.

    Return a ConfigParser, or None if there is no such file.
    """
    if commit is None:
        return None
    entry = find_entry(repo, commit.tree, gwt_path)
    if entry is None or entry.filemode in (FILEMODE_TREE, FILEMODE_COMMIT):
        return None
    text = repo[entry.id].data.decode('UTF-8', errors='replace')
    parser = configparser.ConfigParser(interpolation=None)
    try:
        parser.read_string(text, source=gwt_path)
    except configparser.Error as e:
        # Still a manifest. Report it as one, just an empty one.
        LOG.warning("unparseable {}: {}".format(gwt_path, e))
        parser = configparser.ConfigParser(interpolation=None)
    return parser


def submodule_iter(repo, commit):
    """Generator that yields (gwt_path, sha1) tuples for every submodule."""
    te_queue = deque([('', te) for te in commit.tree])
    while te_queue:
        (par_gwt_path, tree_entry) = te_queue.popleft()
        gwt_path = par_gwt_path + '/' + tree_entry.name if par_gwt_path else tree_entry.name
        if FILEMODE_COMMIT == tree_entry.filemode:
            yield (gwt_path, str(tree_entry.id))
        elif FILEMODE_TREE == tree_entry.filemode:
            for child_tree_entry in repo[tree_entry.id]:
                te_queue.append((gwt_path, child_tree_entry))


def iter_commits(repo, tip_sha1):
    """Yield every commit reachable from tip_sha1, each once."""
    return repo.walk(pygit2.Oid(hex=tip_sha1))


def iter_history_trees(repo, tip_sha1):
    """Yield (commit, gwt_path, tree_entry) for every entry of every tree in history.

    Each distinct tree object is visited once, no matter how many commits
    share it; the first commit to reach it is reported.
    """
    seen_trees = set()
    for commit in iter_commits(repo, tip_sha1):
        te_queue = deque()
        if commit.tree_id not in seen_trees:
            seen_trees.add(commit.tree_id)
            te_queue.extend(('', te) for te in commit.tree)
        while te_queue:
            (par_gwt_path, tree_entry) = te_queue.popleft()
            gwt_path = par_gwt_path + '/' + tree_entry.name if par_gwt_path else tree_entry.name
            yield (commit, gwt_path, tree_entry)
            if tree_entry.filemode == FILEMODE_TREE and tree_entry.id not in seen_trees:
                seen_trees.add(tree_entry.id)
                te_queue.extend((gwt_path, te) for te in repo[tree_entry.id])


# -- commands (git) -----------------------------------------------------------

def git(args, cwd, env=None):
    """Run 'git <args>' in cwd, fail fast."""
    return gtp_proc.popen([gtp_const.GIT_BIN_DEFAULT] + args, cwd, env=env)


def git_no_throw(args, cwd):
    """Run 'git <args>' in cwd, return the result whatever happens."""
    return gtp_proc.popen_no_throw([gtp_const.GIT_BIN_DEFAULT] + args, cwd)


def clone_bare(url, branch, dest, cwd):
    """Bare-clone just one branch of url into dest."""
    return git(['clone', '--bare', '--single-branch', '--branch', branch, url, dest], cwd)


def clone_work_tree(url, branch, dest, cwd, skip_smudge=True):
    """Clone url into dest with a work tree, checked out at branch.

    With skip_smudge, git-lfs leaves pointer files in the work tree rather
    than trying to download their payloads.
    """
    env = {gtp_const.GIT_LFS_SKIP_SMUDGE: '1'} if skip_smudge else None
    return git(['clone', '--branch', branch, url, dest], cwd, env=env)


def reset_hard(cwd):
    """Discard all uncommitted changes to tracked files."""
    return git(['reset', '--hard'], cwd)


def clean_all(cwd):
    """Remove untracked and ignored files, nested repos included."""
    return git(['clean', '-ffdx'], cwd)


def remote_add(name, url, cwd):
    """Register url as remote name."""
    return git(['remote', 'add', name, url], cwd)


def remote_remove(name, cwd):
    """Remove remote name and its remote-tracking refs."""
    return git(['remote', 'remove', name], cwd)


def fetch(remote, branch, cwd):
    """Fetch just one branch from remote."""
    return git(['fetch', remote, branch], cwd)


def branch_no_track(branch, start_point, cwd):
    """Create branch at start_point without an upstream."""
    return git(['branch', '--no-track', branch, start_point], cwd)


def delete_branch_ref(branch, cwd):
    """Delete one Git branch reference, merged or not."""
    return git(['branch', '-D', branch], cwd)


def checkout(branch, cwd, no_guess=False, skip_smudge=False):
    """Switch the work tree to branch.

    With skip_smudge, LFS files are left as pointers: their payloads may
    not be fetched yet.
    """
    args = ['checkout']
    if no_guess:
        args.append('--no-guess')
    args.append(branch)
    env = {gtp_const.GIT_LFS_SKIP_SMUDGE: '1'} if skip_smudge else None
    return git(args, cwd, env=env)


def add_gitlink(gwt_path, sha1, cwd):
    """Stage a submodule entry pinned at sha1. Needs no submodule work tree."""
    cacheinfo = NTR('{mode:o},{sha1},{path}').format(mode=FILEMODE_COMMIT, sha1=sha1, path=gwt_path)
    return git(['update-index', '--add', '--cacheinfo', cacheinfo], cwd)


def submodule_deinit_all(cwd):
    """Unregister every submodule and empty its work tree."""
    return git(['submodule', 'deinit', '--all', '--force'], cwd)


def submodule_update_init(cwd):
    """Initialize and check out every submodule, recursively."""
    return git(['submodule', 'update', '--init', '--recursive'], cwd)


def add_all(cwd):
    """Stage every change in the work tree, deletions included."""
    return git(['add', '--all'], cwd)


def commit(message, cwd):
    """Commit whatever is staged."""
    return git(['commit', '--quiet', '-m', message], cwd)


def merge_unrelated_no_ff(branch, message, cwd):
    """Merge branch into the current branch with an explicit merge commit.

    Histories need not share an ancestor.
    """
    return git(['merge', '--allow-unrelated-histories', '--no-ff', '-m', message, branch], cwd)


def reflog_expire_all(cwd):
    """Expire every reflog entry now."""
    return git(['reflog', 'expire', '--expire=now', '--all'], cwd)


def gc_prune_aggressive(cwd):
    """Prune every unreachable object and repack the rest, hard."""
    return gtp_proc.wait([gtp_const.GIT_BIN_DEFAULT, 'gc', '--prune=now', '--aggressive'], cwd)


def is_valid_git_branch_name(git_branch_name, cwd):
    """Determine if the given name is a valid single-level branch name."""
    cmd = ['check-ref-format', '--allow-onelevel', NTR('refs/heads/') + git_branch_name]
    result = git_no_throw(cmd, cwd)
    return not result['ec']


# -- git-lfs ------------------------------------------------------------------

def lfs_install_local(cwd):
    """Install git-lfs filters and hooks into this repo's config only."""
    return git(['lfs', 'install', '--local'], cwd)


def lfs_fetch_all(remote, ref, cwd):
    """Fetch every LFS payload referenced anywhere in ref's history."""
    return git(['lfs', 'fetch', '--all', remote, ref], cwd)


def lfs_checkout(cwd):
    """Replace pointer files in the work tree with their payloads."""
    return git(['lfs', 'checkout'], cwd)


def lfs_ls_files(cwd):
    """Return 'git lfs ls-files' output."""
    return git(['lfs', 'ls-files'], cwd)['out']
