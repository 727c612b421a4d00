#! /usr/bin/env python3
"""Drop everything a history rewrite left unreachable.

A rewrite leaves the pre-rewrite objects on disk, still reachable through
the reflog. Expire the reflog, then prune and repack. Safe to run any
number of times.
"""

import logging

import gtp_git

LOG = logging.getLogger(__name__)


def compact(repo_dir):
    """Expire all reflogs and aggressively prune and repack repo_dir."""
    LOG.debug("compact {}".format(repo_dir))
    gtp_git.reflog_expire_all(repo_dir)
    gtp_git.gc_prune_aggressive(repo_dir)
