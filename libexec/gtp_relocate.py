#! /usr/bin/env python3
"""Fold another repository's history into this one, under a subdirectory.

The imported branch is fetched into a transient local branch, every file on
it is moved under <name>/ in one commit on top of the imported tip, and that
branch is merged into the target branch with an explicit merge commit.
History before the move is untouched, so 'git log --follow' on any file
under <name>/ walks back into the imported history.

Every step is one state transition. A failed step raises StageError naming
the state reached and leaves the repository exactly there, for a human to
inspect. Nothing is rolled back.
"""

from collections import namedtuple
from enum import Enum
import logging
import os

import gtp_const
import gtp_gc
import gtp_git
from   gtp_l10n import _, NTR
from   gtp_stage import Stage, VerificationError
import gtp_util

LOG = logging.getLogger(__name__)
REPORT = logging.getLogger('report')


class RelocateState(Enum):

    """How far a relocation got."""

    START                   = NTR('Start')
    CLEAN                   = NTR('Clean')
    REMOTE_ADDED            = NTR('RemoteAdded')
    FETCHED                 = NTR('Fetched')
    BRANCH_CREATED          = NTR('BranchCreated')
    SUBMODULES_NEUTRALIZED  = NTR('SubmodulesNeutralized')
    CHECKED_OUT             = NTR('CheckedOut')
    LFS_FETCHED             = NTR('LFSFetched')
    COMPACTED               = NTR('Compacted')
    EMPTY_DIRS_PRUNED       = NTR('EmptyDirsPruned')
    RELOCATED               = NTR('Relocated')
    COMMITTED               = NTR('Committed')
    MERGED                  = NTR('Merged')
    BRANCH_REMOVED          = NTR('BranchRemoved')
    REMOTE_REMOVED          = NTR('RemoteRemoved')
    SUBMODULE_CONFLICT      = NTR('SubmoduleConflict')
    DONE                    = NTR('Done')

    def __str__(self):
        return self.value


class Outcome(Enum):

    """How a relocation that did not fail ended."""

    DONE                = NTR('done')
    # Merged, but the imported tree carries its own .gitmodules. A human
    # must reconcile it with ours before any submodule is initialized.
    SUBMODULE_CONFLICT  = NTR('submodule-conflict')


ConsolidateResult = namedtuple('ConsolidateResult',
                               ['outcome', 'manifest_path', 'relocate_sha1', 'merge_sha1'])


def relocate_tree(work_tree, name):
    """Move every top-level entry of work_tree except .git into work_tree/<name>.

    Two phases: first into a uniquely named staging directory, then rename
    that to <name>. An existing top-level <name> is just one more entry to
    move, so it ends up at <name>/<name> rather than colliding.

    Return the path to the new directory.
    """
    entries = sorted(e for e in os.listdir(work_tree) if e != gtp_const.GIT_DIR_NAME)
    staging = gtp_util.unique_name(name)
    while os.path.lexists(os.path.join(work_tree, staging)):
        staging = gtp_util.unique_name(name)
    staging_path = os.path.join(work_tree, staging)
    os.mkdir(staging_path)
    LOG.debug("moving {} entries into {}".format(len(entries), staging_path))
    for entry in entries:
        os.rename(os.path.join(work_tree, entry), os.path.join(staging_path, entry))
    final_path = os.path.join(work_tree, name)
    os.rename(staging_path, final_path)
    return final_path


class Relocator:

    """One import of url's source_branch into work_tree's target_branch under name/.

    name doubles as the transient remote name and the transient branch name.
    """

    def __init__(self, work_tree, name, url, source_branch, target_branch):
        self.work_tree      = work_tree
        self.name           = name
        self.url            = url
        self.source_branch  = source_branch
        self.target_branch  = target_branch
        self.state          = RelocateState.START
        self.fetched_sha1   = None
        self.relocate_sha1  = None
        self.merge_sha1     = None
        # [(gwt_path, sha1)] of submodules pinned at the fetched tip.
        self.gitlinks       = []

    def _stage(self, label):
        """Return a Stage that reports our current state if it fails."""
        return Stage(label, state=lambda: self.state)

    def _advance(self, new_state):
        """Record a completed transition."""
        LOG.debug("{name}: {old} -> {new}".format(name=self.name, old=self.state, new=new_state))
        self.state = new_state

    def _repo(self):
        """Open a fresh pygit2 view of the work tree; git changes it under us."""
        return gtp_git.open_repo(self.work_tree)

    def _step(self, label, new_state, func, *args):
        """Run one gated step and, if it worked, move to new_state."""
        with self._stage(label):
            func(*args)
        self._advance(new_state)

    def run(self):
        """Walk every state from Start to Done or SubmoduleConflict.

        Return a ConsolidateResult. Raise StageError on any failure.
        """
        wt = self.work_tree
        remote_branch = NTR('{remote}/{branch}').format(remote=self.name,
                                                        branch=self.source_branch)

        self._step(_('Clean working state'), RelocateState.CLEAN,
                   self._clean)
        self._step(_("Add remote '{name}'").format(name=self.name), RelocateState.REMOTE_ADDED,
                   gtp_git.remote_add, self.name, self.url, wt)
        self._step(_("Fetch '{branch}'").format(branch=self.source_branch), RelocateState.FETCHED,
                   gtp_git.fetch, self.name, self.source_branch, wt)
        self._step(_("Create branch '{name}'").format(name=self.name),
                   RelocateState.BRANCH_CREATED,
                   self._create_branch, remote_branch)
        self._step(_('Deinitialize submodules'), RelocateState.SUBMODULES_NEUTRALIZED,
                   gtp_git.submodule_deinit_all, wt)
        self._step(_("Check out '{name}'").format(name=self.name), RelocateState.CHECKED_OUT,
                   self._checkout_pointers)
        self._step(_('Fetch LFS objects for all history'), RelocateState.LFS_FETCHED,
                   self._fetch_lfs)
        self._step(_('Compact repository'), RelocateState.COMPACTED,
                   gtp_gc.compact, wt)
        self._step(_('Remove empty directories'), RelocateState.EMPTY_DIRS_PRUNED,
                   gtp_util.remove_empty_dirs, wt)
        self._step(_("Move files into '{name}/'").format(name=self.name),
                   RelocateState.RELOCATED,
                   relocate_tree, wt, self.name)
        self._step(_('Commit relocation'), RelocateState.COMMITTED,
                   self._commit_relocation)
        self._step(_("Merge into '{branch}'").format(branch=self.target_branch),
                   RelocateState.MERGED,
                   self._merge)
        self._step(_("Delete branch '{name}'").format(name=self.name),
                   RelocateState.BRANCH_REMOVED,
                   gtp_git.delete_branch_ref, self.name, wt)
        self._step(_("Remove remote '{name}'").format(name=self.name),
                   RelocateState.REMOTE_REMOVED,
                   gtp_git.remote_remove, self.name, wt)

        manifest_path = self.find_imported_manifest()
        if manifest_path:
            for gwt_path, sha1 in self.imported_submodules():
                REPORT.warning(_("Imported submodule {path} at {sha1} is not initialized.")
                               .format(path=gwt_path, sha1=sha1))
            self._advance(RelocateState.SUBMODULE_CONFLICT)
            return ConsolidateResult(Outcome.SUBMODULE_CONFLICT, manifest_path,
                                     self.relocate_sha1, self.merge_sha1)

        with self._stage(_('Initialize submodules')):
            gtp_git.submodule_update_init(wt)
        self._advance(RelocateState.DONE)
        return ConsolidateResult(Outcome.DONE, None, self.relocate_sha1, self.merge_sha1)

    def _clean(self):
        """Discard uncommitted changes and untracked/ignored files."""
        gtp_git.reset_hard(self.work_tree)
        gtp_git.clean_all(self.work_tree)

    def _create_branch(self, remote_branch):
        """Create our transient branch and remember where it started."""
        gtp_git.branch_no_track(self.name, remote_branch, self.work_tree)
        repo = self._repo()
        self.fetched_sha1 = gtp_git.branch_sha1(repo, self.name)
        LOG.debug("fetched {} at {}".format(remote_branch, self.fetched_sha1))
        self.gitlinks = list(gtp_git.submodule_iter(repo, repo[self.fetched_sha1]))
        gtp_util.debug_list(LOG, self.gitlinks)

    def _checkout_pointers(self):
        """Check out our branch, LFS files as pointers: no payload is local yet."""
        gtp_git.checkout(self.name, self.work_tree, skip_smudge=True)

    def _fetch_lfs(self):
        """Fetch every LFS payload in our branch's history from the imported
        remote, then replace the pointers in the work tree with payloads.

        install --local first, so that 'git add' turns the payloads back
        into the same pointers.
        """
        gtp_git.lfs_install_local(self.work_tree)
        gtp_git.lfs_fetch_all(self.name, self.name, self.work_tree)
        gtp_git.lfs_checkout(self.work_tree)

    def _commit_relocation(self):
        """Commit the move; its only parent must be the fetched tip.

        A submodule has no files to move. Re-pin each one under <name>/.
        """
        gtp_git.add_all(self.work_tree)
        for gwt_path, sha1 in self.gitlinks:
            gtp_git.add_gitlink(NTR('{name}/{path}').format(name=self.name, path=gwt_path),
                                sha1, self.work_tree)
        gtp_git.commit(gtp_const.RELOCATE_COMMIT_MSG.format(name=self.name), self.work_tree)
        head = gtp_git.head_commit(self._repo())
        parents = [str(p) for p in head.parent_ids]
        if parents != [self.fetched_sha1]:
            raise VerificationError(_('Commit relocation'),
                                    _('relocation commit {sha1} has parents {parents},'
                                      ' expected only {fetched}')
                                    .format(sha1=head.id, parents=parents,
                                            fetched=self.fetched_sha1),
                                    self.state)
        self.relocate_sha1 = str(head.id)

    def _merge(self):
        """Merge our branch into the target with an explicit merge commit."""
        gtp_git.checkout(self.target_branch, self.work_tree, no_guess=True)
        message = gtp_const.MERGE_COMMIT_MSG.format(source_branch=self.source_branch,
                                                    url=self.url, name=self.name)
        gtp_git.merge_unrelated_no_ff(self.name, message, self.work_tree)
        head = gtp_git.head_commit(self._repo())
        parents = [str(p) for p in head.parent_ids]
        if len(parents) != 2 or parents[1] != self.relocate_sha1:
            raise VerificationError(_("Merge into '{branch}'").format(branch=self.target_branch),
                                    _('merge commit {sha1} has parents {parents},'
                                      ' expected second parent {relocate}')
                                    .format(sha1=head.id, parents=parents,
                                            relocate=self.relocate_sha1),
                                    self.state)
        self.merge_sha1 = str(head.id)

    def find_imported_manifest(self):
        """Return '<name>/.gitmodules' if the merged tree has one, else None."""
        gwt_path = NTR('{name}/{manifest}').format(name=self.name, manifest=gtp_const.GITMODULES)
        repo = self._repo()
        if gtp_git.parse_gitmodules_for_path(repo, gtp_git.head_commit(repo), gwt_path) is None:
            return None
        return gwt_path

    def imported_submodules(self):
        """Return [(gwt_path, sha1)] for every gitlink under <name>/ at HEAD."""
        prefix = self.name + '/'
        repo = self._repo()
        return [(gwt_path, sha1)
                for gwt_path, sha1 in gtp_git.submodule_iter(repo, gtp_git.head_commit(repo))
                if gwt_path.startswith(prefix)]


def describe_state(state):
    """Human text for where a failed relocation stopped."""
    return _('Stopped in state {state}. The repository is left as-is for inspection.') \
        .format(state=state)
