#! /usr/bin/env python3
"""Strip unwanted directories and large binaries from a repository's entire history.

    gtp_sanitize.py https://host/group/widgets.git --delete-folders '*-tmp'

1. Bare-clone the source branch into a scratch clone, <work-dir>/<name>.git.
2. Delete every directory whose name matches --delete-folders, then compact.
3. Replace every file with an --lfs-extensions extension with a git-lfs
   pointer, then compact.
4. Clone the scratch clone into the destination, <work-dir>/<name>.
5. Copy the LFS payloads across and check every LFS file out.
6. Walk the destination's history to confirm both rewrites took.
7. Delete the scratch clone.

The destination is never pushed anywhere. Inspect it, then push it yourself.
"""

import logging
import os
import shutil

import gtp_bfg
import gtp_config
import gtp_const
import gtp_gc
import gtp_git
from   gtp_l10n import _, NTR, log_l10n
import gtp_lfs
import gtp_log
import gtp_proc
from   gtp_stage import Stage, PreconditionError, VerificationError
import gtp_util

LOG = logging.getLogger("gtp_sanitize")
REPORT = logging.getLogger('report')


class Sanitizer:

    """One run of the sanitize pipeline, scratch clone to destination clone."""

    def __init__(self, url, branch, work_dir, bfg_jar,
                 folder_glob=None, extensions=None, name=None, keep_scratch=False):
        # pylint:disable=too-many-arguments
        self.url            = url
        self.branch         = branch
        self.bfg_jar        = bfg_jar
        self.folder_glob    = folder_glob
        self.extensions     = extensions
        self.keep_scratch   = keep_scratch
        self.name           = name or gtp_util.repo_name_from_url(url)
        self.work_dir       = os.path.abspath(work_dir)
        self.scratch_dir    = os.path.join(self.work_dir, self.name + gtp_const.SCRATCH_SUFFIX)
        self.dest_dir       = os.path.join(self.work_dir, self.name)
        self.lfs_file_count = 0

    def check_preconditions(self):
        """Refuse to start if anything would make us clobber or misbehave."""
        if not self.name:
            raise PreconditionError(_('Cannot tell a repository name from {url}; use --name.')
                                    .format(url=self.url))
        if self.folder_glob is None and self.extensions is None:
            raise PreconditionError(_('Nothing to do: no directory glob and no LFS extensions.'))
        if self.folder_glob is not None:
            self.folder_glob = gtp_bfg.validate_folder_glob(self.folder_glob)
        if self.extensions is not None:
            self.extensions = gtp_bfg.normalize_extensions(self.extensions)
        if not os.path.isdir(self.work_dir):
            raise PreconditionError(_('Work directory {path} does not exist.')
                                    .format(path=self.work_dir))
        for path in (self.scratch_dir, self.dest_dir):
            if os.path.lexists(path):
                raise PreconditionError(_('{path} already exists. Remove it or pick another'
                                          ' --work-dir; it may hold an earlier run.')
                                        .format(path=path))

    def run(self):
        """Run every stage in order. Return the destination path."""
        self.check_preconditions()

        with Stage(_('Clone {url} into scratch clone').format(url=self.url)):
            gtp_git.clone_bare(self.url, self.branch, self.scratch_dir, self.work_dir)

        if self.folder_glob is not None:
            with Stage(_("Delete directories named '{glob}' from history")
                       .format(glob=self.folder_glob)):
                gtp_bfg.delete_folders(self.bfg_jar, self.scratch_dir, self.folder_glob)
            with Stage(_('Compact scratch clone')):
                gtp_gc.compact(self.scratch_dir)

        if self.extensions is not None:
            with Stage(_('Convert {glob} to LFS throughout history')
                       .format(glob=gtp_bfg.extensions_glob(self.extensions))):
                gtp_bfg.convert_to_lfs(self.bfg_jar, self.scratch_dir, self.extensions)
            with Stage(_('Compact scratch clone')):
                gtp_gc.compact(self.scratch_dir)

        with Stage(_('Clone scratch clone into {path}').format(path=self.dest_dir)):
            gtp_git.clone_work_tree(self.scratch_dir, self.branch, self.dest_dir, self.work_dir)

        self.reconcile_lfs()
        self.verify_history()

        if self.keep_scratch:
            REPORT.info(_('Keeping scratch clone {path}').format(path=self.scratch_dir))
        else:
            with Stage(_('Remove scratch clone')):
                shutil.rmtree(self.scratch_dir)
        return self.dest_dir

    def reconcile_lfs(self):
        """Copy payloads into the destination, then prove they all arrived."""
        with Stage(_('Copy LFS objects into {path}').format(path=self.dest_dir)):
            copied = gtp_lfs.copy_lfs_objects(gtp_bfg.lfs_staging_dir(self.scratch_dir),
                                              gtp_lfs.lfs_store_dir(self.dest_dir))
        REPORT.info(_('Copied {count} LFS objects.').format(count=copied))

        stage_name = _('Verify LFS checkout')
        with Stage(stage_name):
            tracked, missing = gtp_lfs.verify_checkout(self.dest_dir)
        if missing:
            gtp_util.debug_list(LOG, missing, logging.ERROR)
            raise VerificationError(stage_name,
                                    _('{count} LFS file(s) have no payload, first: {path}')
                                    .format(count=len(missing), path=missing[0]))
        self.lfs_file_count = len(tracked)

    def verify_history(self):
        """Walk all destination history: no matching dirs, no raw migrated blobs."""
        stage_name = _('Verify rewritten history')
        with Stage(stage_name):
            repo = gtp_git.open_repo(self.dest_dir)
            tip = gtp_git.branch_sha1(repo, self.branch) if repo else None
            if tip is None:
                raise VerificationError(stage_name, _("no branch '{branch}' in {path}")
                                        .format(branch=self.branch, path=self.dest_dir))
            problems = []
            if self.folder_glob is not None:
                for sha1, gwt_path in gtp_bfg.find_matching_dirs(repo, tip, self.folder_glob):
                    problems.append(_('directory {path} in {sha1}').format(path=gwt_path, sha1=sha1))
            if self.extensions is not None:
                for sha1, gwt_path in gtp_bfg.find_unconverted_blobs(repo, tip, self.extensions):
                    problems.append(_('non-LFS file {path} in {sha1}').format(path=gwt_path, sha1=sha1))
        if problems:
            gtp_util.debug_list(LOG, problems, logging.ERROR)
            raise VerificationError(stage_name,
                                    _('{count} leftover(s) in history, first: {problem}')
                                    .format(count=len(problems), problem=problems[0]))


def parse_argv(argv=None):
    """Parse the command line."""
    desc = _("""Remove directories and large binaries from the entire history of
one branch of a repository. The result is a fresh local clone for you to
inspect; nothing is pushed.""")
    epilog = _("""Creates <work-dir>/<name>.git (scratch, deleted on success) and
<work-dir>/<name> (the result). Neither may exist beforehand.""")
    parser = gtp_util.create_arg_parser(desc, epilog=epilog)
    parser.add_argument('url', metavar=NTR('url'),
                        help=_('repository to sanitize'))
    parser.add_argument('--branch', '-b', metavar=NTR('branch'),
                        help=_('branch to sanitize (default: {branch})')
                        .format(branch=gtp_const.DEFAULT_SOURCE_BRANCH))
    parser.add_argument('--delete-folders', '-d', metavar=NTR('glob'), dest='folder_glob',
                        help=_("delete directories whose name matches glob, e.g. '*-tmp'"))
    parser.add_argument('--lfs-extensions', '-e', metavar=NTR('ext'), nargs='+',
                        help=_('move files with these extensions to LFS'
                               ' (default: a built-in list of binary formats)'))
    parser.add_argument('--no-lfs', action='store_true',
                        help=_('do not move any files to LFS'))
    parser.add_argument('--work-dir', '-w', metavar=NTR('dir'),
                        help=_('where to create the scratch and result clones'))
    parser.add_argument('--name', '-n', metavar=NTR('name'),
                        help=_('name of the result clone (default: from url)'))
    parser.add_argument('--keep-scratch', action='store_true',
                        help=_('keep the scratch bare clone after success'))
    parser.add_argument('--config', metavar=NTR('file'),
                        help=_('config file (default: ${var}, then ~/.git-transplant/config)')
                        .format(var=gtp_const.GTP_CONFIG_PATH))
    args = parser.parse_args(argv)
    if args.no_lfs and args.lfs_extensions:
        parser.error(_('--no-lfs and --lfs-extensions are mutually exclusive'))
    return args


def sanitizer_from_args(args, config):
    """Build a Sanitizer from command line and config file."""
    section = gtp_config.SECTION_SANITIZE
    if args.no_lfs:
        extensions = None
    else:
        extensions = args.lfs_extensions \
            or config.get_list(section, gtp_config.KEY_LFS_EXTENSIONS)
    tools = gtp_config.resolve_tools(config, need_bfg=True)
    gtp_proc.set_tool_paths({gtp_const.GIT_BIN_DEFAULT:  tools[gtp_const.GIT_BIN_DEFAULT],
                             gtp_const.JAVA_BIN_DEFAULT: tools[gtp_const.JAVA_BIN_DEFAULT]})
    return Sanitizer(
          url          = args.url
        , branch       = args.branch or config.get(section, gtp_config.KEY_SOURCE_BRANCH)
        , work_dir     = args.work_dir or config.get(section, gtp_config.KEY_WORK_DIR) or '.'
        , bfg_jar      = tools[gtp_config.KEY_BFG_JAR]
        , folder_glob  = args.folder_glob
        , extensions   = extensions
        , name         = args.name
        , keep_scratch = args.keep_scratch
        )


def main(argv=None):
    """Parse the command line, run the pipeline, report the result."""
    args = parse_argv(argv)
    gtp_util.apply_log_args(args, REPORT)
    log_l10n()
    config = gtp_config.TransplantConfig.from_file(args.config)
    sanitizer = sanitizer_from_args(args, config)
    dest = sanitizer.run()
    print(_('Sanitized history is in {path} ({count} LFS files).'
            ' Inspect it before pushing anywhere.')
          .format(path=dest, count=sanitizer.lfs_file_count))
    return gtp_const.EXIT_OK


def run():
    """Console script entry point."""
    gtp_log.run_with_exception_logger(main, write_to_stderr=True)


if __name__ == "__main__":
    run()
