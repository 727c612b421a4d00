#! /usr/bin/env python3
"""Import another repository's full history into this one as a subdirectory.

    cd host-repo
    gtp_consolidate.py widgets https://host/group/widgets.git -s master -t develop

Adds one merge commit to the target branch. The imported files land under
widgets/, with their history intact behind them.

Exit codes: 0 done, 1 a step failed, 2 refused to start, 3 merged but the
imported tree has its own .gitmodules that you must reconcile by hand.
"""

import logging
import os
import sys

import gtp_config
import gtp_const
import gtp_git
from   gtp_l10n import _, NTR, log_l10n
import gtp_log
import gtp_proc
from   gtp_relocate import Relocator, Outcome, describe_state
from   gtp_stage import PreconditionError, StageError
import gtp_util

LOG = logging.getLogger("gtp_consolidate")
REPORT = logging.getLogger('report')


def check_preconditions(work_tree, name, target_branch):
    """Refuse to start unless the repo and the scaffolding names are free to use."""
    if not gtp_git.is_work_tree(work_tree):
        raise PreconditionError(_('{path} is not the top of a Git work tree.')
                                .format(path=work_tree))
    if not name or '/' in name or '\\' in name or name in ('.', '..', gtp_const.GIT_DIR_NAME) \
            or not gtp_git.is_valid_git_branch_name(name, work_tree):
        raise PreconditionError(_("'{name}' cannot be both a directory name and a branch name.")
                                .format(name=name))
    if name == target_branch:
        raise PreconditionError(_("Name '{name}' must differ from the target branch.")
                                .format(name=name))
    repo = gtp_git.open_repo(work_tree)
    if name in gtp_git.remote_names(repo):
        raise PreconditionError(_("A remote named '{name}' already exists.").format(name=name))
    if gtp_git.branch_sha1(repo, name) is not None:
        raise PreconditionError(_("A branch named '{name}' already exists.").format(name=name))
    if gtp_git.branch_sha1(repo, target_branch) is None:
        raise PreconditionError(_("Target branch '{branch}' does not exist.")
                                .format(branch=target_branch))


def consolidate(work_tree, name, url, source_branch, target_branch):
    """Check preconditions, then relocate and merge. Return a ConsolidateResult."""
    work_tree = os.path.abspath(work_tree)
    check_preconditions(work_tree, name, target_branch)
    return Relocator(work_tree, name, url, source_branch, target_branch).run()


def parse_argv(argv=None):
    """Parse the command line."""
    desc = _("""Merge the full history of one branch of another repository into a
branch of this repository, with all of its files moved under <name>/.""")
    parser = gtp_util.create_arg_parser(desc)
    parser.add_argument('name', metavar=NTR('name'),
                        help=_('subdirectory to import into; also names the'
                               ' temporary remote and branch'))
    parser.add_argument('url', metavar=NTR('url'),
                        help=_('repository to import'))
    parser.add_argument('--source-branch', '-s', metavar=NTR('branch'),
                        help=_('branch to import (default: {branch})')
                        .format(branch=gtp_const.DEFAULT_SOURCE_BRANCH))
    parser.add_argument('--target-branch', '-t', metavar=NTR('branch'),
                        help=_('branch to merge into (default: {branch})')
                        .format(branch=gtp_const.DEFAULT_TARGET_BRANCH))
    parser.add_argument('--repo', '-C', metavar=NTR('dir'), default='.',
                        help=_('repository to import into (default: current directory)'))
    parser.add_argument('--config', metavar=NTR('file'),
                        help=_('config file (default: ${var}, then ~/.git-transplant/config)')
                        .format(var=gtp_const.GTP_CONFIG_PATH))
    return parser.parse_args(argv)


def main(argv=None):
    """Parse the command line, run the import, report the outcome."""
    args = parse_argv(argv)
    gtp_util.apply_log_args(args, REPORT)
    log_l10n()
    config = gtp_config.TransplantConfig.from_file(args.config)
    section = gtp_config.SECTION_CONSOLIDATE
    source_branch = args.source_branch or config.get(section, gtp_config.KEY_SOURCE_BRANCH)
    target_branch = args.target_branch or config.get(section, gtp_config.KEY_TARGET_BRANCH)
    tools = gtp_config.resolve_tools(config)
    gtp_proc.set_tool_paths({gtp_const.GIT_BIN_DEFAULT: tools[gtp_const.GIT_BIN_DEFAULT]})

    try:
        result = consolidate(args.repo, args.name, args.url, source_branch, target_branch)
    except StageError as e:
        if e.state is not None:
            sys.stderr.write(describe_state(e.state) + '\n')
        raise

    if result.outcome == Outcome.SUBMODULE_CONFLICT:
        sys.stderr.write(_('ACTION REQUIRED: merged {merge}, but {path} came along with the'
                           ' import. Reconcile it with this repository\'s .gitmodules, then'
                           ' run \'git submodule update --init --recursive\' yourself.\n')
                         .format(merge=result.merge_sha1, path=result.manifest_path))
        return gtp_const.EXIT_MANUAL_ACTION

    print(_("Merged {url} {source} into '{target}' under {name}/ as {merge}.")
          .format(url=args.url, source=source_branch, target=target_branch,
                  name=args.name, merge=result.merge_sha1))
    return gtp_const.EXIT_OK


def run():
    """Console script entry point."""
    gtp_log.run_with_exception_logger(main, write_to_stderr=True)


if __name__ == "__main__":
    run()
