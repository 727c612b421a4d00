#! /usr/bin/env python3
"""Collection of sundry utility functions."""

import argparse
import logging
import os
import re
import sys
from   uuid import uuid4

import gtp_bootstrap  # pylint: disable=unused-import
import gtp_const
from   gtp_l10n       import _, NTR
import gtp_version

LOG = logging.getLogger(__name__)


class CommandError(RuntimeError):

    """An Error with reduced logging requirements."""

    exit_code = gtp_const.EXIT_FAILED

    def __init__(self, val, usage=None):
        """Save usage message, if any."""
        self.usage = usage  # Printed to stderr if set
        RuntimeError.__init__(self, val)


class _VersionAction(argparse.Action):

    """-V: print version information to stdout and exit."""

    def __call__(self, parser, namespace, values, option_string=None):
        print(gtp_version.as_string())
        sys.exit(gtp_const.EXIT_OK)


def create_arg_parser(desc=None, *, epilog=None, usage=None,
                      add_log_args=True, add_debug_arg=True):
    """Return an ArgumentParser with the options every gtp command shares.

    Always: -h/--help and -V.
    add_log_args:  --verbose/-v and --quiet/-q for the 'report' logger.
    add_debug_arg: --debug [LEVEL], LEVEL one of 1, 2, 3 (default 1).

    Hand the parsed args to apply_log_args().
    """
    parser = argparse.ArgumentParser(description=desc, epilog=epilog, usage=usage)
    parser.add_argument('-V', action=_VersionAction, nargs=0,
                        help=_('displays version information and exits'))
    if add_log_args:
        group = parser.add_mutually_exclusive_group()
        group.add_argument('--verbose', '-v', action=NTR('store_true'),
                           help=_('report every stage as it starts'))
        group.add_argument('--quiet', '-q', action=NTR('store_true'),
                           help=_('report nothing but errors'))
    if add_debug_arg:
        parser.add_argument('--debug', nargs='?', const='1', default=argparse.SUPPRESS,
                            metavar=NTR('level'),
                            help=_('also report debug diagnostics (1, 2 or 3)'))
    return parser


_DEBUG_LEVELS = {
    '1': logging.DEBUG,  'debug':  logging.DEBUG,
    '2': logging.DEBUG2, 'debug2': logging.DEBUG2,
    '3': logging.DEBUG3, 'debug3': logging.DEBUG3,
}


def log_level_from_args(args):
    """Return the level that --quiet, --debug or --verbose asks for.

    --quiet beats --debug beats --verbose. Default WARNING.
    """
    if getattr(args, 'quiet', False):
        return logging.ERROR
    if 'debug' in args:
        level = _DEBUG_LEVELS.get(str(args.debug).lower())
        if level is None:
            raise CommandError(_("Unknown debug level '{level}'").format(level=args.debug))
        return level
    if getattr(args, 'verbose', False):
        return logging.INFO
    return logging.WARNING


def apply_log_args(args, logger=None, for_stdout=True):
    """Set logger's level from the command line; with for_stdout, show its
    messages, bare, on stdout.

    logger defaults to the root logger, which is rarely what a command wants:
    pass the command's own 'report' logger.
    """
    logger = logger or logging.getLogger()
    logger.setLevel(log_level_from_args(args))
    if for_stdout:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter('%(message)s'))
        logger.addHandler(handler)
        if logger is not logging.getLogger():
            # Root's handler would repeat every message to stderr.
            logger.propagate = False


def remove_empty_dirs(root, skip=(gtp_const.GIT_DIR_NAME,)):
    """Remove every directory under root that holds no files.

    Deepest first, so a directory emptied by removing its children is
    itself removed. Top-level entries named in skip are left alone.
    root itself is never removed. Return the list of removed paths.
    """
    removed = []
    for dir_path, dir_list, file_list in os.walk(root, topdown=False):
        rel = os.path.relpath(dir_path, root)
        if rel == '.':
            continue
        if rel.split(os.sep)[0] in skip:
            continue
        if file_list:
            continue
        # os.walk() still lists children we already removed.
        if any(os.path.lexists(os.path.join(dir_path, d)) for d in dir_list):
            continue
        if os.path.islink(dir_path):
            continue
        os.rmdir(dir_path)
        removed.append(dir_path)
        LOG.debug2("removed empty dir {}".format(dir_path))
    return removed


def unique_name(prefix):
    """Return prefix plus a random suffix, for scratch directory names."""
    return NTR('{prefix}-{uuid}').format(prefix=prefix, uuid=uuid4().hex)


def repo_name_from_url(url):
    """Return the last path component of a repository URL, sans '.git'.

    https://host/group/widgets.git  ==> widgets
    git@host:group/widgets          ==> widgets
    /srv/git/widgets/               ==> widgets
    """
    tail = re.split(r'[/:\\]', url.rstrip('/\\'))[-1]
    if tail.endswith(gtp_const.SCRATCH_SUFFIX):
        tail = tail[:-len(gtp_const.SCRATCH_SUFFIX)]
    return tail


def debug_list(log, lizt, details_at_level=logging.DEBUG2):
    """Log the first item in a list, and the rest at details_at_level."""
    if not lizt:
        return
    if log.isEnabledFor(details_at_level):
        log.log(details_at_level, "\n".join(str(x) for x in lizt))
    else:
        log.debug("{} ... ({} more)".format(lizt[0], len(lizt) - 1))
