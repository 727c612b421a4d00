#! /usr/bin/env python3
"""Run external commands, log them, and fail fast on non-zero exit.

Every call takes an explicit cwd. Nothing here changes the process
working directory.
"""

import atexit
import logging
import os
import subprocess
import time

import gtp_bootstrap  # pylint: disable=unused-import
import gtp_char
import gtp_const
from   gtp_l10n      import _, NTR

LOG = logging.getLogger(__name__)

# Program name -> path to run instead, filled in by set_tool_paths().
_TOOL_PATHS = {
    gtp_const.GIT_BIN_DEFAULT:  gtp_const.GIT_BIN,
    gtp_const.JAVA_BIN_DEFAULT: gtp_const.JAVA_BIN,
}

# git subcommand -> (count, elapsed seconds)
_STATS = {}


class CommandFailedError(RuntimeError):

    """An external command returned a non-zero exit code."""

    def __init__(self, result):
        """Remember the result dict for whoever catches us."""
        self.result = result
        RuntimeError.__init__(self, _('Command failed: {cmd}'
                                      '\nexit code: {ec}.'
                                      '\nstdout:\n{out}'
                                      '\nstderr:\n{err}')
                              .format(ec=result['ec'],
                                      cmd=result['cmd'],
                                      out=result.get('out', ''),
                                      err=result.get('err', '')))


def set_tool_paths(tool_paths):
    """Run these paths in place of the bare program names 'git' and 'java'."""
    _TOOL_PATHS.update(tool_paths)


def translate_cmd(cmd):
    """Translate 'git'/'java' to the configured binaries."""
    path = _TOOL_PATHS.get(cmd[0])
    if not path or path == cmd[0]:      # no translation required
        return cmd
    new_cmd = list(cmd)
    new_cmd[0] = path
    return new_cmd


def _child_env(env):
    """Return the environment for a child: ours, plus any overrides."""
    if not env:
        return None
    child_env = os.environ.copy()
    child_env.update(env)
    return child_env


def _record_stats(cmd, elapsed_time):
    """Accumulate count and time for each git subcommand."""
    if cmd[0] != gtp_const.GIT_BIN_DEFAULT or len(cmd) < 2:
        return
    git_cmd = cmd[1]
    if git_cmd == 'lfs' and len(cmd) > 2:
        git_cmd = 'lfs ' + cmd[2]
    current = _STATS.get(git_cmd, (0, 0))
    _STATS[git_cmd] = (current[0] + 1, current[1] + elapsed_time)


@atexit.register
def log_stats():
    """Log statistics for git commands run."""
    if not _STATS:
        return
    # sort by time
    LOG.debug("\ngit command statistics:\n" +
              "\n".join(["\t{:16.16}: {:6} {:8.3f}".format(k, v[0], v[1]) for (k, v)
                         in sorted(_STATS.items(), key=lambda kv: kv[1][1], reverse=True)]))


def _log_cmd_result(result, expect_error):
    """
    Record the command results in the log.

    If command completed successfully, record output at DEBUG level so that
    folks can suppress it with cmd:INFO. But if command completed with error
    (non-zero return code), then record its output at ERROR level so that
    cmd:INFO users still see it.
    """
    ec = result['ec']
    out = result.get('out', '')
    err = result.get('err', '')
    if (not ec) or expect_error:
        log_level = logging.DEBUG
    else:
        log_level = logging.ERROR
        log = logging.getLogger('cmd.cmd')
        if not log.isEnabledFor(logging.DEBUG):
            # We did not log the command. Do so now.
            log.log(log_level, result['cmd'])
    logging.getLogger('cmd.exit').log(log_level, NTR("exit: {0}").format(ec))
    out_log = logging.getLogger('cmd.out')
    out_log.debug(NTR("out : ct={0}").format(len(out)))
    if len(out) and out_log.isEnabledFor(logging.DEBUG3):
        out_log.debug3(NTR("out :\n{0}").format(out.replace('\x00', ' ')))
    if len(err):
        logging.getLogger('cmd.err').log(log_level, NTR("err :\n{0}").format(err))


def _validate_cmd(cmd, cwd):
    """Check that cmd is a list and cwd is given, log the command."""
    if not isinstance(cmd, list):
        raise TypeError(_('command not of list type: {cmd}').format(cmd=cmd))
    if not cwd:
        raise ValueError(_('no working directory for command: {cmd}')
                         .format(cmd=' '.join(cmd)))
    logging.getLogger("cmd.cmd").debug('({cwd}) {cmd}'.format(cwd=cwd, cmd=' '.join(cmd)))


def _popen_no_throw_internal(cmd_, cwd, expect_error, stdin=None, env=None):
    """Internal Popen() wrapper that records command and result to log.

    The standard output and error results are converted to text using
    the gtp_char.decode() function.
    """
    _validate_cmd(cmd_, cwd)
    cmd = translate_cmd(cmd_)
    start_time = time.time()
    try:
        p = subprocess.Popen(cmd, cwd=cwd, stdout=subprocess.PIPE,
                             stderr=subprocess.PIPE, stdin=subprocess.PIPE,
                             env=_child_env(env))
        LOG.debug2('popen() communicating with {}, pid={}'.format(cmd, p.pid))
        fd = p.communicate(stdin)
        result = {'out': gtp_char.decode(fd[0]),
                  'err': gtp_char.decode(fd[1]),
                  'ec':  p.returncode}
    except OSError as e:
        LOG.warning("OSError in subprocess: {}".format(e))
        result = {'out': '', 'err': str(e), 'ec': os.EX_OSERR}
    _record_stats(cmd_, time.time() - start_time)
    result['cmd'] = ' '.join(cmd_)   # use the untranslated cmd_ for logging
    result['cwd'] = cwd
    _log_cmd_result(result, expect_error)
    return result


def popen_no_throw(cmd, cwd, stdin=None, env=None):
    """Call popen() and return, even if popen() returns a non-zero returncode.

    Prefer popen() to popen_no_throw(): popen() will automatically fail fast
    and report errors. Use popen_no_throw() only when you expect, and
    recover from, errors.
    """
    return _popen_no_throw_internal(cmd, cwd, True, stdin, env)


def popen(cmd, cwd, stdin=None, env=None):
    """Run cmd in cwd, capture its output, raise CommandFailedError on failure.

    Returns dict with keys 'ec', 'out', 'err', 'cmd', 'cwd'.
    """
    result = _popen_no_throw_internal(cmd, cwd, False, stdin, env)
    if result['ec'] == 0:
        return result
    raise CommandFailedError(result)


def wait(cmd_, cwd, env=None):
    """Run cmd in cwd with output going straight to our terminal.

    For long-running tools (gc, the history rewriter) whose progress the
    operator wants to see. Raises CommandFailedError on non-zero exit.
    """
    _validate_cmd(cmd_, cwd)
    cmd = translate_cmd(cmd_)
    start_time = time.time()
    try:
        p = subprocess.Popen(cmd, cwd=cwd, env=_child_env(env))
        LOG.debug2('wait() waiting for {}, pid={}'.format(cmd, p.pid))
        ec = p.wait()
        result = {'ec': ec}
    except OSError as e:
        LOG.warning("OSError in subprocess: {}".format(e))
        result = {'ec': os.EX_OSERR, 'err': str(e)}
    _record_stats(cmd_, time.time() - start_time)
    result['cmd'] = ' '.join(cmd_)
    result['cwd'] = cwd
    _log_cmd_result(result, False)
    if result['ec'] == 0:
        return result
    raise CommandFailedError(result)
