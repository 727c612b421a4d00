#! /usr/bin/env python3
"""Debug and error log for gtp-sanitize and gtp-consolidate.

Settings come from the first of these files that exists:
$GTP_LOG_CONFIG_FILE, ~/.git-transplant/log.conf, /etc/git-transplant.log.conf

    [general]
    root      = warning
    filename  = %(home)s/transplant.log
    gtp_proc  = debug
    cmd.out   = debug2

'root' sets the root logger's level. Any other key that is not one of
filename, file, handler, format, datefmt names a logger and its level.
A file with no section header is read as [general]. With no file at all,
warnings and errors go to stderr.

This log is for diagnosis. Progress a user wants to see goes to the
'report' logger, which each command points at stdout.
"""

import configparser
import logging
import os
import sys
import tempfile

import gtp_bootstrap  # pylint: disable=unused-import
import gtp_const
from   gtp_ensure_dir import ensure_parent_dir
from   gtp_l10n      import _, NTR

LOG = logging.getLogger(__name__)

_GENERAL            = NTR('general')
_NOT_LOGGER_NAMES   = NTR(['root', 'filename', 'file', 'handler', 'format', 'datefmt'])
_DEFAULTS           = NTR({
    'root':     'WARNING',
    'format':   '%(asctime)s %(name)-15s %(levelname)-8s %(message)s',
    'datefmt':  '%m-%d %H:%M:%S',
})

_configured_path    = None
_configured         = False


def config_file_candidates():
    """Return the log config files we look for, in the order we look."""
    candidates = []
    if gtp_const.GTP_LOG_CONFIG_PATH in os.environ:
        candidates.append(os.environ[gtp_const.GTP_LOG_CONFIG_PATH])
    candidates.append(os.path.join(gtp_const.GTP_HOME, NTR('log.conf')))
    candidates.append(NTR('/etc/git-transplant.log.conf'))
    return candidates


def _find_config_file():
    """Return the first log config file that exists, None if none does."""
    for path in config_file_candidates():
        if os.path.exists(path):
            return path
    return None


def read_settings(text, source='<string>'):
    """Parse log config text into a dict of [general] settings over defaults.

    A broken file is reported to stderr and ignored.
    """
    parser = configparser.ConfigParser(interpolation=None)
    try:
        try:
            parser.read_string(text, source=source)
        except configparser.MissingSectionHeaderError:
            parser.read_string('[{}]\n{}'.format(_GENERAL, text), source=source)
    except configparser.Error as e:
        sys.stderr.write(_('git-transplant: log configuration error, using defaults: {exception}\n')
                         .format(exception=e))
        parser = configparser.ConfigParser(interpolation=None)

    settings = dict(_DEFAULTS)
    if parser.has_section(_GENERAL):
        settings.update(parser[_GENERAL])
    if 'file' in settings:
        settings['filename'] = settings.pop('file')
    if 'handler' in settings:
        settings.pop('filename', None)
    elif 'filename' in settings:
        settings['filename'] %= {'user': os.path.expanduser('~'),
                                 'tmp':  tempfile.gettempdir(),
                                 'home': gtp_const.GTP_HOME}
    return settings


def _handler(settings):
    """Return a handler writing to the configured file, else to stderr."""
    handler = settings.get('handler')
    if handler and handler != NTR('console'):
        sys.stderr.write(_('git-transplant: unrecognized log handler: {}\n').format(handler))
    path = settings.get('filename')
    if path and not handler:
        ensure_parent_dir(path)
        return logging.FileHandler(path, 'a', 'utf-8')
    return logging.StreamHandler()


def apply_settings(settings):
    """Point the root logger at one handler and set every configured level."""
    root = logging.getLogger()
    for h in root.handlers[:]:
        root.removeHandler(h)
    handler = _handler(settings)
    handler.setFormatter(logging.Formatter(settings['format'], settings['datefmt']))
    root.addHandler(handler)
    root.setLevel(settings['root'].upper())
    for name, level in settings.items():
        if name not in _NOT_LOGGER_NAMES:
            logging.getLogger(name).setLevel(level.upper())


def configure(config_path=None):
    """Configure logging once per process, or again for a different file."""
    global _configured, _configured_path
    if _configured and (config_path is None or config_path == _configured_path):
        return
    try:
        path = config_path or _find_config_file()
        text = ''
        if path:
            with open(path, 'r') as f:
                text = f.read()
        apply_settings(read_settings(text, source=path or '<defaults>'))
        _configured = True
        _configured_path = config_path
    except (OSError, ValueError) as e:
        # Unwritable log file or unknown level name: keep whatever logging we have.
        sys.stderr.write(_('git-transplant: Unable to configure log: {exception}\n')
                         .format(exception=e))


def _script_name():
    """Return 'gtp_sanitize' for argv[0] '/usr/bin/gtp_sanitize.py'."""
    return os.path.splitext(os.path.basename(sys.argv[0]))[0]


class ExceptionLogger:

    """Log any exception escaping a command, and remember the exit code for it.

    with gtp_log.ExceptionLogger(write_to_stderr=True) as el:
        el.exit_code = main()
    sys.exit(el.exit_code)

    The exit code comes from the exception's exit_code attribute: 2 for a
    PreconditionError, 1 for anything else. With write_to_stderr the
    message, and any usage text, is also shown to the user.
    """

    def __init__(self, write_to_stderr=False):
        self.exit_code = gtp_const.EXIT_FAILED
        self.write_to_stderr = write_to_stderr
        configure()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, exc_traceback):
        if exc_type is None:
            return False
        if isinstance(exc_value, SystemExit):
            # argparse and friends already said what was wrong.
            self.exit_code = exc_value.code
            return True
        if isinstance(exc_value, KeyboardInterrupt):
            logging.getLogger(_script_name()).warning("interrupted")
            return False

        logging.getLogger(_script_name()).error(
            "Caught exception", exc_info=(exc_type, exc_value, exc_traceback))
        self.exit_code = getattr(exc_value, 'exit_code', gtp_const.EXIT_FAILED)
        if self.write_to_stderr:
            sys.stderr.write('{}\n'.format(exc_value.args[0] if exc_value.args else exc_value))
            usage = getattr(exc_value, 'usage', None)
            if usage:
                sys.stderr.write('{}\n'.format(usage))
        return True


def run_with_exception_logger(func, *args, write_to_stderr=False):
    """Run a command's main(), log whatever it raises, exit with its code."""
    with ExceptionLogger(write_to_stderr=write_to_stderr) as el:
        LOG.debug("{} start --".format(_script_name()))
        el.exit_code = func(*args)
    LOG.debug("{} exit={} --".format(_script_name(), el.exit_code))
    sys.exit(el.exit_code)
