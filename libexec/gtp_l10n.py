#! /usr/bin/env python3
"""Message catalog support.

    from gtp_l10n import _, NTR

_() marks text a user reads and looks it up in the git-transplant
catalog under libexec/mo/, if one is installed. NTR() marks text that must
never be translated: git arguments, config keys, logger names.
"""
import gettext
import logging
import os
import sys

# Imports no gtp_xxx module: every other one imports this.

DOMAIN      = 'git-transplant'
LOCALE_DIR  = os.path.join(os.path.dirname(os.path.realpath(__file__)), 'mo')


def NTR(x):             # pylint:disable=invalid-name
    """No-TRanslate: return x unchanged."""
    return x


def diagnostics():
    """Return lines saying which catalog, if any, we found and why."""
    fmt = '{:<13}: {}'
    lines = [fmt.format(NTR('argv[0]'), sys.argv[0]),
             fmt.format(NTR('locale dir'), LOCALE_DIR)]
    lines.extend(fmt.format(var, os.environ.get(var))
                 for var in NTR(['LANGUAGE', 'LC_ALL', 'LC_MESSAGES', 'LANG']))
    lines.append(fmt.format(NTR('.mo file'), gettext.find(DOMAIN, localedir=LOCALE_DIR)))
    return lines


def log_l10n():
    """Write diagnostics() to the debug log.

    Call after gtp_log has configured logging, not at import time.
    """
    log = logging.getLogger(__name__)
    if log.isEnabledFor(logging.DEBUG2):
        for line in diagnostics():
            log.debug2(line)


gettext.bindtextdomain(DOMAIN, localedir=LOCALE_DIR)
gettext.textdomain(DOMAIN)
_ = gettext.gettext
