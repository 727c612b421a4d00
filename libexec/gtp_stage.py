#! /usr/bin/env python3
"""Fail-fast gating for the steps of a destructive pipeline.

    with gtp_stage.Stage(_('compact scratch clone')):
        gtp_gc.compact(scratch)

Any CommandFailedError or OSError raised inside the block becomes a
StageError that names the stage. Nothing is retried and nothing is rolled back.
"""

import logging
import time

import gtp_const
from   gtp_l10n import _
import gtp_proc
from   gtp_util import CommandError

LOG = logging.getLogger(__name__)
REPORT = logging.getLogger('report')


class StageError(CommandError):

    """An external tool failed during a named stage."""

    def __init__(self, stage, detail, state=None):
        """Remember the stage (and, where one applies, the state reached)."""
        self.stage = stage
        self.state = state
        if state is not None:
            msg = _("Stage '{stage}' failed in state {state}: {detail}") \
                .format(stage=stage, state=state, detail=detail)
        else:
            msg = _("Stage '{stage}' failed: {detail}").format(stage=stage, detail=detail)
        CommandError.__init__(self, msg)


class VerificationError(StageError):

    """A stage ran, but its result does not hold up to inspection."""


class PreconditionError(CommandError):

    """Refuse to start: nothing has been touched yet."""

    exit_code = gtp_const.EXIT_PRECONDITION


class Stage:

    """Context manager for one gated step of a pipeline."""

    def __init__(self, name, state=None):
        """Name the stage; state is reported in any failure message."""
        self.name = name
        self.state = state
        self.start_time = None

    def __enter__(self):
        """Announce the stage."""
        REPORT.info(_('{stage} ...').format(stage=self.name))
        self.start_time = time.time()
        return self

    def __exit__(self, exc_type, exc_value, exc_traceback):
        """Convert tool or filesystem failure to StageError, log elapsed time."""
        elapsed = time.time() - self.start_time
        if exc_type is None:
            LOG.debug("stage '{}' done in {:.3f}s".format(self.name, elapsed))
            return False
        LOG.debug("stage '{}' failed after {:.3f}s".format(self.name, elapsed))
        if issubclass(exc_type, (gtp_proc.CommandFailedError, OSError)):
            state = self.state() if callable(self.state) else self.state
            raise StageError(self.name, exc_value, state) from exc_value
        return False
