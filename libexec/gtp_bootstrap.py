#! /usr/bin/env python3
"""Install the DEBUG2 and DEBUG3 log levels.

Imported, for its side effect, by every module that logs with
LOG.debug2() or LOG.debug3(). Imports no other gtp module.

    DEBUG   10  what each stage did
    DEBUG2   8  each command's stdout, per-file detail
    DEBUG3   7  every object touched
"""

import logging

logging.DEBUG2 = 8
logging.DEBUG3 = 7


def _level_method(level):
    """Return a Logger method that logs at level."""
    def log_at_level(self, msg, *args, **kwargs):
        if self.isEnabledFor(level):
            self._log(level, msg, args, **kwargs)  # pylint:disable=protected-access
    return log_at_level


for _name, _level in (('DEBUG2', logging.DEBUG2), ('DEBUG3', logging.DEBUG3)):
    logging.addLevelName(_level, _name)
    setattr(logging.Logger, _name.lower(), _level_method(_level))
