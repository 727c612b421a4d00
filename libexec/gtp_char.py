#! /usr/bin/env python3
"""Turn tool output of unknown encoding into text."""
from   gtp_l10n import NTR

# latin_1 maps every byte, so it never fails and must come last.
ENCODINGS = NTR(['utf8', 'latin_1'])


def decode(bites):
    """Return bites as str, trying each of ENCODINGS in turn. str passes through."""
    if isinstance(bites, str):
        return bites
    for encoding in ENCODINGS[:-1]:
        try:
            return bites.decode(encoding)
        except UnicodeDecodeError:
            pass
    return bites.decode(ENCODINGS[-1])
