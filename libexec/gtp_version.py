#! /usr/bin/env python3
"""Functions to implement the -V version string."""

import platform

import pygit2

import gtp_const
from   gtp_l10n import NTR


def as_single_line():
    """Return 'git-transplant/1.0.0'."""
    return NTR('{product}/{version}').format(product=gtp_const.GTP_PRODUCT_NAME,
                                             version=gtp_const.GTP_VERSION)


def as_string():
    """Return a few lines of version info, ours and that of our libraries."""
    l = [as_single_line()]
    l.append(NTR('Python: {}').format(platform.python_version()))
    l.append(NTR('pygit2: {} (libgit2 {})').format(pygit2.__version__, pygit2.LIBGIT2_VERSION))
    return '\n'.join(l)
