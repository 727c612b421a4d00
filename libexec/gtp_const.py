#! /usr/bin/env python3
"""git-transplant package constants."""

import os

from   gtp_l10n import NTR

# pylint:disable=line-too-long

GTP_PRODUCT_NAME                    = NTR('git-transplant')
GTP_VERSION                         = NTR('1.0.0')

# -----------------------------------------------------------------------------
# Environment vars

GTP_HOME_NAME                       = NTR('GTP_HOME')
GTP_CONFIG_PATH                     = NTR('GTP_CONFIG')
GTP_LOG_CONFIG_PATH                 = NTR('GTP_LOG_CONFIG_FILE')
GTP_GIT_BIN                         = NTR('GTP_GIT_BIN')
GTP_JAVA_BIN                        = NTR('GTP_JAVA_BIN')
GTP_BFG_JAR                         = NTR('GTP_BFG_JAR')

# Set on the destination clone so that git-lfs does not try to download
# payloads that only exist in the scratch clone's staging area.
GIT_LFS_SKIP_SMUDGE                 = NTR('GIT_LFS_SKIP_SMUDGE')

GTP_HOME                            = os.environ.get(GTP_HOME_NAME,
                                                     os.path.expanduser(NTR('~/.git-transplant')))

# -----------------------------------------------------------------------------
# Tools

GIT_BIN_DEFAULT                     = NTR('git')
GIT_BIN                             = os.environ.get(GTP_GIT_BIN, GIT_BIN_DEFAULT)
GIT_LFS_BIN                         = NTR('git-lfs')
JAVA_BIN_DEFAULT                    = NTR('java')
JAVA_BIN                            = os.environ.get(GTP_JAVA_BIN, JAVA_BIN_DEFAULT)
BFG_JAR                             = os.environ.get(GTP_BFG_JAR, NTR('/opt/bfg/bfg.jar'))

# -----------------------------------------------------------------------------
# Defaults

DEFAULT_SOURCE_BRANCH               = NTR('master')
DEFAULT_TARGET_BRANCH               = NTR('develop')

# Binary, document and image formats that do not belong in the object
# database. Matched exactly against the text after the last dot.
DEFAULT_LFS_EXTENSIONS = NTR([
    # images
    'png', 'jpg', 'jpeg', 'gif', 'bmp', 'tif', 'tiff', 'ico', 'psd', 'svgz', 'webp',
    # documents
    'pdf', 'doc', 'docx', 'xls', 'xlsx', 'ppt', 'pptx', 'odt', 'ods', 'odp',
    # archives
    'zip', '7z', 'gz', 'tgz', 'bz2', 'xz', 'rar', 'tar', 'jar', 'war', 'nupkg',
    # binaries
    'exe', 'dll', 'so', 'dylib', 'lib', 'a', 'o', 'obj', 'pdb', 'bin', 'msi',
    # media
    'mp3', 'mp4', 'wav', 'avi', 'mov', 'mkv', 'flac', 'ogg',
    # fonts
    'ttf', 'otf', 'woff', 'woff2', 'eot',
])

# -----------------------------------------------------------------------------
# Git and git-lfs layout

GITMODULES                          = NTR('.gitmodules')
GIT_DIR_NAME                        = NTR('.git')
LFS_OBJECTS_BARE                    = NTR('lfs/objects')        # relative to a bare repo
LFS_OBJECTS_WORK                    = NTR('.git/lfs/objects')   # relative to a work tree
LFS_POINTER_HEADER                  = b'version https://git-lfs.github.com/spec/v1'
# git-lfs never writes pointers larger than this.
LFS_POINTER_MAX_SIZE                = 1024

# Scratch clone name: "<name>.git" beside the destination "<name>".
SCRATCH_SUFFIX                      = NTR('.git')

RELOCATE_COMMIT_MSG                 = NTR('Import {name}: move history into {name}/')
MERGE_COMMIT_MSG                    = NTR("Merge branch '{source_branch}' of {url} into {name}/")

# -----------------------------------------------------------------------------
# Exit codes

EXIT_OK                             = 0
EXIT_FAILED                         = 1
EXIT_PRECONDITION                   = 2
EXIT_MANUAL_ACTION                  = 3
