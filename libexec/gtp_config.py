#! /usr/bin/env python3
"""git-transplant configuration file.

Settings come from, highest precedence first: the command line, the config
file, the defaults in gtp_const. The config file is the first of
$GTP_CONFIG, ~/.git-transplant/config, /etc/git-transplant.conf that exists.

[tools]
git      = git
java     = java
bfg-jar  = /opt/bfg/bfg.jar

[sanitize]
source-branch  = master
lfs-extensions = png jpg pdf
work-dir       = .

[consolidate]
source-branch = master
target-branch = develop
"""

import configparser
import logging
import os
import re
import shutil

import gtp_const
from   gtp_l10n import _, NTR
from   gtp_stage import PreconditionError

LOG = logging.getLogger(__name__)

SECTION_TOOLS               = NTR('tools')
SECTION_SANITIZE            = NTR('sanitize')
SECTION_CONSOLIDATE         = NTR('consolidate')

KEY_GIT                     = NTR('git')
KEY_JAVA                    = NTR('java')
KEY_BFG_JAR                 = NTR('bfg-jar')
KEY_SOURCE_BRANCH           = NTR('source-branch')
KEY_TARGET_BRANCH           = NTR('target-branch')
KEY_LFS_EXTENSIONS          = NTR('lfs-extensions')
KEY_WORK_DIR                = NTR('work-dir')

_config_filename_home       = '{GTP_HOME}/config'
_config_filename_default    = '/etc/git-transplant.conf'


def _defaults():
    """Return the built-in settings as a dict of section dicts."""
    return {
        SECTION_TOOLS: {
            KEY_GIT:            gtp_const.GIT_BIN,
            KEY_JAVA:           gtp_const.JAVA_BIN,
            KEY_BFG_JAR:        gtp_const.BFG_JAR,
        },
        SECTION_SANITIZE: {
            KEY_SOURCE_BRANCH:  gtp_const.DEFAULT_SOURCE_BRANCH,
            KEY_LFS_EXTENSIONS: ' '.join(gtp_const.DEFAULT_LFS_EXTENSIONS),
            KEY_WORK_DIR:       '.',
        },
        SECTION_CONSOLIDATE: {
            KEY_SOURCE_BRANCH:  gtp_const.DEFAULT_SOURCE_BRANCH,
            KEY_TARGET_BRANCH:  gtp_const.DEFAULT_TARGET_BRANCH,
        },
    }


def find_config_file():
    """Return path to existing config file, None if no config file found."""
    if gtp_const.GTP_CONFIG_PATH in os.environ:
        path = os.environ[gtp_const.GTP_CONFIG_PATH]
        if not os.path.exists(path):
            raise PreconditionError(_('Config file {path} named by {var} does not exist.')
                                    .format(path=path, var=gtp_const.GTP_CONFIG_PATH))
        return path
    for path in [_config_filename_home.format(GTP_HOME=gtp_const.GTP_HOME),
                 _config_filename_default]:
        if os.path.exists(path):
            return path
    return None


class TransplantConfig:

    """Config file settings layered over built-in defaults."""

    def __init__(self, parser, file_path=None):
        self.parser = parser
        self.file_path = file_path

    @staticmethod
    def from_text(text, source='<string>'):
        """Parse config text. Used by tests and from_file()."""
        parser = configparser.ConfigParser(interpolation=None)
        parser.read_dict(_defaults())
        try:
            parser.read_string(text, source=source)
        except configparser.Error as e:
            raise PreconditionError(_('Unable to read config file {path}: {exception}')
                                    .format(path=source, exception=e))
        return TransplantConfig(parser, source)

    @staticmethod
    def from_file(file_path=None):
        """Read the config file, or use defaults if there is none."""
        if file_path is None:
            file_path = find_config_file()
        if not file_path:
            parser = configparser.ConfigParser(interpolation=None)
            parser.read_dict(_defaults())
            return TransplantConfig(parser)
        if not os.path.isfile(file_path):
            raise PreconditionError(_('Config file {path} does not exist.').format(path=file_path))
        LOG.debug("reading config file {}".format(file_path))
        with open(file_path, 'r') as f:
            return TransplantConfig.from_text(f.read(), source=file_path)

    def get(self, section, key):
        """Return one setting; empty values read as None."""
        value = self.parser.get(section, key, fallback=None)
        if value is not None:
            value = value.strip()
        return value or None

    def get_list(self, section, key):
        """Return a whitespace-or-comma separated setting as a list."""
        value = self.get(section, key)
        if not value:
            return []
        return [v for v in re.split(r'[\s,]+', value) if v]

    def tool_paths(self):
        """Return {program name: configured path} for gtp_proc.set_tool_paths()."""
        return {
            gtp_const.GIT_BIN_DEFAULT:  self.get(SECTION_TOOLS, KEY_GIT),
            gtp_const.JAVA_BIN_DEFAULT: self.get(SECTION_TOOLS, KEY_JAVA),
        }


def resolve_tools(config, need_bfg=False):
    """Confirm every external tool we need is present.

    Return {program name: absolute path}. Raise PreconditionError
    naming everything missing.
    """
    paths = config.tool_paths()
    wanted = [(gtp_const.GIT_BIN_DEFAULT, paths[gtp_const.GIT_BIN_DEFAULT]),
              (gtp_const.GIT_LFS_BIN,     gtp_const.GIT_LFS_BIN)]
    if need_bfg:
        wanted.append((gtp_const.JAVA_BIN_DEFAULT, paths[gtp_const.JAVA_BIN_DEFAULT]))

    resolved = {}
    missing = []
    for name, path in wanted:
        found = shutil.which(path) if path else None
        if found:
            resolved[name] = found
        else:
            missing.append(_('{name} (looked for {path})').format(name=name, path=path))

    if need_bfg:
        jar = config.get(SECTION_TOOLS, KEY_BFG_JAR)
        if jar and os.path.isfile(jar):
            resolved[KEY_BFG_JAR] = os.path.abspath(jar)
        else:
            missing.append(_('BFG Repo-Cleaner jar (looked for {path}, set {var} or [{section}] {key})')
                           .format(path=jar, var=gtp_const.GTP_BFG_JAR,
                                   section=SECTION_TOOLS, key=KEY_BFG_JAR))
    if missing:
        raise PreconditionError(_('Required tools not found:\n  {missing}')
                                .format(missing='\n  '.join(missing)))
    LOG.debug("resolved tools {}".format(resolved))
    return resolved
