"""Shared test fixtures for git-transplant.

Provides a command recorder standing in for the external tools, and
helpers that build small repositories with pygit2.
"""

import os
import shutil

import pygit2
import pytest

import gtp_proc

SIG = pygit2.Signature('Test Author', 'author@example.com', 1700000000, 0)


class CommandRecorder:

    """Records every command gtp_proc would have run, runs none of them.

    envs parallels calls: the env overrides each command was given.
    fail_on: a substring; the first command whose joined text contains it
    exits 1. on_cmd: callables run with (cmd, cwd) before the result is
    returned, to fake side effects such as a clone creating its directory.
    outputs: {substring: stdout text}.
    """

    def __init__(self):
        self.calls = []
        self.envs = []
        self.fail_on = None
        self.outputs = {}
        self.on_cmd = []

    def _run(self, cmd, cwd, **_kwargs):
        text = ' '.join(cmd)
        self.calls.append((text, cwd))
        self.envs.append(_kwargs.get('env'))
        for hook in self.on_cmd:
            hook(cmd, cwd)
        out = ''
        for key, value in self.outputs.items():
            if key in text:
                out = value
        result = {'cmd': text, 'cwd': cwd, 'out': out, 'err': '', 'ec': 0}
        if self.fail_on and self.fail_on in text:
            result['ec'] = 1
            result['err'] = 'fatal: simulated failure'
            raise gtp_proc.CommandFailedError(result)
        return result

    def popen(self, cmd, cwd, stdin=None, env=None):
        return self._run(cmd, cwd, env=env)

    def wait(self, cmd, cwd, env=None):
        return self._run(cmd, cwd, env=env)

    @property
    def commands(self):
        return [text for text, _cwd in self.calls]


@pytest.fixture
def recorder(monkeypatch):
    """Replace gtp_proc.popen/wait with a CommandRecorder."""
    rec = CommandRecorder()
    monkeypatch.setattr(gtp_proc, 'popen', rec.popen)
    monkeypatch.setattr(gtp_proc, 'wait', rec.wait)
    return rec


@pytest.fixture
def git_identity(monkeypatch):
    """Give git commands run by the code under test a fixed identity."""
    for key, value in [('GIT_AUTHOR_NAME', 'Test Author'),
                       ('GIT_AUTHOR_EMAIL', 'author@example.com'),
                       ('GIT_COMMITTER_NAME', 'Test Author'),
                       ('GIT_COMMITTER_EMAIL', 'author@example.com'),
                       ('GIT_CONFIG_NOSYSTEM', '1')]:
        monkeypatch.setenv(key, value)


def write_files(root, files):
    """Write {relative path: bytes or str} under root."""
    for rel, content in files.items():
        path = os.path.join(root, *rel.split('/'))
        os.makedirs(os.path.dirname(path), exist_ok=True)
        mode = 'wb' if isinstance(content, bytes) else 'w'
        with open(path, mode) as f:
            f.write(content)


def commit_all(repo, message):
    """Stage everything in repo's work tree and commit on HEAD."""
    repo.index.add_all()
    repo.index.write()
    tree = repo.index.write_tree()
    parents = [] if repo.head_is_unborn else [repo.head.target]
    return repo.create_commit('HEAD', SIG, SIG, message, tree, parents)


def make_work_repo(path, branch, snapshots):
    """Create a non-bare repo at path with one commit per {path: content} dict.

    Files named in a snapshot are written; files no longer named are
    deleted. Return the pygit2.Repository.
    """
    repo = pygit2.init_repository(str(path), bare=False, initial_head=branch)
    previous = set()
    for i, files in enumerate(snapshots):
        for rel in previous - set(files):
            os.remove(os.path.join(str(path), *rel.split('/')))
            repo.index.remove(rel)
        write_files(str(path), files)
        previous = set(files)
        commit_all(repo, 'commit {}'.format(i + 1))
    return repo


def have_tools(*names):
    """True if every named program is on PATH."""
    return all(shutil.which(n) for n in names)
