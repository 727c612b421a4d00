"""Tests for the consolidate command."""

import pytest

import gtp_config
import gtp_consolidate
import gtp_const
import gtp_git
import gtp_proc
from   gtp_relocate import ConsolidateResult, Outcome, RelocateState
from   gtp_stage import PreconditionError, StageError
import gtp_util

from conftest import make_work_repo

URL = 'https://example.com/group/lib.git'


@pytest.fixture
def host(monkeypatch, tmp_path):
    """A host repository on develop. Branch names are checked without git."""
    monkeypatch.setattr(gtp_git, 'is_valid_git_branch_name', lambda name, cwd: True)
    path = tmp_path / 'host'
    repo = make_work_repo(path, 'develop', [{'README.md': 'host\n'}])
    return repo, str(path)


def test_preconditions_pass(host):
    _repo, path = host
    gtp_consolidate.check_preconditions(path, 'lib', 'develop')


def test_not_a_work_tree(monkeypatch, tmp_path):
    monkeypatch.setattr(gtp_git, 'is_valid_git_branch_name', lambda name, cwd: True)
    with pytest.raises(PreconditionError):
        gtp_consolidate.check_preconditions(str(tmp_path), 'lib', 'develop')


@pytest.mark.parametrize('name', ['', 'a/b', '.', '..', '.git'])
def test_unusable_name(host, name):
    _repo, path = host
    with pytest.raises(PreconditionError):
        gtp_consolidate.check_preconditions(path, name, 'develop')


def test_invalid_ref_name(host, monkeypatch):
    _repo, path = host
    monkeypatch.setattr(gtp_git, 'is_valid_git_branch_name', lambda name, cwd: False)
    with pytest.raises(PreconditionError):
        gtp_consolidate.check_preconditions(path, 'lib..x', 'develop')


def test_name_equals_target(host):
    _repo, path = host
    with pytest.raises(PreconditionError):
        gtp_consolidate.check_preconditions(path, 'develop', 'develop')


def test_existing_remote(host):
    repo, path = host
    repo.remotes.create('lib', URL)
    with pytest.raises(PreconditionError) as excinfo:
        gtp_consolidate.check_preconditions(path, 'lib', 'develop')
    assert 'remote' in str(excinfo.value)


def test_existing_branch(host):
    repo, path = host
    repo.branches.local.create('lib', repo[repo.head.target])
    with pytest.raises(PreconditionError) as excinfo:
        gtp_consolidate.check_preconditions(path, 'lib', 'develop')
    assert 'branch' in str(excinfo.value)


def test_missing_target_branch(host):
    _repo, path = host
    with pytest.raises(PreconditionError):
        gtp_consolidate.check_preconditions(path, 'lib', 'main')


@pytest.fixture
def main_env(monkeypatch):
    """Let main() run without tools or a config file."""
    monkeypatch.setattr(gtp_config.TransplantConfig, 'from_file',
                        staticmethod(lambda file_path=None:
                                     gtp_config.TransplantConfig.from_text('')))
    monkeypatch.setattr(gtp_config, 'resolve_tools',
                        lambda config, need_bfg=False: {'git': '/usr/bin/git'})
    monkeypatch.setattr(gtp_proc, 'set_tool_paths', lambda paths: None)
    monkeypatch.setattr(gtp_util, 'apply_log_args', lambda args, logger=None, for_stdout=True: None)
    calls = []

    def _consolidate(outcome):
        def fake(work_tree, name, url, source_branch, target_branch):
            calls.append((name, url, source_branch, target_branch))
            manifest = 'lib/.gitmodules' if outcome == Outcome.SUBMODULE_CONFLICT else None
            return ConsolidateResult(outcome, manifest, 'b' * 40, 'd' * 40)
        monkeypatch.setattr(gtp_consolidate, 'consolidate', fake)
        return calls
    return _consolidate


def test_main_done(main_env, capsys):
    calls = main_env(Outcome.DONE)
    assert gtp_consolidate.main(['lib', URL]) == gtp_const.EXIT_OK
    assert calls == [('lib', URL, 'master', 'develop')]
    assert 'd' * 40 in capsys.readouterr().out


def test_main_branch_options(main_env):
    calls = main_env(Outcome.DONE)
    gtp_consolidate.main(['lib', URL, '-s', 'trunk', '-t', 'integration'])
    assert calls == [('lib', URL, 'trunk', 'integration')]


def test_main_submodule_conflict(main_env, capsys):
    main_env(Outcome.SUBMODULE_CONFLICT)
    assert gtp_consolidate.main(['lib', URL]) == gtp_const.EXIT_MANUAL_ACTION
    err = capsys.readouterr().err
    assert 'ACTION REQUIRED' in err
    assert 'lib/.gitmodules' in err


def test_main_reports_state_on_failure(monkeypatch, main_env, capsys):
    main_env(Outcome.DONE)

    def fail(*_args):
        raise StageError('Fetch', 'boom', RelocateState.REMOTE_ADDED)
    monkeypatch.setattr(gtp_consolidate, 'consolidate', fail)
    with pytest.raises(StageError):
        gtp_consolidate.main(['lib', URL])
    assert 'RemoteAdded' in capsys.readouterr().err
