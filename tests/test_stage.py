"""Tests for the fail-fast stage gate."""

import pytest

import gtp_const
import gtp_proc
from   gtp_stage import Stage, StageError, PreconditionError, VerificationError


def _failed():
    return gtp_proc.CommandFailedError({'cmd': 'git gc', 'ec': 128, 'out': '', 'err': 'fatal'})


def test_command_failure_names_the_stage():
    with pytest.raises(StageError) as excinfo:
        with Stage('Compact scratch clone'):
            raise _failed()
    assert excinfo.value.stage == 'Compact scratch clone'
    assert 'Compact scratch clone' in str(excinfo.value)
    assert isinstance(excinfo.value.__cause__, gtp_proc.CommandFailedError)


def test_os_error_names_the_stage():
    with pytest.raises(StageError):
        with Stage('Move files'):
            raise FileNotFoundError('gone')


def test_state_is_read_when_the_stage_fails():
    state = ['Start']
    with pytest.raises(StageError) as excinfo:
        with Stage('Fetch', state=lambda: state[0]):
            state[0] = 'RemoteAdded'
            raise _failed()
    assert excinfo.value.state == 'RemoteAdded'
    assert 'RemoteAdded' in str(excinfo.value)


def test_other_exceptions_pass_through():
    with pytest.raises(KeyError):
        with Stage('Anything'):
            raise KeyError('x')


def test_success_is_silent():
    with Stage('Nothing'):
        pass


def test_exit_codes():
    assert StageError('s', 'd').exit_code == gtp_const.EXIT_FAILED
    assert VerificationError('s', 'd').exit_code == gtp_const.EXIT_FAILED
    assert PreconditionError('p').exit_code == gtp_const.EXIT_PRECONDITION
