"""Tests for the process runner."""

import os
import sys

import pytest

import gtp_char
import gtp_proc


def test_popen_captures_output(tmp_path):
    result = gtp_proc.popen([sys.executable, '-c', 'import os; print(os.getcwd())'],
                            str(tmp_path))
    assert result['ec'] == 0
    assert os.path.realpath(result['out'].strip()) == os.path.realpath(str(tmp_path))
    assert result['cwd'] == str(tmp_path)


def test_popen_raises_on_nonzero_exit(tmp_path):
    with pytest.raises(gtp_proc.CommandFailedError) as excinfo:
        gtp_proc.popen([sys.executable, '-c',
                        'import sys; sys.stderr.write("boom"); sys.exit(3)'],
                       str(tmp_path))
    assert excinfo.value.result['ec'] == 3
    assert 'boom' in excinfo.value.result['err']
    assert 'exit code: 3' in str(excinfo.value)


def test_popen_no_throw_returns_failure(tmp_path):
    result = gtp_proc.popen_no_throw([sys.executable, '-c', 'import sys; sys.exit(4)'],
                                     str(tmp_path))
    assert result['ec'] == 4


def test_popen_passes_env_overrides(tmp_path):
    result = gtp_proc.popen([sys.executable, '-c',
                             'import os; print(os.environ["GTP_TEST_VAR"])'],
                            str(tmp_path), env={'GTP_TEST_VAR': 'seen'})
    assert result['out'].strip() == 'seen'


def test_missing_program_is_a_failure_not_a_crash(tmp_path):
    with pytest.raises(gtp_proc.CommandFailedError):
        gtp_proc.popen(['gtp-no-such-program-anywhere'], str(tmp_path))


def test_wait_raises_on_nonzero_exit(tmp_path):
    with pytest.raises(gtp_proc.CommandFailedError):
        gtp_proc.wait([sys.executable, '-c', 'import sys; sys.exit(1)'], str(tmp_path))


def test_command_must_be_list(tmp_path):
    with pytest.raises(TypeError):
        gtp_proc.popen('git status', str(tmp_path))


def test_working_directory_is_required():
    with pytest.raises(ValueError):
        gtp_proc.popen(['git', 'status'], None)


def test_translate_cmd(monkeypatch):
    monkeypatch.setitem(gtp_proc._TOOL_PATHS, 'git', '/opt/git/bin/git')
    assert gtp_proc.translate_cmd(['git', 'gc']) == ['/opt/git/bin/git', 'gc']
    assert gtp_proc.translate_cmd(['ls', '-l']) == ['ls', '-l']


def test_decode_falls_back_to_latin_1():
    assert gtp_char.decode('café'.encode('utf8')) == 'café'
    assert gtp_char.decode(b'caf\xe9') == 'café'
    assert gtp_char.decode('already text') == 'already text'
