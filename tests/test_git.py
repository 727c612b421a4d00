"""Tests for pygit2 history inspection."""

import pygit2

import gtp_git

from conftest import SIG, make_work_repo

GITMODULES = '[submodule "vendor"]\n\tpath = lib/vendor\n\turl = https://example.com/v.git\n'


def test_open_repo_and_kinds(tmp_path):
    make_work_repo(tmp_path / 'work', 'master', [{'a.txt': 'a\n'}])
    pygit2.init_repository(str(tmp_path / 'bare.git'), bare=True)

    assert gtp_git.is_work_tree(str(tmp_path / 'work'))
    assert not gtp_git.is_bare_git_repo(str(tmp_path / 'work'))
    assert gtp_git.is_bare_git_repo(str(tmp_path / 'bare.git'))
    assert not gtp_git.is_work_tree(str(tmp_path / 'bare.git'))
    assert not gtp_git.is_work_tree(str(tmp_path))


def test_subdirectory_is_not_the_work_tree(tmp_path):
    make_work_repo(tmp_path, 'master', [{'sub/a.txt': 'a\n'}])
    assert not gtp_git.is_work_tree(str(tmp_path / 'sub'))


def test_branch_and_head(tmp_path):
    repo = make_work_repo(tmp_path, 'develop', [{'a.txt': '1\n'}, {'a.txt': '2\n'}])
    head = gtp_git.head_commit(repo)
    assert gtp_git.branch_sha1(repo, 'develop') == str(head.id)
    assert gtp_git.branch_sha1(repo, 'master') is None
    assert len(head.parent_ids) == 1
    assert gtp_git.remote_names(repo) == []


def test_head_of_empty_repo(tmp_path):
    repo = pygit2.init_repository(str(tmp_path))
    assert gtp_git.head_commit(repo) is None
    assert gtp_git.parse_gitmodules_for_path(repo, None) is None


def test_find_entry(tmp_path):
    repo = make_work_repo(tmp_path, 'master', [{'a/b/c.txt': 'c\n'}])
    tree = gtp_git.head_commit(repo).tree
    assert gtp_git.find_entry(repo, tree, 'a/b/c.txt').name == 'c.txt'
    assert gtp_git.find_entry(repo, tree, 'a/b').filemode == gtp_git.FILEMODE_TREE
    assert gtp_git.find_entry(repo, tree, 'a/x') is None
    assert gtp_git.find_entry(repo, tree, 'a/b/c.txt/d') is None


def test_parse_gitmodules_for_path(tmp_path):
    repo = make_work_repo(tmp_path, 'master', [{'lib/.gitmodules': GITMODULES}])
    head = gtp_git.head_commit(repo)
    parser = gtp_git.parse_gitmodules_for_path(repo, head, 'lib/.gitmodules')
    assert parser.get('submodule "vendor"', 'path') == 'lib/vendor'
    assert gtp_git.parse_gitmodules_for_path(repo, head) is None


def test_unparseable_gitmodules_is_still_a_manifest(tmp_path):
    repo = make_work_repo(tmp_path, 'master', [{'.gitmodules': 'not [ini\n'}])
    parser = gtp_git.parse_gitmodules_for_path(repo, gtp_git.head_commit(repo))
    assert parser is not None
    assert parser.sections() == []


def test_submodule_iter(tmp_path):
    repo = pygit2.init_repository(str(tmp_path), bare=True)
    gitlink = pygit2.Oid(hex='1' * 40)
    inner = repo.TreeBuilder()
    inner.insert('vendor', gitlink, gtp_git.FILEMODE_COMMIT)
    inner.insert('README', repo.create_blob(b'lib\n'), 0o100644)
    outer = repo.TreeBuilder()
    outer.insert('lib', inner.write(), gtp_git.FILEMODE_TREE)
    commit_id = repo.create_commit('refs/heads/master', SIG, SIG, 'gitlink', outer.write(), [])

    assert list(gtp_git.submodule_iter(repo, repo[commit_id])) == [('lib/vendor', '1' * 40)]


def test_iter_history_trees_visits_each_tree_once(tmp_path):
    repo = make_work_repo(tmp_path, 'master', [
        {'README': '1\n', 'shared/x.txt': 'x\n'},
        {'README': '2\n', 'shared/x.txt': 'x\n'},
    ])
    tip = gtp_git.branch_sha1(repo, 'master')
    paths = [gwt_path for _commit, gwt_path, _entry in gtp_git.iter_history_trees(repo, tip)]
    # Two root trees, one shared subtree.
    assert sorted(paths) == ['README', 'README', 'shared', 'shared', 'shared/x.txt']
