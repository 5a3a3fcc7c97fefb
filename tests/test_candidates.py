"""Tests for candidates.py - staged file discovery."""

import shutil
import subprocess

import pytest

from hookwise.candidates import repo_root, staged_files
from hookwise.exceptions import CoordinatorIOError

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


def _git(repo, *args):
    subprocess.run(["git", "-C", str(repo), *args], check=True, capture_output=True)


@pytest.fixture
def repo(tmp_path, monkeypatch):
    monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path.parent))
    path = tmp_path / "repo"
    path.mkdir()
    _git(path, "init", "-q")
    _git(path, "config", "user.email", "dev@example.com")
    _git(path, "config", "user.name", "Dev")
    (path / "kept.py").write_text("x = 1\n")
    (path / "removed.py").write_text("y = 1\n")
    _git(path, "add", ".")
    _git(path, "commit", "-q", "-m", "init")
    return path


class TestStagedFiles:
    """Test staged_files function."""

    def test_added_and_modified_listed(self, repo):
        (repo / "kept.py").write_text("x = 2\n")
        (repo / "new file.py").write_text("z = 1\n")
        _git(repo, "add", "kept.py", "new file.py")
        names = sorted(p.name for p in staged_files(repo))
        assert names == ["kept.py", "new file.py"]

    def test_deleted_files_excluded(self, repo):
        _git(repo, "rm", "-q", "removed.py")
        assert staged_files(repo) == []

    def test_unstaged_changes_excluded(self, repo):
        (repo / "kept.py").write_text("x = 3\n")
        assert staged_files(repo) == []

    def test_paths_are_absolute_from_subdirectory(self, repo):
        sub = repo / "pkg"
        sub.mkdir()
        (sub / "mod.py").write_text("")
        _git(repo, "add", "pkg/mod.py")
        (path,) = staged_files(sub)
        assert path == repo_root(repo) / "pkg" / "mod.py"

    def test_not_a_repository(self, tmp_path, monkeypatch):
        monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path.parent))
        outside = tmp_path / "plain"
        outside.mkdir()
        with pytest.raises(CoordinatorIOError):
            staged_files(outside)
