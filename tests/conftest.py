"""
Pytest fixtures for the entire test suite.

This file defines:
1. Session-scoped fixtures that generate the Git test repositories once.
2. Function-scoped fixtures that provide Repo objects to tests.
3. A fake command runner that replays captured RCS, CVS and SVN output.
"""
import pytest
from git import Repo
from tests.fixtures.create_test_repos import create_history_repo, create_rename_repo


@pytest.fixture(scope="session")
def test_repos_dir(tmp_path_factory):
    """
    Creates all test repositories once per test session in a temporary directory.
    """
    repos_dir = tmp_path_factory.mktemp("git_repos")

    repo_paths = {
        "history": repos_dir / "history",
        "rename": repos_dir / "rename",
    }

    create_history_repo(repo_paths["history"])
    create_rename_repo(repo_paths["rename"])

    return repo_paths


@pytest.fixture
def history_repo(test_repos_dir) -> Repo:
    """Provides the repository where notes.md has 10 commits."""
    return Repo(test_repos_dir["history"])


@pytest.fixture
def rename_repo(test_repos_dir) -> Repo:
    """Provides the repository where old.txt was renamed to new.txt."""
    return Repo(test_repos_dir["rename"])


class FakeRunner:
    """
    Stands in for vcs_backends.run_command.

    Maps the client binary plus its first argument (e.g. "rlog", "svn log")
    to canned output, and records every command it is asked to run.
    """

    def __init__(self, outputs):
        self.outputs = outputs
        self.commands = []

    def __call__(self, command, binary=False):
        self.commands.append(command)
        key = " ".join(command[:2]) if command[0] in ("svn", "cvs") else command[0]
        output = self.outputs[key]
        if isinstance(output, Exception):
            raise output
        if binary:
            return output.encode("utf-8")
        return output


@pytest.fixture
def fake_runner():
    """Factory for FakeRunner instances loaded with captured output."""
    return FakeRunner
