"""
vcs_backends.py - The four supported version-control backends.

Each backend knows how to validate range endpoints, expand a range into
revisions, look up the head revision of a file, and fetch the content of
one revision. Backend queries run the client binaries through `run_command`,
read the whole output, and scan it in memory.

Usage:
    backend = get_backend(detect_backend("foo.c"))
    backend.head_revision("foo.c")
"""

import logging
import re
import subprocess
from pathlib import Path
from typing import Callable, Dict, List, Optional, Type

from git import GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo

from git_history import open_repository, repo_relative_path
from revision_ranges import RevisionRange, RevisionSpec, parse_revision_spec
from vcs_errors import LookupFailure, UsageError

logger = logging.getLogger(__name__)

Runner = Callable[..., object]


def run_command(command: List[str], binary: bool = False):
    """
    Execute a backend client command and return its standard output.

    Args:
        command: The full argument vector, client binary first
        binary: Return raw bytes instead of decoded text

    Raises:
        LookupFailure: If the client is missing or exits with an error
    """
    logger.debug(f"Running: {' '.join(command)}")
    try:
        result = subprocess.run(command, capture_output=True, check=True)
    except FileNotFoundError:
        raise LookupFailure(f"'{command[0]}' command not found. Is it installed and in your PATH?")
    except subprocess.CalledProcessError as e:
        stderr = e.stderr.decode("utf-8", errors="replace").strip()
        raise LookupFailure(f"Command failed: {' '.join(command)}: {stderr}")

    if binary:
        return result.stdout
    return result.stdout.decode("utf-8", errors="replace")


class Backend:
    """
    Interface shared by all backends.

    Subclasses set `endpoint_pattern` and implement `expand_range`,
    `head_revision` and `retrieve`.
    """

    name = ""
    endpoint_pattern: Optional["re.Pattern"] = None
    endpoint_description = ""

    def __init__(self, runner: Runner = run_command):
        self.runner = runner

    def parse_range(self, token: str) -> RevisionSpec:
        """Classify a revision argument and validate range endpoints."""
        spec = parse_revision_spec(token)
        if isinstance(spec, RevisionRange):
            self.validate_endpoint(spec.first, token)
            if spec.last is not None:
                self.validate_endpoint(spec.last, token)
        return spec

    def validate_endpoint(self, value: str, token: str):
        if not self.endpoint_pattern.match(value):
            raise UsageError(
                f"Invalid {self.name} revision '{value}' in range '{token}': "
                f"expected {self.endpoint_description}"
            )

    def expand_range(self, first: str, last: str, filename: str) -> List[str]:
        raise NotImplementedError

    def head_revision(self, filename: str) -> str:
        raise NotImplementedError

    def retrieve(self, filename: str, revision: str) -> bytes:
        raise NotImplementedError

    def _scan_for_marker(self, command: List[str], marker: "re.Pattern", filename: str) -> str:
        output = self.runner(command)
        for line in output.splitlines():
            match = marker.match(line)
            if match:
                return match.group(1)
        raise LookupFailure(f"Could not find the {self.name} head revision of '{filename}'")


class RCSBackend(Backend):
    """RCS: dotted numeric revisions counted along a branch."""

    name = "RCS"
    endpoint_pattern = re.compile(r"^\d+(?:\.\d+)+$")
    endpoint_description = "dot-separated numbers such as 1.42"
    head_marker = re.compile(r"^head:\s*(\S+)")

    def log_command(self, filename: str) -> List[str]:
        return ["rlog", "-h", filename]

    def retrieve_command(self, filename: str, revision: str) -> List[str]:
        return ["co", "-q", f"-p{revision}", filename]

    def head_revision(self, filename: str) -> str:
        return self._scan_for_marker(self.log_command(filename), self.head_marker, filename)

    def expand_range(self, first: str, last: str, filename: str) -> List[str]:
        """
        Every revision from `first` to `last` on one branch, e.g.
        1.5..1.7 -> 1.5, 1.6, 1.7.
        """
        first_branch, _, first_tail = first.rpartition(".")
        last_branch, _, last_tail = last.rpartition(".")
        if first_branch != last_branch:
            raise UsageError(f"Range {first}..{last} spans branches {first_branch} and {last_branch}")
        if int(first_tail) > int(last_tail):
            raise UsageError(f"Range {first}..{last} is inverted")
        return [f"{first_branch}.{tail}" for tail in range(int(first_tail), int(last_tail) + 1)]

    def retrieve(self, filename: str, revision: str) -> bytes:
        return self.runner(self.retrieve_command(filename, revision), binary=True)


class CVSBackend(RCSBackend):
    """CVS: RCS revision numbering behind the cvs client."""

    name = "CVS"

    def log_command(self, filename: str) -> List[str]:
        return ["cvs", "log", "-h", filename]

    def retrieve_command(self, filename: str, revision: str) -> List[str]:
        return ["cvs", "-Q", "update", "-p", "-r", revision, filename]


class SVNBackend(Backend):
    """SVN: repository-wide integer revisions, sparse for any one file."""

    name = "SVN"
    endpoint_pattern = re.compile(r"^\d+$")
    endpoint_description = "a decimal revision number"
    revision_marker = re.compile(r"^r(\d+)\b")

    def head_revision(self, filename: str) -> str:
        return self._scan_for_marker(
            ["svn", "log", "-q", "-l", "1", filename], self.revision_marker, filename
        )

    def file_revisions(self, filename: str) -> List[int]:
        """Revisions in which the file changed, oldest first."""
        output = self.runner(["svn", "log", "-q", filename])
        revisions = []
        for line in output.splitlines():
            match = self.revision_marker.match(line)
            if match:
                revisions.append(int(match.group(1)))
        revisions.reverse()
        return revisions

    def expand_range(self, first: str, last: str, filename: str) -> List[str]:
        low, high = int(first), int(last)
        if low > high:
            raise UsageError(f"Range {first}..{last} is inverted")
        return [str(r) for r in self.file_revisions(filename) if low <= r <= high]

    def retrieve(self, filename: str, revision: str) -> bytes:
        return self.runner(["svn", "cat", "-r", revision, filename], binary=True)


class GitBackend(Backend):
    """
    Git: versions come from the numbered history in git_history, so ranges
    are not expanded here.
    """

    name = "Git"

    def __init__(self, runner: Runner = run_command, repo: Optional[Repo] = None):
        super().__init__(runner)
        self._repo = repo

    def repo_for(self, filename: str) -> Repo:
        if self._repo is None:
            self._repo = open_repository(filename)
        return self._repo

    def parse_range(self, token: str) -> RevisionSpec:
        spec = parse_revision_spec(token)
        if isinstance(spec, RevisionRange):
            raise UsageError(f"Git does not support revision ranges ('{token}'); use -last N")
        return spec

    def expand_range(self, first: str, last: str, filename: str) -> List[str]:
        raise UsageError(f"Git does not support revision ranges ({first}..{last})")

    def head_revision(self, filename: str) -> str:
        repo = self.repo_for(filename)
        path = repo_relative_path(repo, filename)
        try:
            head = repo.git.log("-1", "--format=%H", "--", path)
        except GitCommandError as e:
            raise LookupFailure(f"git log failed for '{path}': {e}")
        if not head:
            raise LookupFailure(f"Could not find the Git head revision of '{filename}'")
        return head.strip()

    def retrieve(self, filename: str, revision: str) -> bytes:
        """
        Contents of `filename` at `revision`.

        A revision already written as `<commit>:<path>` names the file by the
        path it had in that commit, which differs from the current one for
        versions from before a rename.
        """
        repo = self.repo_for(filename)
        if ":" in revision:
            revision, path = revision.split(":", 1)
        else:
            path = repo_relative_path(repo, filename)
        try:
            return repo.git.show(
                f"{revision}:{path}", stdout_as_string=False, strip_newline_in_stdout=False
            )
        except GitCommandError as e:
            raise LookupFailure(f"git show {revision[:8]}:{path} failed: {e}")


BACKENDS: Dict[str, Type[Backend]] = {
    "rcs": RCSBackend,
    "cvs": CVSBackend,
    "svn": SVNBackend,
    "git": GitBackend,
}


def get_backend(name: str, runner: Runner = run_command) -> Backend:
    try:
        backend_class = BACKENDS[name.lower()]
    except KeyError:
        raise UsageError(f"Unknown backend '{name}'")
    return backend_class(runner)


def detect_backend(filename: str) -> str:
    """
    Guess which backend tracks `filename` from the files around it.

    Returns:
        One of "rcs", "cvs", "svn", "git"
    """
    path = Path(filename)
    directory = path.parent

    if (directory / "RCS" / f"{path.name},v").exists() or (directory / f"{path.name},v").exists():
        return "rcs"
    if (directory / "CVS" / "Entries").exists():
        return "cvs"

    resolved = directory.resolve()
    for parent in [resolved, *resolved.parents]:
        if (parent / ".svn").is_dir():
            return "svn"

    try:
        Repo(directory, search_parent_directories=True)
        return "git"
    except (InvalidGitRepositoryError, NoSuchPathError):
        pass

    raise UsageError(f"Cannot tell which version-control system tracks '{filename}'")
