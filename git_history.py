"""
git_history.py - Numbered version history of a single file in Git.

Git has no per-file revision numbers, so the history of a file is read from
`git log`, reversed to run oldest first, and numbered 1..N. Numbers are
assigned over the full history before any `-last N` truncation, so a kept
record always carries the same number.
"""

import logging
import re
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from git import GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo

from naming_engine import (
    NamingOptions,
    VersionRecord,
    format_timestamp,
    render,
    target_name,
)
from vcs_errors import LookupFailure, UsageError

logger = logging.getLogger(__name__)

_COMMIT_RE = re.compile(r"^commit ([0-9a-f]{40})\b")
_DATE_RE = re.compile(r"^Date:\s+(\d+)\s*$")
_HEX_RE = re.compile(r"^[0-9a-fA-F]{4,40}$")

LOG_FORMAT = "commit %H%nDate: %ct%nFiles:"


# ============================================================================
# REPOSITORY ACCESS
# ============================================================================

def open_repository(filename: str) -> Repo:
    """Open the Git work tree containing `filename`."""
    directory = Path(filename).parent
    try:
        return Repo(directory, search_parent_directories=True)
    except (InvalidGitRepositoryError, NoSuchPathError) as e:
        raise LookupFailure(f"'{filename}' is not inside a Git work tree: {e}")


def repo_relative_path(repo: Repo, filename: str) -> str:
    """Path of `filename` relative to the work tree root, in Git's notation."""
    root = Path(repo.working_tree_dir).resolve()
    try:
        return Path(filename).resolve().relative_to(root).as_posix()
    except ValueError:
        raise UsageError(f"'{filename}' is outside the work tree {root}")


def read_git_log(repo: Repo, path: str, follow: bool = False) -> str:
    """
    Return the `git log` text for one path in a pinned layout.

    Each commit prints `commit <hash>`, `Date: <seconds>` and a `Files:`
    line followed by the path the file had in that commit. A failing
    `--follow` query is retried without it, so the option degrades to a
    no-op.
    """
    args = [f"--pretty=format:{LOG_FORMAT}", "--name-only", "--no-color"]
    if follow:
        try:
            return repo.git.log(*args, "--follow", "--", path)
        except GitCommandError as e:
            logger.warning(f"git log --follow failed, continuing without it: {e}")
    try:
        return repo.git.log(*args, "--", path)
    except GitCommandError as e:
        raise LookupFailure(f"git log failed for '{path}': {e}")


# ============================================================================
# ENUMERATION
# ============================================================================

def parse_git_log(text: str) -> List[Tuple[str, int, Optional[str]]]:
    """
    Extract (hash, timestamp, path) entries from git log output.

    Each entry opens with a `commit <hash>` line and carries one
    `Date: <seconds>` line; an entry is recorded once both are seen. A
    `Files:` line after it names the path of the file in that commit on the
    next non-blank line; without one the path is None. Entries keep the
    log's newest-first order.
    """
    entries = []
    commit_hash = None
    timestamp = None
    expect_path = False

    for line in text.splitlines():
        commit_match = _COMMIT_RE.match(line)
        if commit_match:
            commit_hash = commit_match.group(1)
            expect_path = False
            continue
        date_match = _DATE_RE.match(line)
        if date_match:
            timestamp = int(date_match.group(1))
        elif line.rstrip() == "Files:" and entries:
            expect_path = True
            continue
        elif expect_path and line.strip():
            last_hash, last_timestamp, _ = entries[-1]
            entries[-1] = (last_hash, last_timestamp, line.strip())
            expect_path = False
            continue

        if commit_hash is not None and timestamp is not None:
            entries.append((commit_hash, timestamp, None))
            commit_hash = None
            timestamp = None

    return entries


def number_history(
    entries: List[Tuple[str, int, Optional[str]]], filename: str
) -> List[VersionRecord]:
    """Turn newest-first log entries into records numbered 1..N oldest first."""
    return [
        VersionRecord(number=number, hash=commit_hash, timestamp=timestamp,
                      filename=filename, path=path)
        for number, (commit_hash, timestamp, path) in enumerate(reversed(entries), 1)
    ]


def truncate_history(records: List[VersionRecord], last: Optional[int]) -> List[VersionRecord]:
    """Keep the `last` most recent records; numbers are left untouched."""
    if last is None:
        return list(records)
    if last <= 0:
        raise UsageError(f"-last must be a positive number: {last}")
    if len(records) <= last:
        return list(records)
    return records[len(records) - last:]


def enumerate_git_history(
    filename: str,
    follow: bool = False,
    last: Optional[int] = None,
    repo: Optional[Repo] = None,
) -> List[VersionRecord]:
    """
    Numbered history of a file, oldest first.

    Args:
        filename: The file as given on the command line
        follow: Pass `--follow` to git log (dropped if git rejects it)
        last: Keep only this many of the most recent versions
        repo: An already opened repository (defaults to the one holding the file)

    Returns:
        List of VersionRecord objects
    """
    if repo is None:
        repo = open_repository(filename)
    path = repo_relative_path(repo, filename)

    entries = parse_git_log(read_git_log(repo, path, follow=follow))
    logger.debug(f"git log lists {len(entries)} commit(s) for {path}")
    if not entries:
        raise LookupFailure(f"git log lists no commits for '{filename}'; is it tracked?")

    records = number_history(entries, filename)
    return truncate_history(records, last)


def git_revision(record: VersionRecord, current_path: str) -> str:
    """
    Revision to retrieve for a record: the bare hash, or `<hash>:<path>` when
    the file had another path in that commit.
    """
    if record.path and record.path != current_path:
        return f"{record.hash}:{record.path}"
    return record.hash


def select_records(records: List[VersionRecord], tokens: Iterable[str]) -> List[VersionRecord]:
    """
    Pick explicitly requested versions out of a history.

    An all-digit token selects that sequence number; any other token of at
    least four hex characters selects the commit whose hash starts with it.
    """
    by_number = {record.number: record for record in records}
    selected = []
    for token in tokens:
        if token.isdigit() and int(token) in by_number:
            selected.append(by_number[int(token)])
            continue
        if _HEX_RE.match(token):
            matches = [r for r in records if r.hash.startswith(token.lower())]
            if len(matches) == 1:
                selected.append(matches[0])
                continue
            if len(matches) > 1:
                raise UsageError(f"Ambiguous Git revision '{token}' matches {len(matches)} commits")
        raise UsageError(f"Unknown Git revision '{token}'")
    return selected


# ============================================================================
# NAMING
# ============================================================================

def version_string(record: VersionRecord, options: NamingOptions) -> str:
    """
    Join the requested components with "-", always in the order
    number, timestamp, hash. Number is used when nothing is requested.
    """
    by_number = options.by_number or not (options.by_time or options.by_hash)
    components = []
    if by_number:
        components.append(str(record.number).zfill(options.padding))
    if options.by_time:
        if options.raw_time:
            components.append(str(record.timestamp))
        else:
            components.append(format_timestamp(record.timestamp, utc=options.utc))
    if options.by_hash:
        if options.hash_length:
            components.append(record.hash[:options.hash_length])
        else:
            components.append(record.hash)
    return "-".join(components)


def git_target_name(record: VersionRecord, options: NamingOptions) -> str:
    """Output name for one Git version record."""
    if options.format is not None:
        return render(options.format, record, options)
    return target_name(record.filename, version_string(record, options), options)
