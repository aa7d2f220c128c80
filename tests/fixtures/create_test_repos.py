"""
Programmatic generation of Git repositories for testing.
Each function builds one history scenario used by the Git fixtures.
"""

import shutil
from pathlib import Path
from datetime import datetime, timezone
from git import Repo, Actor


ALICE = Actor("Alice", "alice@example.com")


def create_file(path: Path, content: str):
    """Creates a file with the given content, ensuring parent dirs exist."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)


def modify_file(path: Path, new_content: str):
    """Appends new content to an existing file."""
    with path.open("a") as f:
        f.write(f"\n{new_content}")


def commit(repo: Repo, message: str, commit_date: datetime):
    """Creates a commit with a specific message and date."""
    repo.index.commit(
        message,
        author=ALICE,
        committer=ALICE,
        commit_date=commit_date,
        author_date=commit_date,
    )


def day(n: int) -> datetime:
    return datetime(2020, 1, n, 12, 0, 0, tzinfo=timezone.utc)


def create_history_repo(path: Path):
    """
    Creates a repository with a linear history.
    - notes.md changed in 10 commits (2020-01-01 .. 2020-01-10, noon UTC)
    - Makefile changed in 2 commits interleaved with them
    """
    if path.exists():
        shutil.rmtree(path)
    repo = Repo.init(path)

    create_file(path / "notes.md", "version 1")
    repo.index.add(["notes.md"])
    commit(repo, "Add notes", day(1))

    for i in range(2, 11):
        modify_file(path / "notes.md", f"version {i}")
        repo.index.add(["notes.md"])
        commit(repo, f"Notes update {i}", day(i))

        if i in (3, 7):
            create_file(path / "Makefile", f"all:\n\techo {i}\n")
            repo.index.add(["Makefile"])
            commit(repo, f"Build change {i}", day(i).replace(hour=18))


def create_rename_repo(path: Path):
    """
    Creates a repository where old.txt is renamed to new.txt.
    - 2 commits on old.txt, the rename, then 1 commit on new.txt
    """
    if path.exists():
        shutil.rmtree(path)
    repo = Repo.init(path)

    content = "\n".join(f"line {i}" for i in range(20))
    create_file(path / "old.txt", content)
    repo.index.add(["old.txt"])
    commit(repo, "Add old.txt", day(1))

    modify_file(path / "old.txt", "line 20")
    repo.index.add(["old.txt"])
    commit(repo, "Extend old.txt", day(2))

    (path / "old.txt").rename(path / "new.txt")
    repo.index.remove(["old.txt"])
    repo.index.add(["new.txt"])
    commit(repo, "Rename to new.txt", day(3))

    modify_file(path / "new.txt", "line 21")
    repo.index.add(["new.txt"])
    commit(repo, "Extend new.txt", day(4))
