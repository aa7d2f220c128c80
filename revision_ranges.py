"""
revision_ranges.py - Expand revision arguments into concrete revisions.

A revision argument is a single revision (`1.5`, `HEAD`, `release_2`), a
closed range (`1.5-1.7`, `10..42`) or an open range that runs to the head
revision (`1.5-`, `10..`). What a range expands to depends on the backend:
RCS and CVS count along one branch, SVN keeps only the revisions in which
the file actually changed.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Union

logger = logging.getLogger(__name__)

_RANGE_RE = re.compile(r"^(?P<first>.+?)(?:-|\.\.)(?P<last>.*)$")


@dataclass(frozen=True)
class SingleRevision:
    value: str


@dataclass(frozen=True)
class RevisionRange:
    first: str
    last: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.last is None


RevisionSpec = Union[SingleRevision, RevisionRange]


def parse_revision_spec(token: str) -> RevisionSpec:
    """
    Classify a revision argument by shape only.

    `-` and `..` are interchangeable range separators. A trailing separator
    leaves the upper bound open. No endpoint validation happens here.
    """
    match = _RANGE_RE.match(token)
    if not match:
        return SingleRevision(token)
    return RevisionRange(match.group("first"), match.group("last") or None)


def resolve(token: str, backend, filename: str) -> List[str]:
    """
    Resolve one revision argument to the ordered revisions to retrieve.

    Args:
        token: The raw revision argument
        backend: The active backend (see vcs_backends)
        filename: The file whose revisions are resolved

    Returns:
        Revision identifiers in ascending order

    Raises:
        UsageError: If a range endpoint is malformed or the range is inverted
            or spans two branches
        LookupFailure: If an open range needs a head revision that cannot
            be determined
    """
    spec = backend.parse_range(token)
    if isinstance(spec, SingleRevision):
        return [spec.value]

    last = spec.last
    if spec.is_open:
        last = backend.head_revision(filename)
        logger.debug(f"Open range '{token}' runs to head revision {last}")

    revisions = backend.expand_range(spec.first, last, filename)
    logger.debug(f"Range '{token}' expands to {len(revisions)} revision(s)")
    return revisions


def resolve_all(tokens: Iterable[str], backend, filename: str) -> List[str]:
    """Resolve every argument in command-line order before anything is fetched."""
    revisions = []
    for token in tokens:
        revisions.extend(resolve(token, backend, filename))
    return revisions
