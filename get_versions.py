#!/usr/bin/env python3
"""
Get Versions

Retrieves old versions of a file tracked by RCS, CVS, SVN or Git and saves
each one next to the original under a name that carries its version.

Examples:
  get_versions.py foo.c 1.5-1.7        # foo.c,1.5 foo.c,1.6 foo.c,1.7
  get_versions.py -windows foo.c 1.5.. # foo__1.5.c ... up to the head revision
  get_versions.py -last 3 -bytime notes.md
  get_versions.py -format '%3n-%8h%s' notes.md
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple, Union

from git_history import (
    enumerate_git_history,
    git_revision,
    git_target_name,
    repo_relative_path,
    select_records,
    truncate_history,
)
from naming_engine import (
    NamingOptions,
    VersionRecord,
    build_naming_options,
    pad_revision,
    target_name,
)
from revision_ranges import resolve_all
from vcs_backends import Backend, GitBackend, detect_backend, get_backend
from vcs_errors import UsageError, VersionsError

logger = logging.getLogger(__name__)

GIT_ONLY_OPTIONS = ("format", "hash_abbrev", "utc", "raw", "bynumber", "bytime", "byhash",
                    "hashlen", "last", "follow")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Retrieve old versions of a file from RCS, CVS, SVN or Git.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Revisions:
  REV          a single revision (number, tag, SVN revision, Git number or hash)
  REV1-REV2    every revision from REV1 to REV2 (also REV1..REV2)
  REV1-        every revision from REV1 to the head revision (also REV1..)

Format directives (Git):
  %f file  %p name before last '.'  %s suffix from last '.'  %d delimiter
  %Nn number  %Nt timestamp (N of 6 fields)  %rt raw timestamp
  %Nh first N hash characters  %% literal '%'
        """,
    )

    parser.add_argument("file", help="File whose versions are retrieved")
    parser.add_argument("revisions", nargs="*", help="Revisions or revision ranges")

    backend_group = parser.add_mutually_exclusive_group()
    for name in ("rcs", "cvs", "svn", "git"):
        backend_group.add_argument(
            f"-{name}", dest="backend", action="store_const", const=name,
            help=f"Treat the file as tracked by {name.upper()} (default: auto-detect)",
        )

    parser.add_argument("-d", "-delimiter", dest="delimiter", default=None,
                        help="Delimiter between name and version (default: ',')")
    parser.add_argument("-infix", action="store_true",
                        help="Put the version before the file extension")
    parser.add_argument("-windows", action="store_true",
                        help="Same as -d __ -infix")
    parser.add_argument("-pad", type=int, default=0,
                        help="Zero-pad the last revision number to this many digits")

    hash_group = parser.add_mutually_exclusive_group()
    hash_group.add_argument("-format", default=None,
                            help="Format string for Git output names")
    hash_group.add_argument("-hash8", dest="hash_abbrev", action="store_const", const=8,
                            help="Name Git versions by the first 8 hash characters")
    hash_group.add_argument("-hash11", dest="hash_abbrev", action="store_const", const=11,
                            help="Name Git versions by the first 11 hash characters")

    parser.add_argument("-utc", action="store_true", help="Render Git timestamps in UTC")
    parser.add_argument("-raw", action="store_true",
                        help="Use raw epoch seconds for Git timestamps")
    parser.add_argument("-bynumber", action="store_true",
                        help="Include the Git sequence number in names")
    parser.add_argument("-bytime", action="store_true",
                        help="Include the Git commit timestamp in names")
    parser.add_argument("-byhash", action="store_true",
                        help="Include the Git commit hash in names")
    parser.add_argument("-hashlen", type=int, default=None,
                        help="Abbreviate -byhash hashes to this many characters")
    parser.add_argument("-last", type=int, default=None,
                        help="Only the N most recent Git versions")
    parser.add_argument("-follow", action="store_true",
                        help="Follow renames in the Git history")

    parser.add_argument("-n", dest="dry_run", action="store_true",
                        help="Show the names that would be written, fetch nothing")
    parser.add_argument("-v", "-verbose", dest="verbose", action="store_true",
                        help="Enable verbose logging")

    return parser.parse_intermixed_args(argv)


def build_options(args: argparse.Namespace, backend_name: str) -> NamingOptions:
    """Validate the parsed flags and freeze them into NamingOptions."""
    if backend_name != "git":
        used = [opt for opt in GIT_ONLY_OPTIONS if getattr(args, opt, None)]
        if used:
            flags = ", ".join(f"-{opt}" if opt != "hash_abbrev" else f"-hash{args.hash_abbrev}"
                              for opt in used)
            raise UsageError(f"{flags} only apply to Git files")
    if args.last is not None and args.last <= 0:
        raise UsageError(f"-last must be a positive number: {args.last}")

    return build_naming_options(
        delimiter=args.delimiter,
        infix=args.infix,
        padding=args.pad,
        format=args.format,
        windows=args.windows,
        hash_abbrev=args.hash_abbrev,
        utc=args.utc,
        raw_time=args.raw,
        by_number=args.bynumber,
        by_time=args.bytime,
        by_hash=args.byhash,
        hash_length=args.hashlen,
    )


def name(filename: str, version: Union[str, VersionRecord], options: NamingOptions) -> str:
    """Output file name for a revision string or a Git version record."""
    if isinstance(version, VersionRecord):
        return git_target_name(version, options)
    return target_name(filename, pad_revision(version, options.padding), options)


def plan_versions(
    filename: str,
    revisions: List[str],
    backend: Backend,
    options: NamingOptions,
    last: Optional[int] = None,
    follow: bool = False,
) -> List[Tuple[str, str]]:
    """
    Work out every (revision, output name) pair before anything is fetched.

    Without explicit revisions RCS, CVS and SVN fetch the head revision and
    Git fetches the whole history.
    """
    if isinstance(backend, GitBackend):
        for token in revisions:
            backend.parse_range(token)
        records = enumerate_git_history(filename, follow=follow, repo=backend.repo_for(filename))
        if revisions:
            records = select_records(records, revisions)
        records = truncate_history(records, last)
        current = repo_relative_path(backend.repo_for(filename), filename)
        return [(git_revision(record, current), name(filename, record, options))
                for record in records]

    resolved = resolve_all(revisions, backend, filename)
    if not resolved:
        resolved = [backend.head_revision(filename)]
    return [(revision, name(filename, revision, options)) for revision in resolved]


def fetch_versions(filename: str, plan: List[Tuple[str, str]], backend: Backend) -> int:
    """
    Write each planned version to its output name.

    Returns:
        Number of versions that could not be retrieved
    """
    failures = 0
    for revision, target in plan:
        try:
            content = backend.retrieve(filename, revision)
        except VersionsError as e:
            logger.error(f"Could not retrieve {revision} of {filename}: {e}")
            failures += 1
            continue
        Path(target).write_bytes(content)
        logger.info(f"Extracted: {target} (revision {revision})")
    return failures


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )
    args = parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        backend_name = args.backend or detect_backend(args.file)
        options = build_options(args, backend_name)
        backend = get_backend(backend_name)
        logger.debug(f"Using {backend.name} for {args.file}")

        plan = plan_versions(args.file, args.revisions, backend, options,
                             last=args.last, follow=args.follow)
    except VersionsError as e:
        logger.error(f"Error: {e}")
        return e.exit_code

    if args.dry_run:
        for revision, target in plan:
            print(f"{revision}\t{target}")
        return 0

    failures = fetch_versions(args.file, plan, backend)
    print(f"\nRetrieved {len(plan) - failures} of {len(plan)} versions of '{args.file}'")
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
