"""Unit tests for revision argument parsing and range resolution."""
import pytest
from hypothesis import given, strategies as st

from revision_ranges import (
    RevisionRange,
    SingleRevision,
    parse_revision_spec,
    resolve,
    resolve_all,
)
from vcs_backends import CVSBackend, GitBackend, RCSBackend, SVNBackend
from vcs_errors import LookupFailure, UsageError

RLOG_HEADER = """
RCS file: RCS/foo.c,v
Working file: foo.c
head: 1.7
branch:
locks: strict
access list:
symbolic names:
\trelease_1: 1.5
keyword substitution: kv
total revisions: 7
=============================================================================
"""

SVN_LOG = """------------------------------------------------------------------------
r7 | alice | 2020-01-07 12:00:00 +0000 (Tue, 07 Jan 2020)
------------------------------------------------------------------------
r5 | alice | 2020-01-05 12:00:00 +0000 (Sun, 05 Jan 2020)
------------------------------------------------------------------------
r2 | bob | 2020-01-02 12:00:00 +0000 (Thu, 02 Jan 2020)
------------------------------------------------------------------------
r1 | alice | 2020-01-01 12:00:00 +0000 (Wed, 01 Jan 2020)
------------------------------------------------------------------------
"""


class TestParseRevisionSpec:
    """Tests for classifying revision arguments by shape."""

    @pytest.mark.parametrize("token, expected", [
        ("1.5", SingleRevision("1.5")),
        ("release_1", SingleRevision("release_1")),
        ("42", SingleRevision("42")),
        ("1.5-1.7", RevisionRange("1.5", "1.7")),
        ("1.5..1.7", RevisionRange("1.5", "1.7")),
        ("10-42", RevisionRange("10", "42")),
        ("1.5-", RevisionRange("1.5")),
        ("10..", RevisionRange("10")),
    ])
    def test_shapes(self, token, expected):
        assert parse_revision_spec(token) == expected

    def test_open_range_flag(self):
        assert parse_revision_spec("1.5..").is_open
        assert not parse_revision_spec("1.5..1.6").is_open


class TestRCSRanges:
    """Tests for RCS/CVS branch-counting ranges."""

    @pytest.mark.parametrize("token, expected", [
        ("1.5-1.7", ["1.5", "1.6", "1.7"]),
        ("1.5..1.7", ["1.5", "1.6", "1.7"]),
        ("1.3-1.3", ["1.3"]),
        ("1.2.1.1..1.2.1.3", ["1.2.1.1", "1.2.1.2", "1.2.1.3"]),
    ])
    def test_closed_ranges(self, token, expected, fake_runner):
        runner = fake_runner({})
        assert resolve(token, RCSBackend(runner), "foo.c") == expected
        assert runner.commands == []

    @given(st.integers(1, 200), st.integers(0, 50))
    def test_range_length(self, start, extra):
        """Property-based test: B.i-B.j yields j-i+1 ascending revisions."""
        end = start + extra
        revisions = resolve(f"1.{start}-1.{end}", RCSBackend(), "foo.c")
        assert revisions == [f"1.{i}" for i in range(start, end + 1)]

    def test_open_range_uses_head_once(self, fake_runner):
        runner = fake_runner({"rlog": RLOG_HEADER})
        assert resolve("1.5-", RCSBackend(runner), "foo.c") == ["1.5", "1.6", "1.7"]
        assert runner.commands == [["rlog", "-h", "foo.c"]]

    def test_cvs_open_range(self, fake_runner):
        runner = fake_runner({"cvs log": RLOG_HEADER})
        assert resolve("1.6..", CVSBackend(runner), "foo.c") == ["1.6", "1.7"]
        assert runner.commands == [["cvs", "log", "-h", "foo.c"]]

    def test_inverted_range(self):
        with pytest.raises(UsageError, match="inverted"):
            resolve("1.7-1.5", RCSBackend(), "foo.c")

    def test_mismatched_branches(self):
        with pytest.raises(UsageError, match="branches"):
            resolve("1.5-1.2.1.3", RCSBackend(), "foo.c")

    @pytest.mark.parametrize("token, bad", [
        ("1.5-foo", "foo"),
        ("7-1.9", "7"),
        ("1.x..1.4", "1.x"),
    ])
    def test_malformed_endpoint_named(self, token, bad):
        with pytest.raises(UsageError, match=f"'{bad}'"):
            resolve(token, RCSBackend(), "foo.c")

    def test_single_tag_passes_through(self, fake_runner):
        runner = fake_runner({})
        assert resolve("release_1", CVSBackend(runner), "foo.c") == ["release_1"]
        assert runner.commands == []

    def test_open_range_without_head_marker(self, fake_runner):
        runner = fake_runner({"rlog": "RCS file: RCS/foo.c,v\n"})
        with pytest.raises(LookupFailure, match="foo.c"):
            resolve("1.5-", RCSBackend(runner), "foo.c")


class TestSVNRanges:
    """Tests for SVN ranges over the file's own revisions."""

    def test_keeps_only_file_revisions(self, fake_runner):
        runner = fake_runner({"svn log": SVN_LOG})
        assert resolve("1-7", SVNBackend(runner), "foo.c") == ["1", "2", "5", "7"]

    def test_bounds_are_inclusive(self, fake_runner):
        runner = fake_runner({"svn log": SVN_LOG})
        assert resolve("2..5", SVNBackend(runner), "foo.c") == ["2", "5"]

    def test_open_range(self, fake_runner):
        runner = fake_runner({"svn log": SVN_LOG})
        assert resolve("3-", SVNBackend(runner), "foo.c") == ["5", "7"]
        assert runner.commands[0] == ["svn", "log", "-q", "-l", "1", "foo.c"]

    def test_dotted_endpoint_rejected(self):
        with pytest.raises(UsageError, match="'1.5'"):
            resolve("1.5-7", SVNBackend(), "foo.c")

    def test_inverted_range(self, fake_runner):
        with pytest.raises(UsageError, match="inverted"):
            resolve("7-1", SVNBackend(fake_runner({"svn log": SVN_LOG})), "foo.c")


class TestResolveAll:
    """Tests for resolving several arguments in order."""

    def test_order_is_preserved(self, fake_runner):
        runner = fake_runner({"rlog": RLOG_HEADER})
        revisions = resolve_all(["1.6..", "release_1", "1.1-1.2"], RCSBackend(runner), "foo.c")
        assert revisions == ["1.6", "1.7", "release_1", "1.1", "1.2"]

    def test_one_bad_token_aborts(self):
        with pytest.raises(UsageError):
            resolve_all(["1.1-1.2", "1.9-1.3"], RCSBackend(), "foo.c")

    def test_git_rejects_ranges(self):
        with pytest.raises(UsageError, match="-last"):
            resolve("3-5", GitBackend(), "notes.md")
