"""Tests for candidate host set building."""

import logging

import pytest

from bionet_ping.scanner.host_set import CandidateSet, HostSetBuilder, build_candidate_set


def _duplicate_warnings(caplog):
    return [
        r for r in caplog.records
        if r.levelno == logging.WARNING and "duplicate" in r.getMessage()
    ]


class TestHostList:
    """Tests for comma-separated host lists."""

    def test_first_spelling_wins_with_one_warning(self, caplog):
        caplog.set_level(logging.WARNING)

        candidates = build_candidate_set("A,a,B")

        assert candidates.as_tuple() == ("A", "B")
        assert len(_duplicate_warnings(caplog)) == 1

    def test_tokens_are_trimmed_and_blanks_dropped(self):
        candidates = build_candidate_set(" host1 , ,host2,,  ")
        assert candidates.as_tuple() == ("host1", "host2")

    def test_sorted_case_insensitively(self):
        candidates = build_candidate_set("charlie,Bravo,alpha")
        assert candidates.as_tuple() == ("alpha", "Bravo", "charlie")

    def test_add_host_reports_whether_added(self):
        builder = HostSetBuilder()
        assert builder.add_host("Proto-1") is True
        assert builder.add_host("PROTO-1") is False
        assert builder.add_host("   ") is False
        assert builder.duplicates == 1


class TestHostFile:
    """Tests for host name files."""

    def test_uses_leading_token_and_skips_blank_lines(self, tmp_path):
        host_file = tmp_path / "hosts.txt"
        host_file.write_text(
            "host1   # lab bench\n"
            "\n"
            "   \n"
            "  host2\tretired next month\n"
            "host3.bionet\n"
        )

        candidates = build_candidate_set(host_file=host_file)

        assert candidates.as_tuple() == ("host1", "host2", "host3.bionet")

    def test_missing_file_warns_and_adds_nothing(self, tmp_path, caplog):
        caplog.set_level(logging.WARNING)

        builder = HostSetBuilder()
        added = builder.add_host_file(tmp_path / "nope.txt")

        assert added == 0
        assert len(builder.build()) == 0
        assert any("not found" in r.getMessage() for r in caplog.records)

    def test_duplicates_across_list_and_file(self, tmp_path, caplog):
        caplog.set_level(logging.WARNING)
        host_file = tmp_path / "hosts.txt"
        host_file.write_text("HOST1\nhost4\n")

        candidates = build_candidate_set("host1,host2", host_file)

        assert candidates.as_tuple() == ("host1", "host2", "host4")
        assert len(_duplicate_warnings(caplog)) == 1


class TestCandidateSet:
    """Tests for the immutable candidate set."""

    def test_no_sources_gives_empty_set(self):
        candidates = build_candidate_set(None, None)
        assert not candidates
        assert len(candidates) == 0

    def test_membership_ignores_case(self):
        candidates = CandidateSet(["Host1"])
        assert "host1" in candidates
        assert "HOST1" in candidates
        assert "host2" not in candidates
        assert 42 not in candidates

    def test_rejects_case_insensitive_duplicates(self):
        with pytest.raises(ValueError):
            CandidateSet(["host1", "HOST1"])

    @pytest.mark.parametrize("raw", [
        "a,A,b,B,c",
        "x.bionet,X.BIONET,x",
        "One,one,ONE,oNe",
    ])
    def test_never_holds_case_insensitive_duplicates(self, raw):
        candidates = build_candidate_set(raw)
        keys = [host.casefold() for host in candidates]
        assert len(keys) == len(set(keys))
