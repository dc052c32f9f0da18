"""Tests for the compiler comparison result types and their ranking."""

import pytest

from elmdedup.config import ElmDedupSettings
from elmdedup.testing.models import Compilers, ElmTestVersion, RunResult, RunResults, rank

P, F, T = RunResult.PASSED, RunResult.FAILED, RunResult.TIMED_OUT


def v1(elm=P, stable_nw=P, stable=P) -> RunResults:
    return RunResults(ElmTestVersion.V1, elm, stable_nw, stable)


def v2(elm=P, stable_nw=P, stable=P, next_nw=P, next_=P) -> RunResults:
    return RunResults(ElmTestVersion.V2, elm, stable_nw, stable, next_nw, next_)


class TestRunResult:
    def test_symbols(self):
        assert [str(P), str(F), str(T)] == ["✅", "❌", "⏰"]

    def test_finished(self):
        assert RunResult.finished(True) is P
        assert RunResult.finished(False) is F


class TestCompilers:
    def test_from_settings(self):
        settings = ElmDedupSettings(elm="/bin/elm", lamdera_next="/bin/lnext")
        compilers = Compilers.from_settings(settings)
        assert compilers.elm == "/bin/elm"
        assert compilers.lamdera_next == "/bin/lnext"

    def test_v1_runs_stable_only(self):
        compilers = Compilers("elm", "l-s-nw", "l-s", "l-n-nw", "l-n")
        assert compilers.for_version(ElmTestVersion.V1) == ["elm", "l-s-nw", "l-s"]

    def test_v2_runs_all(self):
        compilers = Compilers("elm", "l-s-nw", "l-s", "l-n-nw", "l-n")
        assert compilers.for_version(ElmTestVersion.V2) == ["elm", "l-s-nw", "l-s", "l-n-nw", "l-n"]


class TestRunResults:
    def test_from_columns_v1(self):
        results = RunResults.from_columns(ElmTestVersion.V1, [P, F, T])
        assert results == v1(P, F, T)
        assert results.lamdera_next is None

    def test_from_columns_wrong_length(self):
        with pytest.raises(ValueError, match="expects 5"):
            RunResults.from_columns(ElmTestVersion.V2, [P, P, P])

    def test_columns_pad_v1(self):
        assert v1().columns() == [P, P, P, None, None]

    def test_all_passed(self):
        assert v1().all_passed
        assert v2().all_passed
        assert not v2(next_=F).all_passed
        assert not v1(elm=T).all_passed


class TestRank:
    @pytest.mark.parametrize(
        ("results", "expected"),
        [
            (v2(stable_nw=F), 0),
            (v2(next_nw=F), 1),
            (v1(stable_nw=F), 2),
            (v2(stable=F), 3),
            (v2(next_=F), 4),
            (v1(stable=F), 5),
            (v2(T, T, T, T, T), 6),
            (v1(T, T, T), 7),
            (v2(F, F, F, F, F), 8),
            (v1(F, F, F), 9),
            (v2(), 10),
            (v1(), 11),
        ],
    )
    def test_groups(self, results, expected):
        assert rank(results) == expected

    def test_anomaly_beats_wire_difference(self):
        assert rank(v2(stable_nw=F, stable=P)) == 0

    def test_timeouts_compare_like_results(self):
        """A compiler timing out where elm passed is an anomaly, not a timeout row."""
        assert rank(v1(elm=P, stable_nw=T, stable=T)) == 2
