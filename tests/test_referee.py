"""Tests for Referee: turn outcome tallies and disqualifications."""

from racejudge.core.referee import Referee
from racejudge.core.types import ResultCategory, category_name


class TestReferee:
    def test_normal_turn_does_not_disqualify(self):
        ref = Referee()
        assert ref.record("alpha", ResultCategory.NORMAL) is False
        assert ref.is_disqualified("alpha") is False

    def test_engine_faults_disqualify(self):
        for category in (
            ResultCategory.TIMED_OUT, ResultCategory.DIED, ResultCategory.INVALID,
        ):
            ref = Referee()
            assert ref.record("alpha", category) is True
            report = ref.get_fidelity_report()
            assert report["alpha"]["disqualified"] == category_name(category)

    def test_first_reason_wins(self):
        ref = Referee()
        ref.disqualify("alpha", "handshake")
        ref.record("alpha", ResultCategory.DIED)
        assert ref.get_fidelity_report()["alpha"]["disqualified"] == "handshake"

    def test_tallies_accumulate(self):
        ref = Referee()
        for _ in range(3):
            ref.record("alpha", ResultCategory.NORMAL)
        ref.record("alpha", ResultCategory.TIMED_OUT)
        report = ref.get_fidelity_report()["alpha"]
        assert report["turns"] == 4
        assert report["normal"] == 3
        assert report["timedout"] == 1
        assert report["died"] == 0

    def test_registered_player_without_turns_is_reported(self):
        ref = Referee()
        ref.register("beta")
        report = ref.get_fidelity_report()
        assert report["beta"]["turns"] == 0
        assert report["beta"]["disqualified"] is None

    def test_report_keeps_registration_order(self):
        ref = Referee()
        ref.register("zeta")
        ref.record("alpha", ResultCategory.NORMAL)
        assert list(ref.get_fidelity_report()) == ["zeta", "alpha"]

    def test_empty_report(self):
        assert Referee().get_fidelity_report() == {}


class TestCategoryNames:
    def test_display_names(self):
        assert [category_name(c) for c in ResultCategory] == [
            "normal", "finished", "goneoff", "obstacled", "collided",
            "noplay", "timedout", "died", "invalid",
        ]
