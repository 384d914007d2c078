import pytest

from trivia.services.games.scoring import BASE_POINTS, score


@pytest.mark.parametrize('latency', [0, 1, 150, 15000, 30000, 10 ** 9])
def test_wrong_answer_scores_zero(latency):
    assert score(False, latency) == 0


def test_instant_correct_answer_scores_base():
    assert score(True, 0) == BASE_POINTS == 300


def test_one_point_lost_per_hundred_ms():
    assert score(True, 99) == 300
    assert score(True, 100) == 299
    assert score(True, 200) == 298
    assert score(True, 15000) == 150


def test_score_floors_at_zero():
    assert score(True, 30000) == 0
    assert score(True, 45000) == 0


def test_negative_latency_treated_as_instant():
    assert score(True, -500) == 300


def test_score_is_non_increasing_in_latency():
    points = [score(True, ms) for ms in range(0, 32000, 250)]
    assert points == sorted(points, reverse=True)
    assert all(p >= 0 for p in points)
