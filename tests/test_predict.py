from __future__ import annotations

import pytest

from toeic_core.predict import predict, round_to_step


def test_zero_accuracy_maps_to_scale_minimum():
    p = predict(0.0, 0.0)
    assert (p.listening, p.reading, p.overall) == (5, 5, 10)


def test_full_accuracy_maps_to_scale_maximum():
    p = predict(1.0, 1.0)
    assert (p.listening, p.reading, p.overall) == (495, 495, 990)


def test_outputs_are_multiples_of_five_within_bounds():
    steps = [i / 40 for i in range(41)]
    for la in steps:
        for ra in steps:
            p = predict(la, ra)
            assert 5 <= p.listening <= 495 and p.listening % 5 == 0
            assert 5 <= p.reading <= 495 and p.reading % 5 == 0
            assert 10 <= p.overall <= 990 and p.overall % 5 == 0


def test_overall_is_rounded_once_from_unrounded_sections():
    # each third lands on 168.33 -> 170, but the sum 336.67 rounds to 335
    p = predict(1 / 3, 1 / 3)
    assert (p.listening, p.reading) == (170, 170)
    assert p.overall == 335
    assert p.overall != p.listening + p.reading


def test_round_half_up():
    assert round_to_step(7.5, 5, 495) == 10
    assert round_to_step(12.49, 5, 495) == 10
    assert round_to_step(2.0, 5, 495) == 5
    assert round_to_step(1000.0, 10, 990) == 990


@pytest.mark.parametrize("bad", [-0.01, 1.01, float("nan")])
def test_out_of_range_accuracy_is_a_programming_error(bad):
    with pytest.raises(ValueError):
        predict(bad, 0.5)
    with pytest.raises(ValueError):
        predict(0.5, bad)
