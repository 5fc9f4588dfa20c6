from utils.money import average_amount, percent_of, ratio, round_half_up


def test_round_half_up():
    assert round_half_up(5, 2) == 3
    assert round_half_up(7, 3) == 2
    assert round_half_up(-5, 2) == -3


def test_percent_of_basis_points():
    assert percent_of(10_000, 2300) == 2300
    assert percent_of(199, 500) == 10  # 9.95 -> 10


def test_average_guards_zero_count():
    assert average_amount(1000, 0) is None
    assert average_amount(1000, 3) == 333


def test_ratio_guards_zero_denominator():
    assert ratio(5, 0) is None
    assert ratio(5, 3) == 1.67
