from canpay.tax.ei import compute_ei, has_reached_ei_max, max_ei_contributions, remaining_ei_room

def test_ei_first_period():
    r = compute_ei(2000, 0, 0, 1.64)
    assert r.ei_employee == 32.80
    assert r.ei_employer == 45.92
    assert r.insurable_this == 2000.0
    assert r.new_ytd_ei == 32.80

def test_ei_stops_at_maximum_insurable():
    r = compute_ei(1000, 65700, 1077.48, 1.64)
    assert r.ei_employee == 0.0
    assert r.ei_employer == 0.0
    assert r.insurable_this == 0.0
    assert r.new_ytd_ei == 1077.48

def test_ei_partial_room():
    r = compute_ei(2000, 65000, 1066.0, 1.64, 1.4, 65700)
    assert r.insurable_this == 700.0
    assert r.ei_employee == 11.48
    # employer = rounded employee premium x 1.4, rounded again
    assert r.ei_employer == 16.07

def test_ei_custom_multiplier():
    r = compute_ei(1000, 0, 0, 1.64, employer_multiplier=1.0)
    assert r.ei_employer == r.ei_employee == 16.40

def test_ei_annual_maximums(rates_2025):
    table = rates_2025
    maxima = max_ei_contributions(table)
    assert maxima["employee"] == 1077.48
    assert maxima["employer"] == 1508.47
    assert remaining_ei_room(1000, table) == 77.48
    assert remaining_ei_room(5000, table) == 0.0
    assert has_reached_ei_max(1077.48, table)
    assert not has_reached_ei_max(10, table)
