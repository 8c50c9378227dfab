from canpay.tax.cpp import compute_cpp, cpp_exemption_per_period, max_cpp_contributions

EXEMPTION = 134.62

def _cpp(current, ytd_pensionable=0.0, ytd_cpp1=0.0, ytd_cpp2=0.0):
    return compute_cpp(current, ytd_pensionable, ytd_cpp1, ytd_cpp2, 5.95, 4.00, EXEMPTION, 71300, 81200)

def test_exemption_per_period():
    assert cpp_exemption_per_period("biweekly") == 134.62
    assert cpp_exemption_per_period("monthly") == 291.67
    assert cpp_exemption_per_period("weekly") == 67.31

def test_tier1_first_period():
    r = _cpp(2000)
    assert r.pensionable_tier1_this == 2000.0
    assert r.cpp1_employee == 110.99
    assert r.cpp2_employee == 0.0
    assert r.new_ytd_cpp1 == 110.99

def test_crossing_ympe_splits_tiers():
    r = _cpp(2000, ytd_pensionable=70500, ytd_cpp1=3900.0)
    assert r.pensionable_tier1_this == 800.0
    assert r.pensionable_tier2_this == 1200.0
    assert r.cpp1_employee == 39.59
    # no exemption on tier 2
    assert r.cpp2_employee == 48.0
    assert r.new_ytd_cpp1 == 3939.59
    assert r.new_ytd_cpp2 == 48.0

def test_exactly_at_ympe_goes_to_tier2():
    r = _cpp(1000, ytd_pensionable=71300)
    assert r.cpp1_employee == 0.0
    assert r.pensionable_tier1_this == 0.0
    assert r.pensionable_tier2_this == 1000.0
    assert r.cpp2_employee == 40.0

def test_tier2_capped_at_yampe():
    r = _cpp(3000, ytd_pensionable=80000)
    assert r.pensionable_tier2_this == 1200.0
    assert r.cpp2_employee == 48.0

def test_nothing_above_yampe():
    r = _cpp(3000, ytd_pensionable=81200)
    assert r.cpp1_employee == 0.0
    assert r.cpp2_employee == 0.0
    assert r.pensionable_tier2_this == 0.0

def test_earnings_below_exemption():
    r = _cpp(100)
    assert r.pensionable_tier1_this == 100.0
    assert r.cpp1_employee == 0.0

def test_no_tier2_when_yampe_not_above_ympe():
    r = compute_cpp(2000, 70500, 0, 0, 5.95, 4.0, EXEMPTION, 71300, 71300)
    assert r.pensionable_tier2_this == 0.0
    assert r.cpp2_employee == 0.0

def test_employer_matches_employee():
    r = _cpp(2000, ytd_pensionable=70500)
    assert r.cpp1_employer == r.cpp1_employee
    assert r.cpp2_employer == r.cpp2_employee

def test_negative_earnings_clamped():
    r = _cpp(-500)
    assert r.cpp1_employee == 0.0
    assert r.pensionable_tier1_this == 0.0

def test_max_contributions_2025(rates_2025):
    maxima = max_cpp_contributions(rates_2025)
    assert maxima["tier1"] == 4034.10
    assert maxima["tier2"] == 396.0
    assert maxima["total"] == 4430.10
