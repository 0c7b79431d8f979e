"""Tests for take-home pay calculation."""

import pytest
from lifeplan_sim_jp.tax import (
    calc_income_tax,
    calc_salary_deduction,
    net_income,
    social_insurance_rate,
)


class TestSalaryDeduction:
    def test_formula_range(self):
        """年収500万 → 500×30%+8万 = 158万"""
        assert calc_salary_deduction(5_000_000) == 1_580_000

    def test_minimum(self):
        """年収100万 → 38万は下限55万に切り上げ"""
        assert calc_salary_deduction(1_000_000) == 550_000

    def test_maximum_at_limit(self):
        """年収850万 → 263万は上限195万"""
        assert calc_salary_deduction(8_500_000) == 1_950_000

    def test_above_limit(self):
        assert calc_salary_deduction(12_000_000) == 1_950_000

    def test_rounded_to_thousand_yen(self):
        """年収333.3333万 → 1,079,999円 → 1,080,000円（1,000円単位に四捨五入）"""
        assert calc_salary_deduction(3_333_333) == 1_080_000

    def test_rounds_down_below_half(self):
        """年収333.1万 → 1,079,300円 → 1,079,000円"""
        assert calc_salary_deduction(3_331_000) == 1_079_000


class TestSocialInsuranceRate:
    @pytest.mark.parametrize(
        "gross, expected",
        [(300, 0.15), (849.9, 0.15), (850, 0.077), (1500, 0.077)],
    )
    def test_boundary_850(self, gross, expected):
        assert social_insurance_rate(gross) == pytest.approx(expected)


class TestIncomeTax:
    def test_zero(self):
        assert calc_income_tax(0) == 0

    def test_lowest_bracket(self):
        """課税所得100万 → 5% = 5万"""
        assert calc_income_tax(1_000_000) == 50_000

    def test_boundary_195(self):
        """課税所得195万 → 9.75万 → 9.8万（0.1万円単位に四捨五入）"""
        assert calc_income_tax(1_950_000) == 98_000

    def test_second_bracket(self):
        """課税所得267万 → 267×10%−9.75 = 16.95 → 17.0万"""
        assert calc_income_tax(2_670_000) == 170_000

    def test_brackets_are_continuous(self):
        """控除額は累進の段差を打ち消す（境界の前後で税額が跳ばない）"""
        for ceiling in (330, 695, 900, 1800, 4000):
            below = calc_income_tax(ceiling * 10_000)
            above = calc_income_tax(ceiling * 10_000 + 10_000)
            assert 0 <= above - below <= 5_000

    def test_top_bracket(self):
        """課税所得5000万 → 5000×45%−479.6 = 1770.4万"""
        assert calc_income_tax(50_000_000) == 17_704_000


class TestNetIncome:
    def test_company_employee_500(self):
        """年収500万・会社員: 社保75、所得税17.0、住民税26.7 → 手取り381.3"""
        result = net_income(500, "company_employee")
        assert result.net == pytest.approx(381.3)
        d = result.deductions
        assert d.salary_deduction == pytest.approx(158.0)
        assert d.social_insurance == pytest.approx(75.0)
        assert d.income_tax == pytest.approx(17.0)
        assert d.resident_tax == pytest.approx(26.7)
        assert d.total == pytest.approx(118.7)

    def test_part_time_with_pension_has_social_insurance(self):
        result = net_income(500, "part_time_with_pension")
        assert result.net == pytest.approx(381.3)

    def test_part_time_without_pension_no_social_insurance(self):
        """社保なし: 課税所得342 → 所得税25.65→25.7、住民税34.2 → 手取り440.1"""
        result = net_income(500, "part_time_without_pension")
        assert result.deductions.social_insurance == 0
        assert result.deductions.income_tax == pytest.approx(25.7)
        assert result.deductions.resident_tax == pytest.approx(34.2)
        assert result.net == pytest.approx(440.1)

    def test_high_income_uses_lower_rate(self):
        """年収850万以上は社保7.7%"""
        result = net_income(1000, "company_employee")
        assert result.deductions.social_insurance == pytest.approx(77.0)

    @pytest.mark.parametrize("occupation", ["self_employed", "homemaker"])
    @pytest.mark.parametrize("gross", [0, 120, 500, 2500.5])
    def test_pass_through(self, occupation, gross):
        result = net_income(gross, occupation)
        assert result.net == gross
        assert result.deductions.total == 0

    def test_zero_or_negative_gross(self):
        assert net_income(0, "company_employee").net == 0
        assert net_income(-10, "company_employee").net == -10
        assert net_income(-10, "company_employee").deductions.total == 0

    def test_small_income_no_tax(self):
        """年収100万 → 給与所得控除55万＋社保15万で課税所得30万、税は少額"""
        result = net_income(100, "company_employee")
        assert result.deductions.social_insurance == pytest.approx(15.0)
        assert result.deductions.income_tax == pytest.approx(1.5)
        assert result.deductions.resident_tax == pytest.approx(3.0)
        assert result.net == pytest.approx(80.5)

    def test_monotonic_for_company_employee(self):
        """額面が増えれば手取りは減らない"""
        previous = net_income(0, "company_employee").net
        for gross in range(10, 5001, 10):
            current = net_income(gross, "company_employee").net
            assert current >= previous, gross
            previous = current

    def test_net_never_exceeds_gross(self):
        for gross in (50, 300, 800, 2000):
            assert net_income(gross, "company_employee").net <= gross
