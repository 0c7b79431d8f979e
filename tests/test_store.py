"""Tests for the Simulator store: default rows, commands and change signal."""

import pytest
from lifeplan_sim_jp.housing import OwnPlan, RentPlan
from lifeplan_sim_jp.loan import EQUAL_PRINCIPAL, LOAN_FUNDING_CATEGORY, LoanSettings
from lifeplan_sim_jp.models import (
    EDUCATION_ITEM,
    HOUSING_ITEM,
    LIVING_ITEM,
    LOAN_ITEM,
    PENSION_ITEM,
    REAL_ESTATE_ITEM,
    SALARY_ITEM,
    SIDE_ITEM,
    SPOUSE_INCOME_ITEM,
    SPOUSE_PENSION_ITEM,
    BasicInfo,
    Child,
    HousingInfo,
    LifeEvent,
    PlanState,
    Section,
    SpouseInfo,
)
from lifeplan_sim_jp.store import RAISE_AMOUNT, Simulator


def _sim(**basic) -> Simulator:
    defaults = dict(
        current_age=30, start_year=2026, death_age=40, monthly_living_expense=20,
        housing=HousingInfo(type="rent", rent=RentPlan(monthly_rent=8)),
    )
    defaults.update(basic)
    sim = Simulator(PlanState(basic_info=BasicInfo(**defaults)), current_year=2026)
    sim.initialize_form_data()
    sim.rebuild()
    return sim


def _item(items, name):
    return next(i for i in items if i.name == name)


class TestDefaultRows:
    def test_personal_income_rows(self):
        names = [i.name for i in _sim().state.income.personal]
        assert names == [SALARY_ITEM, "事業収入", SIDE_ITEM, PENSION_ITEM]

    def test_pension_row_is_auto(self):
        pension = _item(_sim().state.income.personal, PENSION_ITEM)
        assert pension.auto_calculated
        assert pension.investment_ratio == 5
        assert pension.max_investment_amount == 50

    def test_corporate_rows(self):
        state = _sim().state
        assert [i.name for i in state.income.corporate] == ["売上", "その他収入"]
        assert [e.category for e in state.expenses.corporate] == ["business", "business", "office", "office", "other"]
        assert [a.name for a in state.assets.corporate] == ["現金預金", "設備", "在庫"]
        assert [li.name for li in state.liabilities.corporate] == ["借入金", "未払金"]

    def test_investment_assets_flagged(self):
        assets = _sim().state.assets.personal
        assert [a.name for a in assets if a.is_investment] == ["株式", "投資信託"]

    def test_married_with_working_spouse(self):
        sim = _sim(marital_status="married",
                   spouse=SpouseInfo(current_age=30, occupation="company_employee"))
        names = [i.name for i in sim.state.income.personal]
        assert SPOUSE_PENSION_ITEM in names
        assert SPOUSE_INCOME_ITEM in names

    def test_homemaker_spouse_has_no_income_row(self):
        sim = _sim(marital_status="married", spouse=SpouseInfo(current_age=30))
        names = [i.name for i in sim.state.income.personal]
        assert SPOUSE_PENSION_ITEM in names
        assert SPOUSE_INCOME_ITEM not in names

    def test_becoming_single_removes_spouse_rows(self):
        sim = _sim(marital_status="married",
                   spouse=SpouseInfo(current_age=30, occupation="company_employee"))
        sim.set_basic_info(marital_status="single")
        names = [i.name for i in sim.state.income.personal]
        assert SPOUSE_PENSION_ITEM not in names
        assert SPOUSE_INCOME_ITEM not in names

    def test_reinitialize_keeps_user_rows(self):
        sim = _sim()
        salary = _item(sim.state.income.personal, SALARY_ITEM)
        sim.set_income_amount("personal", salary.id, 2026, 500)
        sim.initialize_form_data()
        assert _item(sim.state.income.personal, SALARY_ITEM).amounts[2026] == pytest.approx(381.3)
        assert len(sim.state.income.personal) == 4

    def test_default_constructor(self):
        sim = Simulator(current_year=2026)
        assert sim.cash_flow
        assert _item(sim.state.expenses.personal, LIVING_ITEM).category == "living"


class TestDerivedExpenses:
    def test_living_escalated(self):
        living = _item(_sim().state.expenses.personal, LIVING_ITEM)
        assert living.raw_amounts[2027] == 240
        assert living.amounts[2026] == pytest.approx(240.0)
        assert living.amounts[2027] == pytest.approx(242.4)

    def test_housing_from_rent(self):
        housing = _item(_sim().state.expenses.personal, HOUSING_ITEM)
        assert housing.amounts[2026] == pytest.approx(96.0)
        assert housing.raw_amounts is None

    def test_education_from_children(self):
        sim = _sim(children=[Child(6)])
        education = _item(sim.state.expenses.personal, EDUCATION_ITEM)
        assert education.amounts[2026] == pytest.approx(33.6)
        assert sim.cash_flow[2026].education_expense == pytest.approx(33.6)

    def test_own_plan_sets_asset_and_loan(self):
        own = OwnPlan(purchase_year=2028, purchase_price=4000, loan_amount=3000)
        sim = _sim(housing=HousingInfo(type="own", rent=None, own=own))
        assert _item(sim.state.assets.personal, REAL_ESTATE_ITEM).amounts[2028] == 4000
        assert _item(sim.state.liabilities.personal, LOAN_ITEM).amounts[2028] == 3000
        assert _item(sim.state.expenses.personal, HOUSING_ITEM).amounts[2027] == 0.0

    def _own_sim(self):
        own = OwnPlan(purchase_year=2028, purchase_price=4000, loan_amount=3000)
        return _sim(housing=HousingInfo(type="own", rent=None, own=own))

    def test_switch_to_rent_clears_purchase(self):
        sim = self._own_sim()
        sim.set_basic_info(housing=HousingInfo(type="rent", rent=RentPlan(monthly_rent=8)))
        assert 2028 not in _item(sim.state.assets.personal, REAL_ESTATE_ITEM).amounts
        assert 2028 not in _item(sim.state.liabilities.personal, LOAN_ITEM).amounts
        assert sim.cash_flow[2028].personal_liability_total == 0.0

    def test_moved_purchase_year_clears_old_year(self):
        sim = self._own_sim()
        own = OwnPlan(purchase_year=2030, purchase_price=4000, loan_amount=3000)
        sim.set_basic_info(housing=HousingInfo(type="own", rent=None, own=own))
        real_estate = _item(sim.state.assets.personal, REAL_ESTATE_ITEM)
        assert real_estate.amounts == {2030: 4000}
        assert _item(sim.state.liabilities.personal, LOAN_ITEM).amounts == {2030: 3000}

    def test_unrelated_change_keeps_purchase(self):
        sim = self._own_sim()
        sim.set_basic_info(monthly_living_expense=25)
        assert _item(sim.state.assets.personal, REAL_ESTATE_ITEM).amounts[2028] == 4000
        assert _item(sim.state.liabilities.personal, LOAN_ITEM).amounts[2028] == 3000

    def test_edited_amount_survives_switch(self):
        """手入力で変更した不動産評価額は賃貸に切り替えても残る"""
        sim = self._own_sim()
        real_estate = _item(sim.state.assets.personal, REAL_ESTATE_ITEM)
        real_estate.amounts[2028] = 4200
        sim.set_basic_info(housing=HousingInfo(type="rent", rent=RentPlan(monthly_rent=8)))
        assert real_estate.amounts[2028] == 4200

    def test_set_parameters_reinflates(self):
        sim = _sim(children=[Child(6)])
        sim.set_parameters(inflation_rate=0.0, education_cost_increase_rate=2.0)
        living = _item(sim.state.expenses.personal, LIVING_ITEM)
        assert living.amounts[2027] == 240
        education = _item(sim.state.expenses.personal, EDUCATION_ITEM)
        assert education.amounts[2027] == pytest.approx(34.3)

    def test_set_parameters_round_trip(self):
        sim = _sim()
        before = dict(_item(sim.state.expenses.personal, LIVING_ITEM).amounts)
        sim.set_parameters(inflation_rate=3.0)
        sim.set_parameters(inflation_rate=1.0)
        assert _item(sim.state.expenses.personal, LIVING_ITEM).amounts == before


class TestChangeSignal:
    def test_listener_called_with_new_ledger(self):
        sim = _sim()
        received = []
        sim.subscribe(received.append)
        sim.set_parameters(investment_return=2.0)
        assert len(received) == 1
        assert received[0] is sim.cash_flow

    def test_batch_signals_once(self):
        sim = _sim()
        received = []
        sim.subscribe(received.append)
        with sim.batch():
            sim.set_parameters(investment_return=2.0)
            sim.add_life_event(LifeEvent(2027, "旅行", "expense", "travel", 50))
            assert received == []
        assert len(received) == 1
        assert sim.cash_flow[2027].event_expense == 50

    def test_unsubscribe(self):
        sim = _sim()
        received = []
        unsubscribe = sim.subscribe(received.append)
        unsubscribe()
        sim.set_parameters(investment_return=2.0)
        assert received == []

    def test_set_tables(self):
        sim = _sim()
        sim.set_asset_data(Section())
        sim.set_expense_data(Section())
        sim.set_income_data(Section())
        cf = sim.cash_flow[2026]
        assert cf.personal_total_assets == 0
        assert cf.personal_total_expense == 0


class TestIncomeAutofill:
    def test_employee_salary_stores_net(self):
        sim = _sim()
        salary = _item(sim.state.income.personal, SALARY_ITEM)
        sim.autofill_income("personal", salary.id, 500, end_age=32)
        assert salary.original_amounts == {2026: 500, 2027: 505, 2028: 510}
        assert salary.amounts[2026] == pytest.approx(381.3)
        assert 2029 not in salary.amounts
        assert sim.cash_flow[2026].main_income == pytest.approx(381.3)

    def test_amount_raise_on_side_income(self):
        sim = _sim()
        side = _item(sim.state.income.personal, SIDE_ITEM)
        sim.autofill_income("personal", side.id, 300, end_age=32, raise_type=RAISE_AMOUNT, raise_amount=10)
        assert side.amounts == {2026: 300, 2027: 310, 2028: 320}
        assert side.original_amounts is None

    def test_self_employed_salary_stays_gross(self):
        sim = _sim(occupation="self_employed")
        salary = _item(sim.state.income.personal, SALARY_ITEM)
        sim.autofill_income("personal", salary.id, 500, end_age=30)
        assert salary.amounts == {2026: 500}

    def test_employee_spouse_income_stores_net(self):
        sim = _sim(marital_status="married",
                   spouse=SpouseInfo(current_age=30, occupation="company_employee"))
        spouse_income = _item(sim.state.income.personal, SPOUSE_INCOME_ITEM)
        sim.set_income_amount("personal", spouse_income.id, 2026, 500)
        assert spouse_income.original_amounts[2026] == 500
        assert spouse_income.amounts[2026] == pytest.approx(381.3)

    def test_invalid_raise_type(self):
        sim = _sim()
        with pytest.raises(ValueError, match="昇給タイプ"):
            sim.autofill_income("personal", "1", 500, raise_type="bonus")

    def test_unknown_item(self):
        with pytest.raises(ValueError, match="収入項目が見つかりません"):
            _sim().autofill_income("personal", "999", 500)


class TestExpenseEntry:
    def test_autofill_other_not_escalated(self):
        sim = _sim()
        other = _item(sim.state.expenses.personal, "その他")
        sim.autofill_expense("personal", other.id, 50, end_age=31)
        assert other.amounts == {2026: 50, 2027: 50}

    def test_set_expense_amount_escalates(self):
        sim = _sim()
        living = _item(sim.state.expenses.personal, LIVING_ITEM)
        sim.set_expense_amount("personal", living.id, 2028, 300)
        assert living.raw_amounts[2028] == 300
        assert living.amounts[2028] == pytest.approx(306.0)

    def test_corporate_business_expense(self):
        sim = _sim()
        personnel = _item(sim.state.expenses.corporate, "人件費")
        sim.autofill_expense("corporate", personnel.id, 600, end_age=40)
        assert personnel.amounts[2027] == pytest.approx(606.0)
        assert sim.cash_flow[2027].corporate_expense == pytest.approx(606.0)

    def test_unknown_book(self):
        with pytest.raises(ValueError, match="不明な帳簿"):
            _sim().set_expense_amount("household", "1", 2026, 10)


class TestLoanCalculation:
    def _settings(self, **kw):
        values = dict(principal=1000, start_year=2026, interest_rate=2.0, term_years=10,
                      repayment_type=EQUAL_PRINCIPAL)
        values.update(kw)
        return LoanSettings(**values)

    def _funding_events(self, sim):
        return [e for e in sim.state.life_events if e.category == LOAN_FUNDING_CATEGORY]

    def test_apply(self):
        sim = _sim()
        loan = _item(sim.state.liabilities.personal, LOAN_ITEM)
        sim.apply_loan_calculation("personal", loan.id, self._settings())
        assert loan.amounts[2026] == 1000
        assert loan.amounts[2027] == pytest.approx(900.0)
        assert len(self._funding_events(sim)) == 1
        cash_flow = sim.cash_flow
        assert cash_flow[2026].event_income == 1000
        assert cash_flow[2027].loan_repayment == pytest.approx(120.0)
        assert cash_flow[2027].personal_liability_total == pytest.approx(900.0)

    def test_reapply_replaces_funding_event(self):
        sim = _sim()
        loan = _item(sim.state.liabilities.personal, LOAN_ITEM)
        sim.apply_loan_calculation("personal", loan.id, self._settings())
        sim.apply_loan_calculation("personal", loan.id, self._settings(principal=2000))
        events = self._funding_events(sim)
        assert len(events) == 1
        assert events[0].amount == 2000

    def test_cancel(self):
        sim = _sim()
        loan = _item(sim.state.liabilities.personal, LOAN_ITEM)
        sim.apply_loan_calculation("personal", loan.id, self._settings())
        sim.cancel_loan_calculation("personal", loan.id)
        assert loan.amounts == {}
        assert not loan.auto_calculate
        assert self._funding_events(sim) == []
        assert sim.cash_flow[2027].loan_repayment == 0.0

    def test_cancel_manual_is_noop(self):
        sim = _sim()
        credit = _item(sim.state.liabilities.personal, "クレジット残高")
        credit.amounts[2026] = 30
        sim.cancel_loan_calculation("personal", credit.id)
        assert credit.amounts == {2026: 30}

    def test_corporate_loan(self):
        sim = _sim()
        borrowing = _item(sim.state.liabilities.corporate, "借入金")
        sim.apply_loan_calculation("corporate", borrowing.id, self._settings())
        assert sim.cash_flow[2026].corporate_event_income == 1000
        assert sim.cash_flow[2027].corporate_loan_repayment == pytest.approx(120.0)
        assert sim.cash_flow[2026].event_income == 0

    def test_set_liability_data_regenerates_stale(self):
        sim = _sim()
        loan = _item(sim.state.liabilities.personal, LOAN_ITEM)
        sim.apply_loan_calculation("personal", loan.id, self._settings())
        loan.term_years = 5
        sim.set_liability_data(sim.state.liabilities)
        assert loan.amounts[2027] == pytest.approx(800.0)

    def test_unknown_liability(self):
        with pytest.raises(ValueError, match="負債項目が見つかりません"):
            _sim().apply_loan_calculation("personal", "999", self._settings())


class TestLifeEvents:
    def test_remove(self):
        sim = _sim()
        sim.add_life_event(LifeEvent(2027, "旅行", "expense", "travel", 50))
        sim.remove_life_event(0)
        assert sim.state.life_events == []
        assert sim.cash_flow[2027].event_expense == 0

    def test_remove_out_of_range(self):
        with pytest.raises(IndexError):
            _sim().remove_life_event(0)

    def test_move(self):
        sim = _sim()
        sim.add_life_event(LifeEvent(2027, "a", "expense", "x", 1))
        sim.add_life_event(LifeEvent(2028, "b", "expense", "x", 1))
        sim.move_life_event(1, -1)
        assert [e.description for e in sim.state.life_events] == ["b", "a"]


class TestLedgerProperties:
    def test_net_worth_recurrence(self):
        sim = _sim(children=[Child(3)], death_age=70)
        salary = _item(sim.state.income.personal, SALARY_ITEM)
        sim.autofill_income("personal", salary.id, 450, end_age=60)
        cash_flow = sim.cash_flow
        years = sorted(cash_flow)
        for prev, year in zip(years, years[1:]):
            expected = cash_flow[prev].personal_total_assets + cash_flow[year].personal_balance
            assert cash_flow[year].personal_total_assets == pytest.approx(expected, abs=1e-6)
