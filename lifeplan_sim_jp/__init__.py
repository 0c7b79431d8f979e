"""Personal and Corporate Life-Plan Cash-Flow Simulation Package."""

from lifeplan_sim_jp.params import Parameters, inflate_amount, round1
from lifeplan_sim_jp.models import (
    BasicInfo,
    HousingInfo,
    SpouseInfo,
    Child,
    PlannedChild,
    EducationPlan,
    IncomeItem,
    ExpenseItem,
    AssetItem,
    LiabilityItem,
    LifeEvent,
    Section,
    PlanState,
    CashFlowYear,
    CashFlowData,
)
from lifeplan_sim_jp.housing import RentPlan, OwnPlan, housing_expense
from lifeplan_sim_jp.education import education_expense
from lifeplan_sim_jp.tax import net_income, NetIncomeResult, Deductions
from lifeplan_sim_jp.loan import (
    amortize,
    loan_preview,
    LoanSettings,
    LoanPreview,
    ScheduleEntry,
    EQUAL_PAYMENT,
    EQUAL_PRINCIPAL,
)
from lifeplan_sim_jp.pension import pension_for_year, spouse_pension_for_year
from lifeplan_sim_jp.simulation import rebuild_ledger, validate_basic_info
from lifeplan_sim_jp.store import Simulator

__all__ = [
    "Parameters",
    "inflate_amount",
    "round1",
    "BasicInfo",
    "HousingInfo",
    "SpouseInfo",
    "Child",
    "PlannedChild",
    "EducationPlan",
    "IncomeItem",
    "ExpenseItem",
    "AssetItem",
    "LiabilityItem",
    "LifeEvent",
    "Section",
    "PlanState",
    "CashFlowYear",
    "CashFlowData",
    "RentPlan",
    "OwnPlan",
    "housing_expense",
    "education_expense",
    "net_income",
    "NetIncomeResult",
    "Deductions",
    "amortize",
    "loan_preview",
    "LoanSettings",
    "LoanPreview",
    "ScheduleEntry",
    "EQUAL_PAYMENT",
    "EQUAL_PRINCIPAL",
    "pension_for_year",
    "spouse_pension_for_year",
    "rebuild_ledger",
    "validate_basic_info",
    "Simulator",
]
