from __future__ import annotations

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, constr, field_validator, model_validator
from pydantic.alias_generators import to_camel

from maternity_backend.core.labels import (
    CalculationBase,
    HolidayType,
    LeaveType,
    PayoutMethod,
    PregnancyPeriod,
    parse_label,
)
from maternity_backend.core.name_normalize import normalize

_TRUE_VALUES = {"true", "1", "yes", "y", "是", "有", "√", "✓"}
_FALSE_VALUES = {"false", "0", "no", "n", "否", "无", "×", ""}
_DATE_FORMATS = ("%Y-%m-%d", "%Y/%m/%d", "%Y.%m.%d", "%Y年%m月%d日", "%Y%m%d")


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and value != value:  # NaN from spreadsheets
        return True
    if isinstance(value, str) and not value.strip():
        return True
    try:
        return bool(value != value)  # pandas NaT
    except (TypeError, ValueError):
        return False


def coerce_bool(value: Any) -> bool:
    if _is_blank(value):
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, Decimal)):
        return bool(value)
    text = normalize(str(value))
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ValueError(f"无法识别的布尔值: {value}")


def coerce_date(value: Any) -> date | None:
    if _is_blank(value):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    # pandas may render dates as "2025-03-01 00:00:00"
    text = text.split(" ")[0].split("T")[0]
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"无法解析的日期: {value}")


def coerce_decimal(value: Any) -> Decimal | None:
    if _is_blank(value):
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"无效的金额: {value}")
    text = str(value).strip().replace(",", "").replace("，", "").replace("¥", "").replace("元", "")
    try:
        result = Decimal(text)
    except InvalidOperation as exc:
        raise ValueError(f"无效的数值: {value}") from exc
    if not result.is_finite():
        raise ValueError(f"无效的数值: {value}")
    return result


def coerce_text(value: Any) -> str | None:
    if _is_blank(value):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def coerce_month(value: Any) -> str | None:
    if _is_blank(value):
        return None
    if isinstance(value, (date, datetime)):
        return f"{value.year:04d}-{value.month:02d}"
    match = re.fullmatch(r"(\d{4})\s*[-/.年]\s*(\d{1,2})\s*月?(?:[-/.]\d{1,2}日?)?", str(value).strip())
    if not match:
        raise ValueError(f"月份格式应为 YYYY-MM: {value}")
    return f"{int(match.group(1)):04d}-{int(match.group(2)):02d}"


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)


# ----------------------------------------------------------------------
# rule snapshot records
# ----------------------------------------------------------------------
class CityMaternityRule(_Record):
    city: constr(strip_whitespace=True, min_length=1)
    leave_type: LeaveType = Field(validation_alias=AliasChoices("leave_type", "leaveType", "type"))
    miscarriage_type: PregnancyPeriod | None = None
    days: int = Field(gt=0, validation_alias=AliasChoices("days", "leave_days", "leaveDays"))
    is_extendable: bool = False
    has_allowance: bool = True

    @field_validator("city", mode="before")
    @classmethod
    def _city_text(cls, value: Any) -> Any:
        return coerce_text(value)

    @field_validator("leave_type", mode="before")
    @classmethod
    def _leave_type(cls, value: Any) -> LeaveType:
        return parse_label(LeaveType, value)

    @field_validator("miscarriage_type", mode="before")
    @classmethod
    def _miscarriage_type(cls, value: Any) -> PregnancyPeriod | None:
        if _is_blank(value):
            return None
        return parse_label(PregnancyPeriod, value)

    @field_validator("is_extendable", mode="before")
    @classmethod
    def _extendable(cls, value: Any) -> bool:
        return coerce_bool(value)

    @field_validator("has_allowance", mode="before")
    @classmethod
    def _has_allowance(cls, value: Any) -> bool:
        return True if _is_blank(value) else coerce_bool(value)

    @model_validator(mode="after")
    def _miscarriage_consistency(self) -> "CityMaternityRule":
        if self.leave_type is LeaveType.MISCARRIAGE and self.miscarriage_type is None:
            raise ValueError("流产假规则必须指定流产类型")
        if self.leave_type is not LeaveType.MISCARRIAGE and self.miscarriage_type is not None:
            raise ValueError("仅流产假规则可以指定流产类型")
        return self


class CityAllowanceRule(_Record):
    city: constr(strip_whitespace=True, min_length=1)
    social_average_wage: Decimal = Field(gt=0)
    company_average_wage: Decimal = Field(gt=0)
    company_contribution_wage: Decimal | None = Field(default=None, gt=0)
    calculation_base: CalculationBase = CalculationBase.AVERAGE_WAGE
    payout_method: PayoutMethod = Field(
        default=PayoutMethod.COMPANY_ACCOUNT,
        validation_alias=AliasChoices("payout_method", "payoutMethod", "account_type", "accountType"),
    )
    maternity_policy: str | None = None
    allowance_policy: str | None = None

    @field_validator("city", "maternity_policy", "allowance_policy", mode="before")
    @classmethod
    def _text(cls, value: Any) -> Any:
        return coerce_text(value)

    @field_validator("social_average_wage", "company_average_wage", "company_contribution_wage", mode="before")
    @classmethod
    def _money(cls, value: Any) -> Any:
        return coerce_decimal(value)

    @field_validator("calculation_base", mode="before")
    @classmethod
    def _calculation_base(cls, value: Any) -> CalculationBase:
        if _is_blank(value):
            return CalculationBase.AVERAGE_WAGE
        return parse_label(CalculationBase, value)

    @field_validator("payout_method", mode="before")
    @classmethod
    def _payout_method(cls, value: Any) -> PayoutMethod:
        if _is_blank(value):
            return PayoutMethod.COMPANY_ACCOUNT
        return parse_label(PayoutMethod, value)


class EmployeeRecord(_Record):
    employee_id: constr(min_length=1) = Field(
        validation_alias=AliasChoices("employee_id", "employeeId", "employee_no", "employeeNo")
    )
    employee_name: constr(min_length=1) = Field(
        validation_alias=AliasChoices("employee_name", "employeeName", "name")
    )
    city: constr(min_length=1)
    basic_salary: Decimal | None = Field(
        default=None,
        validation_alias=AliasChoices("basic_salary", "basicSalary", "employee_basic_salary", "employeeBasicSalary"),
    )
    current_base_salary: Decimal | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "current_base_salary",
            "currentBaseSalary",
            "employee_base_salary_current",
            "employeeBaseSalaryCurrent",
        ),
    )
    personal_ss_monthly: Decimal | None = Field(
        default=None,
        validation_alias=AliasChoices("personal_ss_monthly", "personalSSMonthly"),
    )

    @field_validator("employee_id", "employee_name", "city", mode="before")
    @classmethod
    def _text(cls, value: Any) -> Any:
        return coerce_text(value)

    @field_validator("basic_salary", "current_base_salary", "personal_ss_monthly", mode="before")
    @classmethod
    def _money(cls, value: Any) -> Any:
        return coerce_decimal(value)


class HolidayCalendarEntry(_Record):
    holiday_date: date = Field(validation_alias=AliasChoices("holiday_date", "holidayDate", "date"))
    name: str = ""
    holiday_type: HolidayType = Field(
        default=HolidayType.HOLIDAY,
        validation_alias=AliasChoices("holiday_type", "holidayType", "type"),
    )
    is_legal_holiday: bool = False

    @field_validator("holiday_date", mode="before")
    @classmethod
    def _date(cls, value: Any) -> Any:
        return coerce_date(value)

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, value: Any) -> str:
        return coerce_text(value) or ""

    @field_validator("holiday_type", mode="before")
    @classmethod
    def _type(cls, value: Any) -> Any:
        if _is_blank(value):
            return HolidayType.HOLIDAY
        text = normalize(str(value))
        if text in {"makeup", "makeup_workday", "makeupworkday", "调休上班", "补班"}:
            return HolidayType.MAKEUP_WORKDAY
        return parse_label(HolidayType, value)

    @field_validator("is_legal_holiday", mode="before")
    @classmethod
    def _legal(cls, value: Any) -> bool:
        return coerce_bool(value)


class HolidayPlan(_Record):
    """Holiday lookup payload for one calendar year."""

    year: int | None = None
    holidays: tuple[HolidayCalendarEntry, ...] = ()
    makeup_workdays: tuple[date, ...] = ()

    @field_validator("holidays", mode="before")
    @classmethod
    def _holidays(cls, value: Any) -> Any:
        if _is_blank(value):
            return ()
        entries: list[Any] = []
        for item in value:
            if isinstance(item, (str, date)):
                # bare dates carry no legal-holiday flag: rest days only
                entries.append({"holiday_date": item, "is_legal_holiday": False})
            else:
                entries.append(item)
        return entries

    @field_validator("makeup_workdays", mode="before")
    @classmethod
    def _makeup(cls, value: Any) -> Any:
        if _is_blank(value):
            return ()
        return [coerce_date(item) for item in value]


# ----------------------------------------------------------------------
# calculation input
# ----------------------------------------------------------------------
class SalaryAdjustment(_Record):
    before_amount: Decimal = Field(ge=0)
    after_amount: Decimal = Field(ge=0)
    effective_month: constr(pattern=r"^\d{4}-\d{2}$")

    @field_validator("before_amount", "after_amount", mode="before")
    @classmethod
    def _money(cls, value: Any) -> Any:
        return coerce_decimal(value)

    @field_validator("effective_month", mode="before")
    @classmethod
    def _month(cls, value: Any) -> Any:
        return coerce_month(value)

    def amount_for(self, month: str) -> Decimal:
        return self.after_amount if month >= self.effective_month else self.before_amount


class EmployeeCalculationInput(_Record):
    """One employee's calculation request.

    Override precedence: an explicit override field on this record always
    wins over the value derived from the city rule, and the city rule wins over
    built-in defaults.

    * ``current_base_salary`` replaces ``basic_salary`` as the proration base
      (``salary_adjustment`` in turn replaces both for the months it covers).
    * ``payout_method`` falls back to the city allowance rule.
    * ``government_paid_amount`` replaces the computed allowance.
    * ``personal_ss_monthly`` replaces ``basic_salary`` x contribution rate;
      ``social_security_adjustment`` replaces both, split by month.
    * ``company_average_wage`` replaces the rule's company wage.
    * ``social_insurance_limit`` replaces 3 x social average wage.
    * ``override_end_date`` is honoured only when no extendable reward leave
      applies.
    """

    employee_id: str | None = Field(
        default=None, validation_alias=AliasChoices("employee_id", "employeeId", "employee_no", "employeeNo")
    )
    employee_name: str | None = Field(
        default=None, validation_alias=AliasChoices("employee_name", "employeeName", "name")
    )
    city: str | None = None
    basic_salary: Decimal = Field(
        gt=0,
        validation_alias=AliasChoices("basic_salary", "basicSalary", "employee_basic_salary", "employeeBasicSalary"),
    )
    current_base_salary: Decimal | None = Field(
        default=None,
        gt=0,
        validation_alias=AliasChoices(
            "current_base_salary",
            "currentBaseSalary",
            "employee_base_salary_current",
            "employeeBaseSalaryCurrent",
        ),
    )
    start_date: date
    override_end_date: date | None = Field(
        default=None, validation_alias=AliasChoices("override_end_date", "overrideEndDate", "end_date", "endDate")
    )
    is_difficult_birth: bool = False
    number_of_babies: int = Field(default=1, ge=1)
    pregnancy_period: PregnancyPeriod = PregnancyPeriod.ABOVE_7_MONTHS
    is_miscarriage: bool = False
    doctor_advice_days: int | None = Field(default=None, ge=0)
    meets_supplemental_difficult_birth: bool = False
    is_second_third_child: bool = False
    payout_method: PayoutMethod | None = Field(
        default=None, validation_alias=AliasChoices("payout_method", "payoutMethod", "payment_method", "paymentMethod")
    )
    government_paid_amount: Decimal | None = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices(
            "government_paid_amount", "governmentPaidAmount", "overrideGovernmentPaidAmount"
        ),
    )
    personal_ss_monthly: Decimal | None = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("personal_ss_monthly", "personalSSMonthly", "overridePersonalSSMonthly"),
    )
    company_average_wage: Decimal | None = Field(
        default=None,
        gt=0,
        validation_alias=AliasChoices(
            "company_average_wage", "companyAverageWage", "overrideCompanyAvg", "companyAvgSalaryOverride"
        ),
    )
    social_insurance_limit: Decimal | None = Field(
        default=None,
        gt=0,
        validation_alias=AliasChoices(
            "social_insurance_limit", "socialInsuranceLimit", "overrideSocialLimit", "socialInsuranceLimitOverride"
        ),
    )
    salary_adjustment: SalaryAdjustment | None = None
    social_security_adjustment: SalaryAdjustment | None = None

    @field_validator("employee_id", "employee_name", "city", mode="before")
    @classmethod
    def _text(cls, value: Any) -> Any:
        return coerce_text(value)

    @field_validator(
        "basic_salary",
        "current_base_salary",
        "government_paid_amount",
        "personal_ss_monthly",
        "company_average_wage",
        "social_insurance_limit",
        mode="before",
    )
    @classmethod
    def _money(cls, value: Any) -> Any:
        return coerce_decimal(value)

    @field_validator("start_date", "override_end_date", mode="before")
    @classmethod
    def _dates(cls, value: Any) -> Any:
        return coerce_date(value)

    @field_validator(
        "is_difficult_birth",
        "is_miscarriage",
        "meets_supplemental_difficult_birth",
        "is_second_third_child",
        mode="before",
    )
    @classmethod
    def _flags(cls, value: Any) -> bool:
        return coerce_bool(value)

    @field_validator("number_of_babies", mode="before")
    @classmethod
    def _babies(cls, value: Any) -> Any:
        return 1 if _is_blank(value) else value

    @field_validator("doctor_advice_days", mode="before")
    @classmethod
    def _doctor_days(cls, value: Any) -> Any:
        return None if _is_blank(value) else value

    @field_validator("pregnancy_period", mode="before")
    @classmethod
    def _period(cls, value: Any) -> PregnancyPeriod:
        if _is_blank(value):
            return PregnancyPeriod.ABOVE_7_MONTHS
        return parse_label(PregnancyPeriod, value)

    @field_validator("payout_method", mode="before")
    @classmethod
    def _payout(cls, value: Any) -> PayoutMethod | None:
        if _is_blank(value):
            return None
        return parse_label(PayoutMethod, value)

    @field_validator("salary_adjustment", "social_security_adjustment", mode="before")
    @classmethod
    def _adjustment(cls, value: Any) -> Any:
        if _is_blank(value):
            return None
        if isinstance(value, dict) and all(_is_blank(item) for item in value.values()):
            return None
        return value

    @model_validator(mode="after")
    def _check_dates(self) -> "EmployeeCalculationInput":
        if self.override_end_date is not None and self.override_end_date < self.start_date:
            raise ValueError("产假结束日期不能早于开始日期")
        return self

    @property
    def proration_salary(self) -> Decimal:
        return self.current_base_salary if self.current_base_salary is not None else self.basic_salary


# ----------------------------------------------------------------------
# calculation output
# ----------------------------------------------------------------------
class AppliedRule(_Record):
    leave_type: LeaveType
    label: str
    days: int = Field(ge=0)
    has_allowance: bool = True
    is_extendable: bool = False
    note: str | None = None
    extended_days: int = 0
    extension_start: date | None = None
    extension_end: date | None = None
    extension_holidays: tuple[str, ...] = ()

    @property
    def total_days(self) -> int:
        return self.days + self.extended_days


class CalculatedPeriod(_Record):
    start_date: date
    end_date: date
    actual_days: int
    working_days_estimate: int


class MonthWage(_Record):
    month: constr(pattern=r"^\d{4}-\d{2}$")
    month_working_days: int
    month_legal_holiday_days: int
    attended_working_days: int
    salary_used: Decimal
    salary_source: Literal["basic_salary", "current_base_salary", "before_adjustment", "after_adjustment"]
    prorated_wage: Decimal | None = None
    folded_into_contribution: bool = False

    @property
    def denominator(self) -> int:
        return self.month_working_days + self.month_legal_holiday_days


class PersonalContributionBreakdown(_Record):
    type: Literal["uniform", "adjusted"]
    months: tuple[str, ...] = ()
    monthly_amount: Decimal | None = None
    before_amount: Decimal | None = None
    after_amount: Decimal | None = None
    before_months: tuple[str, ...] = ()
    after_months: tuple[str, ...] = ()
    rate: Decimal | None = None
    override_applied: bool = False
    total: Decimal = Decimal("0")


class DebugInfo(_Record):
    company_average_wage: Decimal
    company_wage_source: Literal["average_wage", "average_contribution_wage", "override"]
    social_average_wage: Decimal
    social_insurance_limit: Decimal
    social_limit_overridden: bool = False
    maternity_allowance_base: Decimal
    formula_type: Literal["monthly", "annualized"]
    monthly_divisor: Decimal | None = None
    months_per_year: int | None = None
    days_per_year: int | None = None
    daily_allowance: Decimal
    payable_allowance_days: int
    government_paid_amount: Decimal
    government_override_applied: bool = False
    employee_basic_salary: Decimal
    employee_receivable_base: Decimal
    employee_receivable_base_source: Literal["employee_basic_salary", "company_average_wage"]
    employee_daily_rate: Decimal
    employee_receivable: Decimal
    personal_ss_monthly: Decimal | None = None


class Derivation(_Record):
    applied_rules_summary: str
    government_process: str
    employee_process: str
    supplement_process: str
    personal_ss_process: str
    start_month_process: str
    end_month_process: str


class CalculationResult(_Record):
    employee_id: str | None = None
    employee_name: str | None = None
    city: str
    payout_method: PayoutMethod
    total_maternity_days: int
    total_allowance_eligible_days: int
    applied_rules: tuple[AppliedRule, ...] = ()
    calculated_period: CalculatedPeriod
    maternity_allowance_base: Decimal
    daily_allowance: Decimal
    government_paid_amount: Decimal
    employee_receivable: Decimal
    company_supplement: Decimal
    personal_social_security: Decimal
    personal_contribution_breakdown: PersonalContributionBreakdown
    start_month_wage: MonthWage | None = None
    end_month_wage: MonthWage | None = None
    debug_info: DebugInfo
    derivation: Derivation | None = None
    rule_version: str = "maternity_v1"
    snapshot_version: str | None = None


class BatchIdentity(_Record):
    employee_name: str | None = None
    employee_id: str | None = None


class BatchError(_Record):
    row_index: int
    identity: BatchIdentity
    error_type: str
    errors: tuple[str, ...]


class BatchOutcome(BaseModel):
    results: list[CalculationResult] = Field(default_factory=list)
    result_rows: list[int] = Field(default_factory=list)
    errors: list[BatchError] = Field(default_factory=list)
