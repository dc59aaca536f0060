"""
Projection Calculators

Pure, stateless investment projections:

- compound_interest: monthly contribution, then monthly compounding
- retirement_future_value: yearly contribution, then yearly nominal
  growth, alongside an inflation-adjusted track using the Fisher real
  rate (1 + nominal) / (1 + inflation) - 1

Running totals are kept at full float precision; only the recorded
checkpoints (each year's row and the final figures) are rounded to
2 dp, half up.
"""

from decimal import ROUND_HALF_UP, Decimal

from pydantic import BaseModel, Field

from finwise.guards.errors import ValidationError


def round_money(value: float) -> float:
    """Round to 2 dp, ties away from zero."""
    return float(Decimal(repr(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


# =============================================================================
# RESULT MODELS
# =============================================================================

class InvestmentYear(BaseModel):
    year: int
    value: float
    total_contributions: float
    interest_earned: float


class InvestmentProjection(BaseModel):
    """Outcome of compound_interest()."""

    initial_investment: float
    monthly_contribution: float
    annual_return: float
    years: int
    yearly_projections: list[InvestmentYear] = Field(default_factory=list)
    final_value: float
    total_contributions: float
    total_interest_earned: float


class RetirementYear(BaseModel):
    year: int
    nominal_value: float
    inflation_adjusted_value: float
    total_contributions: float
    purchasing_power_loss: float


class RetirementProjection(BaseModel):
    """Outcome of retirement_future_value()."""

    current_savings: float
    annual_contribution: float
    annual_return: float
    inflation_rate: float
    years_until_retirement: int
    real_rate_of_return: float = Field(..., description="Fisher real rate, in percent")
    yearly_projections: list[RetirementYear] = Field(default_factory=list)
    projected_nominal_value: float
    projected_inflation_adjusted_value: float
    total_contributions: float
    total_nominal_growth: float
    total_real_growth: float


# =============================================================================
# CALCULATORS
# =============================================================================

def _require_non_negative(value: float, field: str) -> None:
    if value < 0:
        raise ValidationError(f"{field} must be non-negative", field=field)


def _require_positive_years(years: int, field: str) -> None:
    if years <= 0:
        raise ValidationError(f"{field} must be positive", field=field)


def compound_interest(
    initial: float,
    monthly_contribution: float,
    annual_return_pct: float,
    years: int,
) -> InvestmentProjection:
    """
    Project an investment with monthly contributions.

    Each month the contribution is added first, then a month of interest
    at annual_return_pct / 12 is applied.

    Raises:
        ValidationError: Negative amounts or non-positive years
    """
    _require_non_negative(initial, "initial_investment")
    _require_non_negative(monthly_contribution, "monthly_contribution")
    _require_positive_years(years, "years")

    monthly_rate = annual_return_pct / 100 / 12
    current_value = float(initial)
    total_contributions = float(initial)
    yearly = []

    for year in range(1, years + 1):
        for _ in range(12):
            current_value += monthly_contribution
            total_contributions += monthly_contribution
            current_value *= (1 + monthly_rate)

        yearly.append(InvestmentYear(
            year=year,
            value=round_money(current_value),
            total_contributions=round_money(total_contributions),
            interest_earned=round_money(current_value - total_contributions),
        ))

    return InvestmentProjection(
        initial_investment=initial,
        monthly_contribution=monthly_contribution,
        annual_return=annual_return_pct,
        years=years,
        yearly_projections=yearly,
        final_value=round_money(current_value),
        total_contributions=round_money(total_contributions),
        total_interest_earned=round_money(current_value - total_contributions),
    )


def retirement_future_value(
    current_savings: float,
    annual_contribution: float,
    annual_return_pct: float,
    inflation_pct: float,
    years_until_retirement: int,
) -> RetirementProjection:
    """
    Project retirement savings in nominal and inflation-adjusted terms.

    Raises:
        ValidationError: Negative amounts, non-positive years, or an
            inflation rate outside [0, 100]
    """
    _require_non_negative(current_savings, "current_savings")
    _require_non_negative(annual_contribution, "annual_contribution")
    _require_positive_years(years_until_retirement, "years_until_retirement")
    if not 0 <= inflation_pct <= 100:
        raise ValidationError("inflation_rate must be between 0 and 100", field="inflation_rate")

    nominal_rate = annual_return_pct / 100
    inflation = inflation_pct / 100
    real_rate = (1 + nominal_rate) / (1 + inflation) - 1

    nominal_value = float(current_savings)
    adjusted_value = float(current_savings)
    total_contributions = float(current_savings)
    yearly = []

    for year in range(1, years_until_retirement + 1):
        nominal_value += annual_contribution
        total_contributions += annual_contribution
        nominal_value *= (1 + nominal_rate)

        adjusted_value += annual_contribution
        adjusted_value *= (1 + real_rate)

        yearly.append(RetirementYear(
            year=year,
            nominal_value=round_money(nominal_value),
            inflation_adjusted_value=round_money(adjusted_value),
            total_contributions=round_money(total_contributions),
            purchasing_power_loss=round_money(nominal_value - adjusted_value),
        ))

    return RetirementProjection(
        current_savings=current_savings,
        annual_contribution=annual_contribution,
        annual_return=annual_return_pct,
        inflation_rate=inflation_pct,
        years_until_retirement=years_until_retirement,
        real_rate_of_return=round_money(real_rate * 100),
        yearly_projections=yearly,
        projected_nominal_value=round_money(nominal_value),
        projected_inflation_adjusted_value=round_money(adjusted_value),
        total_contributions=round_money(total_contributions),
        total_nominal_growth=round_money(nominal_value - total_contributions),
        total_real_growth=round_money(adjusted_value - total_contributions),
    )
