"""Projection calculators package."""

from finwise.calculators.projections import (
    InvestmentProjection,
    InvestmentYear,
    RetirementProjection,
    RetirementYear,
    compound_interest,
    retirement_future_value,
    round_money,
)

__all__ = [
    "InvestmentProjection",
    "InvestmentYear",
    "RetirementProjection",
    "RetirementYear",
    "compound_interest",
    "retirement_future_value",
    "round_money",
]
