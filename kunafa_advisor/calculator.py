"""Profit/loss arithmetic and chart-ready aggregates for one branch-month.

Everything here is a flat sum over the fixed :class:`FinancialData` shape.
The results feed the prompt builder and whatever renders the charts.
"""

import math
from typing import Any, Mapping

from .errors import InvalidFinancialData
from .models import (
    CalculationResult,
    ChartData,
    FinancialData,
    FoodCostData,
    MaintenanceData,
    OperationalData,
    PlatformFeesData,
    RevenueData,
    StaffingData,
)

BRANCHES = ("Ahmedabad", "Udaipur")
CURRENCIES = ("INR", "USD", "EUR")

# Monthly rent is prefilled when a branch is selected.
BRANCH_RENT_PRESETS = {
    "Udaipur": 56817.0,
    "Ahmedabad": 90000.0,
}


def parse_amount(value: Any) -> float:
    """Parse a form value, treating blanks and garbage as zero."""
    if value is None:
        return 0.0
    try:
        amount = float(str(value).strip())
    except ValueError:
        return 0.0
    if math.isnan(amount) or math.isinf(amount):
        return 0.0
    return amount


def build_financial_data(inputs: Mapping[str, Any]) -> FinancialData:
    """Build a snapshot from the raw (string) form inputs keyed in camelCase."""

    def group(name: str) -> Mapping[str, Any]:
        return inputs.get(name) or {}

    revenue = group("revenue")
    maintenance = group("maintenance")
    food_costs = group("foodCosts")
    staffing = group("staffing")
    platform_fees = group("platformFees")
    operational = group("operational")

    return FinancialData(
        revenue=RevenueData(
            dine_in=parse_amount(revenue.get("dineIn")),
            outdoor=parse_amount(revenue.get("outdoor")),
        ),
        maintenance=MaintenanceData(
            electricity=parse_amount(maintenance.get("electricity")),
            rent=parse_amount(maintenance.get("rent")),
            repairs=parse_amount(maintenance.get("repairs")),
        ),
        food_costs=FoodCostData(
            local=parse_amount(food_costs.get("local")),
            pune=parse_amount(food_costs.get("pune")),
        ),
        staffing=StaffingData(
            salaries=parse_amount(staffing.get("salaries")),
            welfare=parse_amount(staffing.get("welfare")),
        ),
        platform_fees=PlatformFeesData(
            zomato=parse_amount(platform_fees.get("zomato")),
            swiggy=parse_amount(platform_fees.get("swiggy")),
        ),
        packaging=parse_amount(inputs.get("packaging")),
        marketing=parse_amount(inputs.get("marketing")),
        misc=parse_amount(inputs.get("misc")),
        operational=OperationalData(
            outdoor_orders=parse_amount(operational.get("outdoorOrders")),
            avg_rating=parse_amount(operational.get("avgRating")),
        ),
    )


def preset_financial_data(location: str) -> FinancialData:
    """Blank inputs for a branch, with its rent prefilled when known."""
    rent = BRANCH_RENT_PRESETS.get(location, 0.0)
    return FinancialData(maintenance=MaintenanceData(rent=rent))


def total_revenue(data: FinancialData) -> float:
    return data.revenue.dine_in + data.revenue.outdoor


def total_maintenance(data: FinancialData) -> float:
    m = data.maintenance
    return m.electricity + m.rent + m.repairs


def total_food_costs(data: FinancialData) -> float:
    return data.food_costs.local + data.food_costs.pune


def total_staffing(data: FinancialData) -> float:
    return data.staffing.salaries + data.staffing.welfare


def total_platform_fees(data: FinancialData) -> float:
    return data.platform_fees.zomato + data.platform_fees.swiggy


def calculate(data: FinancialData) -> CalculationResult:
    """Compute revenue, expenses and net result.

    Raises:
        InvalidFinancialData: if total revenue is not positive.
    """
    revenue = total_revenue(data)
    if revenue <= 0:
        raise InvalidFinancialData(
            "Total Revenue must be greater than zero to calculate profit/loss."
        )

    expenses = (
        total_maintenance(data)
        + total_food_costs(data)
        + total_staffing(data)
        + total_platform_fees(data)
        + data.packaging
        + data.marketing
        + data.misc
    )
    return CalculationResult(
        profit_or_loss=revenue - expenses,
        total_expenses=expenses,
        total_revenue=revenue,
    )


def _non_zero(items: list[tuple[str, float]]) -> list[ChartData]:
    return [ChartData(name=name, value=value) for name, value in items if value > 0]


def expense_breakdown(data: FinancialData) -> list[ChartData]:
    return _non_zero(
        [
            ("Maintenance", total_maintenance(data)),
            ("Food Costs", total_food_costs(data)),
            ("Staffing", total_staffing(data)),
            ("Platform Fees", total_platform_fees(data)),
            ("Packaging", data.packaging),
            ("Marketing", data.marketing),
            ("Misc Costs", data.misc),
        ]
    )


def revenue_breakdown(data: FinancialData) -> list[ChartData]:
    return _non_zero(
        [
            ("Dine-in", data.revenue.dine_in),
            ("Outdoor", data.revenue.outdoor),
        ]
    )


def maintenance_breakdown(data: FinancialData) -> list[ChartData]:
    return _non_zero(
        [
            ("Electricity", data.maintenance.electricity),
            ("Rent", data.maintenance.rent),
            ("Repairs", data.maintenance.repairs),
        ]
    )
