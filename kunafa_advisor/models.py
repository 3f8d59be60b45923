from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Immutable model that reads and writes the browser's camelCase JSON keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class RevenueData(CamelModel):
    dine_in: float = 0.0
    outdoor: float = 0.0


class MaintenanceData(CamelModel):
    electricity: float = 0.0
    rent: float = 0.0
    repairs: float = 0.0


class FoodCostData(CamelModel):
    local: float = 0.0
    pune: float = 0.0


class StaffingData(CamelModel):
    salaries: float = 0.0
    welfare: float = 0.0


class PlatformFeesData(CamelModel):
    zomato: float = 0.0
    swiggy: float = 0.0


class OperationalData(CamelModel):
    outdoor_orders: float = 0.0
    avg_rating: float = 0.0


class FinancialData(CamelModel):
    """One month of figures for a single branch."""

    revenue: RevenueData = RevenueData()
    maintenance: MaintenanceData = MaintenanceData()
    food_costs: FoodCostData = FoodCostData()
    staffing: StaffingData = StaffingData()
    platform_fees: PlatformFeesData = PlatformFeesData()
    packaging: float = 0.0
    marketing: float = 0.0
    misc: float = 0.0
    operational: OperationalData = OperationalData()


class CalculationResult(CamelModel):
    profit_or_loss: float
    total_expenses: float
    total_revenue: float


class ChartData(CamelModel):
    name: str
    value: float


class ChatMessage(CamelModel):
    # Kept as a plain string: anything other than "model" is sent upstream as a
    # user message.
    role: str
    content: str


class ChatRequest(CamelModel):
    """Body of ``POST /api/chat``."""

    history: list[ChatMessage]
    financial_data: Optional[FinancialData] = None
    calculation_result: Optional[CalculationResult] = None
    currency: str
    location: str

    @field_validator("history")
    @classmethod
    def history_not_empty(cls, value: list[ChatMessage]) -> list[ChatMessage]:
        if not value:
            raise ValueError("history list cannot be empty")
        return value

    @property
    def is_initial_analysis(self) -> bool:
        """True when this request carries the figures for the first turn."""
        return (
            self.financial_data is not None
            and self.calculation_result is not None
            and len(self.history) == 1
        )
