import asyncio
from unittest import mock

import pytest

from kunafa_advisor.config import Settings, get_settings
from kunafa_advisor.main import app
from kunafa_advisor.models import (
    CalculationResult,
    FinancialData,
    FoodCostData,
    MaintenanceData,
    OperationalData,
    PlatformFeesData,
    RevenueData,
    StaffingData,
)


class MockEvent:
    """Stand-in for a ``ChatCompletionChunk`` carrying one text delta."""

    def __init__(self, content):
        class Delta:
            pass

        class Choice:
            pass

        delta = Delta()
        delta.content = content
        choice = Choice()
        choice.delta = delta
        self.choices = [choice]


class MockStream:
    """Stand-in for ``openai.AsyncStream``."""

    def __init__(self, fragments, error=None, hang=False):
        self.fragments = list(fragments)
        self.error = error
        self.hang = hang
        self.closed = False

    def __aiter__(self):
        return self._events()

    async def _events(self):
        for fragment in self.fragments:
            yield MockEvent(fragment)
        if self.hang:
            # Stalls like a provider that stopped sending; only cancellation ends it.
            await asyncio.Event().wait()
        if self.error is not None:
            raise self.error

    async def close(self):
        self.closed = True


class MockProvider:
    def __init__(self):
        self.fragments = ["Hel", "lo, ", "world!"]
        self.open_error = None
        self.stream_error = None
        self.hang = False
        self.calls = []
        self.streams = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.open_error is not None:
            raise self.open_error
        stream = MockStream(self.fragments, self.stream_error, self.hang)
        self.streams.append(stream)
        return stream


@pytest.fixture
def mock_openai():
    """Patch ``openai.AsyncOpenAI`` with a scriptable provider."""
    with mock.patch("openai.AsyncOpenAI") as mock_client_class:
        provider = MockProvider()
        mock_client = mock.MagicMock()
        mock_client.chat.completions.create = provider.create
        mock_client_class.return_value = mock_client
        provider.client_class = mock_client_class
        yield provider


@pytest.fixture
def settings():
    return Settings(api_key="test-key", model="gpt-4o", timeout=5.0)


@pytest.fixture
def configured_app(settings):
    app.dependency_overrides[get_settings] = lambda: settings
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def unconfigured_app():
    app.dependency_overrides[get_settings] = lambda: Settings(api_key=None)
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def financial_data():
    return FinancialData(
        revenue=RevenueData(dine_in=250000, outdoor=120000),
        maintenance=MaintenanceData(electricity=18000, rent=90000, repairs=4500),
        food_costs=FoodCostData(local=60000, pune=35000),
        staffing=StaffingData(salaries=85000, welfare=6000),
        platform_fees=PlatformFeesData(zomato=14000, swiggy=9500),
        packaging=7200,
        marketing=5000,
        misc=3100,
        operational=OperationalData(outdoor_orders=640, avg_rating=4.3),
    )


@pytest.fixture
def calculation_result():
    return CalculationResult(
        profit_or_loss=32700,
        total_expenses=337300,
        total_revenue=370000,
    )
