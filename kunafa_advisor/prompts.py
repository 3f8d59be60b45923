from .models import CalculationResult, FinancialData

BUSINESS_NAME = "Kunafa Bytes"

# Printed for an operational counter that was left empty or zero.
NOT_AVAILABLE = "N/A"

CURRENCY_SYMBOLS = {
    "INR": "₹",
    "USD": "$",
    "EUR": "€",
}

SYSTEM_PROMPT = (
    'You are an expert financial advisor for "{business}", a specialized food '
    "business. The user has provided initial financial data for one of their "
    "branches and may ask follow-up questions. Always be concise, actionable, "
    "and encouraging but realistic. Base your answers on the financial context "
    "provided. The branch is {location} and currency is {currency}."
)

INITIAL_PROMPT = """
A business owner has provided their monthly financial and operational data for the {location} branch.
Your primary task is to provide a concise, actionable analysis and 3-5 specific recommendations to improve profitability for this specific branch.
Analyze the expense distribution and suggest practical steps the owner can take.

Here is the detailed data for the month (all values in {currency}):

**Revenue Breakdown:**
- Dine-in Sales: {dine_in}
- Outdoor Sales (Events, Takeaway): {outdoor}
- **Total Revenue: {total_revenue}**

**Expense Breakdown:**
- **Maintenance Costs:**
  - Electricity: {electricity}, Rent: {rent}, Repairs: {repairs}
- **Food Costs:**
  - Local Purchases: {food_local}, Pune Purchases: {food_pune}
- **Staffing Costs:**
  - Total Salaries: {salaries}
  - Staff Welfare: {welfare}
- **Platform & Delivery Commissions:**
  - Zomato: {zomato}
  - Swiggy: {swiggy}
- **Other Variable Costs:**
  - Packaging Materials: {packaging}
- **Marketing & Advertising:** {marketing}
- **Miscellaneous Costs:** {misc}

**Operational Metrics:**
- Total Outdoor Orders: {outdoor_orders}
- Average Customer Rating (out of 5): {avg_rating}

**Calculated Result:**
- **Net {result_label}: {net_amount}**

Based on this simplified data for the {location} branch, provide your expert analysis and recommendations. Structure your response in Markdown format. Start with a brief "Financial Health Summary for {business} {location}" and then provide a bulleted list of "Actionable Recommendations".
**Crucially, you must perform the following analysis:**
1. If order data is available, calculate and analyze the Average Order Value (AOV) for Outdoor Sales.
2. Correlate the provided customer rating with the sales performance.
3. Pay special attention to the impact of platform commissions on profitability.

Be encouraging but realistic in your tone. After this initial analysis, the user will be able to ask you follow-up questions.
"""


def format_currency(value: float, currency: str) -> str:
    """Format an amount the way en-US currency formatting does (``₹1,234.50``)."""
    rounded = round(value, 2)
    sign = "-" if rounded < 0 else ""
    amount = f"{abs(rounded):,.2f}"
    symbol = CURRENCY_SYMBOLS.get(currency)
    if symbol:
        return f"{sign}{symbol}{amount}"
    return f"{sign}{currency} {amount}"


def format_count(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def system_instruction(location: str, currency: str) -> str:
    return SYSTEM_PROMPT.format(
        business=BUSINESS_NAME, location=location, currency=currency
    )


def create_initial_prompt(
    financial_data: FinancialData,
    calculation_result: CalculationResult,
    currency: str,
    location: str,
) -> str:
    """Render the first-turn analysis request for a branch-month.

    Monetary fields are formatted in ``currency``. A zero order count or a
    non-positive rating is printed as ``N/A``: a missing counter and a real
    zero must not read the same to the model.
    """

    def money(value: float) -> str:
        return format_currency(value, currency)

    data = financial_data
    profit_or_loss = calculation_result.profit_or_loss
    outdoor_orders = data.operational.outdoor_orders
    avg_rating = data.operational.avg_rating

    return INITIAL_PROMPT.format(
        business=BUSINESS_NAME,
        location=location,
        currency=currency,
        dine_in=money(data.revenue.dine_in),
        outdoor=money(data.revenue.outdoor),
        total_revenue=money(calculation_result.total_revenue),
        electricity=money(data.maintenance.electricity),
        rent=money(data.maintenance.rent),
        repairs=money(data.maintenance.repairs),
        food_local=money(data.food_costs.local),
        food_pune=money(data.food_costs.pune),
        salaries=money(data.staffing.salaries),
        welfare=money(data.staffing.welfare),
        zomato=money(data.platform_fees.zomato),
        swiggy=money(data.platform_fees.swiggy),
        packaging=money(data.packaging),
        marketing=money(data.marketing),
        misc=money(data.misc),
        outdoor_orders=format_count(outdoor_orders) if outdoor_orders else NOT_AVAILABLE,
        avg_rating=format_count(avg_rating) if avg_rating > 0 else NOT_AVAILABLE,
        result_label="Profit" if profit_or_loss >= 0 else "Loss",
        net_amount=money(abs(profit_or_loss)),
    )
