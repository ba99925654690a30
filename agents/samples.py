"""Built-in demo profile and report shown in sample mode."""

from __future__ import annotations

from agents.schemas import (
    CategoryBreakdown,
    CreditCardData,
    CreditCardProfile,
    EMIProfile,
    FinancialProfile,
    FinancialReport,
    FixedExpenses,
    IncomeSummary,
    RiskAlert,
)

SAMPLE_PROFILE = FinancialProfile(
    salary=8500,
    cards=[
        CreditCardProfile(name="Chase Sapphire", limit=15000),
        CreditCardProfile(name="Amex Gold", limit=10000),
    ],
    emis=[
        EMIProfile(name="Car Loan", amount=450),
        EMIProfile(name="Student Loan", amount=280),
    ],
    fixed_expenses=FixedExpenses(rent=1800, utilities=220, insurance=180),
)

SAMPLE_REPORT = FinancialReport(
    kind="structured",
    report_type="Monthly Financial Analysis",
    income_summary=IncomeSummary(
        net_income=8500,
        total_fixed_expenses=2200,
        total_variable_expenses=2850,
        total_emi=730,
        total_outflow=5780,
        savings=2720,
        savings_rate=32,
    ),
    credit_cards=[
        CreditCardData(card_name="Chase Sapphire", limit=15000, spend=3200, utilization_percent=21.3),
        CreditCardData(card_name="Amex Gold", limit=10000, spend=1850, utilization_percent=18.5),
    ],
    category_breakdown=[
        CategoryBreakdown(category="Groceries", amount=680, percent_of_total=13.2, transaction_count=12),
        CategoryBreakdown(category="Dining Out", amount=420, percent_of_total=8.1, transaction_count=8),
        CategoryBreakdown(category="Transportation", amount=310, percent_of_total=6.0, transaction_count=15),
        CategoryBreakdown(category="Entertainment", amount=280, percent_of_total=5.4, transaction_count=6),
        CategoryBreakdown(category="Shopping", amount=560, percent_of_total=10.8, transaction_count=9),
        CategoryBreakdown(category="Subscriptions", amount=120, percent_of_total=2.3, transaction_count=5),
        CategoryBreakdown(category="Healthcare", amount=240, percent_of_total=4.6, transaction_count=3),
        CategoryBreakdown(category="Travel", amount=240, percent_of_total=4.6, transaction_count=2),
    ],
    risk_alerts=[
        RiskAlert(
            alert_type="Spending Trend",
            message="Dining out spending increased 23% compared to last month. Consider meal prepping to reduce costs.",
            severity="medium",
        ),
        RiskAlert(
            alert_type="Budget Warning",
            message="Shopping category is approaching your typical monthly threshold.",
            severity="low",
        ),
        RiskAlert(
            alert_type="Credit Alert",
            message="Chase Sapphire statement due in 5 days. Ensure timely payment to avoid interest charges.",
            severity="high",
        ),
    ],
    safe_to_spend=1420,
    analysis_period="January 2026",
    advice=(
        "Your savings rate of 32% is excellent and well above the recommended 20%. "
        "Keep credit utilization below 30% on both cards, and consider moving part of "
        "your monthly surplus into an emergency fund or retirement account."
    ),
)
