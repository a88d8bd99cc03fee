# reports/ratios.py
"""
Financial ratio analysis.

compute_ratios() and compare_values() are pure: they only see the
numbers handed to them. financial_ratios() and comparative_analysis()
wire them to the balance aggregator.

Ratio values are Decimal quantized to 0.01; percentage ratios are
already multiplied by 100. A zero denominator yields value None and
band "undefined".
"""

from dataclasses import asdict, dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from accounts.authz import ActorContext, require
from accounting.models import Account
from accounting.results import CommandResult
from ops.metrics import time_report
from reports.balances import gl_balances


ZERO = Decimal("0.00")
CENT = Decimal("0.01")
HUNDRED = Decimal("100")
DAYS_PER_YEAR = Decimal("365")

EXCELLENT = "excellent"
GOOD = "good"
FAIR = "fair"
POOR = "poor"
UNDEFINED = "undefined"

CURRENT_ASSET_GROUPS = {
    Account.ReportGroup.CASH,
    Account.ReportGroup.RECEIVABLE,
    Account.ReportGroup.INVENTORY,
    Account.ReportGroup.OTHER_CURRENT_ASSET,
}
CURRENT_LIABILITY_GROUPS = {
    Account.ReportGroup.CURRENT_LIABILITY,
    Account.ReportGroup.PAYABLE,
}
BALANCE_SHEET_TYPES = {
    Account.AccountType.ASSET,
    Account.AccountType.LIABILITY,
    Account.AccountType.EQUITY,
}


def quantize(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass
class FinancialData:
    """Inputs of the ratio table, all in the company currency."""
    cash: Decimal = ZERO
    receivables: Decimal = ZERO
    inventory: Decimal = ZERO
    current_assets: Decimal = ZERO
    total_assets: Decimal = ZERO
    current_liabilities: Decimal = ZERO
    payables: Decimal = ZERO
    total_liabilities: Decimal = ZERO
    total_equity: Decimal = ZERO
    revenue: Decimal = ZERO
    cost_of_goods_sold: Decimal = ZERO
    interest_expense: Decimal = ZERO
    total_expenses: Decimal = ZERO

    @property
    def quick_assets(self) -> Decimal:
        return self.current_assets - self.inventory

    @property
    def gross_profit(self) -> Decimal:
        return self.revenue - self.cost_of_goods_sold

    @property
    def operating_income(self) -> Decimal:
        return self.revenue - (self.total_expenses - self.interest_expense)

    @property
    def net_income(self) -> Decimal:
        return self.revenue - self.total_expenses

    def to_dict(self) -> dict:
        result = asdict(self)
        result.update({
            "quick_assets": self.quick_assets,
            "gross_profit": self.gross_profit,
            "operating_income": self.operating_income,
            "net_income": self.net_income,
        })
        return result

    @classmethod
    def from_balances(cls, rows: list[dict]) -> "FinancialData":
        """
        Build from gl_balances rows.

        Balance-sheet figures use closing balances. Income-statement
        figures use the movement inside the period. Equity includes
        revenue less expenses not yet closed to an equity account.
        """
        data = cls()
        unclosed_earnings = ZERO

        for row in rows:
            account_type = row["account_type"]
            group = row["report_group"]
            closing = row["closing"]
            movement = closing - row["opening"]

            if account_type == Account.AccountType.ASSET:
                data.total_assets += closing
                if group in CURRENT_ASSET_GROUPS:
                    data.current_assets += closing
                if group == Account.ReportGroup.CASH:
                    data.cash += closing
                elif group == Account.ReportGroup.RECEIVABLE:
                    data.receivables += closing
                elif group == Account.ReportGroup.INVENTORY:
                    data.inventory += closing
            elif account_type == Account.AccountType.LIABILITY:
                data.total_liabilities += closing
                if group in CURRENT_LIABILITY_GROUPS:
                    data.current_liabilities += closing
                if group == Account.ReportGroup.PAYABLE:
                    data.payables += closing
            elif account_type == Account.AccountType.EQUITY:
                data.total_equity += closing
            elif account_type == Account.AccountType.REVENUE:
                data.revenue += movement
                unclosed_earnings += closing
            elif account_type == Account.AccountType.EXPENSE:
                data.total_expenses += movement
                unclosed_earnings -= closing
                if group == Account.ReportGroup.COST_OF_SALES:
                    data.cost_of_goods_sold += movement
                elif group == Account.ReportGroup.INTEREST_EXPENSE:
                    data.interest_expense += movement

        data.total_equity += unclosed_earnings
        return data


@dataclass(frozen=True)
class RatioDefinition:
    """
    One named ratio: numerator / denominator (x multiplier), banded by cutoffs.

    With higher_is_better the value must be >= a cutoff to reach its
    band; otherwise it must be <= the cutoff. A cutoff of None means the
    band cannot be reached.
    """
    name: str
    label: str
    category: str
    formula: str
    numerator: str
    denominator: str
    excellent: Optional[Decimal]
    good: Decimal
    fair: Decimal
    multiplier: Decimal = Decimal("1")
    higher_is_better: bool = True

    def exact_value(self, data: FinancialData) -> Optional[Decimal]:
        denominator = getattr(data, self.denominator)
        if denominator == 0:
            return None
        return getattr(data, self.numerator) / denominator * self.multiplier

    def value(self, data: FinancialData) -> Optional[Decimal]:
        exact = self.exact_value(data)
        return None if exact is None else quantize(exact)

    def classify(self, value: Optional[Decimal]) -> str:
        if value is None:
            return UNDEFINED
        for band, cutoff in ((EXCELLENT, self.excellent), (GOOD, self.good), (FAIR, self.fair)):
            if cutoff is None:
                continue
            if self.higher_is_better and value >= cutoff:
                return band
            if not self.higher_is_better and value <= cutoff:
                return band
        return POOR


RATIOS = [
    # Liquidity
    RatioDefinition("current_ratio", "Current Ratio", "liquidity",
                    "Current Assets / Current Liabilities",
                    "current_assets", "current_liabilities", Decimal("2"), Decimal("1.5"), Decimal("1")),
    RatioDefinition("quick_ratio", "Quick Ratio", "liquidity",
                    "(Current Assets - Inventory) / Current Liabilities",
                    "quick_assets", "current_liabilities", Decimal("1.5"), Decimal("1"), Decimal("0.8")),
    RatioDefinition("cash_ratio", "Cash Ratio", "liquidity",
                    "Cash / Current Liabilities",
                    "cash", "current_liabilities", Decimal("0.5"), Decimal("0.2"), Decimal("0.1")),

    # Profitability
    RatioDefinition("gross_margin", "Gross Profit Margin", "profitability",
                    "(Gross Profit / Revenue) x 100",
                    "gross_profit", "revenue", Decimal("40"), Decimal("25"), Decimal("15"), HUNDRED),
    RatioDefinition("net_margin", "Net Profit Margin", "profitability",
                    "(Net Income / Revenue) x 100",
                    "net_income", "revenue", Decimal("20"), Decimal("10"), Decimal("5"), HUNDRED),
    RatioDefinition("operating_margin", "Operating Margin", "profitability",
                    "(Operating Income / Revenue) x 100",
                    "operating_income", "revenue", Decimal("25"), Decimal("15"), Decimal("8"), HUNDRED),
    RatioDefinition("return_on_assets", "Return on Assets (ROA)", "profitability",
                    "(Net Income / Total Assets) x 100",
                    "net_income", "total_assets", Decimal("15"), Decimal("8"), Decimal("3"), HUNDRED),
    RatioDefinition("return_on_equity", "Return on Equity (ROE)", "profitability",
                    "(Net Income / Total Equity) x 100",
                    "net_income", "total_equity", Decimal("20"), Decimal("12"), Decimal("6"), HUNDRED),

    # Solvency
    RatioDefinition("debt_to_equity", "Debt-to-Equity Ratio", "solvency",
                    "Total Liabilities / Total Equity",
                    "total_liabilities", "total_equity", Decimal("0.3"), Decimal("0.6"), Decimal("1"),
                    higher_is_better=False),
    RatioDefinition("debt_ratio", "Debt Ratio", "solvency",
                    "(Total Liabilities / Total Assets) x 100",
                    "total_liabilities", "total_assets", Decimal("30"), Decimal("50"), Decimal("70"), HUNDRED,
                    higher_is_better=False),
    RatioDefinition("equity_ratio", "Equity Ratio", "solvency",
                    "(Total Equity / Total Assets) x 100",
                    "total_equity", "total_assets", Decimal("70"), Decimal("50"), Decimal("30"), HUNDRED),
    RatioDefinition("interest_coverage", "Interest Coverage Ratio", "solvency",
                    "Operating Income / Interest Expense",
                    "operating_income", "interest_expense", Decimal("8"), Decimal("4"), Decimal("2")),

    # Efficiency
    RatioDefinition("inventory_turnover", "Inventory Turnover", "efficiency",
                    "Cost of Goods Sold / Inventory",
                    "cost_of_goods_sold", "inventory", Decimal("6"), Decimal("4"), Decimal("2")),
    RatioDefinition("receivables_turnover", "Receivables Turnover", "efficiency",
                    "Revenue / Accounts Receivable",
                    "revenue", "receivables", Decimal("10"), Decimal("6"), Decimal("4")),
    RatioDefinition("payables_turnover", "Payables Turnover", "efficiency",
                    "Cost of Goods Sold / Accounts Payable",
                    "cost_of_goods_sold", "payables", None, Decimal("8"), Decimal("4")),
    RatioDefinition("asset_turnover", "Asset Turnover", "efficiency",
                    "Revenue / Total Assets",
                    "revenue", "total_assets", Decimal("2"), Decimal("1"), Decimal("0.5")),
    RatioDefinition("days_sales_outstanding", "Days Sales Outstanding", "efficiency",
                    "(Accounts Receivable / Revenue) x 365",
                    "receivables", "revenue", Decimal("30"), Decimal("45"), Decimal("60"), DAYS_PER_YEAR,
                    higher_is_better=False),
]

RATIOS_BY_NAME = {ratio.name: ratio for ratio in RATIOS}


def compute_ratios(data: FinancialData) -> list[dict]:
    """
    Evaluate every ratio in RATIOS against ``data``.

    Returns rows of {"name", "label", "category", "formula", "value", "band"}.
    """
    rows = []
    for ratio in RATIOS:
        # Bands are chosen on the unrounded quotient.
        exact = ratio.exact_value(data)
        rows.append({
            "name": ratio.name,
            "label": ratio.label,
            "category": ratio.category,
            "formula": ratio.formula,
            "value": None if exact is None else quantize(exact),
            "band": ratio.classify(exact),
        })
    return rows


def compare_values(current: Decimal, previous: Decimal) -> dict:
    """
    Period-over-period change.

    percentage_change is relative to |previous| so a smaller loss shows
    as an improvement; it is None when previous is zero.
    """
    variance = current - previous
    percentage_change = None
    if previous != 0:
        percentage_change = quantize(variance / abs(previous) * HUNDRED)
    return {
        "current": current,
        "previous": previous,
        "variance": variance,
        "percentage_change": percentage_change,
    }


def financial_ratios(actor: ActorContext, period_start, period_end) -> CommandResult:
    """Ratio table for one period, computed from the GL balances."""
    require(actor, "reports.view")

    balances = gl_balances(actor, period_start, period_end)
    if not balances.success:
        return balances

    with time_report("financial_ratios"):
        data = FinancialData.from_balances(balances.data["accounts"])
        ratios = compute_ratios(data)

    return CommandResult.ok({
        "period_start": balances.data["period_start"],
        "period_end": balances.data["period_end"],
        "financial_data": data.to_dict(),
        "ratios": ratios,
    })


def _period_figure(row: dict) -> Decimal:
    if row["account_type"] in BALANCE_SHEET_TYPES:
        return row["closing"]
    return row["closing"] - row["opening"]


def comparative_analysis(actor: ActorContext, current_period, previous_period) -> CommandResult:
    """
    Compare every account between two periods.

    Each period is a (start, end) pair. Balance-sheet accounts compare
    closing balances; revenue and expense accounts compare the movement
    inside each period.
    """
    require(actor, "reports.view")

    current = gl_balances(actor, *current_period)
    if not current.success:
        return current
    previous = gl_balances(actor, *previous_period)
    if not previous.success:
        return previous

    with time_report("comparative_analysis"):
        previous_rows = {row["gl_code"]: row for row in previous.data["accounts"]}
        rows = []
        for row in current.data["accounts"]:
            prior = previous_rows.get(row["gl_code"])
            comparison = compare_values(
                _period_figure(row),
                _period_figure(prior) if prior else ZERO,
            )
            rows.append({
                "gl_code": row["gl_code"],
                "name": row["name"],
                "account_type": row["account_type"],
                **comparison,
            })

        current_data = FinancialData.from_balances(current.data["accounts"])
        previous_data = FinancialData.from_balances(previous.data["accounts"])
        summary = {
            name: compare_values(getattr(current_data, name), getattr(previous_data, name))
            for name in ("revenue", "total_expenses", "net_income",
                         "total_assets", "total_liabilities", "total_equity")
        }

    return CommandResult.ok({
        "current_period": {
            "start": current.data["period_start"],
            "end": current.data["period_end"],
        },
        "previous_period": {
            "start": previous.data["period_start"],
            "end": previous.data["period_end"],
        },
        "accounts": rows,
        "summary": summary,
    })
