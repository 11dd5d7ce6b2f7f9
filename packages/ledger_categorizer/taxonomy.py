"""Fixed accounting taxonomy and the ordered keyword rule table.

The category keys are a closed enumeration; nothing outside this module adds
keys at runtime. ``RULES`` is evaluated top to bottom with first-match-wins
semantics by :mod:`ledger_categorizer.rules`.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from types import MappingProxyType


class Category(StrEnum):
    EXPENSE = "EXPENSE"
    INCOME = "INCOME"
    TRANSFER = "TRANSFER"
    PURCHASE = "PURCHASE"
    SALES = "SALES"
    TAX = "TAX"
    LOAN = "LOAN"
    INVESTMENT = "INVESTMENT"


@dataclass(frozen=True, slots=True)
class TaxonomyEntry:
    """Display metadata and model-fallback defaults for one category."""

    key: Category
    label: str
    description: str
    subcategories: tuple[str, ...]
    default_subcategory: str
    default_ledger: str


_ENTRIES: tuple[TaxonomyEntry, ...] = (
    TaxonomyEntry(
        Category.EXPENSE,
        "Expense",
        "Business expenses (rent, salary, utilities, office, travel, marketing)",
        (
            "Utilities",
            "Rent",
            "Salary & Wages",
            "Office Supplies",
            "Travel",
            "Marketing",
            "Professional Fees",
            "Insurance",
            "Bank Charges",
            "Taxes",
            "Repairs & Maintenance",
            "Food & Dining",
            "Fuel & Transport",
            "Communication",
            "Subscriptions",
            "Other Expense",
        ),
        "Other Expense",
        "Miscellaneous Expenses",
    ),
    TaxonomyEntry(
        Category.INCOME,
        "Income",
        "Revenue (sales, interest, commission, refunds)",
        (
            "Salary",
            "Business Revenue",
            "Investment Returns",
            "Interest Income",
            "Rental Income",
            "Commission",
            "Refund",
            "Other Income",
        ),
        "Other Income",
        "Sales Account",
    ),
    TaxonomyEntry(
        Category.TRANSFER,
        "Transfer",
        "Transfers between the account holder's own accounts only",
        (
            "Internal Transfer",
            "Self Transfer",
            "Fund Transfer",
            "Investment",
            "Loan Payment",
            "EMI",
            "Credit Card Payment",
            "UPI Transfer",
        ),
        "Self Transfer",
        "Bank Accounts",
    ),
    TaxonomyEntry(
        Category.PURCHASE,
        "Purchase",
        "Goods/inventory purchases (raw materials, stock, equipment)",
        ("Raw Materials", "Inventory", "Fixed Assets", "Equipment", "Vehicle", "Property", "Goods"),
        "Goods",
        "Purchase Account",
    ),
    TaxonomyEntry(
        Category.SALES,
        "Sales",
        "Direct sales revenue",
        ("Product Sales", "Service Revenue", "Export Sales"),
        "Product Sales",
        "Sales Account",
    ),
    TaxonomyEntry(
        Category.TAX,
        "Tax",
        "Tax payments (GST, TDS, income tax)",
        ("GST Payment", "TDS Payment", "Income Tax", "Professional Tax", "Advance Tax"),
        "Tax Payment",
        "Duties & Taxes",
    ),
    TaxonomyEntry(
        Category.LOAN,
        "Loan",
        "Loan disbursements and repayments (EMI)",
        ("Loan Disbursement", "EMI Payment", "Interest Payment", "Loan Repayment"),
        "Loan Repayment",
        "Loan Account",
    ),
    TaxonomyEntry(
        Category.INVESTMENT,
        "Investment",
        "Investments (fixed deposits, mutual funds, shares)",
        ("Fixed Deposit", "Mutual Funds", "Shares", "Bonds", "Other Investment"),
        "Other Investment",
        "Investments",
    ),
)

TAXONOMY: Mapping[Category, TaxonomyEntry] = MappingProxyType({e.key: e for e in _ENTRIES})


# ---------------------------------------------------------------------------
# Keyword rules
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SuggestionTemplate:
    category: Category
    subcategory: str
    ledger: str
    confidence: int


@dataclass(frozen=True, slots=True)
class KeywordRule:
    """One pattern group of the rule cascade.

    ``keywords`` are lower-case substrings; any hit selects the group.
    ``inbound`` (when set) replaces ``outbound`` for credit transactions.
    ``refinements`` are nested rules tried in order once the group matched;
    the first refinement that matches wins, otherwise the group's own
    templates apply.
    """

    name: str
    keywords: tuple[str, ...]
    outbound: SuggestionTemplate
    inbound: SuggestionTemplate | None = None
    refinements: tuple[KeywordRule, ...] = ()

    def matches(self, text: str) -> bool:
        return any(k in text for k in self.keywords)

    def resolve(self, text: str, *, inbound: bool) -> SuggestionTemplate:
        for sub in self.refinements:
            if sub.matches(text):
                return sub.resolve(text, inbound=inbound)
        if inbound and self.inbound is not None:
            return self.inbound
        return self.outbound


_T = SuggestionTemplate
_E, _I, _X = Category.EXPENSE, Category.INCOME, Category.TRANSFER

RULES: tuple[KeywordRule, ...] = (
    KeywordRule(
        "salary",
        ("salary", "sal cr"),
        outbound=_T(_E, "Salary", "Salary Expense", 95),
        inbound=_T(_I, "Salary", "Salary Income", 95),
    ),
    KeywordRule("rent", ("rent",), outbound=_T(_E, "Rent", "Rent", 90)),
    KeywordRule(
        "utility",
        ("electric", "power", "bescom"),
        outbound=_T(_E, "Electricity", "Electricity Charges", 90),
    ),
    KeywordRule(
        "telecom",
        ("airtel", "jio", "vodafone", "telecom"),
        outbound=_T(_E, "Communication", "Telephone Charges", 85),
    ),
    KeywordRule(
        "bank_charges",
        ("bank chg", "sms chg", "service charge"),
        outbound=_T(_E, "Bank Charges", "Bank Charges", 95),
    ),
    KeywordRule(
        "cash",
        ("atm", "cash wd"),
        outbound=_T(_E, "Cash Withdrawal", "Cash", 90),
    ),
    KeywordRule(
        "interest",
        ("int.", "interest"),
        outbound=_T(_E, "Interest", "Interest Paid", 90),
        inbound=_T(_I, "Interest", "Interest Received", 90),
    ),
    KeywordRule(
        "tax",
        ("gst", "tds", "income tax"),
        outbound=_T(Category.TAX, "Tax Payment", "TDS Payable", 90),
        refinements=(
            KeywordRule(
                "gst", ("gst",), outbound=_T(Category.TAX, "Tax Payment", "GST Payable", 90)
            ),
        ),
    ),
    KeywordRule(
        "loan",
        ("emi", "loan"),
        outbound=_T(Category.LOAN, "Loan Repayment", "Loan Account", 85),
    ),
    KeywordRule(
        "upi",
        ("upi",),
        outbound=_T(_E, "UPI Payment", "Sundry Creditors", 60),
        inbound=_T(_I, "UPI Receipt", "Sundry Debtors", 60),
        refinements=(
            KeywordRule(
                "upi_food",
                ("swiggy", "zomato"),
                outbound=_T(_E, "Food & Dining", "Food Expenses", 90),
            ),
            KeywordRule(
                "upi_travel",
                ("uber", "ola", "rapido"),
                outbound=_T(_E, "Travel", "Conveyance", 90),
            ),
            KeywordRule(
                "upi_shopping",
                ("amazon", "flipkart", "myntra"),
                outbound=_T(_E, "Shopping", "Office Expenses", 75),
            ),
        ),
    ),
    KeywordRule(
        "bank_transfer",
        ("neft", "rtgs", "imps"),
        outbound=_T(_E, "Bank Transfer", "Sundry Creditors", 65),
        inbound=_T(_I, "Bank Transfer", "Sundry Debtors", 65),
        refinements=(
            KeywordRule(
                "self_transfer",
                ("to self", "own a/c"),
                outbound=_T(_X, "Self Transfer", "Bank Accounts", 90),
            ),
        ),
    ),
)

DEFAULT_OUTBOUND = _T(_E, "Other Expense", "Miscellaneous Expenses", 60)
DEFAULT_INBOUND = _T(_I, "Other Income", "Sales Account", 60)


__all__ = [
    "Category",
    "TaxonomyEntry",
    "TAXONOMY",
    "SuggestionTemplate",
    "KeywordRule",
    "RULES",
    "DEFAULT_INBOUND",
    "DEFAULT_OUTBOUND",
]
