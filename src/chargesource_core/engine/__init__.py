"""
ChargeSource Engine Module
Line item totals, pricing rules, quote workflow, catalogue filtering and product comparison
"""

from .line_items import LineItem, LineItemTotalizer
from .totals import GST_RATE, QuoteTotals, compute_totals
from .comparison import COMPARISON_FEATURES, ComparisonFeature, build_comparison
from .catalogue import ProductCatalogue, ProductFilter
from .workflow import QUOTE_STATUSES, StatusTransitionError, check_transition, is_editable

__all__ = [
    "LineItem",
    "LineItemTotalizer",
    "GST_RATE",
    "QuoteTotals",
    "compute_totals",
    "COMPARISON_FEATURES",
    "ComparisonFeature",
    "build_comparison",
    "ProductCatalogue",
    "ProductFilter",
    "QUOTE_STATUSES",
    "StatusTransitionError",
    "check_transition",
    "is_editable",
]
