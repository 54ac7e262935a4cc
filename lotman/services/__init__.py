"""
Ledger services — modular organization of ledger operations.

Re-exports all public classes:
    from lotman.services import LedgerQueries, StockAllocation, OrderCommits, ...
"""

from lotman.services.allocation import AllocationPlan, Deduction, StockAllocation
from lotman.services.availability import BatchTotals, LedgerQueries
from lotman.services.commits import LineDraft, OrderCommits, OrderDraft
from lotman.services.lifecycle import OrderLifecycle
from lotman.services.receiving import StockReceiving
from lotman.services.reports import BatchBreakdown, LedgerReports, SalesSummary

__all__ = [
    'LedgerQueries',
    'BatchTotals',
    'StockAllocation',
    'AllocationPlan',
    'Deduction',
    'OrderCommits',
    'OrderDraft',
    'LineDraft',
    'OrderLifecycle',
    'StockReceiving',
    'LedgerReports',
    'BatchBreakdown',
    'SalesSummary',
]
