"""
Ledger Service — The single public interface for all ledger operations.

Usage:
    from lotman import ledger, LedgerError
    from lotman.services.commits import OrderDraft, LineDraft

    ledger.receive(10, 'TSHIRT-M', lot_number='A-17', unit_cost=250)
    ledger.available_for_product(product)           # 10
    ledger.plan(7, product)                         # FIFO deductions
    order = ledger.commit(OrderDraft(lines=[LineDraft(product, 7)]))
    ledger.transition(order, 'returned')            # stock back to 10
"""

from lotman.services.allocation import StockAllocation
from lotman.services.availability import LedgerQueries
from lotman.services.commits import OrderCommits
from lotman.services.lifecycle import OrderLifecycle
from lotman.services.receiving import StockReceiving
from lotman.services.reports import LedgerReports


class Ledger(
    LedgerQueries,
    StockAllocation,
    OrderCommits,
    OrderLifecycle,
    StockReceiving,
    LedgerReports,
):
    """
    Single interface for all ledger operations.

    Parameter convention: (quantity, product, ...)
    Follows natural language: "Plan 7 units of product X"

    IMPORTANT: All state-changing methods use atomic transactions
    with appropriate locking. See each method's docstring.

    Queries:
        available_for_batch, available_for_product, batch_totals
    Allocation:
        plan, plan_lines, commit
    Lifecycle:
        transition, allowed_transitions
    Batch registry:
        receive, correct_cost
    Reports:
        breakdown, low_stock, sales_summary
    """
