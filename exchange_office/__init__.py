"""Exchange office treasury: trades, debts and the per-currency ledger."""
