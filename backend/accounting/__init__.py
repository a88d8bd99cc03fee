"""
Accounting app - double-entry ledger core.

This app provides:
- Account: chart of accounts keyed by GL code
- JournalEntry / JournalLine: balanced double-entry journal
- Transaction: simplified income/expense bookkeeping
- AccountingPeriod: closable date ranges that freeze the ledger

Commands (accounting/commands.py) handle all mutations so that the
period lock is checked and an audit event is written.
"""
