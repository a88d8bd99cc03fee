"""
Reports app - read-only views over the ledger.

- balances: trial balance, per-GL balances and postings
- ratios: financial ratios and period-over-period comparison

Reports compute from the posted journal and completed transactions on
every call; nothing is cached between requests.
"""
