# accounts/permission_defaults.py

ROLE_DEFAULTS = {
    "OWNER": {
        # Company
        "members.manage",

        # Chart of accounts
        "accounts.view",
        "accounts.manage",

        # Journal
        "journal.view",
        "journal.create",
        "journal.edit_draft",
        "journal.post",
        "journal.reverse",

        # Day-to-day bookkeeping
        "transactions.view",
        "transactions.manage",

        # Periods
        "periods.view",
        "periods.close",

        # Reports
        "reports.view",
        "audit.view",
    },
    "ADMIN": {
        "members.manage",

        "accounts.view",
        "accounts.manage",

        "journal.view",
        "journal.create",
        "journal.edit_draft",
        "journal.post",
        "journal.reverse",

        "transactions.view",
        "transactions.manage",

        "periods.view",
        "periods.close",

        "reports.view",
        "audit.view",
    },
    "USER": {
        "accounts.view",

        "journal.view",
        "journal.create",
        "journal.edit_draft",

        "transactions.view",
        "transactions.manage",

        "periods.view",
        "reports.view",
    },
    "VIEWER": {
        "accounts.view",
        "journal.view",
        "transactions.view",
        "periods.view",
        "reports.view",
    },
}


def all_permission_codes() -> set[str]:
    codes: set[str] = set()
    for s in ROLE_DEFAULTS.values():
        codes |= set(s)
    return codes
