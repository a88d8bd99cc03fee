# accounts/__init__.py
"""
Accounts app - client scope and authorization for the ledger.

This app provides:
- Company: the bookkeeping client every ledger row belongs to
- User: custom user model with active_company
- CompanyMembership: User-Company relationship with a role
- LedgerPermission: fine-grained permissions
- ActorContext: authorization context passed to every command

Tenant isolation is enforced at every layer through the ActorContext pattern.
"""
