"""
Events app - audit trail for the ledger.

This app provides:
- BusinessEvent: immutable audit records, one per successful command
- emit_event: the only way audit rows are written
- Event payload schemas (events/types.py), validated at emission time

Usage:
    from events.emitter import emit_event
    from events.types import EventTypes, AccountDeactivatedData

    emit_event(
        actor,
        EventTypes.ACCOUNT_DEACTIVATED,
        "Account",
        account.public_id,
        AccountDeactivatedData(account_public_id=str(account.public_id), code="1001"),
        idempotency_key=f"account.deactivated:{account.public_id}",
    )
"""
