# accounting/results.py
"""
Typed results returned by every ledger command and report.

Business-rule failures are values, not exceptions: callers branch on
``result.success`` and ``result.code``. Only authorization failures
(PermissionDenied) and infrastructure faults propagate as exceptions.
"""


class ErrorCode:
    """Registry of failure kinds a command can report."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNBALANCED = "UNBALANCED"
    PERIOD_CLOSED = "PERIOD_CLOSED"
    OVERLAPPING_PERIOD = "OVERLAPPING_PERIOD"
    ORPHAN_GL_CODE = "ORPHAN_GL_CODE"
    UNKNOWN_PARENT = "UNKNOWN_PARENT"
    DUPLICATE_CODE = "DUPLICATE_CODE"
    NOT_FOUND = "NOT_FOUND"

    ALL = frozenset({
        VALIDATION_ERROR,
        UNBALANCED,
        PERIOD_CLOSED,
        OVERLAPPING_PERIOD,
        ORPHAN_GL_CODE,
        UNKNOWN_PARENT,
        DUPLICATE_CODE,
        NOT_FOUND,
    })


class CommandResult:
    """
    Wrapper for command results with success/failure info.

    Usage:
        result = post_journal_entry(actor, entry_id)
        if result.success:
            entry = result.data
            event = result.event
        elif result.code == ErrorCode.UNBALANCED:
            difference = result.data["difference"]
        else:
            error_message = result.error
    """

    def __init__(self, success: bool, data=None, error: str = None, code: str = None, event=None):
        self.success = success
        self.data = data
        self.error = error
        self.code = code
        self.event = event  # The emitted audit event, if any

    def __repr__(self):
        if self.success:
            return f"CommandResult(ok, data={self.data!r})"
        return f"CommandResult(fail, code={self.code}, error={self.error!r})"

    @classmethod
    def ok(cls, data=None, event=None):
        return cls(success=True, data=data, event=event)

    @classmethod
    def fail(cls, error: str, code: str = ErrorCode.VALIDATION_ERROR, data=None):
        return cls(success=False, data=data, error=error, code=code)
