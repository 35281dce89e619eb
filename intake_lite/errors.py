"""
Shared error types for the intake service.

Only ContextStoreError is allowed to escape to callers; the rest are caught
at the middleware or tool boundary and turned into user-facing messages.
"""


class IntakeError(Exception):
    """Base exception for intake service errors"""
    pass


class ContextStoreError(IntakeError):
    """Raised when the context store cannot be read or written"""
    pass


class CapabilityError(IntakeError):
    """Raised by an external capability (analysis, PDF, notifications)"""
    pass


class CapabilityTimeoutError(CapabilityError):
    """External capability did not answer within its time limit"""
    pass


class ToolArgumentError(IntakeError):
    """Tool call arguments failed schema validation"""

    def __init__(self, tool_name: str, errors: list):
        self.tool_name = tool_name
        self.errors = errors
        super().__init__(f"Invalid arguments for tool '{tool_name}': {errors}")
