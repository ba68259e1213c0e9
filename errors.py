"""
Exceptions raised by the OCI topology builders.
Builders raise these immediately; __main__ logs the failing step and re-raises.
"""

from typing import Optional


class OciInfraError(Exception):
    pass


class ConfigValidationError(OciInfraError, ValueError):
    pass


class MissingFieldError(ConfigValidationError):
    """A required configuration field is empty."""

    def __init__(self, field: str, index: Optional[int] = None):
        self.field = field
        self.index = index
        if index is None:
            message = f"{field} is required"
        else:
            message = f"instance[{index}]: {field} is required"
        super().__init__(message)


class IndexOutOfRangeError(OciInfraError, IndexError):

    def __init__(self, kind: str, index: int, length: int):
        self.kind = kind
        self.index = index
        self.length = length
        super().__init__(f"{kind} index {index} out of range ({length} configured)")


class NotFoundError(OciInfraError, LookupError):

    def __init__(self, kind: str, name: str):
        self.kind = kind
        self.name = name
        super().__init__(f"{kind} {name} not found")


class NilContextError(OciInfraError, ValueError):

    def __init__(self, message: str = "context cannot be None"):
        super().__init__(message)


class ProviderError(OciInfraError):
    """Resource creation failed; carries the human-readable name of the resource."""

    def __init__(self, resource_name: str, cause: BaseException, kind: str = "resource"):
        self.resource_name = resource_name
        self.kind = kind
        self.cause = cause
        super().__init__(f"failed to create {kind} {resource_name}: {cause}")
