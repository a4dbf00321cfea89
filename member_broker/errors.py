"""Errors raised by the broker. Each carries the HTTP status and description relayed to the caller."""


class MemberBrokerError(Exception):
    """Base error; never raised directly."""

    status = 500
    description = "Internal error"

    def __init__(self, description: str | None = None, status: int | None = None):
        if description is not None:
            self.description = description
        if status is not None:
            self.status = status
        super().__init__(f"[{self.status}] {self.description}")


class ValidationError(MemberBrokerError):
    """Inbound payload is missing a required member property."""

    status = 400
    description = "Malformed request body (missing required member properties)"


class ConflictError(MemberBrokerError):
    status = 409
    description = "Member already exists"


class NotFoundError(MemberBrokerError):
    status = 404
    description = "No such member"


class DownstreamError(MemberBrokerError):
    """Non-success response (or no response at all) from the Umbraco Management API."""

    def __init__(self, status: int, description: str):
        super().__init__(description=description, status=status)


class AuthError(MemberBrokerError):
    """Client-credentials grant failed: token endpoint unreachable or grant rejected."""

    status = 502
    description = "Could not obtain an access token for the member management API"
