class DomainError(Exception):
    """Base for errors the API layer maps to an HTTP status."""

    code: str = "domain_error"
    status: int = 400

    def __init__(self, message: str = "", *, code: str | None = None, status: int | None = None):
        super().__init__(message or self.__class__.__name__)
        if code:
            self.code = code
        if status:
            self.status = status


class NotFound(DomainError):
    code = "not_found"
    status = 404


class Conflict(DomainError):
    """A versioned write lost the race to a concurrent writer."""

    code = "conflict"
    status = 409


class RuleViolation(DomainError):
    code = "rule_violation"
    status = 422


class ServiceUnavailable(DomainError):
    code = "service_unavailable"
    status = 503
    retry_after_s: int = 30


class EventSourceUnavailable(ServiceUnavailable):
    """Raised by an event source when the whole upstream is down or unconfigured."""

    code = "event_source_unavailable"


class EventSourceError(DomainError):
    """One upstream request failed (transport error, 429 or 5xx). Isolated per query."""

    code = "event_source_error"
    status = 502
