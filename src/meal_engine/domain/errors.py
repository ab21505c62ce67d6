"""Error taxonomy for meal generation."""

from enum import Enum


class ErrorKind(Enum):
    """Kinds of failure surfaced to callers."""

    SERVICE_UNAVAILABLE = "service_unavailable"
    SERVICE_TIMEOUT = "service_timeout"
    PARSE_FAILURE = "parse_failure"
    INGREDIENT_NOT_FOUND = "ingredient_not_found"
    RULE_VIOLATION = "rule_violation"
    EXHAUSTED_RETRY = "exhausted_retry"
    NO_COMPLIANT_MEAL = "no_compliant_meal"
    INVALID_REQUEST = "invalid_request"
    NOT_IMPLEMENTED = "not_implemented"


class MealEngineError(Exception):
    """Base error raised inside the engine."""

    kind = ErrorKind.SERVICE_UNAVAILABLE


class ServiceUnavailableError(MealEngineError):
    """An external service call failed."""

    kind = ErrorKind.SERVICE_UNAVAILABLE


class ServiceTimeoutError(ServiceUnavailableError):
    """An external service call exceeded its timeout."""

    kind = ErrorKind.SERVICE_TIMEOUT


class ParseFailureError(MealEngineError):
    """No usable content could be extracted from a service reply."""

    kind = ErrorKind.PARSE_FAILURE
