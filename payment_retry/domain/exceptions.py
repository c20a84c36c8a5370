"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class RetryError(DomainException):
    """Retry decision could not be turned into a scheduled attempt"""

    pass


class UnknownFailureCode(RetryError):
    """Failure code is outside the retry rule table"""

    def __init__(self, code: int):
        super().__init__(f"No retry rule for failure code {code}")
        self.code = code


class RetryNotPossible(RetryError):
    """Failure class can never be retried; needs manual intervention"""

    def __init__(self, code: int, bucket: str):
        super().__init__(f"Retry not possible for code {code} in bucket {bucket}")
        self.code = code
        self.bucket = bucket


class MissingContext(RetryError):
    """Obligation age or account context could not be obtained"""

    pass


class PersistenceFailure(RetryError):
    """Successor attempt could not be written"""

    pass


class SuccessorAlreadyExists(DomainException):
    """A retry successor was already recorded for this attempt"""

    def __init__(self, predecessor_id: str):
        super().__init__(f"Attempt {predecessor_id} already has a retry successor")
        self.predecessor_id = predecessor_id


class AttemptNotFound(DomainException):
    """Payment attempt does not exist"""

    def __init__(self, attempt_id: str):
        super().__init__(f"Payment attempt {attempt_id} not found")
        self.attempt_id = attempt_id


class AlertDeliveryError(DomainException):
    """Alert webhook could not be delivered after all retries"""

    pass
