# errors.py
from typing import Optional


class ClaimerError(Exception): pass

class ConfigError(ClaimerError): pass

class QueryError(ClaimerError): pass

class SubmissionError(ClaimerError): pass

class InsufficientBalanceError(SubmissionError): pass

class ConfirmationError(ClaimerError):
    def __init__(self, message: str, tx_hash: Optional[str] = None):
        super().__init__(f"{message} (tx: {tx_hash})" if tx_hash else message)
        self.tx_hash = tx_hash


class ExhaustedRetries(ClaimerError):
    """Terminal state of one wallet after every retry has failed."""

    def __init__(self, retries: int, last_error: BaseException):
        super().__init__(f"{last_error} - failed after {retries} retries")
        self.retries = retries
        self.last_error = last_error
