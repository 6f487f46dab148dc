class BrennerError(Exception):
    """Base exception for brenner protocol errors."""

    pass


class ConfigError(BrennerError):
    """Raised when configuration cannot be loaded or is malformed."""

    pass


class MailError(BrennerError):
    """Raised when a mailbox call fails. `kind` names the failure category."""

    kind = "mail"

    def __init__(self, message: str, payload: str | None = None):
        super().__init__(message)
        self.payload = payload


class MailNetworkError(MailError):
    """Raised when the mailbox cannot be reached."""

    kind = "network"


class MailHTTPError(MailError):
    """Raised on a non-2xx HTTP status."""

    kind = "http"

    def __init__(self, message: str, status_code: int, payload: str | None = None):
        super().__init__(message, payload)
        self.status_code = status_code


class MailDecodeError(MailError):
    """Raised when a response body is not valid JSON."""

    kind = "decode"


class MailMalformedError(MailError):
    """Raised when a JSON payload does not have the expected shape."""

    kind = "malformed"


class MailRemoteError(MailError):
    """Raised when the envelope carries an `error` field."""

    kind = "remote"

    def __init__(self, message: str, error=None, payload: str | None = None):
        super().__init__(message, payload)
        self.error = error


class MailStreamError(MailError):
    """Raised when an event stream ends without a usable envelope."""

    kind = "stream"
