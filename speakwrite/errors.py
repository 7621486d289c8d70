"""Exception types shared by the server and the recorder client."""


class SpeakWriteError(Exception):
    """Base class for errors that carry a user-facing message."""

    status = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SpeakWriteError):
    """Request is missing data or is malformed."""
    status = 400


class AuthenticationError(SpeakWriteError):
    """Missing, invalid or expired credentials."""
    status = 401


class NotFoundError(SpeakWriteError):
    status = 404


class DuplicateEmailError(SpeakWriteError):
    status = 409

    def __init__(self, message: str = "Email already exists"):
        super().__init__(message)


class TranscriptionError(SpeakWriteError):
    """The remote transcription service rejected or failed a request."""
    status = 500


class ServiceUnavailableError(SpeakWriteError):
    status = 503


class PersistenceError(SpeakWriteError):
    """A transcript could not be stored."""
    status = 500


class SessionStateError(SpeakWriteError):
    """Recording session operation is not valid in the current state."""
    status = 409
