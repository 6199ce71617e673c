# app/exceptions.py
"""
Intake error taxonomy.
Routers and the intake flow catch these at the action boundary and turn
them into operator-facing messages. Nothing here is retried automatically.
"""


class RentalIntakeError(Exception):
    """Base class for all intake errors."""
    user_message = "Something went wrong. Please try again."


class InitializationFailure(RentalIntakeError):
    """Session bootstrap failed. Fatal to the session."""
    user_message = "Could not start a session. Reload and try again."


class MissingField(RentalIntakeError):
    """One or more required inputs were empty."""

    def __init__(self, fields):
        self.fields = list(fields)
        super().__init__(f"Missing required field(s): {', '.join(self.fields)}")

    @property
    def user_message(self) -> str:
        return f"Please fill in: {', '.join(self.fields)}"


class StoreFailure(RentalIntakeError):
    """A record store put/get failed (transient or permanent)."""
    user_message = "Could not reach the record store. Please try again."


class CaptureError(RentalIntakeError):
    """The camera did not return a usable still frame."""
    user_message = "Could not capture a photo. Check the camera and try again."


class InvalidSession(RentalIntakeError):
    """No session token, or one this service did not issue."""
    user_message = "Session not initialized, call POST /session first."
