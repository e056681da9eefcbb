"""Custom exception classes for the application.

Every error carries a ``kind`` (the category callers branch on), a ``code``
naming the specific failure, a human readable ``message`` and the HTTP status
used by the JSON error handlers.
"""


class AppError(Exception):
    """Base application error class."""

    kind = "Internal"
    default_message = "An unexpected error occurred."
    default_status = 500

    def __init__(self, message=None, status_code=None):
        """Initialize the error."""
        message = message or self.default_message
        super().__init__(message)
        self.status_code = status_code or self.default_status
        self.message = message

    @property
    def code(self):
        """Return the specific error name, e.g. ``DuplicateRequest``."""
        return type(self).__name__.removesuffix("Error")

    def to_dict(self):
        """Serialize the error for an API response."""
        return {"kind": self.kind, "code": self.code, "message": self.message}


class NotFoundError(AppError):
    """Raised when a resource is not found."""

    kind = "NotFound"
    default_message = "Resource not found."
    default_status = 404


class ForbiddenError(AppError):
    """Raised when the actor lacks the required relationship to a resource."""

    kind = "Forbidden"
    default_message = "You are not allowed to perform this action."
    default_status = 403


class UnauthenticatedError(ForbiddenError):
    """Raised when a request carries no valid identity token."""

    default_message = "Authentication required."
    default_status = 401


class ValidationError(AppError):
    """Raised when user input fails validation."""

    kind = "InvalidInput"
    default_message = "Validation failed."
    default_status = 400

    @property
    def code(self):
        """Return the specific error name."""
        if type(self) is ValidationError:
            return "InvalidInput"
        return super().code


class ConflictError(AppError):
    """Raised when a request collides with existing state."""

    kind = "Conflict"
    default_message = "Resource already exists."
    default_status = 409


class StateError(AppError):
    """Raised when an operation is illegal in the resource's current state."""

    kind = "StateError"
    default_message = "Operation not allowed in the current state."
    default_status = 422


class PersistenceTimeout(AppError):
    """Raised when the persistence layer does not answer in time."""

    kind = "Timeout"
    default_message = "The database did not respond in time."
    default_status = 504

    @property
    def code(self):
        """Return the specific error name."""
        return "Timeout"


# NotFound


class UserNotFoundError(NotFoundError):
    default_message = "User not found."


class SquadNotFoundError(NotFoundError):
    default_message = "Squad not found."


class MealNotFoundError(NotFoundError):
    default_message = "Meal not found."


class PingNotFoundError(NotFoundError):
    default_message = "Ping not found."


class NotAMemberError(NotFoundError):
    default_message = "User is not a member of this squad."


class NotAParticipantError(NotFoundError):
    default_message = "User is not a participant of this meal."


class SquadNotInvitedError(NotFoundError):
    default_message = "Squad was not invited to this meal."


class NotFriendsError(NotFoundError):
    default_message = "Users are not friends."


# InvalidInput


class SelfReferenceError(ValidationError):
    default_message = "You cannot send a friend request to yourself."


class CannotJoinOwnMealError(ValidationError):
    default_message = "You cannot join a meal you are hosting."


# Conflict


class DuplicateRequestError(ConflictError):
    default_message = "A friend request is already pending."


class AlreadyFriendsError(ConflictError):
    default_message = "Users are already friends."


class AlreadyMemberError(ConflictError):
    default_message = "User is already a member."


class AlreadyParticipantError(ConflictError):
    default_message = "User is already a participant of this meal."


class SchedulingConflictError(ConflictError):
    default_message = "Conflicting meal schedule within the same block."


class AlreadyRespondedError(ConflictError):
    default_message = "You have already responded to this ping."


class DuplicateContactError(ConflictError):
    default_message = "Email is already in use."


class SquadNameTakenError(ConflictError):
    default_message = "A squad with this name already exists."


class ConcurrencyConflictError(ConflictError):
    default_message = "The resource was modified concurrently. Please retry."

    @property
    def code(self):
        """Return the specific error name."""
        return "ConcurrencyConflict"


# StateError


class RequestNotFoundError(StateError):
    default_message = "No friend request found."


class CreatorMustTransferError(StateError):
    default_message = (
        "The squad creator cannot leave while other members remain. "
        "Transfer ownership or delete the squad."
    )


class ExpiredError(StateError):
    default_message = "This ping has expired."


class NotOpenError(StateError):
    default_message = "This meal is not open to join."


class AlreadyStartedError(StateError):
    default_message = "This meal has already started."


class NoTargetsError(StateError):
    default_message = "At least one recipient or squad is required."


class InvalidTransitionError(StateError):
    default_message = "This status change is not allowed."
