"""Exceptions raised at the review engine's I/O boundary."""


class ReviewEngineError(Exception):
    """Base class for review engine failures."""


class InvalidQualityError(ReviewEngineError, ValueError):
    """Raised when a quality rating is outside the closed AGAIN..EASY range."""

    def __init__(self, value: object) -> None:
        super().__init__(f"Quality must be one of 0, 1, 2, 3; got {value!r}.")
        self.value = value


class InvalidDailyGoalError(ReviewEngineError, ValueError):
    """Raised when a daily goal is outside the supported bounds."""


class ItemNotFoundError(ReviewEngineError, LookupError):
    """Raised when a learning item does not exist."""

    def __init__(self, item_id: int) -> None:
        super().__init__(f"Learning item {item_id} was not found.")
        self.item_id = item_id


class ItemForbiddenError(ReviewEngineError, PermissionError):
    """Raised when a learning item belongs to another learner."""

    def __init__(self, item_id: int, chat_id: int) -> None:
        super().__init__(f"Learning item {item_id} is not owned by learner {chat_id}.")
        self.item_id = item_id
        self.chat_id = chat_id


class ConcurrencyConflictError(ReviewEngineError):
    """Raised when a review keeps colliding with concurrent updates."""

    def __init__(self, chat_id: int, attempts: int) -> None:
        super().__init__(
            f"Review for learner {chat_id} could not be recorded after {attempts} attempts."
        )
        self.chat_id = chat_id
        self.attempts = attempts
