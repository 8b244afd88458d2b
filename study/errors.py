"""Exceptions raised by the study engine and its stores."""


class StudyError(Exception):
    """Base class for every error the study engine raises."""


class InputValidationError(StudyError, ValueError):
    """Caller passed a value the engine cannot act on."""


class InvalidRating(InputValidationError):
    """Rating outside AGAIN(1)..EASY(4)."""

    def __init__(self, value):
        self.value = value
        super().__init__(f"Rating must be 1-4 (again/hard/good/easy), got {value!r}")


class StorageError(StudyError):
    """A progress, card or deck-options source failed."""


class NotFoundError(StudyError, KeyError):
    """Requested progress row, card or deck does not exist."""

    def __str__(self):
        # KeyError quotes its argument; keep the plain message
        return str(self.args[0]) if self.args else ''
