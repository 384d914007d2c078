class TriviaError(Exception):
    """Base class for errors raised by the trivia server."""


class QuestionValidationError(TriviaError):
    """A question (or question list) does not have the required shape."""

    def __init__(self, message, index=None):
        if index is not None:
            message = f"Invalid question at index {index}: {message}"
        super().__init__(message)
        self.index = index


class QuestionGenerationError(TriviaError):
    """Question generation failed and no valid fallback could be produced."""
