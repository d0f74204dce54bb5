class AuthVerifierError(Exception):
    """Base class for input errors reported to the user."""


class InputTooShortError(AuthVerifierError):
    def __init__(self, min_chars: int):
        super().__init__(f"Text must be at least {min_chars} characters.")
        self.min_chars = min_chars


class ImageTooLargeError(AuthVerifierError):
    def __init__(self, size: int, limit: int):
        super().__init__(f"Image is {size} bytes; the limit is {limit} bytes.")
        self.size = size
        self.limit = limit


class InputSourceError(AuthVerifierError):
    """A file or URL could not be read or downloaded."""
