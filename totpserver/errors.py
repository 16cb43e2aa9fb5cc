class InvalidCharacterError(ValueError):
    """Raised when a Base32 secret contains a character outside A-Z and 2-7."""

    def __init__(self, character: str):
        self.character = character
        super().__init__(
            f"Invalid Base32 character: '{character}'. Only A-Z and 2-7 are allowed."
        )


class CodeGenerationError(Exception):
    """Raised when the HMAC step fails for the given key material or time."""


class MissingSecretError(ValueError):
    """Raised at the HTTP boundary when the request carries no secret at all."""

    def __init__(self, message: str = "Missing secret parameter"):
        super().__init__(message)
