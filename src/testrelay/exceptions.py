# src/testrelay/exceptions.py

"""
Exception hierarchy for testrelay.
"""


class TestRelayError(Exception):
    """Base class for all testrelay errors."""

    __test__ = False  # keep pytest from collecting this as a test class

    def __init__(self, message: str, details: Exception | None = None):
        self.details = details
        super().__init__(message)
        if details and hasattr(self, "add_note"):
            self.add_note(f"Original error: {type(details).__name__}: {details}")


class ConfigurationError(TestRelayError):
    """Raised when the configuration file cannot be read or is invalid."""

    pass


class BindError(TestRelayError):
    """Raised when the result server cannot acquire a local port."""

    def __init__(self, message: str, host: str | None = None, details: Exception | None = None):
        self.host = host
        full_message = f"[ResultServer] {message}"
        if host:
            full_message += f" (Host: '{host}')"
        super().__init__(full_message, details=details)


class ProtocolError(TestRelayError):
    """A frame received from the launcher could not be decoded."""

    pass


class SpawnError(TestRelayError):
    """Raised when the external test launcher process cannot be started."""

    def __init__(self, message: str, command: list[str] | None = None, details: Exception | None = None):
        self.command = command or []
        full_message = f"[Launcher] {message}"
        if command:
            full_message += f" (Executable: '{command[0]}')"
        super().__init__(full_message, details=details)


class DiscoveryError(TestRelayError):
    """The interpreter could not list the project's tests."""

    pass


class RunCancelledError(TestRelayError):
    """Raised by a process runner when its cancellation token fires."""

    pass


# 🔼⚙️
