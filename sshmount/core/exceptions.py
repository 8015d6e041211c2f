# sshmount/core/exceptions.py


class MountError(Exception):
    """Base class for all mount orchestration errors."""


class BusyError(MountError):
    """Raised when a mount or unmount is requested while another operation is active."""
    def __init__(self, state: str):
        self.state = state
        super().__init__(f"Already busy with another operation (state: {state})")


class MountValidationError(MountError):
    """Raised when the local mount point is missing, uncreatable or not writable."""
    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(message)


class SpawnFailureError(MountError):
    """Raised when a helper binary is missing or cannot be executed."""
    def __init__(self, program: str, reason: str = ""):
        self.program = program
        self.reason = reason
        super().__init__(f"Failed to start {program}. Is it installed and in your PATH?")


class RuntimeFailureError(MountError):
    """A helper exited nonzero, was killed, or finished without a usable result."""
    def __init__(self, message: str, exit_code: int = -1):
        self.exit_code = exit_code
        super().__init__(message)


class NoActiveOperationError(MountError):
    """Raised when a credential decision arrives while no process is running."""


class NoHostKeyMismatchError(MountError):
    """Raised when a host key retry is requested without a preceding mismatch warning."""


class InvalidTransitionError(MountError):
    """Raised when a mount state transition is not allowed."""
    def __init__(self, from_state: str, to_state: str):
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Invalid mount state transition: "
            f"Cannot move from '{from_state}' to '{to_state}'."
        )


class HostStoreError(Exception):
    """Raised when the hosts file cannot be read, parsed or written."""
    def __init__(self, file_path: str, message: str):
        self.file_path = file_path
        super().__init__(f"{message}: {file_path}")
