"""Error definitions shared across osboot stages.

Every error carries a stable code. The dispatcher treats
PreconditionError as recoverable (the menu resumes) and every other
OsbootError as fatal for the whole process.
"""

# Error code constants
PRECONDITION_ERROR = "precondition_error"
ARTIFACT_NOT_FOUND = "artifact_not_found"
COMMAND_FAILED = "command_failed"
EXECUTION_ERROR = "execution_error"
DOWNLOAD_ERROR = "download_error"
VERIFICATION_ERROR = "verification_error"
EXTRACTION_ERROR = "extraction_error"
KERNEL_BUILD_ERROR = "kernel_build_error"


class OsbootError(Exception):
    """Base error for osboot operations."""

    def __init__(self, message: str, code: str = "osboot_error") -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class PreconditionError(OsbootError):
    """Raised when a stage cannot start because its inputs are missing."""

    def __init__(self, message: str, code: str = PRECONDITION_ERROR) -> None:
        super().__init__(message, code=code)


class ArtifactNotFoundError(PreconditionError):
    """A file a stage depends on does not exist."""

    def __init__(self, path: str, label: str = "Artifact") -> None:
        super().__init__(f"{label} {path} not found!", code=ARTIFACT_NOT_FOUND)
        self.path = path
        self.label = label


__all__ = [
    "ARTIFACT_NOT_FOUND",
    "COMMAND_FAILED",
    "DOWNLOAD_ERROR",
    "EXECUTION_ERROR",
    "EXTRACTION_ERROR",
    "KERNEL_BUILD_ERROR",
    "PRECONDITION_ERROR",
    "VERIFICATION_ERROR",
    "ArtifactNotFoundError",
    "OsbootError",
    "PreconditionError",
]
