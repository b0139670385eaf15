""" Error types raised by the conversion pipeline. The pipeline decides per kind whether to skip a set or abort the batch. """


class Legacy2PBRError(Exception):
    """Base class for all conversion errors."""

    def __init__(self, message: str, path: str = ""):
        super().__init__(message)
        self.path = path


class UnsupportedFormatError(Legacy2PBRError):
    """Raised when a file extension does not map to a supported container."""


class ImageLoadError(Legacy2PBRError):
    """Raised when a source image cannot be decoded."""


class MissingRoleSetError(Legacy2PBRError):
    """Raised when one of the four role lists is empty; nothing gets processed."""

    def __init__(self, missing_roles, path: str = ""):
        self.missing_roles = list(missing_roles)
        super().__init__(f"No files found for role(s): {', '.join(self.missing_roles)}", path)


class ImageSaveError(Legacy2PBRError):
    """Raised when an output image cannot be encoded or written."""


class FilesystemError(Legacy2PBRError):
    """Raised when scanning or moving files fails."""
