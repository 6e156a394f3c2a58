"""Exception handling module"""


class SavePathError(Exception):
    """Base exception for save path resolution errors"""

    def __init__(self, message, *args, **kwarg):
        super().__init__(message, *args, **kwarg)
        self.message = message


class UnknownBackendError(SavePathError):
    """Raised when asked to resolve saves for a backend that isn't supported."""

    def __init__(self, backend, *args, **kwarg):
        super().__init__("Unsupported backend: %s" % backend, *args, **kwarg)
        self.backend = backend


class MissingMetadataError(SavePathError):
    """Raised when the metadata needed to locate saves is absent."""

    def __init__(self, message, appid=None, *args, **kwarg):
        super().__init__(message, *args, **kwarg)
        self.appid = appid


class MissingExecutableError(SavePathError):
    """Raised when a program can't be located."""
