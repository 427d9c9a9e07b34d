class WebKitError(Exception):
    """Base class for failures that stop a command before or during a batch."""

    exit_code = 1


class ConfigurationError(WebKitError):
    """Missing source directory, no matching assets, or no usable converter."""

    exit_code = 2


class OutputDirectoryError(WebKitError):
    """An output directory could not be created; the batch cannot continue."""

    exit_code = 3
