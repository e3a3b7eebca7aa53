class BarBuilderError(Exception):
    """Base error for barbuilder domain exceptions."""


class LayoutValidationError(BarBuilderError):
    """Raised when a stored layout or slot descriptor is malformed."""


class ConfigError(BarBuilderError):
    """Raised when settings files cannot be parsed or validated."""
