"""Domain-specific errors for outletctl."""


class OutletctlError(Exception):
    """Base error for outletctl."""


class ConfigurationError(OutletctlError):
    """Raised when an accessory definition or registration is invalid."""


class ParseError(OutletctlError):
    """Raised when a diagnostic side-channel line is not valid JSON."""


class DeviceError(OutletctlError):
    """Raised when the device fails to apply or report its state."""


class DeviceUnavailableError(DeviceError):
    """Raised when the device cannot be reached at all."""


class LifecycleError(OutletctlError):
    """Raised when an operation does not fit the current publish state."""


class ShutdownTimeoutError(OutletctlError):
    """Raised when unpublish does not finish within the grace period."""


class TransportError(OutletctlError):
    """Base transport error."""


class TransportConnectError(TransportError):
    """Raised when the accessory protocol stack cannot be started."""
