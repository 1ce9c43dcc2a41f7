"""Exceptions raised by the customization pipeline."""


class CustomizationError(Exception):
    """Base class for all customization failures."""


class ConfigError(CustomizationError):
    """Configuration file could not be loaded or validated."""


class ChrootError(CustomizationError):
    """Entering or leaving the image root failed."""


class MountError(CustomizationError):
    """A bind mount could not be created or released."""


class ResolvConfError(CustomizationError):
    """The image's resolv.conf could not be overridden or restored."""


class PackageError(CustomizationError):
    """Package removal, update or installation failed."""


class UserProvisioningError(CustomizationError):
    """A user account could not be created or updated."""


class ScriptError(CustomizationError):
    """A customization script exited with an error."""
