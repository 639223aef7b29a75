"""Config store exceptions for sentry-tui."""


class ConfigError(Exception):
    """Base exception for config store operations."""

    pass


class ConfigCorruptError(ConfigError):
    """Raised when the config file exists but cannot be parsed."""

    def __init__(self, path: str = "", detail: str = ""):
        message = f"Config file is corrupt: {path}" if path else "Config file is corrupt."
        if detail:
            message = f"{message} ({detail})"
        message += " Fix or remove the file; it will not be repaired automatically."
        super().__init__(message)


class ConfigIoError(ConfigError):
    """Raised when the config file cannot be read or written."""

    def __init__(self, message: str = "Failed to access config file."):
        super().__init__(message)


class OrganizationNotFoundError(ConfigError):
    """Raised when an organization name or slug is unknown."""

    def __init__(self, org: str = ""):
        message = (
            f"Organization '{org}' not found. Add it first with 'org add'."
            if org
            else "Organization not found."
        )
        super().__init__(message)


class DuplicateOrganizationError(ConfigError):
    """Raised when adding an organization whose slug is already present."""

    def __init__(self, slug: str = ""):
        message = (
            f"An organization with slug '{slug}' already exists."
            if slug
            else "Organization already exists."
        )
        super().__init__(message)
