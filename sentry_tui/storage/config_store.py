"""Config store for organization records and their credentials.

The whole configuration is one JSON document. Mutations happen in memory;
callers save once per command. Saving writes a temp file next to the target
and renames it over the target, so a crash mid-write leaves the previous file
in place.
"""

import binascii
import json
import os
import tempfile
from contextlib import suppress
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from ..config.settings import get_settings
from ..models import Credential, Organization
from ..utils.logging import get_logger
from .exceptions import (
    ConfigCorruptError,
    ConfigIoError,
    DuplicateOrganizationError,
    OrganizationNotFoundError,
)

logger = get_logger(__name__)

CURRENT_VERSION = 2


@dataclass
class Config:
    """All persisted state: organizations, credentials and the default org."""

    organizations: list[Organization] = field(default_factory=list)
    default_org: Optional[str] = None  # slug
    version: int = CURRENT_VERSION

    def find_org(self, key: str) -> Optional[Organization]:
        """Find an organization by slug, falling back to name."""
        for org in self.organizations:
            if org.slug == key:
                return org
        for org in self.organizations:
            if org.name == key:
                return org
        return None

    def require_org(self, key: str) -> Organization:
        """Find an organization or raise OrganizationNotFoundError."""
        org = self.find_org(key)
        if org is None:
            raise OrganizationNotFoundError(key)
        return org

    def add_org(self, org: Organization) -> Organization:
        """Add an organization. Slugs must be unique."""
        if any(existing.slug == org.slug for existing in self.organizations):
            raise DuplicateOrganizationError(org.slug)
        self.organizations.append(org)
        return org

    def remove_org(self, key: str) -> Organization:
        """Remove an organization together with its credential."""
        org = self.require_org(key)
        self.organizations.remove(org)
        if self.default_org == org.slug:
            self.default_org = None
        return org

    def set_credential(self, key: str, credential: Credential) -> Organization:
        """Attach (or replace) an organization's credential."""
        org = self.require_org(key)
        if credential.org_slug != org.slug:
            raise ValueError(
                f"Credential sealed for '{credential.org_slug}' cannot be stored on '{org.slug}'"
            )
        org.credential = credential
        return org

    def set_default_org(self, key: Optional[str]) -> Optional[Organization]:
        """Set the organization opened at startup (None clears it)."""
        if key is None:
            self.default_org = None
            return None
        org = self.require_org(key)
        self.default_org = org.slug
        return org

    def get_default_org(self) -> Optional[Organization]:
        """The default organization, if one is configured and still present."""
        if self.default_org is None:
            return None
        return self.find_org(self.default_org)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "version": CURRENT_VERSION,
            "default_org": self.default_org,
            "organizations": [org.to_dict() for org in self.organizations],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        """Create from a current-version dictionary."""
        organizations = [Organization.from_dict(item) for item in data.get("organizations", [])]
        slugs = [org.slug for org in organizations]
        if len(slugs) != len(set(slugs)):
            raise ValueError("duplicate organization slug")
        return cls(
            organizations=organizations,
            default_org=data.get("default_org"),
            version=CURRENT_VERSION,
        )


def migrate(data: Any) -> dict[str, Any]:
    """
    Bring a parsed config document up to the current version.

    Version 1 files carry no version field and map organization names to
    records; tokens were kept outside the file, so migrated organizations
    start without credentials.
    """
    if not isinstance(data, dict):
        raise ValueError("top level is not an object")

    version = data.get("version", 1)
    if not isinstance(version, int) or version < 1:
        raise ValueError(f"invalid version {version!r}")
    if version > CURRENT_VERSION:
        raise ValueError(f"unsupported version {version} (newest known is {CURRENT_VERSION})")

    if version == 1:
        organizations = data.get("organizations") or {}
        if not isinstance(organizations, dict):
            raise ValueError("version 1 organizations must be an object")
        logger.info(f"Migrating config from version 1 ({len(organizations)} organizations)")
        data = {
            "version": 2,
            "default_org": None,
            "organizations": [
                {
                    "name": record.get("name", name),
                    "slug": record["slug"],
                    "default_project": None,
                    "credential": None,
                }
                for name, record in organizations.items()
            ],
        }

    return data


class ConfigStore:
    """
    Loads and saves the config file.

    Usage:
        store = ConfigStore()
        config = store.load()
        config.add_org(Organization("Acme", "acme"))
        store.save(config)
    """

    def __init__(self, path: Optional[Path] = None):
        """
        Initialize the store.

        Args:
            path: Config file path (default from settings)
        """
        self.path = Path(path) if path is not None else get_settings().config_path

    def load(self) -> Config:
        """
        Read the config file.

        Returns:
            Parsed Config, or an empty Config when the file does not exist

        Raises:
            ConfigCorruptError: If the file cannot be parsed
            ConfigIoError: If the file cannot be read
        """
        try:
            content = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return Config()
        except OSError as e:
            raise ConfigIoError(f"Failed to read config file {self.path}: {e}") from e

        try:
            data = migrate(json.loads(content))
            return Config.from_dict(data)
        except (json.JSONDecodeError, KeyError, TypeError, ValueError, AttributeError, binascii.Error) as e:
            raise ConfigCorruptError(str(self.path), str(e)) from e

    def save(self, config: Config) -> None:
        """
        Write the config file atomically.

        Raises:
            ConfigIoError: If writing fails; the previous file is left intact
        """
        content = json.dumps(config.to_dict(), indent=2)

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
        except OSError as e:
            raise ConfigIoError(f"Failed to write config file {self.path}: {e}") from e

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_name, self.path)
        except OSError as e:
            with suppress(OSError):
                os.unlink(temp_name)
            raise ConfigIoError(f"Failed to write config file {self.path}: {e}") from e

        logger.debug(f"Saved config with {len(config.organizations)} organizations")
