"""Organization and credential data models."""

import base64
from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class Credential:
    """An encrypted access token for one organization.

    Only the vault can make sense of the ciphertext.
    """

    org_slug: str
    ciphertext: bytes
    nonce: bytes

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "ciphertext": base64.b64encode(self.ciphertext).decode("ascii"),
            "nonce": base64.b64encode(self.nonce).decode("ascii"),
        }

    @classmethod
    def from_dict(cls, org_slug: str, data: dict[str, Any]) -> "Credential":
        """Create from dictionary. Raises on missing keys or bad base64."""
        return cls(
            org_slug=org_slug,
            ciphertext=base64.b64decode(data["ciphertext"], validate=True),
            nonce=base64.b64decode(data["nonce"], validate=True),
        )

    def __repr__(self) -> str:
        return f"Credential(org_slug={self.org_slug!r}, ciphertext=<{len(self.ciphertext)} bytes>)"


@dataclass
class Organization:
    """A tracker organization the user has access to."""

    name: str
    slug: str
    default_project: Optional[str] = None
    credential: Optional[Credential] = None

    @property
    def is_authenticated(self) -> bool:
        """Whether a credential has been stored for this organization."""
        return self.credential is not None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "slug": self.slug,
            "default_project": self.default_project,
            "credential": self.credential.to_dict() if self.credential else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Organization":
        """Create from dictionary."""
        slug = data["slug"]
        credential = data.get("credential")
        return cls(
            name=data["name"],
            slug=slug,
            default_project=data.get("default_project"),
            credential=Credential.from_dict(slug, credential) if credential else None,
        )
