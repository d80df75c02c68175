"""
Semantic versioning for abilities, assignments and positions.

A new record starts at a version picked by how finished it is; every later
edit bumps exactly one component and resets the ones below it.
"""
import enum
from dataclasses import dataclass
from typing import Optional

from common.exceptions import FormValidationError


VERSION_TYPE_FIELD = "version_type"
BLANK_MESSAGE = "can't be blank"


class CreationVersionType(str, enum.Enum):
    READY = "ready"
    NEARLY_READY = "nearly_ready"
    EARLY_DRAFT = "early_draft"


class UpdateVersionType(str, enum.Enum):
    FUNDAMENTAL = "fundamental"
    CLARIFYING = "clarifying"
    INSIGNIFICANT = "insignificant"


@dataclass(frozen=True)
class SemanticVersion:
    major: int = 0
    minor: int = 0
    patch: int = 0

    @classmethod
    def parse(cls, value: str) -> "SemanticVersion":
        parts = value.split(".")
        if len(parts) != 3:
            raise ValueError(f"Invalid semantic version: {value}")
        major, minor, patch = (int(part) for part in parts)
        if min(major, minor, patch) < 0:
            raise ValueError(f"Invalid semantic version: {value}")
        return cls(major, minor, patch)

    def bump_major(self) -> "SemanticVersion":
        return SemanticVersion(self.major + 1, 0, 0)

    def bump_minor(self) -> "SemanticVersion":
        return SemanticVersion(self.major, self.minor + 1, 0)

    def bump_patch(self) -> "SemanticVersion":
        return SemanticVersion(self.major, self.minor, self.patch + 1)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


INITIAL_VERSIONS = {
    CreationVersionType.READY: SemanticVersion(1, 0, 0),
    CreationVersionType.NEARLY_READY: SemanticVersion(0, 1, 0),
    CreationVersionType.EARLY_DRAFT: SemanticVersion(0, 0, 1),
}


class VersioningPolicy:
    @staticmethod
    def initial_version(version_type: Optional[str]) -> SemanticVersion:
        try:
            return INITIAL_VERSIONS[CreationVersionType(version_type)]
        except ValueError:
            raise FormValidationError({VERSION_TYPE_FIELD: [BLANK_MESSAGE]})

    @staticmethod
    def next_version(current: str, version_type: Optional[str]) -> SemanticVersion:
        try:
            bump = UpdateVersionType(version_type)
        except ValueError:
            raise FormValidationError({VERSION_TYPE_FIELD: [BLANK_MESSAGE]})

        version = SemanticVersion.parse(current)
        if bump == UpdateVersionType.FUNDAMENTAL:
            return version.bump_major()
        if bump == UpdateVersionType.CLARIFYING:
            return version.bump_minor()
        return version.bump_patch()

    @staticmethod
    def resolve(current: Optional[str], version_type: Optional[str]) -> SemanticVersion:
        """Version for a create (current is None) or an update."""
        if current is None:
            return VersioningPolicy.initial_version(version_type)
        return VersioningPolicy.next_version(current, version_type)
