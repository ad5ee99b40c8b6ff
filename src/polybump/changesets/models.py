"""Changeset record model."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from polybump.versioning.semver import BumpType


class Changeset(BaseModel):
    """A recorded intent to bump one or more packages.

    Persisted as ``{id, affectedPackageNames, severity, summary, createdAt}``.
    Package references are ids or names.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(min_length=1)
    packages: frozenset[str] = Field(alias="affectedPackageNames", min_length=1)
    bump: BumpType = Field(alias="severity")
    summary: str = ""
    created_at: datetime = Field(alias="createdAt")

    @field_validator("bump")
    @classmethod
    def validate_bump(cls, v: BumpType) -> BumpType:
        if v is BumpType.NONE:
            raise ValueError("severity must be patch, minor or major")
        return v

    @field_validator("created_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        return v if v.tzinfo is not None else v.replace(tzinfo=timezone.utc)

    @field_serializer("packages")
    def serialize_packages(self, packages: frozenset[str]) -> list[str]:
        return sorted(packages)

    def to_record(self) -> dict:
        """The on-disk JSON shape."""
        return self.model_dump(mode="json", by_alias=True)
