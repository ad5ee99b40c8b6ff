"""Configuration schema for ``.polybump/config.yaml``."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class _ConfigModel(BaseModel):
    """Accepts both snake_case and camelCase keys; rejects unknown ones."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        frozen=True,
    )


class ChangelogConfig(_ConfigModel):
    """Changelog generation settings."""

    enabled: bool = Field(default=True, description="Write changelog entries on update")
    filename: str = Field(default="CHANGELOG.md", description="File name beside each manifest")


class PolybumpConfig(_ConfigModel):
    """Root configuration model.

    Example:
        ignore:
          - "examples/**"
        baseBranch: main
        latestPackage: crates/core/Cargo.toml
        publish:
          node: npm publish --access public
          crates/core/Cargo.toml: cargo publish -p core
        updateOn:
          "packages/core/*": ["bindings/node/package.json"]
    """

    ignore: list[str] = Field(
        default_factory=list,
        description="Gitignore-style globs excluding manifests from discovery",
    )
    base_branch: str = Field(default="main", description="Branch changes are compared against")
    latest_package: str | None = Field(
        default=None,
        description="Id of the package whose version is reported as the workspace version",
    )
    publish: dict[str, str] = Field(
        default_factory=dict,
        description="Publish command per package id or ecosystem key",
    )
    update_on: dict[str, list[str]] = Field(
        default_factory=dict,
        description="Trigger glob -> packages bumped whenever a trigger is bumped",
    )
    continue_on_error: bool = Field(
        default=False,
        description="Keep publishing other packages after a publish command fails",
    )
    changelog: ChangelogConfig = Field(default_factory=ChangelogConfig)
    discovery_concurrency: int = Field(
        default=8, ge=1, le=64, description="Parallel manifest reads during discovery"
    )
    publish_timeout: float | None = Field(
        default=None, gt=0, description="Seconds before a publish command is killed"
    )

    @field_validator("update_on", mode="before")
    @classmethod
    def normalize_update_on(cls, v: object) -> object:
        """Allow a single string instead of a list of dependents."""
        if isinstance(v, dict):
            return {key: [value] if isinstance(value, str) else value for key, value in v.items()}
        return v

    @field_validator("base_branch")
    @classmethod
    def validate_base_branch(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("base_branch must not be empty")
        return v.strip()

    def publish_command_for(self, package_id: str, ecosystem: str, default: str) -> str:
        """Resolve a publish command: package id, then ecosystem key, then the default."""
        return self.publish.get(package_id) or self.publish.get(ecosystem) or default
