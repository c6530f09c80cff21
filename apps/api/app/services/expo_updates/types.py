"""Typed contracts for update resolution and delivery."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from apps.api.app.db.models import App, AppRuntime, Build

ProtocolVersion = Literal[0, 1]
DEFAULT_CHANNEL = "production"
NO_UPDATE_AVAILABLE = "noUpdateAvailable"
ROLL_BACK_TO_EMBEDDED = "rollBackToEmbedded"


@dataclass(frozen=True)
class UpdateRequest:
    protocol_version: ProtocolVersion
    platform: str
    runtime_version: str
    app_id: str
    organization_id: str
    channel: str = DEFAULT_CHANNEL
    current_update_id: str | None = None
    embedded_update_id: str | None = None


@dataclass(frozen=True)
class ManifestAsset:
    hash: str
    key: str
    file_extension: str
    content_type: str
    url: str

    def to_dict(self) -> dict[str, str]:
        return {
            "hash": self.hash,
            "key": self.key,
            "fileExtension": self.file_extension,
            "contentType": self.content_type,
            "url": self.url,
        }


@dataclass(frozen=True)
class Manifest:
    id: str
    created_at: str
    runtime_version: str
    launch_asset: ManifestAsset
    assets: list[ManifestAsset]
    metadata: dict[str, str] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "createdAt": self.created_at,
            "runtimeVersion": self.runtime_version,
            "launchAsset": self.launch_asset.to_dict(),
            "assets": [asset.to_dict() for asset in self.assets],
            "metadata": dict(self.metadata),
            "extra": dict(self.extra),
        }


@dataclass(frozen=True)
class Directive:
    type: str
    parameters: dict[str, Any] | None = None

    @classmethod
    def no_update_available(cls) -> Directive:
        return cls(type=NO_UPDATE_AVAILABLE)

    @classmethod
    def roll_back_to_embedded(cls, *, commit_time: str) -> Directive:
        return cls(type=ROLL_BACK_TO_EMBEDDED, parameters={"commitTime": commit_time})

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"type": self.type}
        if self.parameters is not None:
            payload["parameters"] = dict(self.parameters)
        return payload


@dataclass(frozen=True)
class UpdateTarget:
    """One consistent read of an app, its matching runtime and active build."""

    app: App
    runtime: AppRuntime | None
    active_build: Build | None


@dataclass(frozen=True)
class Resolution:
    """Engine decision: exactly one of ``manifest`` or ``directive`` is set."""

    app: App
    protocol_version: ProtocolVersion
    manifest: Manifest | None = None
    directive: Directive | None = None

    @property
    def part_name(self) -> str:
        return "manifest" if self.manifest is not None else "directive"

    def payload(self) -> dict[str, Any]:
        if self.manifest is not None:
            return self.manifest.to_dict()
        if self.directive is not None:
            return self.directive.to_dict()
        raise ValueError("resolution carries neither a manifest nor a directive")
