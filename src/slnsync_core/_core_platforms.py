from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from ._core_base import ConfigurationError

EDITOR_PLATFORM_NAME = "Editor"
NO_TARGET = "NoTarget"


@dataclass(frozen=True)
class Platform:
    name: str
    display_name: str
    build_target: str

    def as_dict(self) -> dict[str, str]:
        return {
            "name": self.name,
            "display_name": self.display_name,
            "build_target": self.build_target,
        }


EDITOR_PLATFORM = Platform(EDITOR_PLATFORM_NAME, EDITOR_PLATFORM_NAME, NO_TARGET)


@dataclass(frozen=True)
class PlatformCatalog:
    """Closed set of platform names an assembly definition may reference.

    The Editor pseudo-target is always the first entry and is never a real
    build target.
    """

    platforms: tuple[Platform, ...]
    deprecated: tuple[str, ...] = ()

    @classmethod
    def from_build_targets(cls, targets: Iterable[Platform], deprecated: Iterable[str] = ()) -> PlatformCatalog:
        entries = [EDITOR_PLATFORM]
        for platform in targets:
            if platform.build_target == NO_TARGET or platform.name.lower() == EDITOR_PLATFORM_NAME.lower():
                raise ConfigurationError(f"Platform '{platform.name}' collides with the Editor pseudo-target")
            entries.append(platform)
        names = [p.name.lower() for p in entries]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ConfigurationError(f"Duplicate platform names in catalog: {', '.join(duplicates)}")
        return cls(platforms=tuple(entries), deprecated=tuple(deprecated))

    @property
    def editor(self) -> Platform:
        return self.platforms[0]

    def is_deprecated(self, name: str) -> bool:
        lowered = name.lower()
        return any(item.lower() == lowered for item in self.deprecated)

    def from_name(self, name: str) -> Platform:
        lowered = name.lower()
        for platform in self.platforms:
            if platform.name.lower() == lowered:
                return platform
        supported = ",\n".join(sorted(f'"{p.name}"' for p in self.platforms))
        raise ConfigurationError(f"Platform name '{name}' not supported.\nSupported platform names:\n{supported}\n")

    def from_names(self, names: Iterable[str]) -> tuple[Platform, ...]:
        return tuple(self.from_name(name) for name in names if not self.is_deprecated(name))


DEFAULT_BUILD_TARGETS = (
    Platform("Android", "Android", "Android"),
    Platform("iOS", "iOS", "iOS"),
    Platform("LinuxStandalone64", "Linux 64-bit", "StandaloneLinux64"),
    Platform("macOSStandalone", "macOS", "StandaloneOSX"),
    Platform("PS4", "PS4", "PS4"),
    Platform("Switch", "Nintendo Switch", "Switch"),
    Platform("tvOS", "tvOS", "tvOS"),
    Platform("WSA", "Universal Windows Platform", "WSAPlayer"),
    Platform("WebGL", "WebGL", "WebGL"),
    Platform("WindowsStandalone32", "Windows 32-bit", "StandaloneWindows"),
    Platform("WindowsStandalone64", "Windows 64-bit", "StandaloneWindows64"),
    Platform("XboxOne", "Xbox One", "XboxOne"),
)

# Names removed from the catalog stay here so old assembly definitions still load.
DEFAULT_DEPRECATED_PLATFORMS = ("PSMobile", "Tizen", "WiiU", "Nintendo3DS", "PSVita")

DEFAULT_CATALOG = PlatformCatalog.from_build_targets(DEFAULT_BUILD_TARGETS, DEFAULT_DEPRECATED_PLATFORMS)


def build_platform_catalog(config: dict[str, Any]) -> PlatformCatalog:
    raw_platforms = config.get("platforms")
    raw_deprecated = config.get("deprecated_platforms")
    if raw_platforms is None and raw_deprecated is None:
        return DEFAULT_CATALOG

    targets = DEFAULT_BUILD_TARGETS
    if raw_platforms is not None:
        targets = tuple(
            Platform(
                name=item["name"],
                display_name=item.get("display_name") or item["name"],
                build_target=item.get("build_target") or item["name"],
            )
            for item in raw_platforms
        )
    deprecated = DEFAULT_DEPRECATED_PLATFORMS if raw_deprecated is None else tuple(raw_deprecated)
    return PlatformCatalog.from_build_targets(targets, deprecated)
