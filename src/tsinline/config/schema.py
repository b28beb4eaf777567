from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class InlineConfig:
    # tried in order after the import specifier of a relative import
    relative_suffixes: list[str] = field(
        default_factory=lambda: ["", ".ts", ".tsx", "/index.ts", "/index.tsx"]
    )
    resolve_packages: bool = True
    use_source_maps: bool = True
    follow_reexports: bool = True
    max_reexport_hops: int = 4
    package_conditions: list[str] = field(default_factory=lambda: ["require", "node", "default"])
