"""Projects under analysis."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional


@dataclass(frozen=True)
class Project:
    id: str
    name: str
    root_path: str
    include_packages: List[str] = field(default_factory=list)
    exclude_packages: List[str] = field(default_factory=list)
    created_at: Optional[dt.datetime] = None

    def with_packages(self, include_packages: List[str], exclude_packages: List[str]) -> "Project":
        return replace(self, include_packages=list(include_packages), exclude_packages=list(exclude_packages))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "root_path": self.root_path,
            "include_packages": list(self.include_packages),
            "exclude_packages": list(self.exclude_packages),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Project":
        created_at = data.get("created_at")
        return cls(
            id=data["id"],
            name=data["name"],
            root_path=data["root_path"],
            include_packages=list(data.get("include_packages", [])),
            exclude_packages=list(data.get("exclude_packages", [])),
            created_at=dt.datetime.fromisoformat(created_at) if created_at else None,
        )
