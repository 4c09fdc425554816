from __future__ import annotations

from collections import deque
from typing import Optional

from pbapi.domain.graph import Pathbuilder, PathbuilderPath
from pbapi.plugins.base import api_plugin, operation
from pbapi.plugins.pathbuilder_v0 import NoSuchEntity, PathbuilderApiV0, paginate


@api_plugin(
    id="pathbuilder_api_v1",
    label="Pathbuilder API v1",
    version=1,
    description="pathbuilder_v1",
    permissions={
        "pbapi.pathbuilder.read": "Read pathbuilder definitions",
        "pbapi.pathbuilder.write": "Create and delete pathbuilders",
    },
)
class PathbuilderApiV1(PathbuilderApiV0):
    """
    Version 1 of the pathbuilder API.

    Keeps every v0 operation and adds whole-pathbuilder listing and group
    navigation. Deleting a missing pathbuilder reports False instead of
    failing.
    """

    @operation
    def get_pathbuilders(self, start: Optional[int] = None, limit: Optional[int] = None) -> list[Pathbuilder]:
        return paginate(self.store.list_pathbuilders(), start, limit)

    @operation
    def get_groups(self, pathbuilder_id: str, main: bool = False) -> dict[str, str]:
        """Group id -> group name; `main` keeps only top-level groups."""
        groups = self._load_pathbuilder(pathbuilder_id).groups()
        return {gid: g.name for gid, g in groups.items() if not main or not g.parent}

    @operation
    def get_group_paths(self, pathbuilder_id: str, group_id: str) -> list[PathbuilderPath]:
        pb = self._load_pathbuilder(pathbuilder_id)
        if group_id not in pb.groups():
            raise NoSuchEntity(f"No group with ID {group_id} in pathbuilder {pathbuilder_id}")

        # paths and sub-groups below the group, breadth first
        out: list[PathbuilderPath] = []
        seen = {group_id}
        pending = deque([group_id])
        while pending:
            parent = pending.popleft()
            for path in pb.paths.values():
                if path.parent != parent or path.id in seen:
                    continue
                seen.add(path.id)
                out.append(path)
                if path.is_group:
                    pending.append(path.id)
        return out

    @operation
    def delete_pathbuilder(self, pathbuilder_id: str) -> bool:
        return self.store.delete_pathbuilder(pathbuilder_id)
