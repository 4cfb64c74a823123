"""
playground_services.storage
===========================

On-disk state of the service: per-user project workspaces copied from the
contract template, plus the in-process lock registry that serializes builds
and deploys on a single project.

- workspace.py : WorkspaceManager (provisioning, artifact lookup) and ProjectLocks
"""

from __future__ import annotations

from .workspace import ProjectLocks, WorkspaceManager, validate_segment

__all__ = ["WorkspaceManager", "ProjectLocks", "validate_segment"]
