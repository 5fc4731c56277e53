"""Test doubles for the storage, engine and RPC collaborators."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Tuple

import duckdb

from artifact_sql.core.errors import ArtifactListingError


class FakeArtifactStore:
    """In-memory artifact store; file "URLs" are local CSV paths."""

    def __init__(
        self,
        artifacts: Optional[List[Dict[str, Any]]] = None,
        files: Optional[Dict[Tuple[str, str], str]] = None,
        fail_listing: bool = False,
    ) -> None:
        self.artifacts = list(artifacts or [])
        self.files = dict(files or {})
        self.fail_listing = fail_listing
        self.list_calls: List[Optional[str]] = []
        self.get_file_calls: List[Tuple[str, str]] = []

    async def list(self, parent_id: Optional[str]) -> List[Dict[str, Any]]:
        self.list_calls.append(parent_id)
        if self.fail_listing:
            raise ArtifactListingError("List artifacts failed: service unavailable")
        return [dict(a) for a in self.artifacts]

    async def get_file(self, artifact_id: str, file_path: str) -> str:
        self.get_file_calls.append((artifact_id, file_path))
        try:
            return self.files[(artifact_id, file_path)]
        except KeyError:
            raise FileNotFoundError(f"File does not exist: {file_path}") from None


class SpyEngine:
    """Stands in for the duckdb module; counts and optionally fails `connect`."""

    Error = duckdb.Error

    def __init__(self, fail_first: int = 0) -> None:
        self.connect_calls = 0
        self.configs: List[Any] = []
        self._failures_left = fail_first

    def connect(self, **kwargs: Any):
        self.connect_calls += 1
        self.configs.append(kwargs.get("config"))
        if self._failures_left:
            self._failures_left -= 1
            raise RuntimeError("engine instantiation failed")
        return duckdb.connect(**kwargs)


class FakeExtensionConnection:
    """Connection double recording extension statements."""

    def __init__(self, fail_on: Optional[str] = None) -> None:
        self.calls: List[str] = []
        self.fail_on = fail_on

    async def install_extension(self, name: str) -> None:
        await asyncio.sleep(0)
        self.calls.append(f"INSTALL {name}")
        if self.fail_on == "install":
            raise RuntimeError("IO Error: Failed to download extension")

    async def load_extension(self, name: str) -> None:
        await asyncio.sleep(0)
        self.calls.append(f"LOAD {name}")
        if self.fail_on == "load":
            raise RuntimeError("IO Error: Extension could not be loaded")


class FakeArtifactManager:
    def __init__(self, items: Optional[List[Dict[str, Any]]] = None, fail: bool = False) -> None:
        self.items = items or []
        self.fail = fail
        self.list_kwargs: List[Dict[str, Any]] = []

    async def list(self, **kwargs: Any) -> List[Dict[str, Any]]:
        self.list_kwargs.append(kwargs)
        if self.fail:
            raise Exception("PermissionError: no access to collection")
        return self.items

    async def get_file(self, artifact_id: str, file_path: str) -> str:
        return f"https://files.example/{artifact_id}/{file_path}?sig=abc"


class FakeHyphaServer:
    def __init__(self, services: Optional[Dict[str, Any]] = None) -> None:
        self.services = services or {}
        self.registered: List[Dict[str, Any]] = []
        self.get_service_calls: List[str] = []
        self.disconnected = False

    async def register_service(self, descriptor: Dict[str, Any]) -> Dict[str, Any]:
        await asyncio.sleep(0)
        self.registered.append(descriptor)
        return {"id": f"hypha-agents/client-1:{descriptor['id']}"}

    async def get_service(self, name: str) -> Any:
        self.get_service_calls.append(name)
        return self.services[name]

    async def disconnect(self) -> None:
        self.disconnected = True
