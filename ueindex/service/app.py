"""FastAPI application exposing read-only index queries."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional

from fastapi import FastAPI, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict

from ..config import ConfigError
from ..engine import ProjectIndexer
from ..errors import IndexNotReady, ManifestError

IndexerFactory = Callable[[str], ProjectIndexer]


class _EntityModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class EnumValueModel(_EntityModel):
    name: str
    value: Optional[int] = None


class DeclarationModel(_EntityModel):
    name: str
    kind: str
    parent: Optional[str] = None
    specifiers: List[str]
    file: str
    line: int
    module: Optional[str] = None
    blueprint_type: bool
    blueprintable: bool
    values: List[EnumValueModel]


class AssetModel(_EntityModel):
    name: str
    path: str
    type: str
    size: int


class ModuleModel(_EntityModel):
    name: str
    type: str
    loading_phase: str
    dependencies: List[str]
    path: Optional[str] = None


class PluginModel(_EntityModel):
    name: str
    path: str
    enabled: bool
    installed: bool
    version: Optional[str] = None
    version_name: Optional[str] = None
    friendly_name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    created_by: Optional[str] = None
    marketplace_url: Optional[str] = None
    support_url: Optional[str] = None
    engine_version: Optional[str] = None
    can_contain_content: bool
    is_beta_version: bool
    is_experimental_version: bool
    modules: List[ModuleModel]


class SummaryModel(_EntityModel):
    project_name: str
    engine_association: str
    platforms: List[str]
    modules: Dict[str, Any]
    declarations: Dict[str, Any]
    callables: Dict[str, int]
    assets: Dict[str, Any]
    blueprints: Dict[str, int]
    plugins: Dict[str, Any]
    collisions: Dict[str, int]
    issues: Dict[str, int]


class UsageModel(_EntityModel):
    name: str
    files: List[str]
    count: int


class HierarchyResponse(BaseModel):
    name: str
    hierarchy: List[str]


class ScanRequest(BaseModel):
    path: str


class ScanResponse(BaseModel):
    status: str
    project_name: str
    declarations: int
    callables: int
    assets: int
    plugins: int


class HealthResponse(BaseModel):
    status: str
    scanned: bool


class _IndexerSlot:
    """Holds the single indexer the service answers from."""

    def __init__(self, indexer: ProjectIndexer | None = None) -> None:
        self.indexer = indexer

    def require(self) -> ProjectIndexer:
        if self.indexer is None:
            raise IndexNotReady("No project has been scanned yet; POST /scan first")
        return self.indexer


def create_app(
    indexer_factory: IndexerFactory = ProjectIndexer,
    indexer: ProjectIndexer | None = None,
) -> FastAPI:
    """Create the FastAPI application over one project indexer."""

    app = FastAPI(title="ueindex Service", version="1.0.0")
    slot = _IndexerSlot(indexer)
    app.state.indexer_slot = slot

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        scanned = slot.indexer is not None and slot.indexer.is_ready
        return HealthResponse(status="ok", scanned=scanned)

    @app.post("/scan", response_model=ScanResponse)
    async def scan(payload: ScanRequest) -> ScanResponse:
        candidate = indexer_factory(payload.path)
        # A failed scan leaves an indexer with no index, so later queries get 409.
        slot.indexer = candidate
        loop = asyncio.get_running_loop()
        index = await loop.run_in_executor(None, candidate.scan)
        return ScanResponse(
            status="ok",
            project_name=index.project.name,
            declarations=len(index.declarations()),
            callables=len(index.callables()),
            assets=len(index.assets()),
            plugins=len(index.plugins()),
        )

    @app.get("/summary", response_model=SummaryModel)
    async def summary() -> SummaryModel:
        return SummaryModel.model_validate(slot.require().summary())

    @app.get("/declarations", response_model=List[DeclarationModel])
    async def declarations(
        query: Optional[str] = None, kind: Optional[str] = None
    ) -> List[DeclarationModel]:
        current = slot.require()
        entities = current.search_declarations(query) if query else current.declarations()
        if kind:
            entities = [entity for entity in entities if entity.kind == kind.upper()]
        return [DeclarationModel.model_validate(entity) for entity in entities]

    @app.get("/hierarchy/{name}", response_model=HierarchyResponse)
    async def hierarchy(name: str) -> Any:
        chain = slot.require().hierarchy(name)
        if not chain:
            return JSONResponse(status_code=404, content={"detail": f"Declaration not found: {name}"})
        return HierarchyResponse(name=name, hierarchy=chain)

    @app.get("/usages/{name}", response_model=UsageModel)
    async def usages(name: str) -> UsageModel:
        return UsageModel.model_validate(slot.require().usages(name))

    @app.get("/assets", response_model=List[AssetModel])
    async def assets(
        query: Optional[str] = None,
        asset_type: Optional[str] = Query(default=None, alias="type"),
    ) -> List[AssetModel]:
        current = slot.require()
        entities = current.search_assets(query) if query else current.assets()
        if asset_type:
            entities = [entity for entity in entities if entity.type.lower() == asset_type.lower()]
        return [AssetModel.model_validate(entity) for entity in entities]

    @app.get("/plugins", response_model=List[PluginModel])
    async def plugins(category: Optional[str] = None) -> List[PluginModel]:
        current = slot.require()
        entities = current.plugins_by_category(category) if category else current.plugins()
        return [PluginModel.model_validate(entity) for entity in entities]

    @app.exception_handler(ManifestError)
    async def manifest_error_handler(_: Any, exc: ManifestError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.exception_handler(ConfigError)
    async def config_error_handler(_: Any, exc: ConfigError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.exception_handler(IndexNotReady)
    async def not_ready_handler(_: Any, exc: IndexNotReady) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    return app


def run_service(
    root: str | None = None, host: str = "127.0.0.1", port: int = 8000
) -> None:  # pragma: no cover - integration path
    import uvicorn

    indexer = None
    if root is not None:
        indexer = ProjectIndexer(root)
        indexer.scan()
    app = create_app(indexer=indexer)
    uvicorn.run(app, host=host, port=port)
