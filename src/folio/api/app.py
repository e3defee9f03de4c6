"""FastAPI application for the folio local JSON API."""

import asyncio
import contextlib
import secrets
from collections.abc import AsyncIterator
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Request, Security
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, Field

from ..adapters.yaml_codec import YamlDocumentCodec
from ..core.model import BlockType, Document


class DocumentCreate(BaseModel):
    title: str = "New page"
    parent_id: str | None = None


class DocumentPatch(BaseModel):
    title: str | None = None
    title_sync: bool | None = None
    # Re-parenting needs an explicit flag so that null can mean "root"
    move: bool = False
    parent_id: str | None = None


class BlockCreate(BaseModel):
    type: BlockType = BlockType.TEXT
    anchor: str | None = None
    position: str = Field("after", pattern="^(after|before)$")
    index: int | None = None
    fields: dict[str, Any] = Field(default_factory=dict)


class BlockPatch(BaseModel):
    fields: dict[str, Any]


class MoveRequest(BaseModel):
    from_index: int
    to_index: int
    count: int = Field(1, ge=1)


class ConvertRequest(BaseModel):
    ids: list[str]
    type: BlockType


_codec = YamlDocumentCodec()

# Seconds between checks for debounced writes
FLUSH_INTERVAL = 0.1


def document_json(doc: Document, numbers: list[str | None] | None = None) -> dict[str, Any]:
    data = _codec.to_data(doc)
    # The file format omits parent_id for root documents; the API always has it
    data.setdefault("parent_id", None)
    if numbers is not None:
        for block, number in zip(data["blocks"], numbers):
            if number is not None:
                block["number"] = number
    return data


def create_app(runtime: Any, token: str | None = None, enable_cors: bool = False) -> FastAPI:
    """
    Create FastAPI application with runtime injected.

    Args:
        runtime: Runtime instance with the block store
        token: Bearer token for authentication (None to disable auth)
        enable_cors: Enable CORS middleware

    Returns:
        FastAPI application instance
    """
    store = runtime.store

    async def flush_loop() -> None:
        while True:
            await asyncio.sleep(FLUSH_INTERVAL)
            runtime.flush_due()

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        task = asyncio.create_task(flush_loop())
        try:
            yield
        finally:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
            runtime.close()

    app = FastAPI(
        title="Folio API",
        description="Local JSON API for a folio workspace",
        version="0.1.0",
        docs_url="/docs" if token is None else None,
        redoc_url="/redoc" if token is None else None,
        lifespan=lifespan,
    )

    @app.middleware("http")
    async def flush_pending_writes(request: Request, call_next: Any) -> Any:
        response = await call_next(request)
        runtime.flush_due()
        return response

    if enable_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    if token:
        security_scheme = HTTPBearer(auto_error=False)

        async def verify_token(
            credentials: HTTPAuthorizationCredentials | None = Security(security_scheme),  # noqa: B008
        ) -> None:
            """Verify bearer token."""
            if credentials is None or credentials.credentials != token:
                raise HTTPException(status_code=401, detail="Invalid or missing token")
    else:

        async def verify_token() -> None:
            """No-op when auth is disabled."""
            return None

    def get_doc(document_id: str) -> Document:
        doc = store.get_document(document_id)
        if doc is None:
            raise HTTPException(status_code=404, detail=f"Document {document_id} not found")
        return doc

    def full(doc: Document) -> dict[str, Any]:
        return document_json(doc, store.list_numbers(doc.id))

    @app.get("/health")
    async def health(auth: None = Depends(verify_token)) -> dict[str, Any]:
        """Health check endpoint."""
        return {"status": "ok", "documents": len(store.workspace)}

    @app.get("/documents")
    async def list_documents(auth: None = Depends(verify_token)) -> list[dict[str, Any]]:
        return [
            {"id": d.id, "title": d.title, "parent_id": d.parent_id}
            for d in sorted(store.workspace.documents(), key=lambda d: d.created_at)
        ]

    @app.post("/documents", status_code=201)
    async def create_document(body: DocumentCreate, auth: None = Depends(verify_token)) -> dict[str, Any]:
        doc = store.create_document(body.title, body.parent_id)
        return full(doc)

    @app.get("/documents/{document_id}")
    async def get_document(document_id: str, auth: None = Depends(verify_token)) -> dict[str, Any]:
        """Document with its blocks; numbered list blocks carry their label."""
        return full(get_doc(document_id))

    @app.patch("/documents/{document_id}")
    async def patch_document(
        document_id: str, body: DocumentPatch, auth: None = Depends(verify_token)
    ) -> dict[str, Any]:
        doc = get_doc(document_id)
        if body.move and not store.move_document(document_id, body.parent_id):
            raise HTTPException(status_code=409, detail="Cannot move a document under itself")
        if body.title_sync is not None:
            store.set_title_sync(document_id, body.title_sync)
        if body.title is not None:
            store.rename_document(document_id, body.title)
        return full(doc)

    @app.delete("/documents/{document_id}")
    async def delete_document(document_id: str, auth: None = Depends(verify_token)) -> dict[str, Any]:
        get_doc(document_id)
        return {"deleted": store.delete_document(document_id)}

    @app.post("/documents/{document_id}/blocks", status_code=201)
    async def insert_block(
        document_id: str, body: BlockCreate, auth: None = Depends(verify_token)
    ) -> dict[str, Any]:
        doc = get_doc(document_id)
        if body.anchor is not None and doc.find(body.anchor) is None:
            raise HTTPException(status_code=404, detail=f"Block {body.anchor} not found")
        try:
            block = store.insert(
                document_id, body.type, anchor=body.anchor, position=body.position, index=body.index, **body.fields
            )
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e)) from e
        return block.to_dict()

    @app.patch("/documents/{document_id}/blocks/{block_id}")
    async def update_block(
        document_id: str, block_id: str, body: BlockPatch, auth: None = Depends(verify_token)
    ) -> dict[str, Any]:
        doc = get_doc(document_id)
        if doc.find(block_id) is None:
            raise HTTPException(status_code=404, detail=f"Block {block_id} not found")
        try:
            block = store.update(document_id, block_id, **body.fields)
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e)) from e
        return block.to_dict()

    @app.delete("/documents/{document_id}/blocks/{block_id}")
    async def delete_block(document_id: str, block_id: str, auth: None = Depends(verify_token)) -> dict[str, Any]:
        get_doc(document_id)
        block = store.delete(document_id, block_id)
        if block is None:
            raise HTTPException(status_code=404, detail=f"Block {block_id} not found")
        return {"deleted": block.id}

    @app.post("/documents/{document_id}/move")
    async def move_blocks(document_id: str, body: MoveRequest, auth: None = Depends(verify_token)) -> dict[str, Any]:
        doc = get_doc(document_id)
        moved = store.move(document_id, body.from_index, body.to_index, body.count)
        return {"moved": moved, "order": [b.id for b in doc.blocks]}

    @app.post("/documents/{document_id}/convert")
    async def convert_blocks(
        document_id: str, body: ConvertRequest, auth: None = Depends(verify_token)
    ) -> dict[str, Any]:
        get_doc(document_id)
        return {"converted": store.convert_type(document_id, body.ids, body.type)}

    @app.get("/documents/{document_id}/backrefs")
    async def backrefs(document_id: str, auth: None = Depends(verify_token)) -> list[dict[str, Any]]:
        """Documents linking here; also answers for deleted ids."""
        return [{"id": d.id, "title": d.title} for d in store.references.find_referencing(document_id)]

    @app.get("/broken-links")
    async def broken_links(auth: None = Depends(verify_token)) -> list[dict[str, Any]]:
        return [
            {
                "document_id": ref.document_id,
                "block_id": ref.block_id,
                "target_id": ref.target_id,
                "title": ref.title,
                "start": ref.range.start,
                "end": ref.range.end,
                "deleted": ref.deleted,
            }
            for ref in store.references.broken_references()
        ]

    @app.post("/undo")
    async def undo(auth: None = Depends(verify_token)) -> dict[str, Any]:
        action = store.undo()
        return {"done": action is not None, "description": action.description if action else None}

    @app.post("/redo")
    async def redo(auth: None = Depends(verify_token)) -> dict[str, Any]:
        action = store.redo()
        return {"done": action is not None, "description": action.description if action else None}

    return app


def generate_token() -> str:
    """Generate a random bearer token."""
    return secrets.token_urlsafe(32)
