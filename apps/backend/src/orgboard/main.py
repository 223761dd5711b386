import logging
import threading
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .models import (
    BreadcrumbRequest,
    BreadcrumbResponse,
    CommandBatchRequest,
    CommandBatchResponse,
    HealthResponse,
    HierarchyResponse,
    LayerColorsRequest,
    MoveNodeRequest,
    NodeUpdateRequest,
    PositionsRequest,
    WhiteboardCreateRequest,
)
from .whiteboard.breadcrumbs import normalize_breadcrumb_ids
from .whiteboard.hierarchy import (
    NODE_TYPE_LABELS,
    get_allowed_child_types,
    get_node_layer_color,
)
from .whiteboard.schema import (
    BoardKind,
    CreateNodeInput,
    NodeType,
    UpdateNodeInput,
    Whiteboard,
    WhiteboardNode,
    create_whiteboard,
)
from .whiteboard.session import WhiteboardSession
from .whiteboard.store import WhiteboardStore
from .whiteboard.template import OrgTemplate, build_whiteboard_from_template
from .whiteboard.tree import find_node_by_id

load_dotenv()

settings = get_settings()
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Org Whiteboard API",
    description="Build and edit typed organisation hierarchies on a canvas",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

BACKEND_DIR = Path(__file__).resolve().parents[2]
WHITEBOARDS_DIR = settings.data_dir or BACKEND_DIR / "whiteboards"

whiteboard_store = WhiteboardStore(WHITEBOARDS_DIR)

# One editing session per board; every edit to a board goes through it.
_sessions: dict[str, WhiteboardSession] = {}
_sessions_lock = threading.Lock()


def _dump(whiteboard: Whiteboard) -> dict:
    return whiteboard.model_dump(mode="json", by_alias=True)


def _load_whiteboard(whiteboard_id: str) -> Whiteboard:
    try:
        whiteboard = whiteboard_store.load(whiteboard_id)
    except ValueError as exc:
        # TreeIntegrityError, pydantic ValidationError and JSONDecodeError
        logger.error("Whiteboard %s could not be loaded: %s", whiteboard_id, exc)
        raise HTTPException(status_code=500, detail="Stored whiteboard is corrupt") from exc
    if whiteboard is None:
        raise HTTPException(status_code=404, detail="Whiteboard not found")
    return whiteboard


def _persist(whiteboard: Whiteboard) -> None:
    whiteboard_store.save(whiteboard)


def _session(whiteboard_id: str) -> WhiteboardSession:
    """Return the board's editing session, opening it from the store if needed."""
    with _sessions_lock:
        session = _sessions.get(whiteboard_id)
        if session is None:
            session = WhiteboardSession(
                _load_whiteboard(whiteboard_id),
                history_limit=settings.history_limit,
                on_change=_persist,
            )
            _sessions[whiteboard_id] = session
        return session


def _require_node(session: WhiteboardSession, node_id: str) -> WhiteboardNode:
    node = find_node_by_id(session.root, node_id)
    if node is None:
        raise HTTPException(status_code=404, detail=f"Node '{node_id}' not found")
    return node


def _rejected(session: WhiteboardSession, action: str) -> HTTPException:
    logger.info("Whiteboard %s: %s rejected", session.whiteboard.id, action)
    return HTTPException(
        status_code=409,
        detail=f"{action} rejected: the hierarchy does not allow this change",
    )


def _hierarchy(board_kind: BoardKind, layer_colors: Optional[dict] = None) -> dict:
    response = HierarchyResponse(
        board_kind=board_kind,
        allowed_children={
            node_type: list(get_allowed_child_types(node_type, board_kind))
            for node_type in NodeType
        },
        labels=dict(NODE_TYPE_LABELS),
        colors={
            node_type: get_node_layer_color(node_type, layer_colors)
            for node_type in NodeType
        },
    )
    return response.model_dump(mode="json", by_alias=True)


@app.get("/api/health", response_model=HealthResponse)
def health():
    return HealthResponse(status="ok")


@app.get("/api/hierarchy")
def get_hierarchy(board_kind: BoardKind = BoardKind.ORGANISATION):
    return _hierarchy(board_kind)


# --- Whiteboards ---

@app.post("/api/whiteboards")
def create_whiteboard_endpoint(request: WhiteboardCreateRequest):
    whiteboard = create_whiteboard(
        name=request.name,
        description=request.description,
        kind=request.kind or settings.default_board_kind,
    )
    whiteboard_store.save(whiteboard)
    return _dump(whiteboard)


@app.post("/api/whiteboards/from-template")
def create_whiteboard_from_template(template: OrgTemplate):
    whiteboard = build_whiteboard_from_template(template)
    whiteboard_store.save(whiteboard)
    return _dump(whiteboard)


@app.get("/api/whiteboards")
def list_whiteboards():
    return [_dump(wb) for wb in whiteboard_store.list_whiteboards()]


@app.get("/api/whiteboards/{whiteboard_id}")
def get_whiteboard(whiteboard_id: str):
    return _dump(_load_whiteboard(whiteboard_id))


@app.delete("/api/whiteboards/{whiteboard_id}")
def delete_whiteboard(whiteboard_id: str):
    with _sessions_lock:
        session = _sessions.pop(whiteboard_id, None)
    if session is None:
        deleted = whiteboard_store.delete(whiteboard_id)
    else:
        with session.lock:
            deleted = whiteboard_store.delete(whiteboard_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Whiteboard not found")
    return {"status": "deleted", "whiteboardId": whiteboard_id}


@app.get("/api/whiteboards/{whiteboard_id}/hierarchy")
def get_whiteboard_hierarchy(whiteboard_id: str):
    """Rule table for the board's kind, with the board's own colour overrides."""
    whiteboard = _session(whiteboard_id).whiteboard
    return _hierarchy(whiteboard.kind, whiteboard.layer_colors)


@app.put("/api/whiteboards/{whiteboard_id}/layer-colors")
def set_layer_colors(whiteboard_id: str, request: LayerColorsRequest):
    session = _session(whiteboard_id)
    with session.lock:
        session.set_layer_colors(request.layer_colors)
        return _dump(session.whiteboard)


# --- Nodes ---

@app.post("/api/whiteboards/{whiteboard_id}/nodes")
def add_node(whiteboard_id: str, request: CreateNodeInput):
    session = _session(whiteboard_id)
    with session.lock:
        parent_id = request.parent_id or session.root.id
        _require_node(session, parent_id)
        if not session.create_node(request):
            raise _rejected(session, "add_node")
        node = find_node_by_id(session.root, parent_id).children[-1]
        return {"whiteboard": _dump(session.whiteboard), "nodeId": node.id}


@app.patch("/api/whiteboards/{whiteboard_id}/nodes/{node_id}")
def update_node(whiteboard_id: str, node_id: str, request: NodeUpdateRequest):
    session = _session(whiteboard_id)
    with session.lock:
        _require_node(session, node_id)
        node_input = UpdateNodeInput(id=node_id, **request.model_dump(exclude_unset=True))
        if not session.update_node(node_input):
            raise _rejected(session, "update_node")
        return _dump(session.whiteboard)


@app.delete("/api/whiteboards/{whiteboard_id}/nodes/{node_id}")
def delete_node(whiteboard_id: str, node_id: str):
    session = _session(whiteboard_id)
    with session.lock:
        _require_node(session, node_id)
        if not session.delete_node(node_id):
            raise _rejected(session, "delete_node")
        return _dump(session.whiteboard)


@app.post("/api/whiteboards/{whiteboard_id}/nodes/{node_id}/move")
def move_node(whiteboard_id: str, node_id: str, request: MoveNodeRequest):
    session = _session(whiteboard_id)
    with session.lock:
        _require_node(session, node_id)
        _require_node(session, request.new_parent_id)
        if not session.move_node(node_id, request.new_parent_id):
            raise _rejected(session, "move_node")
        return _dump(session.whiteboard)


@app.put("/api/whiteboards/{whiteboard_id}/positions")
def set_positions(whiteboard_id: str, request: PositionsRequest):
    """Unknown ids are ignored; a batch that matches nothing returns the board as is."""
    session = _session(whiteboard_id)
    with session.lock:
        session.set_positions(request.positions)
        return _dump(session.whiteboard)


@app.post("/api/whiteboards/{whiteboard_id}/commands")
def apply_command_batch(whiteboard_id: str, request: CommandBatchRequest):
    """Apply a batch of edits; rejected steps are reported, not raised."""
    session = _session(whiteboard_id)
    with session.lock:
        results = session.apply_commands(request.commands)
        response = CommandBatchResponse(whiteboard=session.whiteboard, results=results)
        return response.model_dump(mode="json", by_alias=True)


@app.post("/api/whiteboards/{whiteboard_id}/undo")
def undo(whiteboard_id: str):
    session = _session(whiteboard_id)
    with session.lock:
        if not session.undo():
            raise HTTPException(status_code=409, detail="Nothing to undo")
        return _dump(session.whiteboard)


@app.post("/api/whiteboards/{whiteboard_id}/redo")
def redo(whiteboard_id: str):
    session = _session(whiteboard_id)
    with session.lock:
        if not session.redo():
            raise HTTPException(status_code=409, detail="Nothing to redo")
        return _dump(session.whiteboard)


@app.post("/api/whiteboards/{whiteboard_id}/breadcrumbs")
def normalize_breadcrumbs(whiteboard_id: str, request: BreadcrumbRequest):
    root = _session(whiteboard_id).root
    ids = normalize_breadcrumb_ids(root, request.breadcrumb_ids)
    return BreadcrumbResponse(breadcrumb_ids=ids).model_dump(by_alias=True)
