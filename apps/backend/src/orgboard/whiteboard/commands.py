"""Batch application of node commands.

This is how a proposed draft (from the org builder agent or a client replaying
edits) reaches the tree: an ordered list of add/update/delete/move/positions
commands, each run through the tree engine in turn. A step that the engine
rejects is skipped and reported; the rest of the batch still runs.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import Field, TypeAdapter, ValidationError

from .schema import BoardKind, CamelModel, CreateNodeInput, Position, UpdateNodeInput, WhiteboardNode
from .tree import (
    add_node_to_tree,
    delete_node_from_tree,
    find_node_by_id,
    reparent_node_in_tree,
    set_node_positions_in_tree,
    update_node_in_tree,
)


class AddNodeCommand(CreateNodeInput):
    """Insert a node. ``ref`` names it for later commands in the same batch."""

    op: Literal["add"] = "add"
    ref: Optional[str] = None


class UpdateNodeCommand(UpdateNodeInput):
    op: Literal["update"] = "update"


class DeleteNodeCommand(CamelModel):
    op: Literal["delete"] = "delete"
    id: str


class MoveNodeCommand(CamelModel):
    op: Literal["move"] = "move"
    id: str
    new_parent_id: str


class SetPositionsCommand(CamelModel):
    op: Literal["positions"] = "positions"
    positions: dict[str, Position]


NodeCommand = Annotated[
    Union[
        AddNodeCommand,
        UpdateNodeCommand,
        DeleteNodeCommand,
        MoveNodeCommand,
        SetPositionsCommand,
    ],
    Field(discriminator="op"),
]

_COMMAND_TYPES = (
    AddNodeCommand,
    UpdateNodeCommand,
    DeleteNodeCommand,
    MoveNodeCommand,
    SetPositionsCommand,
)

_command_adapter = TypeAdapter(NodeCommand)


class CommandResult(CamelModel):
    """Outcome of one step of a batch."""

    index: int
    op: str
    applied: bool
    node_id: Optional[str] = None
    ref: Optional[str] = None


def parse_command(value: Union[NodeCommand, Mapping[str, Any]]) -> NodeCommand:
    """Validate a plain mapping into a command model. Raises ValidationError."""
    if isinstance(value, _COMMAND_TYPES):
        return value
    return _command_adapter.validate_python(value)


def apply_commands(
    root: WhiteboardNode,
    commands: Sequence[Union[NodeCommand, Mapping[str, Any]]],
    board_kind: BoardKind = BoardKind.ORGANISATION,
    *,
    now: Optional[datetime] = None,
) -> tuple[WhiteboardNode, list[CommandResult]]:
    """Apply *commands* in order and return the final root plus per-step results."""
    refs: dict[str, str] = {}
    results: list[CommandResult] = []

    def resolve(node_id: str) -> str:
        return refs.get(node_id, node_id)

    for index, raw in enumerate(commands):
        try:
            command = parse_command(raw)
        except ValidationError:
            op = raw.get("op", "unknown") if isinstance(raw, Mapping) else "unknown"
            results.append(CommandResult(index=index, op=str(op), applied=False))
            continue

        before = root
        node_id: Optional[str] = None

        if isinstance(command, AddNodeCommand):
            parent_id = resolve(command.parent_id) if command.parent_id else root.id
            root = add_node_to_tree(
                root,
                command.model_copy(update={"parent_id": parent_id}),
                board_kind,
                now=now,
            )
            if root is not before:
                node_id = find_node_by_id(root, parent_id).children[-1].id
                if command.ref:
                    refs[command.ref] = node_id
            results.append(
                CommandResult(
                    index=index,
                    op=command.op,
                    applied=root is not before,
                    node_id=node_id,
                    ref=command.ref,
                )
            )
            continue

        if isinstance(command, UpdateNodeCommand):
            node_id = resolve(command.id)
            root = update_node_in_tree(
                root, command.model_copy(update={"id": node_id}), now=now
            )
        elif isinstance(command, DeleteNodeCommand):
            node_id = resolve(command.id)
            root = delete_node_from_tree(root, node_id)
        elif isinstance(command, MoveNodeCommand):
            node_id = resolve(command.id)
            root = reparent_node_in_tree(
                root, node_id, resolve(command.new_parent_id), board_kind, now=now
            )
        else:
            positions = {resolve(key): value for key, value in command.positions.items()}
            root = set_node_positions_in_tree(root, positions, now=now)

        results.append(
            CommandResult(
                index=index,
                op=command.op,
                applied=root is not before,
                node_id=node_id,
            )
        )

    return root, results
