from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import List, Literal, Optional, TypeVar

from domain.models import ArtboardComponent, Widget, ZOrderOperation

T = TypeVar("T")

LayerDirection = Literal["up", "down"]

_OPERATION_ALIASES = {
    "front": ZOrderOperation.BRING_TO_FRONT,
    "back": ZOrderOperation.SEND_TO_BACK,
    "forward": ZOrderOperation.BRING_FORWARD,
    "backward": ZOrderOperation.SEND_BACKWARD,
    "bringtofront": ZOrderOperation.BRING_TO_FRONT,
    "sendtoback": ZOrderOperation.SEND_TO_BACK,
    "bringforward": ZOrderOperation.BRING_FORWARD,
    "sendbackward": ZOrderOperation.SEND_BACKWARD,
}


def parse_z_order_operation(value: str | ZOrderOperation) -> ZOrderOperation:
    if isinstance(value, ZOrderOperation):
        return value
    normalized = str(value).strip().lower().replace("-", "_")
    try:
        return ZOrderOperation(normalized)
    except ValueError:
        pass
    alias = _OPERATION_ALIASES.get(normalized.replace("_", ""))
    if alias is None:
        msg = f"Unknown z-order operation: {value!r}"
        raise ValueError(msg)
    return alias


def update_z_order(
    items: Sequence[T],
    target_id: str,
    operation: ZOrderOperation,
    *,
    get_id: Callable[[T], str],
    get_z: Callable[[T], int],
    set_z: Callable[[T, int], T],
) -> List[T]:
    """Restack ``items`` and renumber every z index to its position, bottom first.

    Unknown ids and moves past either end leave the order unchanged; the
    indices are still normalised to 0..n-1.
    """
    ordered = sorted(items, key=get_z)
    index = next((i for i, item in enumerate(ordered) if get_id(item) == target_id), None)
    if index is not None:
        last = len(ordered) - 1
        if operation == ZOrderOperation.BRING_TO_FRONT and index < last:
            ordered.append(ordered.pop(index))
        elif operation == ZOrderOperation.SEND_TO_BACK and index > 0:
            ordered.insert(0, ordered.pop(index))
        elif operation == ZOrderOperation.BRING_FORWARD and index < last:
            ordered[index], ordered[index + 1] = ordered[index + 1], ordered[index]
        elif operation == ZOrderOperation.SEND_BACKWARD and index > 0:
            ordered[index], ordered[index - 1] = ordered[index - 1], ordered[index]
    return [set_z(item, z) for z, item in enumerate(ordered)]


def update_component_z_order(
    components: Sequence[ArtboardComponent],
    instance_id: str,
    operation: ZOrderOperation,
) -> List[ArtboardComponent]:
    return update_z_order(
        components,
        instance_id,
        operation,
        get_id=lambda component: component.instance_id,
        get_z=lambda component: component.position.z_index,
        set_z=lambda component, z: component.model_copy(
            update={"position": component.position.model_copy(update={"z_index": z})}
        ),
    )


def update_widget_z_order(
    widgets: Sequence[Widget],
    widget_id: str,
    operation: ZOrderOperation,
) -> List[Widget]:
    return update_z_order(
        widgets,
        widget_id,
        operation,
        get_id=lambda widget: widget.id,
        get_z=lambda widget: widget.z_index,
        set_z=lambda widget, z: widget.model_copy(update={"z_index": z}),
    )


def update_stack_order(order: Sequence[str], target_id: str, operation: ZOrderOperation) -> List[str]:
    """Same restacking for a bottom-to-top list of ids such as the artboard stack."""
    positions = {item_id: index for index, item_id in enumerate(order)}
    return update_z_order(
        list(order),
        target_id,
        operation,
        get_id=lambda item_id: item_id,
        get_z=lambda item_id: positions[item_id],
        set_z=lambda item_id, _z: item_id,
    )


def bring_to_front_order(order: Sequence[str], target_id: str) -> List[str]:
    return [item_id for item_id in order if item_id != target_id] + [target_id]


def move_layer(order: Sequence[str], target_id: str, direction: LayerDirection) -> List[str]:
    if target_id not in order:
        return list(order)
    index = order.index(target_id)
    new_index = index + 1 if direction == "up" else index - 1
    if new_index < 0 or new_index >= len(order):
        return list(order)
    result = list(order)
    result.insert(new_index, result.pop(index))
    return result


def z_order_from_shortcut(
    key: str,
    ctrl: bool = False,
    meta: bool = False,
    shift: bool = False,
) -> Optional[ZOrderOperation]:
    if not (ctrl or meta):
        return None
    if key == "]":
        return ZOrderOperation.BRING_TO_FRONT if shift else ZOrderOperation.BRING_FORWARD
    if key == "[":
        return ZOrderOperation.SEND_TO_BACK if shift else ZOrderOperation.SEND_BACKWARD
    return None
