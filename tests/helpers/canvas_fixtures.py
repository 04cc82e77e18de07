from __future__ import annotations

from domain.models import ArtboardComponent, ComponentPosition, EntityBounds, Point
from domain.services.interaction import PointerEvent, PointerTarget


def make_component(
    instance_id: str,
    x: float,
    y: float,
    width: float,
    height: float,
    component_type: str = "default",
    z_index: int = 0,
    **extra: object,
) -> ArtboardComponent:
    return ArtboardComponent(
        instance_id=instance_id,
        component_type=component_type,
        position=ComponentPosition(x=x, y=y, width=width, height=height, z_index=z_index),
        **extra,
    )


def bounds(entity_id: str, x: float, y: float, width: float, height: float) -> EntityBounds:
    return EntityBounds(entity_id, x, y, width, height)


def pointer(
    x: float,
    y: float,
    *,
    alt: bool = False,
    shift: bool = False,
    target: PointerTarget = PointerTarget.BODY,
) -> PointerEvent:
    return PointerEvent(screen=Point(x, y), alt=alt, shift=shift, target=target)
