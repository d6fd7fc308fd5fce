"""
Scripted gesture playback.

A gesture script is a YAML file listing input events in arrival order. It
drives a :class:`~prokon.session.VisualizerSession` without a display,
which is handy for reproducing masks and for regression checks.

Example::

    container: [800, 600]
    tool: brush
    brush_size: 40
    events:
      - {type: press, points: [[120, 140]]}
      - {type: move, points: [[180, 150]]}
      - {type: release}
      - {type: zoom, delta: 0.2}
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Literal, Optional, Tuple, Union

import yaml
from pydantic import BaseModel, Field, conint, field_validator, model_validator

from .core.gestures import InteractionMode
from .core.mask import Tool
from .session import VisualizerSession, VisualizerTab

logger = logging.getLogger(__name__)

EventType = Literal["press", "move", "release", "tool", "mode", "tab", "brush", "zoom", "clear", "fit"]


class ScriptEvent(BaseModel):
    """One recorded input or control event."""

    type: EventType
    points: List[Tuple[float, float]] = Field(default_factory=list, description="Client-space pointer positions")
    value: Optional[str] = Field(default=None, description="Tool, mode or tab name")
    size: Optional[int] = Field(default=None, description="Brush width for 'brush' events")
    delta: Optional[float] = Field(default=None, description="Scale delta for 'zoom' events")

    @model_validator(mode="after")
    def _validate_payload(self) -> "ScriptEvent":
        if self.type in ("press", "move") and not self.points:
            raise ValueError(f"'{self.type}' events require at least one point")
        if self.type in ("tool", "mode", "tab") and self.value is None:
            raise ValueError(f"'{self.type}' events require 'value'")
        if self.type == "brush" and self.size is None:
            raise ValueError("'brush' events require 'size'")
        if self.type == "zoom" and self.delta is None:
            raise ValueError("'zoom' events require 'delta'")
        return self


class GestureScript(BaseModel):
    container: Tuple[conint(gt=0), conint(gt=0)] = Field(default=(800, 600), description="(width, height)")
    origin: Tuple[float, float] = Field(default=(0.0, 0.0), description="Container origin in client space")
    tool: Tool = Tool.BRUSH
    mode: InteractionMode = InteractionMode.DRAW
    brush_size: Optional[int] = None
    events: List[ScriptEvent] = Field(default_factory=list)

    @field_validator("events")
    @classmethod
    def _require_events(cls, value: List[ScriptEvent]) -> List[ScriptEvent]:
        if not value:
            raise ValueError("A gesture script needs at least one event")
        return value


def load_gesture_script(path: Union[str, Path]) -> GestureScript:
    script_path = Path(path).resolve()
    if not script_path.exists():
        raise FileNotFoundError(f"Gesture script not found: {script_path}")
    with script_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}
    return GestureScript.model_validate(raw)


def _shift(points: List[Tuple[float, float]], origin: Tuple[float, float]) -> List[Tuple[float, float]]:
    return [(x + origin[0], y + origin[1]) for x, y in points]


def replay(session: VisualizerSession, script: GestureScript) -> None:
    """Feed every scripted event through the session in order.

    Event points are relative to the container; they are shifted by
    ``script.origin`` so the same client-space conversion the GUI uses
    applies here too.
    """
    session.set_container_size(*script.container)
    session.request_fit()
    session.painter.tool = script.tool
    session.set_mode(script.mode)
    if script.brush_size is not None:
        session.painter.brush_size = script.brush_size

    origin = script.origin
    gestures = session.gestures
    for index, event in enumerate(script.events):
        kind = event.type
        if kind == "press":
            gestures.press(_shift(event.points, origin), origin)
        elif kind == "move":
            gestures.move(_shift(event.points, origin), origin)
        elif kind == "release":
            gestures.release()
        elif kind == "tool":
            session.painter.tool = Tool(event.value)
        elif kind == "mode":
            session.set_mode(InteractionMode(event.value))
        elif kind == "tab":
            session.set_tab(VisualizerTab(event.value))
        elif kind == "brush":
            session.painter.brush_size = event.size
        elif kind == "zoom":
            session.viewport.zoom_by(event.delta)
        elif kind == "clear":
            session.clear_mask()
        elif kind == "fit":
            session.request_fit()
        logger.debug(
            "Event %d (%s): phase=%s scale=%.3f offset=%s",
            index,
            kind,
            gestures.phase.value,
            session.viewport.scale,
            session.viewport.offset,
        )
    gestures.release()
