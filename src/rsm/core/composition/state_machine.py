"""Render Markdown documentation for a configured engine.

The document holds a transition table (handler counts per stage) and a
Mermaid ``stateDiagram-v2`` block, rendered from the bundled
``state-machine.md.j2`` template.
"""
from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any, Dict, Hashable, List, Optional

from jinja2 import Environment

from rsm.core.state.events import Stage
from rsm.data import read_text

if TYPE_CHECKING:
    from rsm.core.state.engine import TransitionEngine

_MERMAID_ID_RE = re.compile(r"[^A-Za-z0-9_]")


def _mermaid_id(state: Hashable) -> str:
    """Mermaid state ids must be plain identifiers."""
    label = getattr(state, "value", state)
    ident = _MERMAID_ID_RE.sub("_", str(label))
    return ident or "_"


def _label(state: Hashable) -> str:
    return str(getattr(state, "value", state))


def _rows(engine: "TransitionEngine") -> List[Dict[str, Any]]:
    registry = engine.registry
    rows: List[Dict[str, Any]] = []
    for source, destination in engine.transitions():
        rows.append(
            {
                "source": _label(source),
                "destination": _label(destination),
                "source_id": _mermaid_id(source),
                "destination_id": _mermaid_id(destination),
                "before": registry.count(source, destination, Stage.BEFORE),
                "in_progress": registry.count(source, destination, Stage.IN_PROGRESS),
                "after": registry.count(source, destination, Stage.AFTER),
                "is_current": source == engine.current_state,
            }
        )
    return rows


def _hooks(engine: "TransitionEngine") -> List[str]:
    hooks = []
    for label, handler in engine.hooks().items():
        if handler is not None:
            hooks.append(f"{label}: `{getattr(handler, '__name__', repr(handler))}`")
    return hooks


def render_state_machine_doc(
    engine: "TransitionEngine",
    *,
    title: str = "State Machine",
    initial: Optional[Hashable] = None,
) -> str:
    """Return Markdown describing ``engine``'s transitions.

    Args:
        engine: Engine to document
        title: Document heading
        initial: State the diagram's start marker points at (defaults to the
            current state)
    """
    start = engine.current_state if initial is None else initial
    # Control blocks sit on their own lines; trim so they leave no blank lines.
    env = Environment(trim_blocks=True, lstrip_blocks=True, keep_trailing_newline=True)
    template = env.from_string(read_text("templates", "state-machine.md.j2"))
    return template.render(
        title=title,
        current=_label(engine.current_state),
        initial_id=_mermaid_id(start),
        rows=_rows(engine),
        hooks=_hooks(engine),
    )


__all__ = ["render_state_machine_doc"]
