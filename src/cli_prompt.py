"""Interactive front-end for values not given on the command line."""

from __future__ import annotations

from typing import Callable, List, Optional, Sequence

from constants import Constants
from errors import SelectionError

InputFn = Callable[[str], str]


def normalize_action(value: Optional[str]) -> str:
    """Return the canonical action name.

    Accepts the action name or its 1-based menu number.

    Raises:
        SelectionError: If ``value`` names no known action.
    """
    text = (value or "").strip().lower()
    if text.isdigit():
        index = int(text) - 1
        if 0 <= index < len(Constants.ACTIONS):
            return Constants.ACTIONS[index]
    if text in Constants.ACTIONS:
        return text
    raise SelectionError(
        f"Invalid action {value!r}; choose one of: {', '.join(Constants.ACTIONS)}"
    )


def prompt_action(input_fn: InputFn = input) -> str:
    lines = [f"  {i}) {name}" for i, name in enumerate(Constants.ACTIONS, start=1)]
    answer = input_fn("Select an action:\n" + "\n".join(lines) + "\n> ")
    return normalize_action(answer)


def prompt_path(input_fn: InputFn = input) -> str:
    answer = input_fn("Directory for downloaded packages: ").strip()
    if not answer:
        raise SelectionError("A directory is required.")
    return answer


def select_module_root(candidates: Sequence[str], selection: str) -> str:
    """Return ``candidates[selection]`` for a 0-based index given as text.

    Raises:
        SelectionError: If ``selection`` is not a valid index into ``candidates``.
    """
    try:
        index = int(selection.strip())
    except (AttributeError, ValueError) as exc:
        raise SelectionError(f"Module root selection {selection!r} is not a number") from exc
    if not 0 <= index < len(candidates):
        raise SelectionError(
            f"Module root selection {index} is out of range (0-{len(candidates) - 1})"
        )
    return candidates[index]


def prompt_module_root(candidates: List[str], input_fn: InputFn = input) -> str:
    """Ask once which module root to install into."""
    if not candidates:
        raise SelectionError("No module path roots available; pass --module-root.")
    lines = [f"  [{i}] {path}" for i, path in enumerate(candidates)]
    answer = input_fn("Install modules into which path?\n" + "\n".join(lines) + "\n> ")
    return select_module_root(candidates, answer)
