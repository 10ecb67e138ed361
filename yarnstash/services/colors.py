"""Interpretation of the "current color" input.

Typing ``StoneGray --> Light Blue`` into the current-color field means the
yarn is StoneGray today and will be dyed Light Blue: the right-hand side
becomes the next color and the dye state is forced to ``TO_BE_DYED``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from yarnstash.models import DyeState

DYE_DELIMITER = "-->"
_DELIMITER_RE = re.compile(r"\s*-->\s*")


@dataclass(frozen=True)
class ColorInput:
    current_color: str
    next_color: str | None = None
    forced_dye_state: DyeState | None = None

    @property
    def plans_dye(self) -> bool:
        return self.forced_dye_state is not None


def interpret_color_input(raw: str) -> ColorInput:
    """Split ``raw`` on the first ``-->``, if there is one."""
    if DYE_DELIMITER not in raw:
        return ColorInput(current_color=raw)

    current, upcoming = _DELIMITER_RE.split(raw, maxsplit=1)
    return ColorInput(
        current_color=current.strip(),
        next_color=upcoming.strip(),
        forced_dye_state=DyeState.TO_BE_DYED,
    )


def apply_color_input(fields: dict[str, Any]) -> dict[str, Any]:
    """Rewrite color/dye fields of a create or update mapping in place.

    Only acts when ``current_color`` is present and non-null. Without the
    delimiter, ``next_color`` and ``dye_state`` keep whatever the mapping
    already says (or stay absent); nothing is cleared implicitly.
    """
    raw = fields.get("current_color")
    if raw is None:
        return fields

    parsed = interpret_color_input(raw)
    fields["current_color"] = parsed.current_color
    if parsed.plans_dye:
        fields["next_color"] = parsed.next_color
        fields["dye_state"] = parsed.forced_dye_state
    return fields
