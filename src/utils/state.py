from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from utils.config import Settings, get_settings


@dataclass
class GlobalState:
    """
    Application state shared by screens.

    Fields:
      - settings: runtime configuration
      - operator: name shown in the sidebar, defaults to settings.operator
      - editing_quote_id: id of the quote open in the editor, None for a new one
    """

    settings: Settings = field(default_factory=get_settings)
    operator: Optional[str] = None
    editing_quote_id: Optional[str] = None

    def __post_init__(self) -> None:
        if self.operator is None:
            self.operator = self.settings.operator
