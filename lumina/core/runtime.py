from __future__ import annotations

from typing import Any

# Holds runtime singletons (the selected post store, the draft assistant) to avoid circular imports.
store: Any | None = None
assistant: Any | None = None
