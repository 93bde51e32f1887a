from __future__ import annotations

from typing import Optional, Protocol

from .model import MaterialAttendanceConfig


class MaterialRepository(Protocol):
    def get_config(self, material_id: int) -> Optional[MaterialAttendanceConfig]:
        raise NotImplementedError
