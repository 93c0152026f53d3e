"""Authenticated caller passed explicitly into every engine operation."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict

from civictask.store.records import Department


class Actor(BaseModel):
    """A field worker or a department admin acting through the API."""

    model_config = ConfigDict(frozen=True)

    uid: str
    name: str = ""
    role: Literal["worker", "department"] = "worker"
    department: Department | None = None

    @property
    def is_department(self) -> bool:
        return self.role == "department"
