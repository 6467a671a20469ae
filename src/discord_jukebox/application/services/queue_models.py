"""DTOs for the queue driver."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from ...domain.shared.types import NonNegativeInt


class EnqueueResult(BaseModel):
    """Where an entry landed.

    ``started`` is true when the driver was idle and claimed the entry
    straight away; ``position`` is then 0 and the entry is no longer pending.
    """

    model_config = ConfigDict(frozen=True)

    position: NonNegativeInt = 0
    started: bool = False
