"""Validation of generated trading-partner records."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from masterdata.domain.model import Entity


class TradingPartnerRecord(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    masterid: str = Field(min_length=1)
    name: str = Field(min_length=1)
    external_ids: list[str] = Field(default_factory=list, alias="externalIds")
    type: str | None = None
    source: str | None = None


def validate_trading_partner(entity: Entity) -> None:
    """Raise ``pydantic.ValidationError`` unless ``entity`` is a usable trading partner."""

    TradingPartnerRecord.model_validate(entity.to_document())
