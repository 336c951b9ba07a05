"""Markup configuration and pricing summary models."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from tripdesk.models.common import MarkupType, SlabBasis


class MarkupSlab(BaseModel):
    """Markup applied when the compared amount lies in [min_amount, max_amount].

    Both bounds are inclusive. ``max_amount=None`` means unbounded.
    """

    model_config = ConfigDict(frozen=True)

    min_amount: float = Field(..., ge=0)
    max_amount: float | None = None
    percentage: float = Field(0.0, ge=0)
    markup_kind: Literal["percentage", "fixed"] = "percentage"
    fixed_amount: float = Field(0.0, ge=0, description="Per-person amount for fixed slabs")
    is_active: bool = True

    @model_validator(mode="after")
    def validate_range(self) -> "MarkupSlab":
        """Ensure max_amount >= min_amount."""
        if self.max_amount is not None and self.max_amount < self.min_amount:
            raise ValueError("max_amount must be >= min_amount")
        return self

    def contains(self, amount: float) -> bool:
        if amount < self.min_amount:
            return False
        return self.max_amount is None or amount <= self.max_amount


class MarkupRule(BaseModel):
    """How markup is derived from a base cost."""

    model_config = ConfigDict(frozen=True)

    type: MarkupType = MarkupType.percentage
    percentage: float = Field(0.0, ge=0)
    fixed_amount: float = Field(0.0, ge=0)
    slabs: tuple[MarkupSlab, ...] = ()
    slab_basis: SlabBasis = SlabBasis.total

    @model_validator(mode="after")
    def validate_slabs_present(self) -> "MarkupRule":
        """Slab rules need at least one slab."""
        if self.type == MarkupType.slab and not self.slabs:
            raise ValueError("slab markup requires at least one slab")
        return self


class PricingSummary(BaseModel):
    """Trip-level price: final_price = base_cost + markup."""

    base_cost: float = 0.0
    markup: float = 0.0
    markup_type: MarkupType = MarkupType.percentage
    final_price: float = 0.0
    currency: str = "USD"
    markup_rule: MarkupRule = Field(default_factory=MarkupRule)

    @model_validator(mode="after")
    def validate_final_price(self) -> "PricingSummary":
        """Ensure final_price = base_cost + markup (to the cent)."""
        if abs(self.final_price - (self.base_cost + self.markup)) > 0.01:
            raise ValueError("final_price must equal base_cost + markup")
        if self.markup_type != self.markup_rule.type:
            raise ValueError("markup_type must match markup_rule.type")
        return self
