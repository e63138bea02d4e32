# Overview: Detached, validated snapshot of a catalog discount used by the engine.

from __future__ import annotations

from dataclasses import dataclass, replace

from .discount_context import VALID_DISCOUNT_TYPES
from .discount_errors import DiscountValidationError
from .discount_scopes import ScopeTarget, target_from_discount


@dataclass(frozen=True)
class DiscountRule:
    id: int
    name: str
    discount_type: str
    value: int
    target: ScopeTarget
    is_automatic: bool = False
    priority: int = 0
    stack_priority: int = 0
    is_stackable: bool = False
    requires_approval: bool = False
    apply_before_tax: bool = True
    max_discount_cents: int | None = None
    customer_discount_id: int | None = None

    @property
    def scope(self) -> str:
        return self.target.scope

    @property
    def is_customer_assignment(self) -> bool:
        return self.customer_discount_id is not None

    @classmethod
    def from_model(cls, discount) -> "DiscountRule":
        """
        Snapshot a Discount row.

        Raises:
            DiscountValidationError: the row cannot be evaluated (unknown
                type or scope, BOGO without quantities)
        """
        if discount.discount_type not in VALID_DISCOUNT_TYPES:
            raise DiscountValidationError(
                f"Invalid discount type: {discount.discount_type}. Must be one of {VALID_DISCOUNT_TYPES}",
                details={"discount_id": discount.id},
            )
        try:
            target = target_from_discount(discount)
        except DiscountValidationError as exc:
            raise DiscountValidationError(str(exc), details={"discount_id": discount.id}) from exc

        return cls(
            id=discount.id,
            name=discount.name,
            discount_type=discount.discount_type,
            value=discount.discount_value or 0,
            target=target,
            is_automatic=discount.is_automatic,
            priority=discount.priority or 0,
            stack_priority=discount.stack_priority or 0,
            is_stackable=discount.is_stackable,
            requires_approval=discount.requires_approval,
            apply_before_tax=discount.apply_before_tax,
            max_discount_cents=discount.max_discount_cents,
        )

    def for_customer_assignment(self, customer_discount_id: int, priority_boost: int) -> "DiscountRule":
        """Customer-assigned variant: always automatic, outranks the catalog rule."""
        return replace(
            self,
            is_automatic=True,
            priority=self.priority + priority_boost,
            customer_discount_id=customer_discount_id,
        )
