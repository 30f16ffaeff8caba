"""Pricing Catalog

Static mapping between opaque Stripe identifiers and internal semantics:
credit packages (package id -> credit amount) and subscription plans
(Stripe price id -> plan tier). Lookups fail closed: an unknown identifier
yields None and is logged as a configuration gap.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional
from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)


class CreditPackage(BaseModel):
    """One-time credit package sold through checkout"""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    credits: int
    bonus: int = 0
    price_id: Optional[str] = None

    @property
    def total_credits(self) -> Decimal:
        return Decimal(self.credits + self.bonus)


class SubscriptionPlan(BaseModel):
    """Recurring plan tier"""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    images_per_month: int = 0
    price_id: Optional[str] = None


class PricingCatalog:
    """Read-only pricing table built from configuration"""

    def __init__(
        self,
        packages: Mapping[str, Mapping[str, Any]],
        plans: Mapping[str, Mapping[str, Any]],
    ):
        self._packages: Dict[str, CreditPackage] = {
            package_id: CreditPackage(id=package_id, **values)
            for package_id, values in (packages or {}).items()
        }
        self._plans: Dict[str, SubscriptionPlan] = {
            plan_id: SubscriptionPlan(id=plan_id, **values)
            for plan_id, values in (plans or {}).items()
        }
        self._plans_by_price: Dict[str, SubscriptionPlan] = {
            plan.price_id: plan for plan in self._plans.values() if plan.price_id
        }
        self._packages_by_price: Dict[str, CreditPackage] = {
            package.price_id: package for package in self._packages.values() if package.price_id
        }

    @classmethod
    def from_config(cls, config) -> "PricingCatalog":
        return cls(config.CREDIT_PACKAGES, config.SUBSCRIPTION_PLANS)

    def get_package(self, package_id: Optional[str]) -> Optional[CreditPackage]:
        package = self._packages.get(package_id) if package_id else None
        if package is None:
            logger.warning(f"Configuration gap: unknown credit package {package_id!r}")
        return package

    def package_for_price(self, price_id: Optional[str]) -> Optional[CreditPackage]:
        package = self._packages_by_price.get(price_id) if price_id else None
        if package is None:
            logger.warning(f"Configuration gap: Stripe price {price_id!r} is not mapped to a credit package")
        return package

    def package_for_checkout(
        self, package_id: Optional[str], price_id: Optional[str] = None
    ) -> Optional[CreditPackage]:
        """
        Package bought in a checkout session

        The packageId stamped into metadata wins; sessions created elsewhere
        (payment links, dashboard) are matched by the price they sold.
        """
        if package_id:
            return self.get_package(package_id)
        return self.package_for_price(price_id)

    def credits_for_package(self, package_id: Optional[str]) -> Decimal:
        """Credits (including bonus) granted for a package, zero if unknown"""
        package = self.get_package(package_id)
        return package.total_credits if package else Decimal("0")

    def get_plan(self, plan_id: Optional[str]) -> Optional[SubscriptionPlan]:
        plan = self._plans.get(plan_id) if plan_id else None
        if plan is None:
            logger.warning(f"Configuration gap: unknown subscription plan {plan_id!r}")
        return plan

    def plan_for_price(self, price_id: Optional[str]) -> Optional[str]:
        """Plan tier for a Stripe price id, None if the price is not mapped"""
        plan = self._plans_by_price.get(price_id) if price_id else None
        if plan is None:
            logger.warning(f"Configuration gap: Stripe price {price_id!r} is not mapped to a plan")
            return None
        return plan.id

    def price_for_plan(self, plan_id: Optional[str]) -> Optional[str]:
        plan = self.get_plan(plan_id)
        return plan.price_id if plan else None
