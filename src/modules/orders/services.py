"""Order service layer (use cases).

Orchestrates placement, transitions and cancellation.  Every write is one
``transaction.atomic`` unit: the order row is locked, the state machine
validates and mutates it, the repository saves it with a version check and
writes outbox events, then history and points movements follow in the same
transaction.  A completed order therefore never exists without its points
credited.

Business rules enforced:
- Orders hold 1..MAX_ITEMS_PER_ORDER items, quantity >= 1, price >= 0.
- The shop must exist and be active; the subtotal must reach its minimum.
- Points redemption is capped by the commission headroom (soft cap) and
  rejected outright when free delivery leaves no headroom.
- Redeemed points are debited at placement and refunded on cancellation.
- Completion credits earned points and, once, the referrer's bonus.
- An order completing after its week closed moves to the active week, so
  it is settled there and closed settlements stay as written.
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, Any, Dict, List, Optional
from uuid import UUID

import structlog
from django.db import transaction

from modules.core.clock import Clock, SystemClock
from modules.core.conf import baladi_setting
from modules.core.money import ZERO, money_sum, to_money
from modules.orders.commission import shop_commission
from modules.orders.constants import AUTO_REJECT_REASON, ActorRole, OrderStatus
from modules.orders.discounts import (
    build_order_breakdown,
    remaining_commission,
    validate_redemption,
)
from modules.orders.events import (
    OrderCancelled,
    OrderCompleted,
    OrderPlaced,
    OrderStatusChanged,
)
from modules.orders.exceptions import (
    InvalidOrderInput,
    InvalidTransition,
    OrderNotFound,
    StaleState,
)
from modules.orders.state_machine import OrderStateMachine
from modules.points import ledger
from modules.settlements.constants import PeriodStatus
from modules.shops.exceptions import ShopNotFound, ShopUnavailable

if TYPE_CHECKING:
    from modules.orders.dtos import (
        CancelOrderDTO,
        PlaceOrderDTO,
        RedemptionCheckDTO,
        TransitionOrderDTO,
    )
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.points.exceptions import RedemptionError
    from modules.points.services import PointsService
    from modules.settlements.periods import WeekPeriodManager
    from modules.shops.models import Shop
    from modules.shops.repositories.interfaces import IShopRepository

logger = structlog.get_logger(__name__)


class OrderService:
    """Application service for Order use cases.

    Receives repositories and collaborators via constructor injection.
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        shop_repository: IShopRepository,
        points_service: PointsService,
        period_manager: WeekPeriodManager,
        clock: Optional[Clock] = None,
    ) -> None:
        self._order_repo = order_repository
        self._shop_repo = shop_repository
        self._points = points_service
        self._periods = period_manager
        self._clock = clock or SystemClock()
        self._state_machine = OrderStateMachine(
            clock=self._clock,
            auto_reject_after=timedelta(
                minutes=baladi_setting("ORDER_AUTO_REJECT_MINUTES")
            ),
        )

    @property
    def state_machine(self) -> OrderStateMachine:
        return self._state_machine

    # ------------------------------------------------------------------
    # Placement
    # ------------------------------------------------------------------

    @transaction.atomic
    def place_order(self, dto: PlaceOrderDTO) -> Order:
        """Validate, price and persist a new ``pending`` order.

        Raises:
            InvalidOrderInput: item count, quantity, price or minimum order.
            ShopNotFound / ShopUnavailable: unknown or inactive shop.
            NoCommissionHeadroom: points requested on a fully consumed
                commission.
        """
        log = logger.bind(customer_id=str(dto.customer_id), shop_id=str(dto.shop_id))
        log.info("order.placement_started")

        if dto.idempotency_key:
            existing = self._order_repo.get_by_idempotency_key(dto.idempotency_key)
            if existing:
                log.info(
                    "order.idempotency_hit",
                    order_id=str(existing.id),
                    key=dto.idempotency_key,
                )
                return existing

        self._validate_items(dto)
        shop = self._get_available_shop(dto.shop_id)

        subtotal = money_sum(
            to_money(item.unit_price) * item.quantity for item in dto.items
        )
        if subtotal < shop.minimum_order:
            raise InvalidOrderInput(
                f"Order subtotal {subtotal} is below the shop minimum of "
                f"{shop.minimum_order}.",
                subtotal=subtotal,
                minimum_order=shop.minimum_order,
            )

        balance = self._points.balance(dto.customer_id)
        breakdown = build_order_breakdown(
            subtotal=subtotal,
            delivery_fee=shop.delivery_fee,
            commission_rate=shop.commission_rate,
            requested_points=dto.points_requested,
            customer_balance=balance,
            is_free_delivery=dto.is_free_delivery,
            point_value=baladi_setting("POINT_VALUE"),
            minimum_platform_commission=baladi_setting("MINIMUM_PLATFORM_COMMISSION"),
            currency_per_earned_point=baladi_setting("CURRENCY_PER_EARNED_POINT"),
        )
        period = self._periods.ensure_active_period()
        discount = breakdown.discount
        commission = breakdown.commission

        order = self._order_repo.create(
            {
                "customer_id": dto.customer_id,
                "shop": shop,
                "week_period": period,
                "created_at": self._clock.now(),
                "subtotal": breakdown.subtotal,
                "delivery_fee": breakdown.delivery_fee,
                "is_free_delivery": dto.is_free_delivery,
                "points_used": discount.points_used,
                "points_discount": discount.points_discount,
                "total_amount": discount.customer_payable,
                "commission_rate": commission.commission_rate,
                "shop_commission": commission.shop_commission,
                "platform_commission": commission.platform_commission,
                "points_earned": breakdown.points_earned,
                "notes": dto.notes or "",
                "idempotency_key": dto.idempotency_key,
                "items": [
                    {
                        "product_id": item.product_id,
                        "product_name": item.product_name,
                        "unit_price": to_money(item.unit_price),
                        "quantity": item.quantity,
                    }
                    for item in dto.items
                ],
            }
        )
        order.add_domain_event(
            OrderPlaced(
                aggregate_id=order.id,
                payload={
                    "order_number": order.order_number,
                    "shop_id": str(shop.id),
                    "customer_id": str(dto.customer_id),
                    "total_amount": str(order.total_amount),
                    "points_used": order.points_used,
                },
            )
        )
        self._order_repo.record_events(order)
        self._order_repo.add_history(
            order_id=order.id,
            new_status=OrderStatus.PENDING,
            actor_role=ActorRole.CUSTOMER,
            notes="Order placed",
        )

        if discount.points_used:
            self._points.redeem(dto.customer_id, discount.points_used, order.id)

        log.info(
            "order.placed",
            order_id=str(order.id),
            order_number=order.order_number,
            subtotal=str(order.subtotal),
            total_amount=str(order.total_amount),
            points_requested=dto.points_requested,
            points_used=order.points_used,
            platform_commission=str(order.platform_commission),
        )
        return self._order_repo.get_by_id(str(order.id)) or order

    def check_redemption(self, dto: RedemptionCheckDTO) -> Dict[str, Any]:
        """Pre-flight points check for a prospective order.

        Returns the maximum redeemable points and the error the exact
        request would hit (``None`` if it would be honored in full).
        """
        shop = self._get_available_shop(dto.shop_id)
        balance = self._points.balance(dto.customer_id)
        subtotal = to_money(dto.subtotal)
        point_value = baladi_setting("POINT_VALUE")
        minimum = baladi_setting("MINIMUM_PLATFORM_COMMISSION")

        commission = shop_commission(subtotal, shop.commission_rate)
        free_delivery_cost = shop.delivery_fee if dto.is_free_delivery else ZERO
        headroom = remaining_commission(commission, free_delivery_cost, minimum)

        error: Optional[RedemptionError] = validate_redemption(
            subtotal=subtotal,
            delivery_fee=shop.delivery_fee,
            commission_rate=shop.commission_rate,
            requested_points=dto.points_requested,
            customer_balance=balance,
            is_free_delivery=dto.is_free_delivery,
            point_value=point_value,
            minimum_platform_commission=minimum,
        )
        return {
            "available_points": balance,
            "max_redeemable_points": ledger.max_redeemable_points(
                balance, headroom, point_value
            ),
            "error": error,
        }

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    @transaction.atomic
    def transition_order(self, dto: TransitionOrderDTO) -> Order:
        """Apply a forward transition (or a cancellation with notes as reason).

        Raises:
            OrderNotFound, InvalidTransition, TerminalState, StaleState.
        """
        if dto.new_status == OrderStatus.CANCELLED:
            return self._cancel(
                dto.order_id, dto.notes, dto.actor_role, dto.expected_version
            )

        order = self._lock(dto.order_id, dto.expected_version)
        old_status = order.status
        log = logger.bind(
            order_id=str(order.id),
            from_status=old_status,
            to_status=str(dto.new_status),
            actor=str(dto.actor_role),
        )

        try:
            self._state_machine.transition(
                order, dto.new_status, dto.actor_role, rider_id=dto.rider_id
            )
        except InvalidTransition:
            log.warning("order.transition_rejected")
            raise

        order.add_domain_event(
            OrderStatusChanged(
                aggregate_id=order.id,
                payload={
                    "from_status": old_status,
                    "to_status": order.status,
                    "actor": str(dto.actor_role),
                },
            )
        )
        rolled_from = None
        if order.status == OrderStatus.COMPLETED:
            rolled_from = self._move_to_active_period(order)
            order.add_domain_event(
                OrderCompleted(
                    aggregate_id=order.id,
                    payload={
                        "rolled_over_from_period": rolled_from,
                        "customer_id": str(order.customer_id),
                        "shop_id": str(order.shop_id),
                        "points_earned": order.points_earned,
                        "subtotal": str(order.subtotal),
                    },
                )
            )

        self._order_repo.save(order)
        self._order_repo.add_history(
            order_id=order.id,
            new_status=order.status,
            actor_role=dto.actor_role,
            old_status=old_status,
            notes=dto.notes,
        )

        if order.status == OrderStatus.COMPLETED:
            self._points.credit_earned(order.customer_id, order.points_earned, order.id)
            self._points.award_referral_bonus(order.customer_id, order.id)

        if rolled_from:
            log.info(
                "order.rolled_over",
                from_period_id=rolled_from,
                to_period_id=str(order.week_period_id),
            )
        log.info("order.transitioned", version=order.version)
        return self._order_repo.get_by_id(str(order.id)) or order

    @transaction.atomic
    def cancel_order(self, dto: CancelOrderDTO) -> Order:
        """Cancel a pending or accepted order and refund redeemed points.

        Raises:
            OrderNotFound, InvalidTransition, TerminalState, StaleState,
            CancellationReasonRequired.
        """
        return self._cancel(
            dto.order_id, dto.reason, dto.actor_role, dto.expected_version
        )

    def auto_reject_stale_orders(self) -> List[Order]:
        """Cancel every pending order older than the auto-reject timeout.

        Each order is cancelled in its own transaction with the ``system``
        actor.  Orders that moved on since they were listed are skipped.
        """
        timeout = timedelta(minutes=baladi_setting("ORDER_AUTO_REJECT_MINUTES"))
        cutoff = self._clock.now() - timeout
        rejected = []
        for candidate in self._order_repo.list_pending_created_before(cutoff):
            if not self._state_machine.has_timed_out(candidate):
                continue
            try:
                with transaction.atomic():
                    rejected.append(
                        self._cancel(
                            candidate.id,
                            AUTO_REJECT_REASON,
                            ActorRole.SYSTEM,
                            candidate.version,
                        )
                    )
            except InvalidTransition as exc:
                logger.info(
                    "order.auto_reject_skipped",
                    order_id=str(candidate.id),
                    reason=exc.kind.value,
                )
        logger.info("order.auto_reject_completed", rejected=len(rejected))
        return rejected

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: str) -> Order:
        """Raises ``OrderNotFound`` if the order does not exist."""
        order = self._order_repo.get_by_id(order_id)
        if not order:
            raise OrderNotFound(order_id)
        return order

    def list_orders(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        return self._order_repo.list(filters)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _cancel(
        self,
        order_id: UUID,
        reason: str,
        actor: str,
        expected_version: Optional[int],
    ) -> Order:
        order = self._lock(order_id, expected_version)
        old_status = order.status
        log = logger.bind(order_id=str(order.id), from_status=old_status, actor=str(actor))

        try:
            self._state_machine.transition(
                order, OrderStatus.CANCELLED, actor, reason=reason
            )
        except InvalidTransition:
            log.warning("order.cancel_rejected")
            raise

        order.add_domain_event(
            OrderCancelled(
                aggregate_id=order.id,
                payload={
                    "from_status": old_status,
                    "actor": str(actor),
                    "reason": order.cancellation_reason,
                    "points_refunded": order.points_used,
                },
            )
        )
        self._order_repo.save(order)
        self._order_repo.add_history(
            order_id=order.id,
            new_status=OrderStatus.CANCELLED,
            actor_role=actor,
            old_status=old_status,
            notes=order.cancellation_reason,
        )
        if order.points_used:
            self._points.refund_redemption(order.customer_id, order.points_used, order.id)

        log.info("order.cancelled", reason=order.cancellation_reason)
        return self._order_repo.get_by_id(str(order.id)) or order

    def _move_to_active_period(self, order: Order) -> Optional[str]:
        """Re-home an order whose period closed before it completed.

        Returns the id of the period it left, or ``None`` if it stayed.
        """
        period = (
            self._periods.lock_period(order.week_period_id)
            if order.week_period_id
            else None
        )
        if period is not None and period.status == PeriodStatus.ACTIVE:
            return None
        active = self._periods.ensure_active_period()
        previous = str(order.week_period_id) if order.week_period_id else None
        order.week_period = active
        return previous

    def _lock(self, order_id: UUID, expected_version: Optional[int]) -> Order:
        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(order_id)
        if expected_version is not None and expected_version != order.version:
            logger.warning(
                "order.stale_request",
                order_id=str(order_id),
                expected_version=expected_version,
                current_version=order.version,
            )
            raise StaleState(
                "The order changed since it was last read; reload and retry.",
                order_id=str(order_id),
                expected_version=expected_version,
                current_version=order.version,
                current_status=order.status,
            )
        return order

    def _validate_items(self, dto: PlaceOrderDTO) -> None:
        max_items = baladi_setting("MAX_ITEMS_PER_ORDER")
        if not dto.items:
            raise InvalidOrderInput("An order needs at least one item.", item_count=0)
        if len(dto.items) > max_items:
            raise InvalidOrderInput(
                f"An order can hold at most {max_items} items.",
                item_count=len(dto.items),
                max_items=max_items,
            )
        for index, item in enumerate(dto.items):
            if item.quantity < 1:
                raise InvalidOrderInput(
                    "Item quantity must be at least 1.",
                    item_index=index,
                    quantity=item.quantity,
                )
            if item.unit_price < ZERO:
                raise InvalidOrderInput(
                    "Item price must not be negative.",
                    item_index=index,
                    unit_price=item.unit_price,
                )

    def _get_available_shop(self, shop_id: UUID) -> Shop:
        shop = self._shop_repo.get_by_id(str(shop_id))
        if not shop:
            raise ShopNotFound(shop_id)
        if not shop.is_active:
            raise ShopUnavailable(
                f"Shop {shop.name} is not accepting orders.", shop_id=str(shop_id)
            )
        return shop


def build_order_service(clock: Optional[Clock] = None) -> OrderService:
    """Wire ``OrderService`` with the Django repositories."""
    from modules.orders.repositories.django_repository import OrderDjangoRepository
    from modules.points.repositories.django_repository import PointsDjangoRepository
    from modules.points.services import PointsService
    from modules.settlements.periods import build_period_manager
    from modules.shops.repositories.django_repository import ShopDjangoRepository

    clock = clock or SystemClock()
    return OrderService(
        order_repository=OrderDjangoRepository(),
        shop_repository=ShopDjangoRepository(),
        points_service=PointsService(PointsDjangoRepository(), clock=clock),
        period_manager=build_period_manager(clock=clock),
        clock=clock,
    )
