"""Order lifecycle: commands and handler for status, payment and cancellation."""

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, Identifier, String
from protean.utils.globals import current_domain

from sales.catalogue.product import Product
from sales.domain import logger, sales
from sales.order.order import Order, OrderStatus, PaymentStatus


@sales.command(part_of="Order")
class UpdateOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, max_length=20)
    note = String(max_length=500)
    tracking_number = String(max_length=255)
    estimated_delivery = DateTime()
    delivery_provider = String(max_length=100)


@sales.command(part_of="Order")
class UpdatePaymentStatus:
    order_id = Identifier(required=True)
    status = String(required=True, max_length=20)
    transaction_id = String(max_length=255)


@sales.command(part_of="Order")
class UpdateOrder:
    """Admin edit of fulfilment, tracking and payment, applied all-or-nothing."""

    order_id = Identifier(required=True)
    status = String(max_length=20)
    note = String(max_length=500)
    tracking_number = String(max_length=255)
    estimated_delivery = DateTime()
    delivery_provider = String(max_length=100)
    payment_status = String(max_length=20)
    transaction_id = String(max_length=255)


@sales.command(part_of="Order")
class CancelOrder:
    """Customer-initiated cancellation; returns the reserved stock."""

    order_id = Identifier(required=True)
    note = String(max_length=500)


@sales.command(part_of="Order")
class RecordGatewayPayment:
    """Payment outcome reported by the payment gateway."""

    order_id = Identifier(required=True)
    status = String(required=True, max_length=20)
    transaction_id = String(required=True, max_length=255)


def _restock(order):
    repo = current_domain.repository_for(Product)
    products = {}
    for item in order.items:
        product_id = str(item.product_id)
        try:
            product = products.get(product_id) or repo.get(product_id)
            product.restock(item.variant_sku, item.quantity)
        except ObjectNotFoundError:
            logger.warning(
                "restock_skipped",
                order_id=str(order.id),
                product_id=product_id,
                variant_sku=item.variant_sku,
            )
            continue
        products[product_id] = product

    for product in products.values():
        repo.add(product)


def _cancelled_by(order, changed):
    return changed and order.status == OrderStatus.CANCELLED.value


def _transition(order, status, note=None):
    changed = order.transition_to(status, note=note)
    if _cancelled_by(order, changed):
        _restock(order)
    return changed


@sales.command_handler(part_of=Order)
class OrderLifecycleHandler:
    @handle(UpdateOrderStatus)
    def update_order_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)

        changed = _transition(order, command.status, note=command.note)
        if command.tracking_number or command.estimated_delivery or command.delivery_provider:
            order.set_tracking(
                tracking_number=command.tracking_number,
                estimated_delivery=command.estimated_delivery,
                provider=command.delivery_provider,
            )
        repo.add(order)

        if changed:
            logger.info("order_status_changed", order_id=str(order.id), status=order.status)
        return changed

    @handle(UpdatePaymentStatus)
    def update_payment_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)

        changed = order.record_payment(command.status, transaction_id=command.transaction_id)
        repo.add(order)

        if changed:
            logger.info(
                "order_payment_changed",
                order_id=str(order.id),
                payment_status=order.payment_status,
                transaction_id=order.transaction_id,
            )
        return changed

    @handle(UpdateOrder)
    def update_order(self, command):
        """Apply every requested change to the order before anything is saved.

        Stock is returned only once all changes have been accepted, so a
        rejected payment or tracking change leaves the order and the
        catalogue untouched.
        """
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)

        status_changed = False
        if command.status:
            status_changed = order.transition_to(command.status, note=command.note)
        if command.tracking_number or command.estimated_delivery or command.delivery_provider:
            order.set_tracking(
                tracking_number=command.tracking_number,
                estimated_delivery=command.estimated_delivery,
                provider=command.delivery_provider,
            )
        payment_changed = False
        if command.payment_status:
            payment_changed = order.record_payment(command.payment_status, transaction_id=command.transaction_id)

        if _cancelled_by(order, status_changed):
            _restock(order)
        repo.add(order)

        logger.info(
            "order_updated",
            order_id=str(order.id),
            status=order.status,
            payment_status=order.payment_status,
            status_changed=status_changed,
            payment_changed=payment_changed,
        )
        return status_changed or payment_changed

    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)

        changed = _transition(order, OrderStatus.CANCELLED, note=command.note or "Cancelled by customer")
        repo.add(order)

        logger.info("order_cancelled", order_id=str(order.id))
        return changed

    @handle(RecordGatewayPayment)
    def record_gateway_payment(self, command):
        """Record the payment and confirm a still-pending order once it is paid."""
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)

        changed = order.record_payment(command.status, transaction_id=command.transaction_id)
        if (
            changed
            and order.payment_status == PaymentStatus.PAID.value
            and order.status == OrderStatus.PENDING.value
        ):
            order.transition_to(OrderStatus.CONFIRMED, note="Payment received")
        repo.add(order)

        logger.info(
            "gateway_payment_recorded",
            order_id=str(order.id),
            payment_status=order.payment_status,
            changed=changed,
        )
        return changed
