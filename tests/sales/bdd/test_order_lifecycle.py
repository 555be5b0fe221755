"""BDD tests for the order lifecycle."""

from protean import current_domain
from pytest_bdd import given, parsers, scenarios, then, when
from sales.exceptions import InvalidTransitionError
from sales.order.order import Order
from sales.order.status import CancelOrder, RecordGatewayPayment, UpdateOrderStatus

scenarios("features/order_lifecycle.feature")


# ---------------------------------------------------------------------------
# Given / When steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('the order moves to "{status}"'))
@when(parsers.cfparse('the order moves to "{status}"'))
def _(context, order_id, status):
    try:
        current_domain.process(UpdateOrderStatus(order_id=order_id, status=status), asynchronous=False)
    except InvalidTransitionError as exc:
        context["error"] = exc.messages["status"][0]


@when("the customer cancels the order")
def _(order_id):
    current_domain.process(CancelOrder(order_id=order_id), asynchronous=False)


@when(parsers.cfparse('the gateway reports "{status}" for transaction "{transaction_id}"'))
def _(order_id, status, transaction_id):
    current_domain.process(
        RecordGatewayPayment(order_id=order_id, status=status, transaction_id=transaction_id),
        asynchronous=False,
    )


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the status history is "{statuses}"'))
def _(order_id, statuses):
    order = current_domain.repository_for(Order).get(order_id)
    expected = [status.strip() for status in statuses.split(",")]
    assert [change.status for change in order.history()] == expected


@then(parsers.cfparse('the payment status is "{payment_status}"'))
def _(order_id, payment_status):
    assert current_domain.repository_for(Order).get(order_id).payment_status == payment_status


@then(parsers.cfparse('the transition is rejected with "{message}"'))
def _(context, message):
    assert context["error"] == message
