"""Response shapes for the Sales API."""

import json


def _iso(value):
    return value.isoformat() if value is not None else None


def _custom_fields(raw):
    return json.loads(raw) if raw else []


def serialize_line(line) -> dict:
    return {
        "productId": line.product_id,
        "variantSku": line.variant_sku,
        "title": line.title,
        "price": line.price,
        "quantity": line.quantity,
        "weight": line.weight_grams,
        "size": line.size,
        "color": line.color,
        "thumbnail": line.thumbnail,
        "customFields": [field.to_dict() for field in line.custom_fields],
    }


def serialize_cart(cart, totals, coupon_message=None) -> dict:
    data = {
        "items": [serialize_line(line) for line in (cart.lines() if cart else [])],
        "couponCode": cart.coupon_code if cart else None,
        "totals": totals.to_dict(),
    }
    if coupon_message:
        data["couponMessage"] = coupon_message
    return data


def serialize_address(address) -> dict:
    return {
        "recipientName": address.recipient_name,
        "line1": address.line1,
        "line2": address.line2,
        "city": address.city,
        "state": address.state,
        "postalCode": address.postal_code,
        "country": address.country,
        "phone": address.phone,
    }


def serialize_history(order) -> list[dict]:
    return [
        {"status": change.status, "note": change.note, "timestamp": _iso(change.changed_at)}
        for change in order.history()
    ]


def serialize_order(order) -> dict:
    return {
        "id": str(order.id),
        "userId": str(order.user_id) if order.user_id else None,
        "email": order.email,
        "address": serialize_address(order.address),
        "items": [
            {
                "productId": str(item.product_id),
                "variantSku": item.variant_sku,
                "title": item.title,
                "size": item.size,
                "color": item.color,
                "price": item.price,
                "quantity": item.quantity,
                "thumbnail": item.thumbnail,
                "customFields": _custom_fields(item.custom_fields),
            }
            for item in order.items
        ],
        "subtotal": order.subtotal,
        "discount": order.discount,
        "deliveryFee": order.delivery_fee,
        "total": order.total,
        "couponCode": order.coupon_code,
        "status": order.status,
        "notes": order.notes,
        "delivery": {
            "method": order.delivery_method,
            "fee": order.delivery_fee,
            "estimatedDate": _iso(order.estimated_delivery),
            "trackingNumber": order.tracking_number,
            "provider": order.delivery_provider,
            "statusHistory": serialize_history(order),
        },
        "payment": {
            "method": order.payment_method,
            "transactionId": order.transaction_id,
            "status": order.payment_status,
        },
        "createdAt": _iso(order.created_at),
        "updatedAt": _iso(order.updated_at),
    }


def serialize_tracking(order) -> dict:
    return {
        "orderId": str(order.id),
        "status": order.status,
        "trackingNumber": order.tracking_number,
        "estimatedDelivery": _iso(order.estimated_delivery),
        "statusHistory": serialize_history(order),
        "items": [{"title": item.title, "quantity": item.quantity, "thumbnail": item.thumbnail} for item in order.items],
        "address": serialize_address(order.address),
        "total": order.total,
    }


def serialize_coupon(coupon) -> dict:
    return {
        "id": str(coupon.id),
        "code": coupon.code,
        "kind": coupon.kind,
        "value": coupon.value,
        "minSpend": coupon.min_spend,
        "maxDiscount": coupon.max_discount,
        "startsAt": _iso(coupon.starts_at),
        "endsAt": _iso(coupon.ends_at),
        "usageLimit": coupon.usage_limit,
        "usedCount": coupon.used_count,
        "autoApply": coupon.auto_apply,
        "isActive": coupon.is_active,
    }
