"""Email templates for order notifications."""


class OrderConfirmationTemplate:
    @staticmethod
    def render(context: dict) -> dict:
        order_id = context.get("order_id", "N/A")
        lines = context.get("lines", [])
        item_lines = "\n".join(f"  {line['quantity']} x {line['title']} @ {line['price']}" for line in lines)
        return {
            "subject": f"Order #{order_id} received",
            "body": (
                f"Thank you for your order #{order_id}.\n\n"
                f"{item_lines}\n\n"
                f"Subtotal: {context.get('subtotal', 0)}\n"
                f"Delivery: {context.get('delivery_fee', 0)}\n"
                f"Discount: {context.get('discount', 0)}\n"
                f"Order Total: {context.get('total', 0)}\n\n"
                "We'll let you know when your order ships."
            ),
        }
