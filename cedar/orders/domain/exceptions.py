from cedar.core.exceptions import NotFoundError


class OrderNotFoundException(NotFoundError):
    def __init__(self, order_id: int):
        super().__init__(f"Order {order_id} not found.")
        self.order_id = order_id
