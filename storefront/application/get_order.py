from typing import List, Optional

from storefront.domain.models import Order
from storefront.domain.exceptions import OrderNotFoundError


class GetOrderUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, order_id: str) -> Order:
        async with self._uow() as uow:
            order = await uow.orders.get_by_id(order_id)
            if not order:
                raise OrderNotFoundError(f"Order {order_id} not found")
            return order


class ListOrdersUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, customer_id: Optional[str] = None) -> List[Order]:
        """Orders newest first. Without a customer id every order is listed."""
        async with self._uow() as uow:
            if customer_id is None:
                return await uow.orders.list_all()
            return await uow.orders.list_by_customer(customer_id)
