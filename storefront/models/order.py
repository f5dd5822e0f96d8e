"""Column definitions for the remote Orders table.

Nested order data is stored as serialized JSON text in the columns below
and decoded on read.
"""


class OrderColumns:
    """Column names of the remote Orders table."""

    ID = "id"
    CREATED_AT = "created_at"
    CUSTOMER = "Customer information"
    ITEMS = "Order items"
    STATUS = "Order status"
    SHIPPING = "Shipping details"
    PAYMENT = "Payment information"


ORDER_COLUMNS = OrderColumns
