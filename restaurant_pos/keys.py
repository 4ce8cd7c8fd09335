"""
Composite key scheme.

Every entity lives under ``<entity-kind>:<restaurant-id>[:<sub-id>]``. This
layout is the contract with data already persisted in the store; prefix
scans over ``<entity-kind>:<restaurant-id>:`` must see every record.
"""

RESTAURANT = "restaurant"
EMAIL_INDEX = "restaurant-email-index"
TABLE = "table"
ORDER = "order"
PRODUCT = "product"
INVENTORY = "inventory"
SALES = "sales"


def restaurant_key(restaurant_id: str) -> str:
    return f"{RESTAURANT}:{restaurant_id}"


def email_index_key(email: str) -> str:
    return f"{EMAIL_INDEX}:{email}"


def table_key(restaurant_id: str, table_number: int) -> str:
    return f"{TABLE}:{restaurant_id}:{table_number}"


def order_key(restaurant_id: str, order_id: str) -> str:
    return f"{ORDER}:{restaurant_id}:{order_id}"


def product_key(restaurant_id: str, product_id: str) -> str:
    return f"{PRODUCT}:{restaurant_id}:{product_id}"


def inventory_key(restaurant_id: str, ingredient: str) -> str:
    return f"{INVENTORY}:{restaurant_id}:{ingredient}"


def sales_key(restaurant_id: str, day: str) -> str:
    return f"{SALES}:{restaurant_id}:{day}"


def scan_prefix(kind: str, restaurant_id: str) -> str:
    """Prefix covering every record of one kind for one restaurant."""
    return f"{kind}:{restaurant_id}:"


def restaurant_lock(restaurant_id: str) -> str:
    """Writer lock serializing all read-modify-write cycles of a restaurant."""
    return f"lock:{restaurant_key(restaurant_id)}"


def email_lock(email: str) -> str:
    return f"lock:{email_index_key(email)}"
