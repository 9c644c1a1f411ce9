# teashop/utils/models.py

from enum import Enum
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# =================================================================
#                       ORDER AXES
# =================================================================

class Size(str, Enum):
    M = "M"
    L = "L"


class SugarLevel(str, Enum):
    REGULAR = "正常糖"
    LESS = "少糖 (7分)"
    HALF = "半糖 (5分)"
    QUARTER = "微糖 (3分)"
    NONE = "無糖"


class IceLevel(str, Enum):
    REGULAR = "正常冰"
    LESS = "少冰"
    MICRO = "微冰"
    NONE = "去冰"
    HOT = "溫熱"


OrderStatus = Literal["pending", "submitted", "failed"]


# =================================================================
#                       STOREFRONT TYPES (camelCase on the wire)
# =================================================================

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Topping(CamelModel):
    id: str
    name: str
    price: int = 0


class Product(CamelModel):
    """A drink on the storefront menu. A price of 0 means the size is not sold."""
    id: str
    category: str
    name: str
    price_m: int = 0
    price_l: int = 0
    description: Optional[str] = None
    has_hot: bool = True
    has_cold: bool = True
    image: Optional[str] = None


class CartItem(CamelModel):
    """
    One cart line. `subtotal` is computed when the line is added and is never
    recomputed, `product` is a snapshot of the drink at that moment.
    """
    id: str
    product: Product
    size: Size
    sugar: SugarLevel
    ice: IceLevel
    toppings: List[Topping] = Field(default_factory=list)
    quantity: int = 1
    subtotal: int
    note: Optional[str] = None


class OrderData(CamelModel):
    customer_name: str
    customer_phone: str
    items: List[CartItem]
    total_amount: int
    order_date: str
    status: OrderStatus = "pending"


class StoreData(CamelModel):
    is_open: bool = True
    store_name: str = ""
    menu: List[dict[str, Any]] = Field(default_factory=list)


class Catalog(CamelModel):
    store_name: str = ""
    is_open: bool = True
    categories: List[str] = Field(default_factory=list)
    products: List[Product] = Field(default_factory=list)
    toppings: List[Topping] = Field(default_factory=list)
    source: str = "builtin"


# =================================================================
#                       MENU DIGITIZER TYPES (snake_case on the wire)
# =================================================================

class MenuItem(BaseModel):
    id: str = ""
    category: str = ""
    name: str
    price_medium: Optional[float] = None
    price_large: Optional[float] = None
    description: Optional[str] = None
    hot_available: bool = False
    cold_available: bool = False


class ToppingItem(BaseModel):
    id: str = ""
    name: str
    price: float = 0


class ParsedMenu(BaseModel):
    items: List[MenuItem] = Field(default_factory=list)
    toppings: List[ToppingItem] = Field(default_factory=list)


class UserProfile(BaseModel):
    username: str
    role: str = "Administrator"
