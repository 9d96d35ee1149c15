from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any, List, Literal, get_args

import pydantic
from pydantic import BaseModel, Field, field_validator

CRITICAL_MAX = 5
WARNING_MAX = 15

ProductCategory = Literal["iPhone", "iPad", "Mac", "Watch", "Audio", "Accessories"]
SaleCategory = Literal["Smartphones", "Computers"]

CATEGORIES = get_args(ProductCategory)


class StockStatus(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    OPTIMAL = "optimal"


def calculate_status(store_stock: int) -> StockStatus:
    """Classify floor stock. Fixed cutoffs; min_stock/max_stock play no part."""
    if store_stock <= CRITICAL_MAX:
        return StockStatus.CRITICAL
    if store_stock <= WARNING_MAX:
        return StockStatus.WARNING
    return StockStatus.OPTIMAL


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------
# Errors
# ---------------------------
class LedgerError(Exception):
    status_code = 500
    code = "ledger_error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)
        self.message = message or self.code


class ValidationError(LedgerError):
    status_code = 422
    code = "validation_error"


class NotFound(LedgerError):
    status_code = 404
    code = "not_found"


class InsufficientStock(LedgerError):
    status_code = 409
    code = "insufficient_stock"

    def __init__(self, product_id: str, available: int, requested: int):
        super().__init__(f"product {product_id} has {available} on the floor, {requested} requested")
        self.product_id = product_id
        self.available = available
        self.requested = requested


class StoreUnavailable(LedgerError):
    status_code = 503
    code = "store_unavailable"


class TransactionConflict(StoreUnavailable):
    code = "transaction_conflict"


def _validate(model, data) -> Any:
    if isinstance(data, BaseModel):
        data = data.model_dump()
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        raise ValidationError(str(e)) from e


def _iso_date(v: str) -> str:
    # strptime alone lets "2026-10-9" through
    if datetime.strptime(v, "%Y-%m-%d").date().isoformat() != v:
        raise ValueError("date must be YYYY-MM-DD")
    return v


# ---------------------------
# Pydantic schemas
# ---------------------------
class ProductIn(BaseModel):
    name: str = Field(min_length=1)
    category: ProductCategory
    sku: str = Field(min_length=1)
    ean: str = Field(min_length=1)
    store_stock: int = Field(ge=0)
    warehouse_stock: int = Field(ge=0)
    min_stock: int = Field(ge=0)
    max_stock: int = Field(ge=0)
    price: float = Field(ge=0)
    image_url: str = ""

    @field_validator("name", "sku", "ean")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v


class Product(ProductIn):
    id: str = Field(min_length=1)
    # accepted on input, always recomputed on write
    status: Optional[str] = None


class SaleRequest(BaseModel):
    quantity: int = Field(gt=0)


class SaleIn(BaseModel):
    date: str
    product: str = Field(min_length=1)
    category: SaleCategory
    quantity: int = Field(gt=0)
    seller: str = Field(min_length=1)
    total_price: float = Field(ge=0)
    # when set, the sale is only recorded if the ledger decrement succeeds
    product_id: Optional[str] = None

    check_date = field_validator("date")(_iso_date)


class CompetitorSaleIn(BaseModel):
    brand: str = Field(min_length=1)
    units: int = Field(gt=0)
    category: SaleCategory
    date: str

    check_date = field_validator("date")(_iso_date)


class OrderLine(BaseModel):
    name: str = Field(min_length=1)
    quantity: int = Field(gt=0)
    price: float = Field(ge=0)


class OrderIn(BaseModel):
    supplier: str = Field(min_length=1)
    products: List[OrderLine] = Field(min_length=1)
    order_date: str
    expected_delivery: str
    status: Literal["Pending", "In Transit", "Delivered", "Cancelled"] = "Pending"
    total: float = Field(ge=0)

    check_dates = field_validator("order_date", "expected_delivery")(_iso_date)


class TeamMemberIn(BaseModel):
    name: str = Field(min_length=1)
    role: str = Field(min_length=1)
    email: str = Field(min_length=1)
    phone: str = ""
    location: str = ""
    image_url: str = ""
    status: Literal["active", "inactive"] = "active"
    is_champion: bool = False
    reseller: Optional[Literal["FNAC", "Worten"]] = None


class TaskIn(BaseModel):
    title: str = Field(min_length=1)
    description: str = ""
    assignee: str = Field(min_length=1)
    due_date: str
    priority: Literal["High", "Medium", "Low"] = "Medium"
    status: Literal["To Do", "In Progress", "Completed"] = "To Do"
    category: str = ""

    check_date = field_validator("due_date")(_iso_date)


def _make_product_dict(p: ProductIn) -> Dict[str, Any]:
    data = p.model_dump(exclude={"id", "status"}, mode="json")
    data["status"] = calculate_status(p.store_stock).value
    return data
