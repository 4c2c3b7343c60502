"""
Cart item shapes.

Cart payloads arrive as loosely shaped records. ``parse_cart_item`` tags
each one with a ``kind`` derived from its ``classType`` and validates it
into one member of the ``CartEntry`` union, so appointment construction
can branch on the type instead of probing for fields.
"""

from decimal import Decimal
import logging
from typing import Annotated, Any, Dict, Iterable, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from ..core.enums import ClassType

logger = logging.getLogger(__name__)


class _CartModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, alias_generator=to_camel)


class SlotDetail(_CartModel):
    slot_id: Optional[str] = None
    instructor_id: Optional[str] = None
    instructor_name: Optional[str] = None
    date: Optional[str] = None
    start: Optional[str] = None
    end: Optional[str] = None


class PackageDetails(_CartModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True, alias_generator=to_camel)

    pickup_location: Optional[str] = None
    dropoff_location: Optional[str] = None


class CartItemBase(_CartModel):
    id: Optional[str] = None
    title: Optional[str] = None
    price: Optional[Decimal] = None
    amount: Optional[Decimal] = None
    quantity: int = Field(default=1, ge=1)
    description: Optional[str] = None
    class_type: Optional[str] = None
    instructor_id: Optional[str] = None
    instructor_name: Optional[str] = None
    date: Optional[str] = None
    start: Optional[str] = None
    end: Optional[str] = None
    slot_id: Optional[str] = None

    @property
    def unit_price(self) -> Optional[Decimal]:
        """First positive of ``price`` and ``amount``."""
        for value in (self.price, self.amount):
            if value is not None and value > 0:
                return value
        return None

    @property
    def is_payable(self) -> bool:
        return self.unit_price is not None and bool(self.id or self.class_type)

    @property
    def line_total(self) -> Decimal:
        return (self.unit_price or Decimal("0")) * self.quantity


class DrivingTestItem(CartItemBase):
    kind: Literal["driving_test"] = "driving_test"


class DrivingLessonItem(CartItemBase):
    kind: Literal["driving_lesson"] = "driving_lesson"
    package_details: Optional[PackageDetails] = None
    slot_details: List[SlotDetail] = Field(default_factory=list)


class TicketItem(CartItemBase):
    kind: Literal["ticket_class"] = "ticket_class"
    ticket_class_id: Optional[str] = None


class GeneralItem(CartItemBase):
    kind: Literal["general"] = "general"


CartEntry = Annotated[
    Union[DrivingTestItem, DrivingLessonItem, TicketItem, GeneralItem],
    Field(discriminator="kind"),
]

_cart_entry_adapter: TypeAdapter[Any] = TypeAdapter(CartEntry)


def item_kind(payload: Dict[str, Any]) -> ClassType:
    class_type = ClassType.normalize(payload.get("classType") or payload.get("class_type"))
    if class_type == ClassType.TICKET_CLASS:
        return ClassType.TICKET_CLASS
    if class_type == ClassType.DRIVING_TEST:
        return ClassType.DRIVING_TEST
    if class_type == ClassType.DRIVING_LESSON or payload.get("packageDetails"):
        return ClassType.DRIVING_LESSON
    return ClassType.GENERAL


def parse_cart_item(payload: Dict[str, Any]) -> Optional[CartItemBase]:
    """Validate one raw cart record; None when it cannot be paid for."""
    if not isinstance(payload, dict):
        return None
    data = {key: value for key, value in payload.items() if key != "kind"}
    data["kind"] = item_kind(payload).value
    try:
        item = _cart_entry_adapter.validate_python(data)
    except ValidationError as exc:
        logger.info(
            "cart_item_rejected",
            extra={"item_id": payload.get("id"), "errors": exc.error_count()},
        )
        return None
    if not item.is_payable:
        logger.info("cart_item_not_payable", extra={"item_id": payload.get("id")})
        return None
    return item


def parse_cart(payloads: Iterable[Dict[str, Any]]) -> Tuple[List[CartItemBase], int]:
    """Return the payable items and the number of records excluded."""
    valid: List[CartItemBase] = []
    excluded = 0
    for payload in payloads:
        item = parse_cart_item(payload)
        if item is None:
            excluded += 1
        else:
            valid.append(item)
    return valid, excluded
