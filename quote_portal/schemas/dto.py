from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from quote_portal.quotes.lifecycle import ResponseChoice, as_utc

# Categories a customer may add from the public quote page
CUSTOMER_LINE_ITEM_CATEGORIES = (
    "Materials",
    "Labor",
    "Equipment",
    "Permits",
    "Demolition",
    "Electrical",
    "Plumbing",
    "Flooring",
    "Painting",
    "Cabinetry",
    "Countertops",
    "Appliances",
    "Fixtures",
    "Hardware",
    "Cleanup",
    "Other",
)

IMAGE_CATEGORIES = ("before", "after", "reference", "scope")

# SQLite returns naive timestamps; responses always carry UTC offsets
UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


class CamelModel(BaseModel):
    """JSON bodies use camelCase keys; Python code uses snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OrmOut(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# --- Line items -------------------------------------------------------------

class LineItemIn(CamelModel):
    category: str = Field(min_length=1)
    description: str = Field(min_length=1)
    quantity: Decimal = Field(default=Decimal("1"), ge=0)
    unit: str = "each"
    unit_price: Decimal = Field(ge=0)
    discount_percentage: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    discount_amount: Decimal = Field(default=Decimal("0"), ge=0)
    sort_order: int = 0


class LineItemUpdate(CamelModel):
    category: str | None = Field(default=None, min_length=1)
    description: str | None = Field(default=None, min_length=1)
    quantity: Decimal | None = Field(default=None, ge=0)
    unit: str | None = None
    unit_price: Decimal | None = Field(default=None, ge=0)
    discount_percentage: Decimal | None = Field(default=None, ge=0, le=100)
    discount_amount: Decimal | None = Field(default=None, ge=0)
    sort_order: int | None = None


class CustomerLineItemIn(CamelModel):
    category: str
    description: str = Field(min_length=1)
    quantity: Decimal = Field(default=Decimal("1"), gt=0)
    unit: str = Field(default="each", min_length=1)
    unit_price: Decimal = Field(ge=0)

    @field_validator("category")
    @classmethod
    def _known_category(cls, v: str) -> str:
        if v not in CUSTOMER_LINE_ITEM_CATEGORIES:
            raise ValueError(f"category must be one of: {', '.join(CUSTOMER_LINE_ITEM_CATEGORIES)}")
        return v


class LineItemOut(OrmOut):
    id: int
    quote_id: int
    category: str
    description: str
    quantity: Decimal
    unit: str
    unit_price: Decimal
    discount_percentage: Decimal
    discount_amount: Decimal
    total_price: Decimal
    sort_order: int
    created_by_customer: bool


# --- Images -----------------------------------------------------------------

class ImageIn(CamelModel):
    image_url: str = Field(min_length=1)
    caption: str | None = None
    category: str = "reference"
    sort_order: int = 0

    @field_validator("category")
    @classmethod
    def _known_category(cls, v: str) -> str:
        if v not in IMAGE_CATEGORIES:
            raise ValueError(f"category must be one of: {', '.join(IMAGE_CATEGORIES)}")
        return v


class ImageOut(OrmOut):
    id: int
    quote_id: int
    image_url: str
    caption: str | None = None
    category: str
    sort_order: int


# --- Quotes -----------------------------------------------------------------

class QuoteCreate(CamelModel):
    title: str = Field(min_length=1)
    description: str | None = None
    project_type: str | None = None
    location: str | None = None
    customer_name: str = Field(min_length=1)
    customer_email: str = Field(pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    customer_phone: str | None = None
    customer_address: str | None = None
    tax_rate: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    valid_until: datetime
    paint_colors: dict[str, str] = Field(default_factory=dict)
    line_items: list[LineItemIn] = Field(default_factory=list)
    images: list[ImageIn] = Field(default_factory=list)


class QuoteUpdate(CamelModel):
    """Staff edits. Status, token and customer response are not editable here."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    project_type: str | None = None
    location: str | None = None
    customer_name: str | None = Field(default=None, min_length=1)
    customer_email: str | None = Field(default=None, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    customer_phone: str | None = None
    customer_address: str | None = None
    tax_rate: Decimal | None = Field(default=None, ge=0, le=100)
    valid_until: datetime | None = None


class QuoteOut(OrmOut):
    id: int
    quote_number: str
    magic_token: str
    status: str
    title: str
    description: str | None = None
    project_type: str | None = None
    location: str | None = None
    customer_name: str
    customer_email: str
    customer_phone: str | None = None
    customer_address: str | None = None
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total: Decimal
    valid_until: UtcDatetime
    paint_colors: dict[str, str] = Field(default_factory=dict)
    customer_response: str | None = None
    customer_notes: str | None = None
    sent_at: UtcDatetime | None = None
    viewed_at: UtcDatetime | None = None
    responded_at: UtcDatetime | None = None
    created_at: UtcDatetime | None = None
    updated_at: UtcDatetime | None = None


class QuoteDetailOut(QuoteOut):
    line_items: list[LineItemOut] = Field(default_factory=list)
    images: list[ImageOut] = Field(default_factory=list)


class RespondIn(CamelModel):
    response: ResponseChoice
    notes: str | None = None


class ColorsIn(CamelModel):
    paint_colors: dict[str, str]


class MessageOut(BaseModel):
    message: str


# --- Analytics --------------------------------------------------------------

class TrackEventIn(CamelModel):
    event: str = Field(min_length=1)
    event_data: Any | None = None
    session_id: str | None = None
    device_type: str | None = None
    browser: str | None = None
    operating_system: str | None = None
    screen_resolution: str | None = None
    country: str | None = None
    city: str | None = None
    timezone: str | None = None
    time_on_page: int | None = Field(default=None, ge=0)
    scroll_depth: int | None = Field(default=None, ge=0, le=100)
    referrer: str | None = None
    utm_source: str | None = None
    utm_medium: str | None = None
    utm_campaign: str | None = None


class SessionIn(CamelModel):
    session_id: str = Field(min_length=1)
    device_fingerprint: str | None = None
    sections_viewed: list[str] | None = None
    actions_performed: list[dict[str, Any]] | None = None
    customer_email: str | None = None
    customer_name: str | None = None


class ScrollIn(CamelModel):
    session_id: str = Field(min_length=1)
    scroll_depth: int = Field(ge=0, le=100)


class DurationIn(CamelModel):
    session_id: str = Field(min_length=1)
    duration: int = Field(ge=0)


class TrackEventOut(CamelModel):
    success: bool = True
    event_id: int


class SessionOut(CamelModel):
    success: bool = True
    session_id: str


class ViewSessionOut(OrmOut):
    id: int
    quote_id: int
    session_id: str
    start_time: UtcDatetime | None = None
    last_activity: UtcDatetime | None = None
    total_duration: int
    page_views: int
    device_fingerprint: str | None = None
    max_scroll_depth: int
    sections_viewed: list[str] = Field(default_factory=list)
    actions_performed: list[dict[str, Any]] = Field(default_factory=list)
    customer_email: str | None = None
    customer_name: str | None = None


class AnalyticsEventOut(OrmOut):
    id: int
    quote_id: int
    event: str
    event_data: Any | None = None
    session_id: str | None = None
    device_type: str | None = None
    browser: str | None = None
    operating_system: str | None = None
    country: str | None = None
    city: str | None = None
    time_on_page: int | None = None
    scroll_depth: int | None = None
    created_at: UtcDatetime | None = None
