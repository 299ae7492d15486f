"""Public contractor profile served to the booking widget."""

from typing import Optional

from pydantic import Field

from .base import WireModel


class ServiceType(WireModel):
    """A bookable service offered by the contractor."""

    id: str
    name: str
    duration: int = 60  # minutes


class BookingWidgetConfig(WireModel):
    """Per-contractor booking rules read by the widget (read-only)."""

    enabled: bool = True
    allowed_services: list[str] = []
    lead_time_hours: int = 24
    max_advance_days: int = 30
    slot_duration_minutes: int = 60
    require_phone: bool = False
    require_address: bool = False


class WidgetCustomization(WireModel):
    primary_color: str = "#10b981"
    button_text: str = "Book Now"
    header_text: str = "Schedule Service"


class ContractorInfo(WireModel):
    """What ``/api/widget/contractor-info`` returns for one contractor."""

    id: str
    company_name: str = "Service Provider"
    logo_url: Optional[str] = None
    service_area: Optional[str] = None
    average_rating: Optional[float] = None
    review_count: int = 0

    booking: BookingWidgetConfig = Field(default_factory=BookingWidgetConfig)
    customization: WidgetCustomization = Field(default_factory=WidgetCustomization)
    service_types: list[ServiceType] = []

    def find_service(self, service_id: str) -> ServiceType | None:
        for service in self.service_types:
            if service.id == service_id:
                return service
        return None
