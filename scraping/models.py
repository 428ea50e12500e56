from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt


class SearchFilter(BaseModel):
    model_config = ConfigDict(frozen=True)

    location_text: str = ""
    price_min: Optional[NonNegativeInt] = None
    price_max: Optional[NonNegativeInt] = None
    surface_min: Optional[NonNegativeInt] = None
    surface_max: Optional[NonNegativeInt] = None
    property_type: Optional[str] = None


class ListingRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str = Field(min_length=1)
    price: str = ""              # normalized display string, e.g. "950€/mois"
    location: str = ""
    description: str = ""
    surface: str = ""            # e.g. "25m²"
    url: str
    images: List[str] = Field(default_factory=list, max_length=2)
    source_id: str               # catalog hostname
    fetched_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def identity(self):
        """Deduplication key. The URL is deliberately left out: mirrors of the
        same listing often differ only by URL."""
        return (self.title, self.price, self.location)
