from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .constants import ROLE_ADMIN, ROLE_USER


@dataclass(frozen=True)
class Viewer:
    """Acting identity, as supplied by the authentication layer."""
    user_id: Optional[str] = None
    role: str = ROLE_USER

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


ANONYMOUS = Viewer()


# Request bodies only check shape; bounds are enforced by reviews.validate_payload
# so that they are reported after the business-rule checks.

class PhotoIn(BaseModel):
    url: str
    caption: Optional[str] = None


class ReviewCreate(BaseModel):
    business_id: str = Field(alias="businessId")
    rating: int
    title: str
    text: str
    photos: list[PhotoIn] = Field(default_factory=list)
    visit_date: Optional[datetime] = Field(default=None, alias="visitDate")
    verified_purchase: bool = Field(default=False, alias="verifiedPurchase")
    anonymous: bool = False

    model_config = {"populate_by_name": True}


class ReviewStatusUpdate(BaseModel):
    status: str
