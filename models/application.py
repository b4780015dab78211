# models/application.py
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class ApplicationType(str, Enum):
    APPLICATION = "application"  # accepts the posted price
    PROPOSAL = "proposal"        # counter-offer with its own price


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class ApplicationCreate(BaseModel):
    job_id: str
    message: str = Field(min_length=1)
    application_type: ApplicationType = ApplicationType.APPLICATION
    proposed_price: Optional[Decimal] = Field(default=None, max_digits=10, decimal_places=2)

    @model_validator(mode="after")
    def check_price(self):
        if not self.message.strip():
            raise ValueError("message is required")
        if self.application_type == ApplicationType.PROPOSAL:
            if self.proposed_price is None or self.proposed_price <= 0:
                raise ValueError("a proposal needs a positive proposed_price")
        else:
            # plain applications never carry a price
            self.proposed_price = None
        return self
