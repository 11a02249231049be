from typing import List, Optional

from pydantic import BaseModel

from storefront.schemas.common import BaseResponse


class UPIInfoSchema(BaseModel):
    upi_id: str
    merchant_name: str
    qr_code_url: str
    instructions: List[str]
    payment_link: Optional[str] = None


class UPIInfoResponse(BaseResponse):
    upi_info: UPIInfoSchema


class VerifyPaymentRequest(BaseModel):
    approved: bool
