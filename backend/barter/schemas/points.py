from pydantic import BaseModel, Field


class PointsBalance(BaseModel):
    points: int


class BuyPointsRequest(BaseModel):
    package_id: str = Field(..., min_length=1)


class BuyPointsResponse(BaseModel):
    message: str
    credited: int
    new_balance: int
