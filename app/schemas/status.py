from pydantic import BaseModel, Field


class RequestInfo(BaseModel):
    method: str
    url: str
    headers: dict[str, str]


class StatusResponse(BaseModel):
    status: str
    timestamp: str
    environment: str
    storage_account: str = Field(serialization_alias="storageAccount")
    frontend_url: str = Field(serialization_alias="frontendUrl")
    request: RequestInfo


class HealthResponse(BaseModel):
    status: str
    timestamp: str
