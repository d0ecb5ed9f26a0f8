from pydantic import BaseModel, Field


class SasResponse(BaseModel):
    url: str


class ListingEntryOut(BaseModel):
    name: str
    url: str


class ListResponse(BaseModel):
    urls: list[str] = Field(serialization_alias="list")
    entries: list[ListingEntryOut]
