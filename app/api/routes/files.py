from fastapi import APIRouter, Query

from app.api.deps import Lister
from app.schemas.sas import ListingEntryOut, ListResponse

router = APIRouter(prefix="/api", tags=["files"])


@router.get("/list", response_model=ListResponse)
def list_files(lister: Lister, container: str | None = Query(default=None)) -> ListResponse:
    entries = lister.list_entries(container)
    return ListResponse(
        urls=[entry.url for entry in entries],
        entries=[ListingEntryOut(name=entry.name, url=entry.url) for entry in entries],
    )
