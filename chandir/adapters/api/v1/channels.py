"""Public channel endpoints: listing, search, share page and likes."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from chandir.core.responses import success_envelope
from chandir.domain.services import DirectoryService

from .dependencies import client_ip, get_directory
from .schemas import Envelope, FingerprintRequest, SearchKeywordRequest

router = APIRouter()


@router.get("", response_model=Envelope)
async def list_channels(
    request: Request,
    page: int = Query(1),
    page_size: int = Query(20),
    sort: str = Query("weight"),
    directory: DirectoryService = Depends(get_directory),
):
    data = await directory.list_channels(page, page_size, sort, client_ip=client_ip(request))
    return success_envelope(data)


@router.get("/search", response_model=Envelope)
async def search_channels(
    request: Request,
    keyword: str = Query("", max_length=200),
    page: int = Query(1),
    page_size: int = Query(20),
    sort: str = Query("weight"),
    fingerprint: Optional[str] = Query(None, max_length=128),
    directory: DirectoryService = Depends(get_directory),
):
    data = await directory.search_channels(
        keyword, page, page_size, sort, fingerprint=fingerprint, client_ip=client_ip(request)
    )
    return success_envelope(data)


@router.post("/search-keywords", response_model=Envelope)
async def record_search_keyword(
    body: SearchKeywordRequest,
    directory: DirectoryService = Depends(get_directory),
):
    data = await directory.record_search_keyword(body.keyword, body.fingerprint)
    return success_envelope(data, "Keyword recorded")


@router.get("/{channel_id}", response_model=Envelope)
async def get_channel(
    request: Request,
    channel_id: str,
    directory: DirectoryService = Depends(get_directory),
):
    return success_envelope(await directory.get_channel(channel_id, client_ip=client_ip(request)))


@router.post("/{channel_id}/like", response_model=Envelope)
async def toggle_like(
    channel_id: str,
    body: FingerprintRequest,
    directory: DirectoryService = Depends(get_directory),
):
    status = await directory.toggle_like(channel_id, body.fingerprint)
    return success_envelope(status.to_dict(), "Liked" if status.liked else "Like removed")


@router.get("/{channel_id}/like", response_model=Envelope)
async def like_status(
    channel_id: str,
    fingerprint: str = Query(..., max_length=128),
    directory: DirectoryService = Depends(get_directory),
):
    status = await directory.like_status(channel_id, fingerprint)
    return success_envelope(status.to_dict())
