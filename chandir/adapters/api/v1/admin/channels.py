"""Admin Channel Management Endpoints

Weight overrides, demotion/promotion (single, batch and by language), like
overrides, visibility and manual add.

**Security Note**: every route requires the `X-Admin-Secret` header, compared
in constant time, and counts against the per-IP admin rate limit. All
mutations are logged by the domain services.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from chandir.core.responses import success_envelope
from chandir.domain.services import DirectoryService

from ..dependencies import get_directory, require_admin
from ..schemas import (
    AddChannelsRequest,
    BatchDemoteRequest,
    BatchIdsRequest,
    BatchPromoteRequest,
    DemoteRequest,
    Envelope,
    LanguageDemoteRequest,
    PromoteRequest,
    SetLikesRequest,
    SetWeightRequest,
)

router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("/channels", response_model=Envelope)
async def admin_list_channels(
    page: int = Query(1),
    page_size: int = Query(20),
    sort: str = Query("weight"),
    show_hidden: bool = Query(True),
    keyword: Optional[str] = Query(None, max_length=200),
    directory: DirectoryService = Depends(get_directory),
):
    data = await directory.admin_list(page, page_size, sort, show_hidden, keyword)
    return success_envelope(data)


@router.post("/channels", response_model=Envelope)
async def add_channels(
    body: AddChannelsRequest, directory: DirectoryService = Depends(get_directory)
):
    data = await directory.add_channels(body.usernames)
    return success_envelope(data, f"{len(data['created'])} channel(s) added")


@router.post("/channels/batch/demote", response_model=Envelope)
async def batch_demote(
    body: BatchDemoteRequest, directory: DirectoryService = Depends(get_directory)
):
    result = await directory.batch_demote(body.channel_ids, body.percentage)
    return success_envelope(result.to_dict())


@router.post("/channels/batch/promote", response_model=Envelope)
async def batch_promote(
    body: BatchPromoteRequest, directory: DirectoryService = Depends(get_directory)
):
    result = await directory.batch_promote(body.channel_ids, body.amount, body.mode)
    return success_envelope(result.to_dict())


@router.post("/channels/batch/restore", response_model=Envelope)
async def batch_restore(body: BatchIdsRequest, directory: DirectoryService = Depends(get_directory)):
    result = await directory.batch_restore(body.channel_ids)
    return success_envelope(result.to_dict())


@router.post("/channels/batch/language-demote", response_model=Envelope)
async def batch_language_demote(
    body: LanguageDemoteRequest, directory: DirectoryService = Depends(get_directory)
):
    summary = await directory.batch_demote_by_language(body.language_code, body.demote_percent)
    return success_envelope(summary)


@router.get("/languages", response_model=Envelope)
async def language_statistics(directory: DirectoryService = Depends(get_directory)):
    return success_envelope(await directory.language_statistics())


@router.get("/channels/{channel_id}", response_model=Envelope)
async def channel_detail(channel_id: str, directory: DirectoryService = Depends(get_directory)):
    return success_envelope(await directory.channel_detail(channel_id))


@router.put("/channels/{channel_id}/weight", response_model=Envelope)
async def set_weight(
    channel_id: str, body: SetWeightRequest, directory: DirectoryService = Depends(get_directory)
):
    change = await directory.set_weight(channel_id, body.weight)
    return success_envelope(change.to_dict())


@router.post("/channels/{channel_id}/demote", response_model=Envelope)
async def demote(
    channel_id: str, body: DemoteRequest, directory: DirectoryService = Depends(get_directory)
):
    change = await directory.demote(channel_id, body.percentage)
    return success_envelope(change.to_dict())


@router.post("/channels/{channel_id}/promote", response_model=Envelope)
async def promote(
    channel_id: str, body: PromoteRequest, directory: DirectoryService = Depends(get_directory)
):
    change = await directory.promote(channel_id, body.amount, body.mode)
    return success_envelope(change.to_dict())


@router.post("/channels/{channel_id}/restore", response_model=Envelope)
async def restore(channel_id: str, directory: DirectoryService = Depends(get_directory)):
    change = await directory.restore(channel_id)
    return success_envelope(change.to_dict())


@router.put("/channels/{channel_id}/likes", response_model=Envelope)
async def set_likes(
    channel_id: str, body: SetLikesRequest, directory: DirectoryService = Depends(get_directory)
):
    return success_envelope(await directory.set_likes(channel_id, body.total))


@router.post("/channels/{channel_id}/visibility/toggle", response_model=Envelope)
async def toggle_visibility(channel_id: str, directory: DirectoryService = Depends(get_directory)):
    return success_envelope(await directory.toggle_visibility(channel_id))
