"""API route handlers for the travel journal"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from travel_journal.services.auth_service import AuthService
from travel_journal.services.media_service import MediaService
from travel_journal.services.story_service import StoryService
from travel_journal.utils.exceptions import NotFoundError, ValidationError
from travel_journal.utils.logger import get_logger

from .auth_deps import get_current_user_id
from .models import CreateAccountRequest, FavouriteRequest, LoginRequest, StoryRequest

logger = get_logger(__name__)

router = APIRouter(tags=["api"])


def error_response(message: str, status_code: int = status.HTTP_400_BAD_REQUEST, **headers) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": True, "message": message},
        headers=headers or None,
    )


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_story_service(request: Request) -> StoryService:
    return request.app.state.story_service


def get_media_service(request: Request) -> MediaService:
    return request.app.state.media_service


@router.get("/health")
async def health(request: Request) -> Dict[str, Any]:
    store = request.app.state.store
    collections = await run_in_threadpool(store.list_collection_names)
    return {"status": "ok", "collections": collections}


# ---------------------- Auth ----------------------

@router.post("/create-account")
async def create_account(
    body: CreateAccountRequest,
    auth: AuthService = Depends(get_auth_service),
):
    """Register and sign in; email is stored lowercased"""
    user, token = await run_in_threadpool(auth.register, body.full_name, body.email, body.password)
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content={
            "error": False,
            "user": user.public(),
            "accessToken": token,
            "message": "Registration Successful",
        },
    )


@router.post("/login")
async def login(body: LoginRequest, auth: AuthService = Depends(get_auth_service)):
    try:
        user, token = await run_in_threadpool(auth.login, body.email, body.password)
    except NotFoundError as e:
        return error_response(e.message)
    return {
        "error": False,
        "message": "Login Successful",
        "user": user.public(),
        "accessToken": token,
    }


@router.get("/get-user")
async def get_user(
    user_id: str = Depends(get_current_user_id),
    auth: AuthService = Depends(get_auth_service),
):
    user = await run_in_threadpool(auth.get_user, user_id)
    return {"user": user.public(), "message": ""}


# ---------------------- Stories ----------------------

@router.post("/add-travel-story")
async def add_travel_story(
    body: StoryRequest,
    user_id: str = Depends(get_current_user_id),
    stories: StoryService = Depends(get_story_service),
):
    story = await run_in_threadpool(
        stories.create,
        user_id,
        body.title,
        body.story,
        body.visited_location,
        body.image_url,
        body.visited_date,
    )
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content={"story": story.to_json(), "message": "Added Successfully"},
    )


@router.get("/get-all-stories")
async def get_all_stories(
    user_id: str = Depends(get_current_user_id),
    stories: StoryService = Depends(get_story_service),
):
    results = await run_in_threadpool(stories.list_all, user_id)
    return {"stories": [s.to_json() for s in results]}


@router.put("/edit-story/{story_id}")
async def edit_story(
    story_id: str,
    body: StoryRequest,
    user_id: str = Depends(get_current_user_id),
    stories: StoryService = Depends(get_story_service),
):
    story = await run_in_threadpool(
        stories.edit,
        user_id,
        story_id,
        body.title,
        body.story,
        body.visited_location,
        body.image_url,
        body.visited_date,
    )
    return {"story": story.to_json(), "message": "Update Successful"}


@router.delete("/delete-story/{story_id}")
async def delete_story(
    story_id: str,
    user_id: str = Depends(get_current_user_id),
    stories: StoryService = Depends(get_story_service),
):
    """A missing story is reported in a 200 body, not as a 404"""
    removed = await run_in_threadpool(stories.remove, user_id, story_id)
    if not removed:
        return error_response("Travel story not found", status.HTTP_200_OK)
    return {"error": False, "message": "Travel Story deleted successfully"}


@router.put("/update-is-favourite/{story_id}")
async def update_is_favourite(
    story_id: str,
    body: FavouriteRequest,
    user_id: str = Depends(get_current_user_id),
    stories: StoryService = Depends(get_story_service),
):
    if body.is_favourite is None:
        raise ValidationError("isFavourite is required")
    story = await run_in_threadpool(stories.set_favourite, user_id, story_id, body.is_favourite)
    return {"story": story.to_json(), "message": "Update Successfully"}


@router.get("/search")
async def search_stories(
    query: Optional[str] = Query(None),
    user_id: str = Depends(get_current_user_id),
    stories: StoryService = Depends(get_story_service),
):
    try:
        results = await run_in_threadpool(stories.search, user_id, query)
    except ValidationError as e:
        return error_response(e.message, status.HTTP_404_NOT_FOUND)
    return {"stories": [s.to_json() for s in results]}


@router.get("/travel-stories/filter")
async def filter_stories(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    user_id: str = Depends(get_current_user_id),
    stories: StoryService = Depends(get_story_service),
):
    # Missing or non-numeric bounds are rejected as 400 before querying, not
    # surfaced as a 500 from an unparseable date
    results = await run_in_threadpool(stories.filter_by_date, user_id, start_date, end_date)
    return {"stories": [s.to_json() for s in results]}


# ---------------------- Media ----------------------

@router.post("/image-upload")
async def image_upload(
    image: Optional[UploadFile] = File(None),
    media: MediaService = Depends(get_media_service),
):
    """Store a multipart "image" file and return its public URL"""
    if image is None:
        raise ValidationError("No image uploaded")
    image_url = await run_in_threadpool(media.upload, image.file, image.content_type, image.filename)
    return {"imageUrl": image_url}


@router.delete("/delete-image")
async def delete_image(
    image_url: Optional[str] = Query(None, alias="imageUrl"),
    media: MediaService = Depends(get_media_service),
):
    if not image_url:
        return error_response("imageUrl parameter is required", status.HTTP_200_OK)
    deleted = await run_in_threadpool(media.delete_by_url, image_url)
    if not deleted:
        return error_response("Image not found", status.HTTP_200_OK)
    return {"error": False, "message": "Image deleted successfully"}
