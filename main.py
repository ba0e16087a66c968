import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from fastapi import APIRouter, Body, Depends, FastAPI, File, Header, HTTPException, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

import config
from auth import AuthGate
from content_store import ContentStore
from database import PersistenceGateway, default_gateway
from episode_editor import add_episode, change_category, remove_episode, update_episode_field
from errors import ConsoleError, TransportError
from feedback import FeedbackAggregator
from logger_config import setup_logging
from schemas import CommentDraft, Rating
from settings_store import SettingsStore, parse_update
from uploads import DataUrlUploader

logger = logging.getLogger(__name__)


# ==========
# Console
# ==========
@dataclass
class Console:
    gateway: PersistenceGateway
    content: ContentStore
    settings: SettingsStore
    feedback: FeedbackAggregator
    auth: AuthGate
    uploader: DataUrlUploader

    def load(self) -> bool:
        """Load each part on its own so one failed read cannot leave another on its defaults."""
        ok = True
        for part in (self.auth, self.settings, self.content):
            try:
                part.load()
            except TransportError:
                logger.exception(f"Could not load {type(part).__name__} from the database")
                ok = False
        return ok


def build_console(gateway: PersistenceGateway, uploader: Optional[DataUrlUploader] = None,
                  auth: Optional[AuthGate] = None) -> Console:
    content = ContentStore(gateway)
    settings = SettingsStore(gateway)
    return Console(
        gateway=gateway,
        content=content,
        settings=settings,
        feedback=FeedbackAggregator(content, settings),
        auth=auth or AuthGate(gateway),
        uploader=uploader or DataUrlUploader(),
    )


# ============
# Request DTOs
# ============
class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class LoginRequest(BaseModel):
    password: str


class ChangePasswordRequest(CamelModel):
    current_password: str
    new_password: str
    confirm_password: str


class SettingsPatchRequest(BaseModel):
    path: str
    value: Union[bool, str]


class CategoryRequest(BaseModel):
    category: str


class EpisodeFieldRequest(BaseModel):
    field: Literal["title", "content"]
    value: str


class Kind(str, Enum):
    projects = "projects"
    writings = "writings"
    experience = "experience"
    education = "education"
    certificates = "certificates"


COLLECTION_FOR_KIND = {
    Kind.projects: "project",
    Kind.writings: "writing",
    Kind.experience: "workexperience",
    Kind.education: "education",
    Kind.certificates: "certificate",
}


# ============
# Dependencies
# ============
def get_console(request: Request) -> Console:
    return request.app.state.console


def get_current_admin(authorization: Optional[str] = Header(None), console: Console = Depends(get_console)):
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Not authenticated")
    token = authorization.split(" ", 1)[1]
    return console.auth.authorize(token)


def draft_response(console: Console, collection: str) -> dict:
    draft = console.content.draft(collection)
    return {
        "draft": draft.to_document() if draft is not None else None,
        "form": console.content.form(collection).snapshot(),
    }


async def read_upload(console: Console, file: UploadFile) -> str:
    data = await file.read()
    return console.uploader.store(file.filename, data, file.content_type, expected_size=file.size)


# ======
# Routes
# ======
router = APIRouter()
admin = APIRouter(prefix="/api/admin", dependencies=[Depends(get_current_admin)])


@router.get("/")
def root():
    return {"status": "ok", "service": "portfolio-console"}


@router.get("/test")
def test_database(console: Console = Depends(get_console)):
    return console.gateway.status()


# Auth
@router.post("/api/auth/login", response_model=Token)
def login(data: LoginRequest, console: Console = Depends(get_console)):
    return Token(access_token=console.auth.login(data.password))


@router.post("/api/auth/logout")
def logout(_: dict = Depends(get_current_admin), console: Console = Depends(get_console)):
    console.auth.logout()
    return {"ok": True}


@router.post("/api/auth/password")
def change_password(data: ChangePasswordRequest, _: dict = Depends(get_current_admin),
                    console: Console = Depends(get_console)):
    console.auth.change_password(data.current_password, data.new_password, data.confirm_password)
    return {"ok": True, "message": "Password updated successfully!"}


# Dashboard & inbox
@admin.get("/dashboard")
def dashboard(console: Console = Depends(get_console)):
    return console.content.dashboard()


@admin.post("/reload")
def reload_console(console: Console = Depends(get_console)):
    return {"loaded": console.load(), "settingsStale": console.settings.stale}


@admin.get("/messages")
def list_messages(console: Console = Depends(get_console)):
    return [m.to_document() for m in console.feedback.inbox()]


@admin.post("/messages/{message_id}/read")
def mark_message_read(message_id: str, console: Console = Depends(get_console)):
    return console.feedback.mark_message_read(message_id).to_document()


@admin.delete("/messages/{message_id}")
def delete_message(message_id: str, console: Console = Depends(get_console)):
    return {"deleted": int(console.feedback.delete_message(message_id))}


# Settings
@admin.get("/settings")
def get_settings_draft(console: Console = Depends(get_console)):
    return {"draft": console.settings.draft.to_document(), "form": console.settings.form.snapshot()}


@admin.patch("/settings")
def patch_settings(data: SettingsPatchRequest, console: Console = Depends(get_console)):
    return console.settings.patch(data.path, data.value).to_document()


@admin.post("/settings/commands")
def apply_settings_command(command: Dict[str, Any] = Body(...), console: Console = Depends(get_console)):
    return console.settings.apply(parse_update(command)).to_document()


@admin.delete("/settings")
def discard_settings(console: Console = Depends(get_console)):
    console.settings.discard()
    return console.settings.draft.to_document()


@admin.post("/settings/commit")
def commit_settings(console: Console = Depends(get_console)):
    return console.settings.commit().to_document()


@admin.post("/settings/photo")
async def upload_settings_photo(file: UploadFile = File(...), path: str = Query("aboutMe.photoUrl"),
                                console: Console = Depends(get_console)):
    url = await read_upload(console, file)
    return console.settings.patch(path, url).to_document()


@admin.post("/uploads")
async def upload(files: List[UploadFile] = File(...), console: Console = Depends(get_console)):
    return {"urls": [await read_upload(console, f) for f in files]}


# Writing episodes
@admin.put("/writings/draft/category")
def set_writing_category(data: CategoryRequest, console: Console = Depends(get_console)):
    draft = console.content.require_draft("writing")
    console.content.replace_draft("writing", change_category(draft, data.category))
    return draft_response(console, "writing")


@admin.post("/writings/draft/episodes")
def add_writing_episode(console: Console = Depends(get_console)):
    draft = console.content.require_draft("writing")
    console.content.replace_draft("writing", add_episode(draft))
    return draft_response(console, "writing")


@admin.patch("/writings/draft/episodes/{index}")
def update_writing_episode(index: int, data: EpisodeFieldRequest, console: Console = Depends(get_console)):
    draft = console.content.require_draft("writing")
    console.content.replace_draft("writing", update_episode_field(draft, index, data.field, data.value))
    return draft_response(console, "writing")


@admin.delete("/writings/draft/episodes/{index}")
def remove_writing_episode(index: int, console: Console = Depends(get_console)):
    draft = console.content.require_draft("writing")
    console.content.replace_draft("writing", remove_episode(draft, index))
    return draft_response(console, "writing")


# Drafts & CRUD
@admin.post("/{kind}/drafts")
def new_draft(kind: Kind, console: Console = Depends(get_console)):
    collection = COLLECTION_FOR_KIND[kind]
    console.content.new_draft(collection)
    return draft_response(console, collection)


@admin.get("/{kind}/draft")
def get_draft(kind: Kind, console: Console = Depends(get_console)):
    return draft_response(console, COLLECTION_FOR_KIND[kind])


@admin.patch("/{kind}/draft")
def update_draft(kind: Kind, fields: Dict[str, Any] = Body(...), console: Console = Depends(get_console)):
    collection = COLLECTION_FOR_KIND[kind]
    console.content.update_draft(collection, fields)
    return draft_response(console, collection)


@admin.delete("/{kind}/draft")
def discard_draft(kind: Kind, console: Console = Depends(get_console)):
    collection = COLLECTION_FOR_KIND[kind]
    console.content.discard_draft(collection)
    return draft_response(console, collection)


@admin.post("/{kind}/draft/save")
def save_draft(kind: Kind, console: Console = Depends(get_console)):
    return console.content.save_draft(COLLECTION_FOR_KIND[kind]).to_document()


@admin.post("/{kind}/{item_id}/edit")
def edit_draft(kind: Kind, item_id: str, console: Console = Depends(get_console)):
    collection = COLLECTION_FOR_KIND[kind]
    console.content.edit_draft(collection, item_id)
    return draft_response(console, collection)


@admin.delete("/{kind}/{item_id}")
def delete_item(kind: Kind, item_id: str, console: Console = Depends(get_console)):
    return {"deleted": int(console.content.delete(COLLECTION_FOR_KIND[kind], item_id))}


# Public
@router.get("/api/settings")
def get_settings(console: Console = Depends(get_console)):
    return console.settings.settings.to_document()


@router.post("/api/feedback/{owner_id}/comments")
def submit_comment(owner_id: str, comment: CommentDraft, console: Console = Depends(get_console)):
    return console.feedback.submit_comment(owner_id, comment).to_document()


@router.post("/api/feedback/{owner_id}/ratings")
def submit_rating(owner_id: str, rating: Rating, console: Console = Depends(get_console)):
    return console.feedback.submit_rating(owner_id, rating).to_document()


@router.get("/api/{kind}")
def list_items(kind: Kind, console: Console = Depends(get_console)):
    return [it.to_document() for it in console.content.items(COLLECTION_FOR_KIND[kind])]


@router.get("/api/{kind}/{item_id}")
def get_item(kind: Kind, item_id: str, console: Console = Depends(get_console)):
    return console.content.get(COLLECTION_FOR_KIND[kind], item_id).to_document()


# ==================
# FastAPI app config
# ==================
async def console_error_handler(request: Request, exc: ConsoleError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.console.load()
    yield


def create_app(gateway: Optional[PersistenceGateway] = None, uploader: Optional[DataUrlUploader] = None,
               auth: Optional[AuthGate] = None) -> FastAPI:
    gateway = gateway or default_gateway()
    app = FastAPI(title="Portfolio Console API", lifespan=lifespan)
    app.state.console = build_console(gateway, uploader, auth)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(ConsoleError, console_error_handler)

    # admin routes first: /api/{kind}/{item_id} would shadow them
    app.include_router(admin)
    app.include_router(router)
    return app


setup_logging()
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
