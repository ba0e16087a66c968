"""
Database Schemas for Portfolio CMS

Each Pydantic model = one MongoDB collection (lowercased class name).
Attributes are snake_case; stored documents and API payloads use the
camelCase aliases.
"""

import time
from enum import Enum
from typing import ClassVar, Iterable, List, Optional, Tuple, Type, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def now_ms() -> int:
    return int(time.time() * 1000)


def generate_id(prefix: str, taken: Iterable[str], stamp: int) -> str:
    """`<prefix>_<ms timestamp>`, bumped until it is free in `taken`."""
    taken = set(taken)
    while f"{prefix}_{stamp}" in taken:
        stamp += 1
    return f"{prefix}_{stamp}"


class Document(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    # (attribute, label) pairs that must be non-blank before a save
    required_fields: ClassVar[Tuple[Tuple[str, str], ...]] = ()

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")

    def missing_fields(self) -> List[str]:
        missing = []
        for name, label in self.required_fields:
            value = getattr(self, name)
            if value is None or (isinstance(value, str) and not value.strip()):
                missing.append(label)
        return missing


def field_name(model: Type[BaseModel], key: str) -> Optional[str]:
    """Attribute name for `key`, given either as attribute or as alias."""
    for name, info in model.model_fields.items():
        if key in (name, info.alias, to_camel(name)):
            return name
    return None


# Auth
class Admin(Document):
    password_hash: str
    role: str = Field(default="admin")


# Feedback (always nested in a Project or Writing)
class Comment(Document):
    id: str
    name: str
    email: Optional[str] = None
    body: str
    timestamp: str


class CommentDraft(Document):
    name: str = ""
    email: Optional[str] = None
    body: str = ""

    required_fields = (("name", "Name"), ("body", "Comment"))


class Rating(Document):
    value: int = Field(..., ge=1, le=5)
    voter: str


# Content
class Project(Document):
    id: Optional[str] = None
    title: str = ""
    description: str = ""
    images: List[str] = []  # urls or data urls
    demo_video_url: Optional[str] = None
    pdf_url: Optional[str] = None
    comments: List[Comment] = []
    ratings: List[Rating] = []

    required_fields = (("title", "Title"), ("description", "Description"))


class WritingCategory(str, Enum):
    NOVEL = "Novel"
    SHORT_STORY = "Short Story"
    POETRY = "Poetry"
    ESSAY = "Essay"
    OTHER = "Other"


class WritingGenre(str, Enum):
    FANTASY = "Fantasy"
    ROMANCE = "Romance"
    THRILLER = "Thriller"
    MYSTERY = "Mystery"
    SCIENCE_FICTION = "Science Fiction"
    HORROR = "Horror"
    DRAMA = "Drama"
    COMEDY = "Comedy"
    LITERARY_FICTION = "Literary Fiction"
    OTHER = "Other"


class Episode(Document):
    id: str
    episode_number: int
    title: str = ""
    content: str = ""


class Writing(Document):
    id: Optional[str] = None
    title: str = ""
    category: Optional[WritingCategory] = None
    genre: Optional[WritingGenre] = None
    cover_image: str = ""
    summary: str = ""
    # episodes for a Novel, plain text for every other category
    content: Union[List[Episode], str] = ""
    youtube_audiobook_url: Optional[str] = None
    comments: List[Comment] = []
    ratings: List[Rating] = []

    required_fields = (("title", "Title"), ("category", "Category"))

    @field_validator("genre", mode="before")
    @classmethod
    def blank_genre(cls, value):
        # an unselected genre comes through the form as ""
        return value or None


class WorkExperience(Document):
    id: Optional[str] = None
    role: str = ""
    company: str = ""
    period: str = ""
    # line-delimited text while drafting, list of lines once saved
    description: Union[List[str], str] = []

    required_fields = (("role", "Role"), ("company", "Company"))


class Education(Document):
    id: Optional[str] = None
    degree: str = ""
    institution: str = ""
    period: str = ""
    details: str = ""

    required_fields = (("degree", "Degree"), ("institution", "Institution"))


class Certificate(Document):
    id: Optional[str] = None
    name: str = ""
    issuer: str = ""
    date: str = ""
    credential_url: Optional[str] = None

    required_fields = (("name", "Name"), ("issuer", "Issuer"))


class Message(Document):
    id: Optional[str] = None
    name: str
    email: str
    message: str
    timestamp: str
    read: bool = False


# Settings (singleton document)
class HeroSection(Document):
    title: str = "Welcome to my territory"
    subtitle: str = "A journey through code, creativity, and everything in between"


class FooterContent(Document):
    copyright: str = "All rights reserved."


class AboutMe(Document):
    name: str = ""
    photo_url: str = ""
    bio: str = ""
    professional_summary: str = ""


class ContactDetails(Document):
    email: str = ""
    phone: str = ""
    facebook: str = ""
    linkedin: str = ""
    location: str = ""


class AdminSettings(Document):
    comments_enabled: bool = True
    ratings_enabled: bool = True
    hero_section: HeroSection = Field(default_factory=HeroSection)
    footer_content: FooterContent = Field(default_factory=FooterContent)
    about_me: AboutMe = Field(default_factory=AboutMe)
    contact_details: ContactDetails = Field(default_factory=ContactDetails)
