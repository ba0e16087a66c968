"""
Settings store

Holds the published AdminSettings and the working draft the admin edits.
Edits are explicit update commands, one type per settings section, so a
command can only ever name a field that exists and carry a value of the
right type. `patch("section.field", value)` is the form-facing spelling of
the same thing.
"""

import logging
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from database import PersistenceGateway
from errors import TransportError, Unavailable, ValidationError
from forms import SubmissionForm
from schemas import AdminSettings, field_name

logger = logging.getLogger(__name__)


class FlagsUpdate(BaseModel):
    section: Literal["flags"] = "flags"
    field: Literal["commentsEnabled", "ratingsEnabled"]
    value: bool


class HeroSectionUpdate(BaseModel):
    section: Literal["heroSection"] = "heroSection"
    field: Literal["title", "subtitle"]
    value: str


class FooterContentUpdate(BaseModel):
    section: Literal["footerContent"] = "footerContent"
    field: Literal["copyright"]
    value: str


class AboutMeUpdate(BaseModel):
    section: Literal["aboutMe"] = "aboutMe"
    field: Literal["name", "photoUrl", "bio", "professionalSummary"]
    value: str


class ContactDetailsUpdate(BaseModel):
    section: Literal["contactDetails"] = "contactDetails"
    field: Literal["email", "phone", "facebook", "linkedin", "location"]
    value: str


SettingsUpdate = Annotated[
    Union[FlagsUpdate, HeroSectionUpdate, FooterContentUpdate, AboutMeUpdate, ContactDetailsUpdate],
    Field(discriminator="section"),
]

_update_adapter = TypeAdapter(SettingsUpdate)


def parse_update(data) -> SettingsUpdate:
    try:
        return _update_adapter.validate_python(data)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid settings update: {e.errors()[0]['msg']}") from e


def command_from_path(path: str, value) -> SettingsUpdate:
    """Turn `commentsEnabled` or `aboutMe.bio` style paths into a command."""
    parts = path.split(".")
    if len(parts) == 1:
        return parse_update({"section": "flags", "field": parts[0], "value": value})
    if len(parts) == 2 and parts[0] != "flags":
        return parse_update({"section": parts[0], "field": parts[1], "value": value})
    raise ValidationError(f"Unknown settings field: {path}")


class SettingsStore:
    def __init__(self, gateway: PersistenceGateway, settings: Optional[AdminSettings] = None):
        self.gateway = gateway
        self.settings = settings or AdminSettings()
        self.draft = self.settings
        self.form = SubmissionForm("settings")
        # set when the stored settings could not be read; the defaults are not the published state then
        self.stale = False

    def load(self):
        try:
            doc = self.gateway.get_settings()
        except TransportError:
            self.stale = True
            logger.error("Could not load the stored settings")
            raise
        self.stale = False
        if doc:
            self.settings = AdminSettings.model_validate(doc)
            self.draft = self.settings
            logger.info("Loaded stored settings")

    def require_loaded(self):
        """Retry a failed load; the draft cannot hold edits while stale, so nothing is lost."""
        if not self.stale:
            return
        try:
            self.load()
        except TransportError as e:
            raise Unavailable("Settings could not be loaded. Please try again.") from e

    def apply(self, command: SettingsUpdate) -> AdminSettings:
        self.require_loaded()
        if isinstance(command, FlagsUpdate):
            name = field_name(AdminSettings, command.field)
            self.draft = self.draft.model_copy(update={name: command.value})
            return self.draft

        section_name = field_name(AdminSettings, command.section)
        section = getattr(self.draft, section_name)
        name = field_name(type(section), command.field)
        section = section.model_copy(update={name: command.value})
        self.draft = self.draft.model_copy(update={section_name: section})
        return self.draft

    def patch(self, path: str, value) -> AdminSettings:
        return self.apply(command_from_path(path, value))

    def discard(self):
        self.draft = self.settings

    def commit(self) -> AdminSettings:
        """Persist the whole draft and publish it once the gateway accepted it."""
        self.require_loaded()
        draft = self.draft

        def save():
            self.gateway.save_settings(draft.to_document())
            self.settings = draft
            logger.info("Settings saved")
            return draft

        return self.form.submit(save)
