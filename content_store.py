"""
Content store

In-memory authoritative copy of every content collection. All mutations go
through the persistence gateway first; local state changes only once the
gateway call has returned, so a failed call leaves every collection exactly
as it was.
"""

import logging
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Tuple, Type

from pydantic import ValidationError as PydanticValidationError

from database import PersistenceGateway
from episode_editor import change_category, reconcile_content
from errors import NotFound, ValidationError
from forms import SubmissionForm
from schemas import (Certificate, Document, Education, Message, Project, WorkExperience, Writing, field_name,
                     generate_id, now_ms)

logger = logging.getLogger(__name__)


class Collection(NamedTuple):
    model: Type[Document]
    prefix: str
    label: str


COLLECTIONS: Dict[str, Collection] = {
    "project": Collection(Project, "proj", "project"),
    "writing": Collection(Writing, "writ", "literary work"),
    "workexperience": Collection(WorkExperience, "work", "work experience"),
    "education": Collection(Education, "edu", "education entry"),
    "certificate": Collection(Certificate, "cert", "certificate"),
    "message": Collection(Message, "msg", "message"),
}

# collections edited through admin drafts
EDITABLE = ("project", "writing", "workexperience", "education", "certificate")
# collections whose items own comments and ratings
FEEDBACK_OWNERS = ("project", "writing")

READ_ONLY_FIELDS = ("id", "comments", "ratings")


def split_lines(text: str) -> List[str]:
    return [line.strip() for line in text.splitlines() if line.strip()]


class ContentStore:
    def __init__(self, gateway: PersistenceGateway, clock: Callable[[], int] = now_ms):
        self.gateway = gateway
        self._clock = clock
        self._items: Dict[str, List[Document]] = {name: [] for name in COLLECTIONS}
        self._drafts: Dict[str, Optional[Document]] = {name: None for name in EDITABLE}
        self._forms: Dict[str, SubmissionForm] = {name: SubmissionForm(COLLECTIONS[name].label) for name in EDITABLE}

    # =======
    # Reading
    # =======
    def _spec(self, collection: str) -> Collection:
        if collection not in COLLECTIONS:
            raise NotFound(f"Unknown collection: {collection}")
        return COLLECTIONS[collection]

    def load(self):
        """Fetch every collection; nothing is replaced unless all fetches succeed."""
        fetched = {}
        for name, spec in COLLECTIONS.items():
            fetched[name] = [spec.model.model_validate(doc) for doc in self.gateway.list(name)]
        self._items = fetched
        logger.info("Loaded content: " + ", ".join(f"{n}={len(v)}" for n, v in fetched.items()))

    def items(self, collection: str) -> List[Document]:
        self._spec(collection)
        return list(self._items[collection])

    def get(self, collection: str, item_id: str) -> Document:
        spec = self._spec(collection)
        for item in self._items[collection]:
            if item.id == item_id:
                return item
        raise NotFound(f"No {spec.label} with id {item_id}")

    def find_owner(self, owner_id: str) -> Tuple[str, Document]:
        """Project or Writing with the given id."""
        for collection in FEEDBACK_OWNERS:
            for item in self._items[collection]:
                if item.id == owner_id:
                    return collection, item
        raise NotFound(f"No project or literary work with id {owner_id}")

    def dashboard(self) -> dict:
        counts = {name: len(self._items[name]) for name in COLLECTIONS}
        counts["unreadMessages"] = sum(1 for m in self._items["message"] if not m.read)
        return counts

    # ========
    # Mutation
    # ========
    def _coerce(self, spec: Collection, item: Any) -> Document:
        if isinstance(item, spec.model):
            return item
        data = item.model_dump() if isinstance(item, Document) else item
        try:
            return spec.model.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid {spec.label}: {e.errors()[0]['msg']}") from e

    def _prepare(self, collection: str, item: Document) -> Document:
        if collection == "writing":
            return reconcile_content(item)
        if collection == "workexperience" and isinstance(item.description, str):
            return item.model_copy(update={"description": split_lines(item.description)})
        return item

    def upsert(self, collection: str, item: Any) -> Document:
        """
        Save an item.

        With an id the matching element is replaced in place (NotFound if
        there is none); without one a fresh id is assigned and the item is
        appended. The gateway is called before anything changes locally.
        """
        spec = self._spec(collection)
        item = self._coerce(spec, item)
        missing = item.missing_fields()
        if missing:
            raise ValidationError(f"{', '.join(missing)} required")
        item = self._prepare(collection, item)

        if item.id:
            current = self.get(collection, item.id)
            if collection in FEEDBACK_OWNERS:
                # feedback is only ever attached through the feedback aggregator
                item = item.model_copy(update={"comments": current.comments, "ratings": current.ratings})
            stored = self.gateway.update(collection, item.id, item.to_document())
            saved = spec.model.model_validate(stored)
            self.replace_local(collection, saved)
            logger.info(f"Updated {spec.label} {saved.id}")
            return saved

        update = {"id": generate_id(spec.prefix, (i.id for i in self._items[collection]), self._clock())}
        if collection in FEEDBACK_OWNERS:
            update.update(comments=[], ratings=[])
        item = item.model_copy(update=update)
        stored = self.gateway.create(collection, item.to_document())
        saved = spec.model.model_validate(stored)
        self._items[collection] = self._items[collection] + [saved]
        logger.info(f"Created {spec.label} {saved.id}")
        return saved

    def remove(self, collection: str, item_id: str) -> bool:
        """Delete an item with its nested feedback. Unknown ids are a no-op."""
        spec = self._spec(collection)
        if not any(i.id == item_id for i in self._items[collection]):
            logger.debug(f"Nothing to delete: no {spec.label} {item_id}")
            return False
        self.gateway.delete(collection, item_id)
        self.discard_local(collection, item_id)
        logger.info(f"Deleted {spec.label} {item_id}")
        return True

    def replace_local(self, collection: str, item: Document):
        """Swap in an already persisted item, keeping its siblings untouched."""
        self._items[collection] = [item if i.id == item.id else i for i in self._items[collection]]

    def discard_local(self, collection: str, item_id: str):
        self._items[collection] = [i for i in self._items[collection] if i.id != item_id]

    # ======
    # Drafts
    # ======
    def _editable(self, collection: str) -> Collection:
        spec = self._spec(collection)
        if collection not in EDITABLE:
            raise NotFound(f"{spec.label} items cannot be edited")
        return spec

    def form(self, collection: str) -> SubmissionForm:
        self._editable(collection)
        return self._forms[collection]

    def draft(self, collection: str) -> Optional[Document]:
        self._editable(collection)
        return self._drafts[collection]

    def require_draft(self, collection: str) -> Document:
        draft = self.draft(collection)
        if draft is None:
            raise NotFound(f"No {COLLECTIONS[collection].label} is being edited")
        return draft

    def _open(self, collection: str, draft: Document) -> Document:
        # refuses while a save for this collection is in flight
        self._forms[collection].reset()
        self._drafts[collection] = draft
        return draft

    def new_draft(self, collection: str) -> Document:
        spec = self._editable(collection)
        return self._open(collection, spec.model())

    def edit_draft(self, collection: str, item_id: str) -> Document:
        self._editable(collection)
        item = self.get(collection, item_id)
        draft = item.model_copy(deep=True)
        if collection == "workexperience" and isinstance(draft.description, list):
            draft = draft.model_copy(update={"description": "\n".join(draft.description)})
        return self._open(collection, draft)

    def replace_draft(self, collection: str, draft: Document) -> Document:
        self.require_draft(collection)
        self._drafts[collection] = draft
        return draft

    def update_draft(self, collection: str, fields: Dict[str, Any]) -> Document:
        """Merge form fields into the open draft."""
        spec = self._editable(collection)
        draft = self.require_draft(collection)
        updates = {}
        for key, value in fields.items():
            name = field_name(spec.model, key)
            if name is None or name in READ_ONLY_FIELDS:
                raise ValidationError(f"{key} is not an editable {spec.label} field")
            updates[name] = value
        if collection == "writing" and "category" in updates:
            # migrate the body first so content sent alongside is kept
            draft = change_category(draft, updates.pop("category"))
        data = draft.model_dump()
        data.update(updates)
        try:
            draft = spec.model.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid {spec.label}: {e.errors()[0]['msg']}") from e
        return self.replace_draft(collection, draft)

    def discard_draft(self, collection: str):
        self._editable(collection)
        self._forms[collection].reset()
        self._drafts[collection] = None

    def save_draft(self, collection: str) -> Document:
        """Upsert the open draft; it is closed only if the save succeeded."""
        draft = self.require_draft(collection)
        saved = self._forms[collection].submit(lambda: self.upsert(collection, draft))
        self._drafts[collection] = None
        return saved

    def delete(self, collection: str, item_id: str) -> bool:
        self._editable(collection)
        return self._forms[collection].submit(lambda: self.remove(collection, item_id))
