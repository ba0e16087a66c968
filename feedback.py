"""
Feedback aggregator

Visitor comments and ratings live inside the Project or Writing they belong
to. They are attached here, not through the generic CRUD path: the owner is
persisted with the new entry appended and then swapped into the store, the
other items stay as they were. Contact messages are moderated here too.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, List

from pydantic import ValidationError as PydanticValidationError

from content_store import ContentStore
from errors import FeedbackDisabled, ValidationError
from forms import SubmissionForm
from schemas import Comment, CommentDraft, Document, Message, Rating, generate_id
from settings_store import SettingsStore

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FeedbackAggregator:
    def __init__(self, store: ContentStore, settings: SettingsStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.settings = settings
        self._clock = clock
        self.comment_form = SubmissionForm("comment")
        self.rating_form = SubmissionForm("rating")
        self.inbox_form = SubmissionForm("inbox")

    def _persist_owner(self, collection: str, owner: Document) -> Document:
        stored = self.store.gateway.update(collection, owner.id, owner.to_document())
        saved = type(owner).model_validate(stored)
        self.store.replace_local(collection, saved)
        return saved

    def submit_comment(self, owner_id: str, comment) -> Comment:
        self.settings.require_loaded()
        if not self.settings.settings.comments_enabled:
            raise FeedbackDisabled("Comments are currently disabled")
        try:
            comment = CommentDraft.model_validate(comment) if isinstance(comment, dict) else comment
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid comment: {e.errors()[0]['msg']}") from e
        missing = comment.missing_fields()
        if missing:
            raise ValidationError(f"{', '.join(missing)} required")

        def submit():
            collection, owner = self.store.find_owner(owner_id)
            now = self._clock()
            new = Comment(
                id=generate_id("c", (c.id for c in owner.comments), int(now.timestamp() * 1000)),
                name=comment.name.strip(),
                email=comment.email or None,
                body=comment.body.strip(),
                timestamp=now.isoformat(),
            )
            self._persist_owner(collection, owner.model_copy(update={"comments": owner.comments + [new]}))
            logger.info(f"Comment {new.id} added to {collection} {owner_id}")
            return new

        return self.comment_form.submit(submit)

    def submit_rating(self, owner_id: str, rating) -> Rating:
        self.settings.require_loaded()
        if not self.settings.settings.ratings_enabled:
            raise FeedbackDisabled("Ratings are currently disabled")
        try:
            rating = Rating.model_validate(rating) if isinstance(rating, dict) else rating
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid rating: {e.errors()[0]['msg']}") from e

        def submit():
            collection, owner = self.store.find_owner(owner_id)
            # every rating is its own entry, repeated voters included
            self._persist_owner(collection, owner.model_copy(update={"ratings": owner.ratings + [rating]}))
            logger.info(f"Rating {rating.value} added to {collection} {owner_id}")
            return rating

        return self.rating_form.submit(submit)

    # =====
    # Inbox
    # =====
    def inbox(self) -> List[Message]:
        return sorted(self.store.items("message"), key=lambda m: m.timestamp, reverse=True)

    def mark_message_read(self, message_id: str) -> Message:
        message = self.store.get("message", message_id)
        if message.read:
            return message

        def submit():
            updated = message.model_copy(update={"read": True})
            stored = self.store.gateway.update("message", message_id, updated.to_document())
            saved = Message.model_validate(stored)
            self.store.replace_local("message", saved)
            return saved

        return self.inbox_form.submit(submit)

    def delete_message(self, message_id: str) -> bool:
        return self.inbox_form.submit(lambda: self.store.remove("message", message_id))
