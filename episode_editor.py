"""
Writing bodies and the episode sub-editor

A Writing's `content` is a list of episodes when its category is Novel and
a single text otherwise. The shape only ever changes through
`change_category` (while editing) and `reconcile_content` (right before a
save), both of which clear the stale representation.

The episode operations act on a draft and return a new draft; nothing is
visible outside the editor until the draft is saved.
"""

from typing import List, Optional, Union

from errors import NotFound, ValidationError
from schemas import Episode, Writing, WritingCategory, generate_id, now_ms

EPISODE_FIELDS = ("title", "content")


def is_serial(category: Optional[WritingCategory]) -> bool:
    return category == WritingCategory.NOVEL


def empty_content(category: Optional[WritingCategory]) -> Union[List[Episode], str]:
    return [] if is_serial(category) else ""


def reconcile_content(writing: Writing) -> Writing:
    """Clear `content` if its shape does not match the category."""
    serial = is_serial(writing.category)
    if serial != isinstance(writing.content, list):
        return writing.model_copy(update={"content": empty_content(writing.category)})
    return writing


def change_category(draft: Writing, category) -> Writing:
    try:
        category = WritingCategory(category)
    except ValueError:
        raise ValidationError(f"Unknown category: {category}")
    update = {"category": category}
    if is_serial(category) != is_serial(draft.category):
        update["content"] = empty_content(category)
    return draft.model_copy(update=update)


def _episodes(draft: Writing) -> List[Episode]:
    if not is_serial(draft.category):
        raise ValidationError("Episodes can only be edited on a Novel")
    return list(draft.content) if isinstance(draft.content, list) else []


def _check_index(episodes: List[Episode], index: int):
    if not 0 <= index < len(episodes):
        raise NotFound(f"No episode at position {index}")


def add_episode(draft: Writing, stamp: Optional[int] = None) -> Writing:
    episodes = _episodes(draft)
    episode = Episode(
        id=generate_id("ep", (e.id for e in episodes), stamp if stamp is not None else now_ms()),
        episode_number=len(episodes) + 1,
    )
    return draft.model_copy(update={"content": episodes + [episode]})


def remove_episode(draft: Writing, index: int) -> Writing:
    # episode_number of the remaining episodes is left as is
    episodes = _episodes(draft)
    _check_index(episodes, index)
    return draft.model_copy(update={"content": episodes[:index] + episodes[index + 1:]})


def update_episode_field(draft: Writing, index: int, field: str, value: str) -> Writing:
    if field not in EPISODE_FIELDS:
        raise ValidationError(f"Episode field must be one of {', '.join(EPISODE_FIELDS)}")
    if not isinstance(value, str):
        raise ValidationError(f"Episode {field} must be text")
    episodes = _episodes(draft)
    _check_index(episodes, index)
    episodes[index] = episodes[index].model_copy(update={field: value})
    return draft.model_copy(update={"content": episodes})
