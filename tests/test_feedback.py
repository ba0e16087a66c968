import pytest

from errors import FeedbackDisabled, NotFound, TransportError, ValidationError
from schemas import CommentDraft, Rating


@pytest.fixture
def owners(store):
    return [
        store.upsert("project", {"title": "P1", "description": "d"}),
        store.upsert("project", {"title": "P2", "description": "d"}),
        store.upsert("writing", {"title": "W1", "category": "Poetry", "content": "verse"}),
    ]


class TestComments:

    def test_comment_lands_on_its_owner_only(self, store, feedback, owners):
        p1, p2, w1 = owners

        comment = feedback.submit_comment(p2.id, CommentDraft(name="Ann", body="Great work"))

        projects = store.items("project")
        assert projects[0] is p1
        assert projects[1].comments == [comment]
        assert store.items("writing")[0] is w1
        assert comment.id.startswith("c_")
        assert comment.timestamp

    def test_comment_on_a_writing(self, store, feedback, owners):
        w1 = owners[2]
        feedback.submit_comment(w1.id, {"name": "Bo", "email": "bo@x.io", "body": "Lovely"})
        saved = store.get("writing", w1.id)
        assert [(c.name, c.email, c.body) for c in saved.comments] == [("Bo", "bo@x.io", "Lovely")]
        assert store.gateway.collections["writing"][w1.id]["comments"][0]["body"] == "Lovely"

    def test_comments_keep_arrival_order(self, store, feedback, owners):
        p1 = owners[0]
        feedback.submit_comment(p1.id, {"name": "A", "body": "first"})
        feedback.submit_comment(p1.id, {"name": "B", "body": "second"})
        comments = store.get("project", p1.id).comments
        assert [c.body for c in comments] == ["first", "second"]
        assert comments[0].id != comments[1].id

    def test_comments_disabled(self, store, feedback, settings_store, owners):
        settings_store.patch("commentsEnabled", False)
        settings_store.commit()

        with pytest.raises(FeedbackDisabled):
            feedback.submit_comment(owners[0].id, {"name": "A", "body": "x"})
        assert store.get("project", owners[0].id).comments == []

    def test_unpublished_toggle_does_not_apply(self, feedback, settings_store, owners):
        settings_store.patch("commentsEnabled", False)
        feedback.submit_comment(owners[0].id, {"name": "A", "body": "still allowed"})

    def test_blank_comment(self, feedback, owners):
        with pytest.raises(ValidationError):
            feedback.submit_comment(owners[0].id, {"name": "A", "body": "   "})

    def test_unknown_owner(self, feedback, owners):
        with pytest.raises(NotFound):
            feedback.submit_comment("proj_404", {"name": "A", "body": "x"})

    def test_failed_persist_leaves_owner_untouched(self, store, feedback, gateway, owners):
        gateway.fail = True
        with pytest.raises(TransportError):
            feedback.submit_comment(owners[0].id, {"name": "A", "body": "x"})
        assert store.get("project", owners[0].id) is owners[0]


class TestRatings:

    def test_repeated_votes_are_kept(self, store, feedback, owners):
        p1 = owners[0]
        feedback.submit_rating(p1.id, Rating(value=5, voter="visitor-1"))
        feedback.submit_rating(p1.id, {"value": 3, "voter": "visitor-1"})

        ratings = store.get("project", p1.id).ratings
        assert [(r.value, r.voter) for r in ratings] == [(5, "visitor-1"), (3, "visitor-1")]
        assert store.get("project", owners[1].id).ratings == []

    def test_rating_out_of_range(self, feedback, owners):
        with pytest.raises(ValidationError):
            feedback.submit_rating(owners[0].id, {"value": 6, "voter": "v"})

    def test_ratings_disabled(self, feedback, settings_store, owners):
        settings_store.patch("ratingsEnabled", False)
        settings_store.commit()
        with pytest.raises(FeedbackDisabled):
            feedback.submit_rating(owners[0].id, {"value": 4, "voter": "v"})


class TestInbox:

    @pytest.fixture
    def messages(self, store, gateway):
        gateway.collections["message"] = {
            "m1": {"id": "m1", "name": "Old", "email": "o@x.io", "message": "first",
                   "timestamp": "2024-01-01T10:00:00Z"},
            "m2": {"id": "m2", "name": "New", "email": "n@x.io", "message": "second",
                   "timestamp": "2024-03-01T10:00:00Z", "read": True},
            "m3": {"id": "m3", "name": "Mid", "email": "m@x.io", "message": "third",
                   "timestamp": "2024-02-01T10:00:00Z"},
        }
        store.load()

    def test_inbox_is_newest_first(self, feedback, store, messages):
        assert [m.id for m in feedback.inbox()] == ["m2", "m3", "m1"]
        assert store.dashboard()["unreadMessages"] == 2

    def test_mark_read(self, feedback, store, gateway, messages):
        message = feedback.mark_message_read("m1")
        assert message.read is True
        assert gateway.collections["message"]["m1"]["read"] is True
        assert store.dashboard()["unreadMessages"] == 1

    def test_mark_read_twice_is_quiet(self, feedback, gateway, messages):
        calls = list(gateway.calls)
        assert feedback.mark_message_read("m2").read is True
        assert gateway.calls == calls

    def test_mark_read_unknown(self, feedback, messages):
        with pytest.raises(NotFound):
            feedback.mark_message_read("m9")

    def test_delete_message_is_idempotent(self, store, feedback, messages):
        assert feedback.delete_message("m1") is True
        assert feedback.delete_message("m1") is False
        assert [m.id for m in store.items("message")] == ["m2", "m3"]
