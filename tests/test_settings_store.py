import pytest

from errors import TransportError, ValidationError
from forms import FormState
from schemas import AdminSettings
from settings_store import AboutMeUpdate, FlagsUpdate, SettingsStore, command_from_path, parse_update


class TestCommands:

    def test_bare_name_is_a_flag_update(self):
        command = command_from_path("commentsEnabled", False)
        assert isinstance(command, FlagsUpdate)
        assert command.value is False

    def test_section_path(self):
        command = command_from_path("aboutMe.bio", "Hello")
        assert isinstance(command, AboutMeUpdate)
        assert command.field == "bio"

    @pytest.mark.parametrize("path", [
        "aboutMe", "aboutMe.age", "heroSection.title.text", "flags.commentsEnabled", "unknown.field", "",
    ])
    def test_unknown_paths(self, path):
        with pytest.raises(ValidationError):
            command_from_path(path, "x")

    def test_text_field_rejects_boolean(self):
        with pytest.raises(ValidationError):
            command_from_path("heroSection.title", True)

    def test_parse_update_dict(self):
        command = parse_update({"section": "contactDetails", "field": "phone", "value": "555"})
        assert command.section == "contactDetails"


class TestPatch:

    def test_patch_changes_only_the_addressed_field(self, settings_store):
        before = settings_store.draft.to_document()

        after = settings_store.patch("aboutMe.bio", "X").to_document()

        expected = dict(before)
        expected["aboutMe"] = dict(before["aboutMe"], bio="X")
        assert after == expected

    def test_patch_top_level_flag(self, settings_store):
        settings_store.patch("ratingsEnabled", False)
        assert settings_store.draft.ratings_enabled is False
        assert settings_store.draft.comments_enabled is True

    def test_patch_photo_url(self, settings_store):
        settings_store.patch("aboutMe.photoUrl", "data:image/png;base64,AAAA")
        assert settings_store.draft.about_me.photo_url == "data:image/png;base64,AAAA"

    def test_patches_accumulate_across_sections(self, settings_store):
        settings_store.patch("heroSection.title", "Hi")
        settings_store.patch("contactDetails.location", "Dhaka")
        settings_store.patch("footerContent.copyright", "(c) me")

        draft = settings_store.draft
        assert draft.hero_section.title == "Hi"
        assert draft.hero_section.subtitle == AdminSettings().hero_section.subtitle
        assert draft.contact_details.location == "Dhaka"
        assert draft.footer_content.copyright == "(c) me"

    def test_patch_does_not_publish(self, settings_store):
        settings_store.patch("commentsEnabled", False)
        assert settings_store.settings.comments_enabled is True

    def test_discard_resets_draft(self, settings_store):
        settings_store.patch("aboutMe.name", "Sam")
        settings_store.discard()
        assert settings_store.draft == settings_store.settings


class TestCommit:

    def test_commit_persists_and_publishes(self, settings_store, gateway):
        settings_store.patch("aboutMe.name", "Sam")

        published = settings_store.commit()

        assert published.about_me.name == "Sam"
        assert settings_store.settings.about_me.name == "Sam"
        assert gateway.settings["aboutMe"]["name"] == "Sam"
        assert settings_store.form.state is FormState.SUCCESS

    def test_failed_commit_keeps_published_value(self, settings_store, gateway):
        settings_store.patch("aboutMe.name", "Sam")
        gateway.fail = True

        with pytest.raises(TransportError):
            settings_store.commit()

        assert settings_store.settings.about_me.name == ""
        assert settings_store.draft.about_me.name == "Sam"
        assert gateway.settings is None
        assert settings_store.form.state is FormState.ERROR

    def test_load_reads_stored_settings(self, gateway):
        stored = AdminSettings().to_document()
        stored["heroSection"]["title"] = "Stored"
        gateway.settings = stored

        store = SettingsStore(gateway)
        store.load()

        assert store.settings.hero_section.title == "Stored"
        assert store.draft == store.settings

    def test_starts_from_given_settings(self, gateway):
        published = AdminSettings(comments_enabled=False)
        store = SettingsStore(gateway, published)

        assert store.settings is published
        assert store.draft is published
        assert SettingsStore(gateway).settings == AdminSettings()
