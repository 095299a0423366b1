"""
Shared fixtures for Pro7Chords tests.
"""

import pytest

from pro7chords.codec import BASELINE_ATTRIBUTES, encode
from pro7chords.core import schema
from pro7chords.core.presentation import PresentationDocument


class PresentationBuilder:
    """Builds Presentation messages shaped like ProPresenter song files."""

    def __init__(self, name: str = "Amazing Grace"):
        self.message = schema.Presentation()
        self.message.name = name
        self.message.uuid.string = "presentation-0001"

    def add_cue(self, cue_id, text=None, payload=None, info=schema.INFO_IS_TEXT_ELEMENT, name=None):
        """Add a cue holding one slide action with one text element."""
        cue = self.message.cues.add()
        cue.uuid.string = cue_id
        cue.name = name or cue_id
        cue.isEnabled = True

        action = cue.actions.add()
        action.uuid.string = f"{cue_id}-action"
        action.type = schema.ACTION_TYPE_PRESENTATION_SLIDE
        slide = action.slide.presentation.base_slide
        slide.SetInParent()
        slide.uuid.string = f"{cue_id}-slide"

        if payload is None and text is not None:
            payload = encode(text, BASELINE_ATTRIBUTES)
        if payload is not None:
            element = slide.elements.add()
            element.info = info
            element.element.uuid.string = f"{cue_id}-element"
            element.element.name = "Lyrics"
            element.element.text.rtf_data = payload
        return cue

    def add_media_action(self, cue):
        """Add a non-slide action to a cue."""
        action = cue.actions.add()
        action.type = schema.ACTION_TYPE_MEDIA
        action.name = "Background"
        return action

    def add_group(self, group_id, cue_ids, name=None):
        cue_group = self.message.cue_groups.add()
        cue_group.group.uuid.string = group_id
        cue_group.group.name = name or group_id
        for cue_id in cue_ids:
            cue_group.cue_identifiers.add(string=cue_id)
        return cue_group

    def add_arrangement(self, group_ids, name="Default"):
        arrangement = self.message.arrangements.add()
        arrangement.uuid.string = f"arrangement-{name}"
        arrangement.name = name
        for group_id in group_ids:
            arrangement.group_identifiers.add(string=group_id)
        return arrangement

    def to_bytes(self) -> bytes:
        return self.message.SerializeToString()

    def document(self) -> PresentationDocument:
        return PresentationDocument.load(self.to_bytes())


def build_song(builder: PresentationBuilder) -> PresentationBuilder:
    """
    Verse (two slides), a blank slide, and a chorus, plus an arrangement
    entry pointing at a group that doesn't exist.
    """
    builder.add_cue("cue-verse-1", "Amazing grace how sweet the sound", name="Verse 1a")
    builder.add_cue("cue-verse-2", "That saved a wretch like me", name="Verse 1b")
    builder.add_cue("cue-blank", "   \n  ", name="Blank")
    builder.add_cue("cue-chorus", "I once was lost\nbut now am found", name="Chorus")

    builder.add_group("group-verse", ["cue-verse-1", "cue-verse-2"], name="Verse")
    builder.add_group("group-blank", ["cue-blank"], name="Blank")
    builder.add_group("group-chorus", ["cue-chorus"], name="Chorus")
    builder.add_arrangement(["group-verse", "group-blank", "group-missing", "group-chorus"])
    return builder


@pytest.fixture
def builder():
    """An empty presentation builder."""
    return PresentationBuilder()


@pytest.fixture
def song_builder():
    """Builder for a small song with a blank slide and a dangling group."""
    return build_song(PresentationBuilder())


@pytest.fixture
def song_bytes(song_builder):
    return song_builder.to_bytes()


@pytest.fixture
def song_document(song_bytes):
    return PresentationDocument.load(song_bytes)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep configuration files out of the user's home directory."""
    import pro7chords.config as config_module

    monkeypatch.setenv(config_module.HOME_ENV_VAR, str(tmp_path / "config"))
    monkeypatch.setattr(config_module, "_config", None)
    yield tmp_path / "config"
