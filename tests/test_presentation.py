"""
Tests for the presentation model and slide traversal.
"""

import pytest


class TestPresentationDocument:
    """Tests for loading and saving presentations."""

    def test_load(self, song_document):
        """Test identifier maps are built on load."""
        assert song_document.name == "Amazing Grace"
        assert len(song_document.cues) == 4
        assert len(song_document.cue_groups) == 3
        assert song_document.primary_arrangement.name == "Default"
        assert song_document.resolve_cue("cue-chorus").name == "Chorus"
        assert song_document.resolve_cue_group("group-verse").group.name == "Verse"
        assert song_document.resolve_cue("nope") is None
        assert song_document.is_modified is False

    def test_unmodified_save_is_byte_identical(self, song_bytes):
        """Test untouched documents save to the bytes they came from."""
        from pro7chords.core.presentation import PresentationDocument

        document = PresentationDocument.load(song_bytes)
        assert document.save() == song_bytes

    def test_unknown_fields_survive_modified_save(self, song_bytes):
        """Test fields outside the declared schema are written back."""
        from pro7chords.core.presentation import PresentationDocument

        # field 99, length delimited, "hello"
        unknown = b"\x9a\x06\x05hello"
        document = PresentationDocument.load(song_bytes + unknown)
        document.message.name = "Renamed"
        document.mark_modified()

        saved = document.save()
        assert unknown in saved
        assert PresentationDocument.load(saved).name == "Renamed"

    def test_untouched_cues_keep_their_bytes(self, song_bytes):
        """Test annotating one cue leaves every other cue's encoding intact."""
        from google.protobuf.internal import encoder

        from pro7chords.core import schema
        from pro7chords.core.annotator import ChordAnnotator
        from pro7chords.core.presentation import PresentationDocument

        source = PresentationDocument.load(song_bytes).resolve_cue("cue-verse-2")
        head = schema.Cue(uuid=schema.UUID(string="cue-extra"), name="Extra").SerializeToString()
        tail = schema.Cue(actions=list(source.actions)).SerializeToString()
        # field 3 sits between name and actions, field 12 holds an explicit default
        cue_bytes = head + b"\x18\x01" + tail + b"\x60\x00"
        entry = b"\x6a" + encoder._VarintBytes(len(cue_bytes)) + cue_bytes

        document = PresentationDocument.load(song_bytes + entry)
        result = ChordAnnotator().add_chords(document, {"0": "[G]Amazing grace"})
        saved = document.save()

        assert result.annotated_count == 1
        assert entry in saved
        assert saved != song_bytes + entry
        reloaded = PresentationDocument.load(saved)
        assert ChordAnnotator().extract_chord_map(reloaded)["0"] == "[G]Amazing grace"
        assert len(reloaded.cues) == 5

    def test_iter_wire_entries(self):
        from pro7chords.core import schema
        from pro7chords.core.presentation import iter_wire_entries

        data = schema.Presentation(name="Song").SerializeToString() + b"\x18\x01"
        entries = list(iter_wire_entries(data))
        assert [number for number, _ in entries] == [3, 3]
        assert b"".join(entry for _, entry in entries) == data

    def test_iter_wire_entries_truncated(self):
        from pro7chords.core.exceptions import FormatError
        from pro7chords.core.presentation import iter_wire_entries

        with pytest.raises(FormatError):
            list(iter_wire_entries(b"\x1a\x05ab"))

    def test_load_empty_raises(self):
        from pro7chords.core.exceptions import FormatError
        from pro7chords.core.presentation import PresentationDocument

        with pytest.raises(FormatError):
            PresentationDocument.load(b"")

    def test_load_garbage_raises(self):
        """Test undecodable bytes raise FormatError."""
        from pro7chords.core.exceptions import FormatError
        from pro7chords.core.presentation import PresentationDocument

        with pytest.raises(FormatError):
            PresentationDocument.load(b"\xff\xff\xff")

    def test_load_wrong_shape_raises(self):
        """Test a message with no presentation content is rejected."""
        from pro7chords.core import schema
        from pro7chords.core.exceptions import FormatError
        from pro7chords.core.presentation import PresentationDocument

        data = schema.Presentation(name="Only a name").SerializeToString()
        with pytest.raises(FormatError):
            PresentationDocument.load(data)

    def test_duplicate_cue_keeps_first(self, builder):
        """Test duplicate identifiers resolve to the first record."""
        builder.add_cue("dup", "first", name="First")
        builder.add_cue("dup", "second", name="Second")
        document = builder.document()
        assert document.resolve_cue("dup").name == "First"

    def test_repr(self, song_document):
        assert "Amazing Grace" in repr(song_document)
        assert song_document.describe()["cues"] == 4


class TestElementCapabilities:
    """Tests for element capability flags."""

    def test_from_info(self):
        from pro7chords.core.presentation import ElementCapability

        assert ElementCapability.from_info(1) == ElementCapability.TEXT
        assert ElementCapability.from_info(3) == ElementCapability.TEXT | ElementCapability.TICKER
        assert ElementCapability.from_info(0) == ElementCapability.NONE

    def test_unknown_bits_ignored(self):
        from pro7chords.core.presentation import ElementCapability

        assert ElementCapability.from_info(4) == ElementCapability.NONE
        assert ElementCapability.TEXT in ElementCapability.from_info(5)

    def test_first_text_element_needs_flag_and_payload(self):
        """Test elements without the text flag or payload are skipped."""
        from pro7chords.core import schema
        from pro7chords.core.presentation import first_text_element, first_text_flagged_element

        slide = schema.Slide()
        flagged_empty = slide.elements.add()
        flagged_empty.info = schema.INFO_IS_TEXT_ELEMENT
        flagged_empty.element.name = "Empty"

        shape = slide.elements.add()
        shape.info = schema.INFO_NONE
        shape.element.name = "Shape"
        shape.element.text.rtf_data = b"not text"

        text = slide.elements.add()
        text.info = schema.INFO_IS_TEXT_ELEMENT | schema.INFO_IS_TEXT_TICKER
        text.element.name = "Lyrics"
        text.element.text.rtf_data = b"{\\rtf1 words}"

        assert first_text_flagged_element(slide).element.name == "Empty"
        assert first_text_element(slide).element.name == "Lyrics"
        assert first_text_element(schema.Slide()) is None

    def test_slide_of_non_slide_action(self, builder):
        """Test non-slide actions carry no slide."""
        from pro7chords.core.presentation import iter_slide_actions, slide_of

        cue = builder.add_cue("cue", "words")
        media = builder.add_media_action(cue)
        assert slide_of(media) is None
        assert list(iter_slide_actions(cue)) == [cue.actions[0]]


class TestTraversal:
    """Tests for walking slides in arrangement order."""

    def test_collect_slides_ordinals(self, song_document):
        """Test only slides with text get ordinals."""
        from pro7chords.core.traversal import collect_slides

        slides = collect_slides(song_document)
        assert [s.cue_id for s in slides] == [
            "cue-verse-1", "cue-verse-2", "cue-blank", "cue-chorus",
        ]
        assert [s.ordinal for s in slides] == [0, 1, None, 2]
        assert slides[2].text == ""
        assert slides[3].text == "I once was lost\nbut now am found"
        assert slides[0].group_name == "Verse"

    def test_unresolved_group_skipped(self, song_document):
        """Test a dangling group reference produces a warning, not an error."""
        from pro7chords.core.traversal import WarningKind, collect_slides

        warnings = []
        collect_slides(song_document, warnings)
        assert [w.kind for w in warnings] == [WarningKind.UNRESOLVED_GROUP]
        assert warnings[0].identifier == "group-missing"

    def test_unresolved_cue_placeholder(self, builder):
        """Test a dangling cue reference keeps its slot as a placeholder."""
        from pro7chords.core.traversal import WarningKind, collect_slides

        builder.add_cue("cue-a", "First")
        builder.add_cue("cue-b", "Second")
        builder.add_group("group", ["cue-a", "cue-gone", "cue-b"])
        builder.add_arrangement(["group"])

        warnings = []
        slides = collect_slides(builder.document(), warnings)
        assert len(slides) == 3
        assert slides[1].is_placeholder is True
        assert slides[1].ordinal is None
        assert [s.ordinal for s in slides] == [0, None, 1]
        assert warnings[0].kind == WarningKind.UNRESOLVED_CUE

    def test_arrangement_order_not_cue_order(self, builder):
        """Test the arrangement decides the order."""
        from pro7chords.core.traversal import collect_slides

        builder.add_cue("cue-verse", "Verse text")
        builder.add_cue("cue-chorus", "Chorus text")
        builder.add_group("g-verse", ["cue-verse"])
        builder.add_group("g-chorus", ["cue-chorus"])
        builder.add_arrangement(["g-chorus", "g-verse", "g-chorus"])

        slides = collect_slides(builder.document())
        assert [s.text for s in slides] == ["Chorus text", "Verse text", "Chorus text"]
        assert [s.ordinal for s in slides] == [0, 1, 2]

    def test_cue_order_fallback(self, builder):
        """Test documents without an arrangement use declaration order."""
        from pro7chords.core.traversal import collect_slides

        builder.add_cue("cue-2", "Second declared")
        builder.add_cue("cue-1", "First declared")
        builder.add_group("g", ["cue-1", "cue-2"])

        slides = collect_slides(builder.document())
        assert [s.text for s in slides] == ["Second declared", "First declared"]

    def test_missing_arrangement_required(self, builder):
        from pro7chords.core.exceptions import MissingArrangementError
        from pro7chords.core.traversal import collect_slides, walk_arrangement

        builder.add_cue("cue", "text")
        document = builder.document()

        with pytest.raises(MissingArrangementError):
            collect_slides(document, require_arrangement=True)
        with pytest.raises(MissingArrangementError):
            list(walk_arrangement(document))

    def test_walk_cues(self, song_document):
        from pro7chords.core.traversal import walk_cues

        positions = list(walk_cues(song_document))
        assert [p.cue_id for p in positions] == [
            "cue-verse-1", "cue-verse-2", "cue-blank", "cue-chorus",
        ]
        assert all(p.group is None for p in positions)

    def test_codec_fallback_warning(self, builder):
        """Test plain UTF-8 payloads are read and reported."""
        from pro7chords.core.traversal import WarningKind, collect_slides

        builder.add_cue("cue", payload=b"Raw lyric text")
        builder.add_group("g", ["cue"])
        builder.add_arrangement(["g"])

        warnings = []
        slides = collect_slides(builder.document(), warnings)
        assert slides[0].text == "Raw lyric text"
        assert slides[0].ordinal == 0
        assert warnings[0].kind == WarningKind.CODEC_FALLBACK

    def test_ticker_only_element_has_no_text(self, builder):
        """Test elements without the text flag are not read."""
        from pro7chords.core import schema
        from pro7chords.core.traversal import collect_slides

        builder.add_cue("cue", "Ticker", info=schema.INFO_IS_TEXT_TICKER)
        builder.add_group("g", ["cue"])
        builder.add_arrangement(["g"])

        slides = collect_slides(builder.document())
        assert slides[0].ordinal is None

    def test_walker_state(self, song_document):
        from pro7chords.core.traversal import SlideWalker, TraversalState

        walker = SlideWalker(song_document)
        assert walker.state == TraversalState.START
        walker.collect()
        assert walker.state == TraversalState.DONE

    def test_preview_text(self):
        from pro7chords.core.traversal import SlideRecord

        record = SlideRecord(cue_id="x", text="A" * 80 + "\nsecond line")
        assert record.preview_text == "A" * 50
        assert SlideRecord(cue_id="y").preview_text == ""
