"""
Tests for the chord grammar.
"""

import pytest


class TestExtractChords:
    """Tests for bracket extraction."""

    def test_extract_in_order(self):
        """Test chords are returned left to right."""
        from pro7chords.core.chords import extract_chords

        text = "[C]Amazing [F]grace [G]how [Am]sweet"
        assert extract_chords(text) == ["C", "F", "G", "Am"]

    def test_extract_is_verbatim(self):
        """Test bracket contents are not validated."""
        from pro7chords.core.chords import extract_chords

        assert extract_chords("[xyz]la [C F]la") == ["xyz", "C F"]

    def test_no_chords(self):
        """Test text without brackets."""
        from pro7chords.core.chords import extract_chords, has_chords

        assert extract_chords("plain lyrics") == []
        assert has_chords("plain lyrics") is False
        assert has_chords("[D]yes") is True

    def test_empty_brackets_ignored(self):
        """Test that [] is not a chord span."""
        from pro7chords.core.chords import extract_chords

        assert extract_chords("[]nothing [G]here") == ["G"]

    def test_grouped_chords_split(self):
        """Test grouped brackets are split into single chords."""
        from pro7chords.core.chords import iter_chord_names

        assert iter_chord_names("[C F G]intro [Am]") == ["C", "F", "G", "Am"]


class TestChordValidation:
    """Tests for the chord grammar check."""

    @pytest.mark.parametrize("chord", [
        "C", "F#", "Bb", "Am", "Cmaj7", "Dm7", "Gsus4", "Esus2", "Asus",
        "Cadd9", "Bdim", "Caug", "G7", "C/E", "Am/G", "F#m7/C#", "Ebmaj9",
    ])
    def test_valid_chords(self, chord):
        """Test accepted chord spellings."""
        from pro7chords.core.chords import is_valid_chord

        assert is_valid_chord(chord) is True

    @pytest.mark.parametrize("chord", ["H", "c", "C#b", "Xm", "", "C/", "Am/x", "Cmajor"])
    def test_invalid_chords(self, chord):
        """Test rejected chord spellings."""
        from pro7chords.core.chords import is_valid_chord

        assert is_valid_chord(chord) is False


class TestParseChord:
    """Tests for ChordToken parsing."""

    def test_parse_minor_seventh_slash(self):
        """Test parsing a slash chord with a quality."""
        from pro7chords.core.chords import ChordQuality, parse_chord

        chord = parse_chord("F#m7/C#")
        assert chord.root == "F#"
        assert chord.quality == ChordQuality.MINOR7
        assert chord.bass == "C#"
        assert chord.is_slash_chord is True
        assert str(chord) == "F#m7/C#"

    def test_parse_major(self):
        """Test a plain major chord."""
        from pro7chords.core.chords import ChordQuality, parse_chord

        chord = parse_chord("G")
        assert chord.quality == ChordQuality.MAJOR
        assert chord.extensions == ()
        assert chord.suffix == ""

    def test_parse_extensions(self):
        """Test extension tokens after the quality."""
        from pro7chords.core.chords import ChordQuality, parse_chord

        chord = parse_chord("Cmaj7add9")
        assert chord.quality == ChordQuality.MAJOR7
        assert chord.extensions == ("add9",)
        assert str(chord) == "Cmaj7add9"

    def test_parse_invalid_returns_none(self):
        """Test that non-chords parse to None."""
        from pro7chords.core.chords import parse_chord

        assert parse_chord("verse") is None

    def test_quality_display_name(self):
        """Test quality names."""
        from pro7chords.core.chords import ChordQuality

        assert ChordQuality.MINOR.display_name == "Minor"
        assert ChordQuality.SUS4.display_name == "Suspended 4th"


class TestChordComplexity:
    """Tests for per-chord complexity."""

    def test_basic(self):
        from pro7chords.core.chords import ChordComplexity, parse_chord

        assert parse_chord("C").complexity == ChordComplexity.BASIC
        assert parse_chord("Am").complexity == ChordComplexity.BASIC

    def test_intermediate(self):
        from pro7chords.core.chords import ChordComplexity, parse_chord

        assert parse_chord("C/E").complexity == ChordComplexity.INTERMEDIATE
        assert parse_chord("Bdim").complexity == ChordComplexity.INTERMEDIATE

    def test_advanced(self):
        from pro7chords.core.chords import ChordComplexity, parse_chord

        assert parse_chord("Cadd9").complexity == ChordComplexity.ADVANCED
        assert parse_chord("Am7/G").complexity == ChordComplexity.ADVANCED
