"""
Tests for the command line interface.
"""

import json

import pytest


@pytest.fixture
def song_file(tmp_path, song_bytes):
    path = tmp_path / "Grace.pro"
    path.write_bytes(song_bytes)
    return path


class TestCommandLine:
    """Tests for pro7chords subcommands."""

    def test_extract(self, song_file, capsys):
        from pro7chords.main import main

        assert main(["extract", str(song_file)]) == 0
        out = capsys.readouterr().out
        assert "Amazing grace how sweet the sound" in out
        assert "--- Next Slide ---" in out

    def test_analyze_json(self, song_file, capsys):
        from pro7chords.main import main

        assert main(["analyze", "--json", str(song_file)]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["slide_count"] == 4
        assert data["text_slide_count"] == 3
        assert data["slides"][0]["group"] == "Verse"

    def test_analyze_text(self, song_file, capsys):
        from pro7chords.main import main

        assert main(["analyze", str(song_file)]) == 0
        out = capsys.readouterr()
        assert "3 with text" in out.out
        assert "unresolved_group" in out.err

    def test_annotate_with_json_map(self, song_file, tmp_path, capsys):
        """Test annotating from a JSON chord map."""
        from pro7chords.main import main

        chords = tmp_path / "chords.json"
        chords.write_text(json.dumps({"0": "[G]Amazing grace", "2": "[D]I once"}))
        output = tmp_path / "annotated.pro"

        assert main(["annotate", str(song_file), str(chords), "-o", str(output)]) == 0
        assert "Annotated 2 slides" in capsys.readouterr().out
        assert output.exists()

    def test_annotate_with_text(self, song_file, tmp_path):
        """Test annotating from combined ChordPro text."""
        from pro7chords.main import main

        chords = tmp_path / "chords.txt"
        chords.write_text("[A]One\n\n--- Next Slide ---\n\n[E]Two", encoding="utf-8")

        assert main(["annotate", str(song_file), str(chords)]) == 0
        assert (tmp_path / "Grace_chords.pro").exists()

    def test_transpose_to_key(self, song_file, tmp_path, capsys):
        from pro7chords.main import main

        chords = tmp_path / "chords.json"
        chords.write_text(json.dumps({"0": "[G]Amazing [C]grace [G]how"}))
        annotated = tmp_path / "annotated.pro"
        main(["annotate", str(song_file), str(chords), "-o", str(annotated)])

        output = tmp_path / "transposed.pro"
        assert main(["transpose", str(annotated), "--to-key", "A", "-o", str(output)]) == 0
        capsys.readouterr()

        assert main(["extract", str(output)]) == 0
        assert "[A]Amazing [D]grace [A]how" in capsys.readouterr().out

    def test_transpose_plain_text(self, tmp_path):
        from pro7chords.main import main

        path = tmp_path / "song.txt"
        path.write_text("[C]Amazing [F]grace", encoding="utf-8")

        assert main(["transpose", str(path), "--steps", "2"]) == 0
        assert path.read_text(encoding="utf-8") == "[D]Amazing [G]grace"

    def test_key(self, tmp_path, capsys):
        from pro7chords.main import main

        path = tmp_path / "song.txt"
        path.write_text("[G]one [C]two [G]three [D]four", encoding="utf-8")

        assert main(["key", str(path)]) == 0
        out = capsys.readouterr().out
        assert "Key: G" in out
        assert "G, C, D, Em" in out

    def test_error_exit_code(self, tmp_path, capsys):
        """Test library errors exit with status 1."""
        from pro7chords.main import main

        path = tmp_path / "broken.pro"
        path.write_bytes(b"\xff\xff\xff")

        assert main(["extract", str(path)]) == 1
        assert "error:" in capsys.readouterr().err

    def test_missing_file_exit_code(self, tmp_path):
        from pro7chords.main import main

        assert main(["key", str(tmp_path / "nope.txt")]) == 1

    def test_transpose_requires_amount(self, song_file):
        from pro7chords.main import main

        with pytest.raises(SystemExit):
            main(["transpose", str(song_file)])
