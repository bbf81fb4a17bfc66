"""Tests for metadata file discovery and naming."""

from datetime import date, datetime
from pathlib import Path

from extract.file_utils import book_path_for_metadata, find_metadata_files, generate_export_filename


class TestFindMetadataFiles:
    """Tests for find_metadata_files."""

    def test_finds_sidecar_files_sorted(self, books_dir):
        paths = find_metadata_files(books_dir)

        assert paths == [
            books_dir / "Dune.sdr" / "metadata.epub.lua",
            books_dir / "Earthsea.sdr" / "metadata.epub.lua",
        ]

    def test_searches_subdirectories(self, tmp_path, make_metadata, dune_metadata):
        make_metadata(tmp_path / "scifi" / "herbert", "Dune", dune_metadata, extension="pdf")
        assert find_metadata_files(tmp_path) == [
            tmp_path / "scifi" / "herbert" / "Dune.sdr" / "metadata.pdf.lua"
        ]

    def test_ignores_backups_and_stray_files(self, tmp_path, make_metadata, dune_metadata):
        """Test that only metadata.*.lua inside .sdr folders count."""
        path = make_metadata(tmp_path, "Dune", dune_metadata)
        (path.parent / "metadata.epub.lua.old").write_text(dune_metadata)
        (tmp_path / "metadata.epub.lua").write_text(dune_metadata)
        (tmp_path / "notes").mkdir()
        (tmp_path / "notes" / "metadata.epub.lua").write_text(dune_metadata)

        assert find_metadata_files(tmp_path) == [path]

    def test_missing_directory(self, tmp_path):
        assert find_metadata_files(tmp_path / "absent") == []


class TestBookPathForMetadata:
    """Tests for book_path_for_metadata."""

    def test_sidecar(self):
        assert book_path_for_metadata("/x/Dune.sdr/metadata.epub.lua") == str(Path("/x/Dune.epub"))

    def test_dotted_book_name(self):
        assert book_path_for_metadata(
            Path("/x/Vol. 2.sdr/metadata.pdf.lua")
        ) == str(Path("/x/Vol. 2.pdf"))

    def test_outside_sidecar(self):
        assert book_path_for_metadata("/x/metadata.epub.lua") == str(Path("/x/metadata.epub.lua"))


class TestGenerateExportFilename:
    """Tests for generate_export_filename."""

    def test_format(self):
        name = generate_export_filename(
            datetime(2024, 1, 21, 9, 30, 5), date(2024, 1, 14), date(2024, 1, 20)
        )
        assert name == "highlights_20240114_20240120_20240121_093005.json"
