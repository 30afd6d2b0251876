import base64

from conftest import FakeDocument

from autopaint.host.base import Rect
from autopaint.host.capture import capture_image, describe_capture
from autopaint.host.palette import format_palette_table, read_palette, serialize_palette


class TestCaptureImage:
    def test_returns_base64_of_saved_file(self, capture_path):
        doc = FakeDocument(png_bytes=b"png-bytes")
        encoded = capture_image(doc, capture_path)

        assert base64.b64decode(encoded) == b"png-bytes"
        assert doc.saved_to == [str(capture_path)]

    def test_filename_is_restored(self, capture_path):
        doc = FakeDocument()
        capture_image(doc, capture_path)
        assert doc.filename == "art.aseprite"

    def test_filename_restored_when_save_fails(self, capture_path):
        doc = FakeDocument(save_ok=False)
        assert capture_image(doc, capture_path) == ""
        assert doc.filename == "art.aseprite"

    def test_filename_restored_when_save_raises(self, capture_path):
        doc = FakeDocument()

        def boom():
            raise OSError("disk full")

        doc.save = boom
        assert capture_image(doc, capture_path) == ""
        assert doc.filename == "art.aseprite"

    def test_no_document(self, capture_path):
        assert capture_image(None, capture_path) == ""

    def test_no_sprite(self, capture_path):
        assert capture_image(FakeDocument(has_sprite=False), capture_path) == ""

    def test_temporary_file_removed(self, capture_path):
        capture_image(FakeDocument(), capture_path)
        assert not capture_path.exists()

    def test_describe_capture(self):
        assert describe_capture(FakeDocument(width=64, height=48)) == "Captured: 64x48"
        assert describe_capture(None) == ""


class TestPalette:
    def test_transparent_entries_forced_opaque(self):
        entries = read_palette(FakeDocument(colors=[(1, 2, 3, 0), (4, 5, 6, 128)]))

        assert entries[0].a == 255
        assert entries[1].a == 128

    def test_limited_to_sixteen_entries(self):
        colors = [(i, i, i, 255) for i in range(40)]
        entries = read_palette(FakeDocument(colors=colors))

        assert len(entries) == 16
        assert entries[-1].index == 15

    def test_table_format(self):
        table = serialize_palette(FakeDocument(colors=[(0, 0, 0, 0), (255, 0, 0, 255)]))
        assert table == "{[0]=Color{r=0,g=0,b=0,a=255},[1]=Color{r=255,g=0,b=0,a=255},}"

    def test_empty_table_without_document(self):
        assert serialize_palette(None) == "{}"

    def test_empty_table_without_palette(self):
        assert serialize_palette(FakeDocument(colors=[])) == "{}"

    def test_format_empty(self):
        assert format_palette_table([]) == "{}"

    def test_selection_is_not_part_of_palette(self):
        doc = FakeDocument(selection=Rect(1, 2, 3, 4))
        assert "Color" in serialize_palette(doc)
