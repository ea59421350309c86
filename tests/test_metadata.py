"""Tests for header-only dimension extraction."""

import pytest

from icao_verify.core.metadata import detect_format, extract_metadata


class TestPng:
    @pytest.mark.parametrize("size", [(1, 1), (413, 531), (600, 800), (4000, 3000), (70000, 2)])
    def test_reads_ihdr_dimensions(self, make_png, size):
        meta = extract_metadata(make_png(*size))
        assert (meta.width, meta.height) == size

    def test_truncated_header_gives_zero(self, make_png):
        meta = extract_metadata(make_png(413, 531)[:20])
        assert (meta.width, meta.height) == (0, 0)
        assert meta.byte_size == 20

    def test_byte_size_is_buffer_length(self, make_png):
        data = make_png(450, 500, total_size=25_000)
        assert extract_metadata(data).byte_size == 25_000


class TestJpeg:
    @pytest.mark.parametrize("size", [(413, 531), (600, 800), (1, 65535)])
    def test_baseline_sof(self, make_jpeg, size):
        meta = extract_metadata(make_jpeg(*size))
        assert (meta.width, meta.height) == size

    def test_progressive_sof(self, make_jpeg):
        meta = extract_metadata(make_jpeg(640, 480, marker=0xC2))
        assert (meta.width, meta.height) == (640, 480)

    def test_other_sof_markers_are_ignored(self, make_jpeg):
        # SOF1 (extended sequential) is not recognized
        meta = extract_metadata(make_jpeg(640, 480, marker=0xC1))
        assert (meta.width, meta.height) == (0, 0)

    def test_marker_too_close_to_end_is_not_read(self, make_jpeg):
        data = make_jpeg(640, 480, total_size=0)
        sof_at = data.index(b"\xff\xc0")
        meta = extract_metadata(data[: sof_at + 10])
        assert (meta.width, meta.height) == (0, 0)


class TestUnknown:
    @pytest.mark.parametrize("data", [b"", b"GIF89a" + b"\x00" * 40, b"\x89PN", b"hello world"])
    def test_unrecognized_signature_gives_zero(self, data):
        meta = extract_metadata(data)
        assert (meta.width, meta.height) == (0, 0)
        assert meta.byte_size == len(data)

    def test_accepts_bytearray_and_memoryview(self, make_png):
        data = make_png(300, 400)
        assert extract_metadata(bytearray(data)).width == 300
        assert extract_metadata(memoryview(data)).height == 400

    def test_non_bytes_input_raises(self):
        with pytest.raises(TypeError):
            extract_metadata("not bytes")

    def test_detect_format(self, make_png, make_jpeg):
        assert detect_format(make_png(1, 1)) == "png"
        assert detect_format(make_jpeg(1, 1)) == "jpeg"
        assert detect_format(b"RIFF....WEBP") is None
