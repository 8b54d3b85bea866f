"""
PicHealth API — Image Decoding Tests
=====================================
"""

import base64

import pytest

from pichealth.exceptions import ValidationError
from pichealth.services.image_service import decode_image, split_data_uri
from pichealth.services.llm_base import ImageInput


# PNG signature + IHDR chunk (1x1, 8-bit RGB)
PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n"
    b"\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x02\x00\x00\x00"
    b"\x90wS\xde"
)
GIF_BYTES = (
    b"GIF89a\x01\x00\x01\x00\x80\x00\x00\xff\xff\xff\x00\x00\x00!\xf9\x04\x01\x00\x00\x00\x00"
    b",\x00\x00\x00\x00\x01\x00\x01\x00\x00\x02\x02D\x01\x00;"
)


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode()


class TestSplitDataUri:

    def test_image_prefix(self):
        assert split_data_uri("data:image/webp;base64,AAAA") == ("webp", "AAAA")

    def test_no_prefix(self):
        assert split_data_uri("AAAA") == (None, "AAAA")

    def test_non_image_prefix_keeps_full_type(self):
        assert split_data_uri("data:application/pdf;base64,AAAA") == ("application/pdf", "AAAA")


class TestDecodeImage:

    def test_data_uri_jpeg(self, sample_image_bytes, sample_image_data_uri):
        image = decode_image(sample_image_data_uri)
        assert image.data == sample_image_bytes
        assert image.mime_type == "image/jpeg"
        assert image.extension == "jpg"

    def test_type_is_read_from_the_bytes(self, sample_image_bytes):
        image = decode_image(b64(sample_image_bytes))
        assert image.mime_type == "image/jpeg"
        assert image.extension == "jpg"

    def test_sniffed_type_wins_over_declared(self, sample_image_bytes):
        image = decode_image("data:image/png;base64," + b64(sample_image_bytes))
        assert image.mime_type == "image/jpeg"
        assert image.extension == "jpg"

    def test_png_bytes(self):
        image = decode_image(b64(PNG_BYTES))
        assert image.mime_type == "image/png"
        assert image.extension == "png"

    def test_non_image_bytes_are_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            decode_image("data:image/png;base64," + b64(b"this is not an image"))
        assert exc_info.value.code == "INVALID_IMAGE"
        assert exc_info.value.context["detected_type"] == "text/plain"

    def test_image_of_another_type_is_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            decode_image("data:image/png;base64," + b64(GIF_BYTES))
        assert exc_info.value.code == "UNSUPPORTED_IMAGE_TYPE"

    def test_line_breaks_are_ignored(self, sample_image_bytes):
        encoded = b64(sample_image_bytes)
        wrapped = "\n".join(encoded[i:i + 8] for i in range(0, len(encoded), 8))
        assert decode_image(wrapped).data == sample_image_bytes

    def test_as_model_input(self, sample_image_data_uri):
        model_input = decode_image(sample_image_data_uri).as_model_input()
        assert isinstance(model_input, ImageInput)
        assert model_input.mime_type == "image/jpeg"

    @pytest.mark.parametrize("value", [None, "", "   ", "data:image/png;base64,"])
    def test_missing_image(self, value):
        with pytest.raises(ValidationError) as exc_info:
            decode_image(value)
        assert exc_info.value.code == "MISSING_IMAGE"

    def test_payload_is_attached(self):
        with pytest.raises(ValidationError) as exc_info:
            decode_image(None, payload={"items": [], "rawText": ""})
        assert exc_info.value.payload == {"items": [], "rawText": ""}

    @pytest.mark.parametrize("prefix", ["data:image/gif;base64,", "data:application/pdf;base64,"])
    def test_unsupported_type(self, prefix, sample_image_bytes):
        with pytest.raises(ValidationError) as exc_info:
            decode_image(prefix + b64(sample_image_bytes))
        assert exc_info.value.code == "UNSUPPORTED_IMAGE_TYPE"

    def test_invalid_base64(self):
        with pytest.raises(ValidationError) as exc_info:
            decode_image("data:image/png;base64,not*base64!!")
        assert exc_info.value.code == "INVALID_IMAGE"

    def test_too_large_before_decoding(self):
        with pytest.raises(ValidationError) as exc_info:
            decode_image(b64(b"x" * 20), max_size=10)
        assert exc_info.value.code == "IMAGE_TOO_LARGE"

    def test_too_large_after_decoding(self):
        with pytest.raises(ValidationError) as exc_info:
            decode_image(b64(b"x" * 12), max_size=10)
        assert exc_info.value.code == "IMAGE_TOO_LARGE"
        assert exc_info.value.context["size"] == 12
