import pytest

from src.catalog.media.filename_convention import (
    MediaDescriptor,
    encode_media_filename,
    parse_media_filename,
)


def test_primary_filename_is_decoded() -> None:
    descriptor = parse_media_filename("A1_primary.jpg")

    assert descriptor == MediaDescriptor(external_id="A1", is_primary=True)
    assert descriptor.color_group is None
    assert descriptor.ordinal == 0


def test_secondary_filename_is_decoded() -> None:
    descriptor = parse_media_filename("A1_red_2.png")

    assert descriptor is not None
    assert descriptor.external_id == "A1"
    assert descriptor.is_primary is False
    assert descriptor.color_group == "red"
    assert descriptor.ordinal == 2


def test_leading_zero_ordinal_is_numeric() -> None:
    descriptor = parse_media_filename("SKU9_navy_007.webp")

    assert descriptor is not None
    assert descriptor.ordinal == 7


@pytest.mark.parametrize(
    "name",
    [
        "A1.jpg",
        "A1_primary",
        "A1_red.jpg",
        "A1_red_x.jpg",
        "_primary.jpg",
        "A1_red_1.",
        "A1_dark_red_1.jpg",
        "",
        "A1_primary.tar.gz",
        "A1_primary.jpg\n",
        "A1_red_1.jpg\n",
        "A1_red_\u0661.jpg",
        "A1_primary.j\u00e9g",
    ],
)
def test_unrecognised_names_return_none(name: str) -> None:
    assert parse_media_filename(name) is None


@pytest.mark.parametrize("value", [None, 42, b"A1_primary.jpg", ["A1_primary.jpg"], object()])
def test_non_string_input_never_raises(value: object) -> None:
    assert parse_media_filename(value) is None


def test_match_is_case_insensitive() -> None:
    descriptor = parse_media_filename("sku-1_primary.JPG")

    assert descriptor is not None
    assert descriptor.matches("SKU-1")
    assert not descriptor.matches("SKU-2")


@pytest.mark.parametrize(
    "descriptor",
    [
        MediaDescriptor(external_id="B7", is_primary=True),
        MediaDescriptor(external_id="B7", is_primary=False, color_group="blue", ordinal=0),
        MediaDescriptor(external_id="x-9", is_primary=False, color_group="Olive", ordinal=12),
    ],
)
def test_encoded_names_decode_to_same_descriptor(descriptor: MediaDescriptor) -> None:
    name = encode_media_filename(descriptor, ".jpg")

    assert parse_media_filename(name) == descriptor


def test_encode_rejects_secondary_without_group() -> None:
    with pytest.raises(ValueError):
        encode_media_filename(MediaDescriptor(external_id="B7", is_primary=False), "png")
