import pytest

import gattgen


def test_assemble_uuid_replaces_only_segment_zero() -> None:
    base = gattgen.parse_base_uuid("11111111-2222-3333-4444-555555555555", "test")

    segments = gattgen.assemble_uuid(base, "aaaaaaaa")

    assert list(segments) == ["aaaaaaaa", "2222", "3333", "4444", "555555555555"]


def test_assemble_uuid_does_not_normalize_case_or_width() -> None:
    base = gattgen.parse_base_uuid("00001523-1212-EFDE-1523-785feabcd123", "test")

    assert gattgen.assemble_uuid(base, "AbC") == (
        "AbC",
        "1212",
        "EFDE",
        "1523",
        "785feabcd123",
    )


@pytest.mark.parametrize(
    "raw",
    [
        "11111111-2222-3333-4444",
        "11111111-2222-3333-4444-5555-6666",
        "11111111222233334444555555555555",
        "11111111--3333-4444-555555555555",
        "",
    ],
)
def test_parse_base_uuid_requires_exactly_five_segments(raw: str) -> None:
    with pytest.raises(gattgen.ConfigError) as exc_info:
        gattgen.parse_base_uuid(raw, "Service 'LBS'")

    assert exc_info.value.code == "INVALID_BASE_UUID"
    assert "Service 'LBS'" in exc_info.value.message


def test_parse_base_uuid_rejects_non_string() -> None:
    with pytest.raises(gattgen.ConfigError) as exc_info:
        gattgen.parse_base_uuid(12345, "Service 'LBS'")

    assert exc_info.value.code == "INVALID_BASE_UUID"


def test_assemble_uuid_fails_fast_on_hand_built_short_base() -> None:
    base = gattgen.BaseUuid(("1111", "2222"))

    with pytest.raises(gattgen.ConfigError) as exc_info:
        gattgen.assemble_uuid(base, "aaaa")

    assert exc_info.value.code == "INVALID_BASE_UUID"


def test_format_uuid_encode_prefixes_each_segment() -> None:
    assert (
        gattgen.format_uuid_encode(("aaaaaaaa", "2222", "3333", "4444", "555555555555"))
        == "0xaaaaaaaa, 0x2222, 0x3333, 0x4444, 0x555555555555"
    )


def test_base_uuid_str_round_trips_segments() -> None:
    raw = "11111111-2222-3333-4444-555555555555"

    assert str(gattgen.parse_base_uuid(raw, "test")) == raw


def test_service_plan_assembles_service_and_field_uuids(make_field, make_plan) -> None:
    plan = make_plan([make_field("button", read=True, uuid="bbbbbbbb")], uuid="aaaaaaaa")

    assert plan.uuid[0] == "aaaaaaaa"
    assert plan.fields[0].uuid[0] == "bbbbbbbb"
    assert plan.uuid[1:] == plan.fields[0].uuid[1:] == ("2222", "3333", "4444", "555555555555")
