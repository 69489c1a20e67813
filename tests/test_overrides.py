"""
Tests for loading and applying manual overrides.
"""

import json

import pytest

import validate_overrides
from chronicler.enrichment.overrides import apply_media_override, apply_overrides, load_overrides
from chronicler.errors import OverrideError
from chronicler.models import (
    EventDate,
    EventSourceRef,
    HistoricalEventRecord,
    MediaAssetSummary,
    MediaOverride,
    OverrideConfig,
    RelatedPageSummary,
)

EVENT_ID = "a" * 32


def write_json(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


def make_event(event_id=EVENT_ID):
    page = RelatedPageSummary(
        page_id=1,
        canonical_title="Apollo_11",
        display_title="Apollo 11",
        normalized_title="Apollo 11",
        desktop_url="https://en.wikipedia.org/wiki/Apollo_11",
        mobile_url="https://en.m.wikipedia.org/wiki/Apollo_11",
        selected_media=MediaAssetSummary(
            id="1:thumbnail", source_url="https://upload.wikimedia.org/a.jpg", width=900, height=700
        ),
    )
    return HistoricalEventRecord(
        event_id=event_id,
        year=1969,
        text="Apollo 11 lands on the Moon.",
        summary="Apollo 11 lands on the Moon.",
        categories=["exploration"],
        era="twentieth",
        tags=[],
        date=EventDate(month=7, day=20),
        related_pages=[page, page.model_copy(update={"page_id": 2})],
        source=EventSourceRef(
            raw_type="selected",
            captured_at="2024-07-20T00:00:00.000Z",
            source_date="07-20",
            payload_cache_key="onthisday:selected:07-20",
        ),
        created_at="2024-07-20T00:00:00.000Z",
        updated_at="2024-07-20T00:00:00.000Z",
    )


def test_missing_file_is_empty_config(tmp_path):
    overrides = load_overrides(str(tmp_path / "missing.json"))
    assert overrides.events == {}
    assert overrides.model_dump() == {"events": {}}


def test_valid_file(tmp_path):
    path = write_json(tmp_path / "events.json", {
        "events": {
            EVENT_ID: {
                "categories": ["science-discovery"],
                "selectedMedia": {"sourceUrl": "https://example.org/moon.jpg", "width": 1600},
            }
        }
    })

    overrides = load_overrides(path)

    assert overrides.events[EVENT_ID].categories == ["science-discovery"]
    assert overrides.events[EVENT_ID].selected_media.width == 1600


def test_schema_error_names_the_path(tmp_path):
    path = write_json(tmp_path / "events.json", {"events": {"abc": {"categories": "not-an-array"}}})

    with pytest.raises(OverrideError) as excinfo:
        load_overrides(path)

    assert "events.abc.categories" in str(excinfo.value)
    assert any(issue.startswith("events.abc.categories: ") for issue in excinfo.value.issues)


def test_unknown_keys_are_rejected(tmp_path):
    path = write_json(tmp_path / "events.json", {"events": {"abc": {"categoriez": ["x"]}}})

    with pytest.raises(OverrideError) as excinfo:
        load_overrides(path)

    assert "events.abc.categoriez" in str(excinfo.value)


def test_invalid_json_is_fatal(tmp_path):
    path = tmp_path / "events.json"
    path.write_text("{oops", encoding="utf-8")

    with pytest.raises(OverrideError) as excinfo:
        load_overrides(str(path))

    assert "invalid JSON" in str(excinfo.value)


def test_apply_media_override_defaults():
    asset = apply_media_override(MediaOverride(source_url="https://example.org/moon.jpg"), "fallback")

    assert asset.width == 1024
    assert asset.height == 1024
    assert asset.id == "override:https://example.org/moon.jpg"
    assert asset.provider == "custom"
    assert asset.asset_type == "original"


def test_apply_media_override_id_is_stable():
    first = apply_media_override(MediaOverride(source_url="https://example.org/moon.jpg"), "one")
    second = apply_media_override(MediaOverride(source_url="https://example.org/moon.jpg"), "two")
    assert first.id == second.id


def test_apply_media_override_rejects_non_positive_dimensions():
    media = MediaOverride.model_construct(source_url="https://example.org/moon.jpg", width=0, height=None)
    assert apply_media_override(media, "fallback") is None


def test_apply_overrides_replaces_fields_and_media():
    overrides = OverrideConfig.model_validate({
        "events": {
            EVENT_ID: {
                "categories": ["science-discovery"],
                "era": "contemporary",
                "tags": ["featured"],
                "selectedMedia": {"sourceUrl": "https://example.org/moon.jpg", "width": 2000, "height": 1000},
            }
        }
    })

    [event] = apply_overrides([make_event()], overrides)

    assert event.categories == ["science-discovery"]
    assert event.era == "contemporary"
    assert event.tags == ["featured"]
    assert [page.selected_media.width for page in event.related_pages] == [2000, 2000]


def test_apply_overrides_keeps_unset_fields_and_suppresses():
    other_id = "b" * 32
    overrides = OverrideConfig.model_validate({
        "events": {
            EVENT_ID: {"tags": ["featured"]},
            other_id: {"suppress": True},
        }
    })

    events = apply_overrides([make_event(), make_event(other_id)], overrides)

    assert [event.event_id for event in events] == [EVENT_ID]
    assert events[0].categories == ["exploration"]
    assert events[0].related_pages[0].selected_media.width == 900


def test_validate_overrides_cli(tmp_path, capsys):
    assert validate_overrides.main([str(tmp_path / "missing.json")]) == 0

    good = write_json(tmp_path / "good.json", {"events": {EVENT_ID: {"suppress": True}}})
    assert validate_overrides.main([good]) == 0
    assert "1 event(s)" in capsys.readouterr().out

    bad = write_json(tmp_path / "bad.json", {"events": {"abc": {"categories": "not-an-array"}}})
    assert validate_overrides.main([bad]) == 1
    assert "events.abc.categories" in capsys.readouterr().err
