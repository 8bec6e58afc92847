"""Tests for JSON recovery and beat/panel validation of model responses."""

import json

import pytest
from hypothesis import given, settings, strategies as st

from comicgen.core.exceptions import ExtractionError, SchemaValidationError
from comicgen.schemas import BeatType, Bubble
from comicgen.services.extraction import (
    extract_json,
    normalize_bubbles,
    parse_beats,
    parse_panels,
    unwrap_list,
    validate_beats,
    validate_panels,
)


def _beat(i: int, **overrides) -> dict:
    beat = {"index": i, "type": "rising", "summary": f"Beat number {i}"}
    beat.update(overrides)
    return beat


def _panel(i: int, **overrides) -> dict:
    panel = {"index": i, "photoId": "p1", "narration": "Something happens."}
    panel.update(overrides)
    return panel


class TestExtractJson:
    def test_plain_json(self):
        assert extract_json('{"beats": []}') == {"beats": []}

    def test_markdown_fence_with_language_tag(self):
        raw = '```json\n{"beats": [1, 2]}\n```'
        assert extract_json(raw) == {"beats": [1, 2]}

    def test_bare_fence(self):
        raw = '```\n[{"a": 1}]\n```'
        assert extract_json(raw) == [{"a": 1}]

    def test_surrounding_prose_is_sliced_away(self):
        raw = 'Sure! Here is your outline:\n{"beats": [{"x": 1}]}\nHope it helps.'
        assert extract_json(raw) == {"beats": [{"x": 1}]}

    def test_trailing_commas_are_repaired(self):
        raw = '{"panels": [{"index": 0, "sfx": ["BAM",],},],}'
        assert extract_json(raw) == {"panels": [{"index": 0, "sfx": ["BAM"]}]}

    def test_no_json_raises_with_preview(self):
        with pytest.raises(ExtractionError) as exc_info:
            extract_json("I cannot help with that.")
        assert exc_info.value.preview == "I cannot help with that."

    def test_preview_is_truncated(self):
        raw = "x" * 500
        with pytest.raises(ExtractionError) as exc_info:
            extract_json(raw)
        assert len(exc_info.value.preview) == 200

    def test_empty_and_none_raise(self):
        with pytest.raises(ExtractionError):
            extract_json("")
        with pytest.raises(ExtractionError):
            extract_json(None)

    def test_deeply_nested_brackets_raise_extraction_error(self):
        with pytest.raises(ExtractionError):
            extract_json("[" * 100000 + "]" * 100000)

    def test_deeply_nested_brackets_with_trailing_comma_raise_extraction_error(self):
        with pytest.raises(ExtractionError):
            extract_json("[" * 100000 + "1," + "]" * 100000)

    def test_deeply_nested_beats_are_an_extraction_error(self):
        with pytest.raises(ExtractionError):
            parse_beats("[" * 100000 + "]" * 100000)

    def test_truncated_json_raises(self):
        with pytest.raises(ExtractionError):
            extract_json('{"beats": [{"index": 0, "type": "setup"')


@pytest.mark.property
class TestExtractJsonProperties:
    _prose = st.text(
        alphabet=st.characters(blacklist_characters="{}[]`", blacklist_categories=("Cs",)),
        max_size=40,
    )
    _payload = st.dictionaries(
        st.text(min_size=1, max_size=8),
        st.one_of(st.integers(), st.text(max_size=10), st.lists(st.integers(), max_size=4)),
        max_size=4,
    )

    @given(prefix=_prose, suffix=_prose, payload=_payload)
    @settings(max_examples=100, deadline=None)
    def test_object_survives_surrounding_prose(self, prefix, suffix, payload):
        raw = f"{prefix}{json.dumps(payload)}{suffix}"
        assert extract_json(raw) == payload


class TestUnwrapAndNormalize:
    def test_unwrap_envelope(self):
        assert unwrap_list({"beats": [1]}, "beats") == [1]

    def test_unwrap_bare_list(self):
        assert unwrap_list([1, 2], "beats") == [1, 2]

    def test_unwrap_missing_key_and_scalars(self):
        assert unwrap_list({"panels": []}, "beats") is None
        assert unwrap_list(42, "beats") is None

    def test_bare_string_bubbles_become_objects(self):
        panels = [{"index": 0, "bubbles": ["Hi!", {"text": "Hey", "speaker": "Zoey"}]}]
        assert normalize_bubbles(panels) == [
            {"index": 0, "bubbles": [{"text": "Hi!"}, {"text": "Hey", "speaker": "Zoey"}]}
        ]

    def test_non_list_is_left_for_validation(self):
        assert normalize_bubbles({"oops": True}) == {"oops": True}


class TestValidateBeats:
    def test_accepts_envelope_from_model_text(self):
        raw = json.dumps({"beats": [_beat(0, type="setup"), _beat(1), _beat(2, type="button", imageRefs=[0, 2])]})
        beats = parse_beats(raw)
        assert [b.type for b in beats] == [BeatType.setup, BeatType.rising, BeatType.button]
        assert beats[2].image_refs == [0, 2]

    def test_accepts_bare_list(self):
        beats = parse_beats(json.dumps([_beat(i) for i in range(4)]))
        assert len(beats) == 4

    @pytest.mark.parametrize("count", [0, 2, 13])
    def test_rejects_out_of_range_counts(self, count):
        with pytest.raises(SchemaValidationError) as exc_info:
            validate_beats([_beat(i) for i in range(count)])
        assert exc_info.value.errors

    def test_accepts_boundaries(self):
        assert len(validate_beats([_beat(i) for i in range(3)])) == 3
        assert len(validate_beats([_beat(i) for i in range(12)])) == 12

    @pytest.mark.parametrize(
        "overrides",
        [
            {"type": "epilogue"},
            {"summary": ""},
            {"summary": "x" * 121},
            {"index": -1},
            {"imageRefs": [-1]},
        ],
    )
    def test_rejects_field_violations(self, overrides):
        beats = [_beat(0), _beat(1), _beat(2, **overrides)]
        with pytest.raises(SchemaValidationError):
            validate_beats(beats)

    def test_missing_envelope_key_is_a_validation_error(self):
        with pytest.raises(SchemaValidationError):
            parse_beats('{"outline": []}')

    def test_non_json_is_an_extraction_error(self):
        with pytest.raises(ExtractionError):
            parse_beats("no beats today")


class TestValidatePanels:
    def test_string_and_object_bubbles_validate_the_same(self):
        as_strings = validate_panels([_panel(0, bubbles=["Hi!", "Bye!"])])
        as_objects = validate_panels([_panel(0, bubbles=[{"text": "Hi!"}, {"text": "Bye!"}])])
        assert as_strings == as_objects
        assert as_strings[0].bubbles == [Bubble(text="Hi!"), Bubble(text="Bye!")]

    def test_photo_id_alias_and_field_name(self):
        panels = validate_panels([_panel(0, photoId="p9"), {"index": 1, "photo_id": "p3"}])
        assert [p.photo_id for p in panels] == ["p9", "p3"]

    @pytest.mark.parametrize("count", [0, 25])
    def test_rejects_out_of_range_counts(self, count):
        with pytest.raises(SchemaValidationError):
            validate_panels([_panel(i) for i in range(count)])

    def test_accepts_upper_bound(self):
        assert len(validate_panels([_panel(i) for i in range(24)])) == 24

    def test_rejects_three_bubbles(self):
        with pytest.raises(SchemaValidationError):
            validate_panels([_panel(0, bubbles=["a", "b", "c"])])

    @pytest.mark.parametrize(
        "overrides",
        [
            {"narration": ""},
            {"narration": "x" * 81},
            {"alt": "x" * 161},
            {"bubbles": [{"text": ""}]},
            {"bubbles": ["   "]},
            {"narration": "   "},
            {"bubbles": [{"speaker": "Zoey"}]},
            {"index": -3},
        ],
    )
    def test_rejects_field_violations(self, overrides):
        with pytest.raises(SchemaValidationError):
            validate_panels([_panel(0, **overrides)])

    def test_bubble_and_narration_text_is_stripped(self):
        panels = validate_panels([_panel(0, narration="  Splash!  ", bubbles=["  Hi!  "])])
        assert panels[0].narration == "Splash!"
        assert panels[0].bubbles[0].text == "Hi!"

    def test_parse_panels_from_fenced_text(self):
        raw = '```json\n{"panels": [{"index": 0, "photoId": "p1", "bubbles": ["Whoa"], "sfx": ["BONK"]}]}\n```'
        panels = parse_panels(raw)
        assert panels[0].bubbles[0].text == "Whoa"
        assert panels[0].sfx == ["BONK"]
