"""Validation of the open key/value extension on items."""

import pytest

from inventory_kernel.domain.attributes import merge_attributes, validate_attributes
from inventory_kernel.exceptions import ValidationError


class TestValidateAttributes:
    def test_typical_cable_fields(self):
        attrs = validate_attributes(
            {
                "length": "2m",
                "color": " blue ",
                "cat_version": "Cat6a",
                "indoor_outdoor": "indoor",
                "manufacturer": "Acme",
                "shielded": True,
                "length_m": 2.5,
            }
        )
        assert attrs["color"] == "blue"
        assert attrs["shielded"] is True
        assert attrs["length_m"] == 2.5

    def test_none_means_empty(self):
        assert validate_attributes(None) == {}

    def test_null_values_dropped(self):
        assert validate_attributes({"color": None, "length": "1m"}) == {"length": "1m"}

    @pytest.mark.parametrize("key", ["", "1abc", "with space", "dash-ed", "x" * 65])
    def test_bad_keys_rejected(self, key):
        with pytest.raises(ValidationError):
            validate_attributes({key: "v"})

    @pytest.mark.parametrize("value", [{"nested": 1}, [1, 2], ("a",)])
    def test_non_scalar_values_rejected(self, value):
        with pytest.raises(ValidationError):
            validate_attributes({"thing": value})

    def test_indoor_outdoor_is_enumerated(self):
        with pytest.raises(ValidationError):
            validate_attributes({"indoor_outdoor": "underwater"})

    def test_non_mapping_rejected(self):
        with pytest.raises(ValidationError):
            validate_attributes(["color", "blue"])


class TestMergeAttributes:
    def test_overlay_and_remove(self):
        merged = merge_attributes(
            {"color": "blue", "length": "2m"},
            {"color": "red", "length": None, "manufacturer": "Acme"},
        )
        assert merged == {"color": "red", "manufacturer": "Acme"}

    def test_current_untouched(self):
        current = {"color": "blue"}
        merge_attributes(current, {"color": "red"})
        assert current == {"color": "blue"}

    @pytest.mark.parametrize("patch", ["color=blue", ["color", "blue"], 7])
    def test_non_mapping_patch_rejected(self, patch):
        with pytest.raises(ValidationError) as exc_info:
            merge_attributes({"color": "blue"}, patch)
        assert exc_info.value.field == "attributes"
