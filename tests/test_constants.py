import pytest

from homeservice.constants import category_slug, is_valid_category, normalize_category, slugify
from homeservice.domain.search.geo import haversine_km, service_coordinates


@pytest.mark.parametrize(
    "value, expected",
    [
        ("hair", "Hair"),
        ("SKIN-AESTHETICS", "Skin & Aesthetics"),
        ("massage & body", "Massage & Body"),
        (" Nails ", "Nails"),
        ("plumbing", None),
        (None, None),
    ],
)
def test_normalize_category(value, expected):
    assert normalize_category(value) == expected


def test_is_valid_category():
    assert is_valid_category("makeup") is True
    assert is_valid_category("carpentry") is False


def test_slugs():
    assert category_slug("Personal Care") == "personal-care"
    assert category_slug("Skin & Aesthetics") == "skin-aesthetics"
    assert slugify("Gel  Nails & Art!") == "gel-nails-art"


def test_haversine():
    assert haversine_km(26.1445, 91.7362, 26.1445, 91.7362) == 0
    # Guwahati to Shillong is roughly 50-60 km as the crow flies
    assert 45 < haversine_km(26.1445, 91.7362, 25.5788, 91.8933) < 70


def test_service_coordinates_are_lng_lat():
    assert service_coordinates({"coordinates": [91.7, 26.1]}) == (26.1, 91.7)
    assert service_coordinates({"coordinates": []}) is None
    assert service_coordinates(None) is None
