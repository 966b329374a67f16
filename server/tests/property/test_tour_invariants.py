"""Property-based tests for tour document invariants."""

import re
import string

from hypothesis import given
from hypothesis import strategies as st
from pydantic import ValidationError as PydanticValidationError

from tour_catalog.core.derivations import derive_slug, round_rating
from tour_catalog.schemas.tour import NAME_MAX_LENGTH, NAME_MIN_LENGTH, CreateTourRequest

# Strategies for generating test data
tour_names = st.text(min_size=0, max_size=60, alphabet=string.ascii_letters + string.digits + " -'!,.")
ratings = st.floats(min_value=0, max_value=10, allow_nan=False, allow_infinity=False)
prices = st.floats(min_value=1, max_value=100_000, allow_nan=False, allow_infinity=False)

SLUG_PATTERN = re.compile(r"[a-z0-9]+(?:-[a-z0-9]+)*")

BASE_DOCUMENT = {
    "duration": 5,
    "max_group_size": 25,
    "difficulty": "easy",
    "price": 397,
    "summary": "Breathtaking hike",
    "image_cover": "tour-1-cover.jpg",
}


@given(name=tour_names)
def test_slug_is_url_safe(name):
    """Test slugs are lower-case words joined by single hyphens."""
    slug = derive_slug(name)
    assert slug == "" or SLUG_PATTERN.fullmatch(slug)


@given(name=tour_names)
def test_slug_is_stable(name):
    """Test slugging a slug changes nothing."""
    slug = derive_slug(name)
    assert derive_slug(slug) == slug


@given(name=tour_names)
def test_slug_ignores_case_and_padding(name):
    assert derive_slug(f"  {name.upper()}  ") == derive_slug(name.lower())


@given(value=ratings)
def test_round_rating_is_one_decimal(value):
    """Test rounding moves a rating by at most half a step onto the 0.1 grid."""
    rounded = round_rating(value)

    assert abs(rounded - value) <= 0.05 + 1e-9
    assert abs(rounded * 10 - round(rounded * 10)) < 1e-9
    assert round_rating(rounded) == rounded


@given(name=tour_names)
def test_name_acceptance(name):
    """Test a name is accepted exactly when its trimmed length fits and it yields a slug."""
    trimmed = name.strip()
    acceptable = NAME_MIN_LENGTH <= len(trimmed) <= NAME_MAX_LENGTH and derive_slug(trimmed) != ""
    try:
        request = CreateTourRequest(name=name, **BASE_DOCUMENT)
    except PydanticValidationError:
        assert not acceptable
    else:
        assert acceptable
        assert request.name == trimmed


@given(price=prices, fraction=st.floats(min_value=0, max_value=2, allow_nan=False))
def test_discount_below_price(price, fraction):
    """Test a discount is accepted exactly when it is below the price."""
    discount = price * fraction
    document = {**BASE_DOCUMENT, "name": "The Forest Hiker", "price": price, "price_discount": discount}
    try:
        CreateTourRequest(**document)
    except PydanticValidationError:
        assert discount >= price
    else:
        assert discount < price
