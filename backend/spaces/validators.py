from django.core.exceptions import ValidationError
from django.core.validators import URLValidator

COVERED = "covered"
CCTV = "cctv"
EV_CHARGING = "ev_charging"
ACCESS_24_7 = "24_7_access"
DISABLED_ACCESS = "disabled_access"
SECURITY_LIGHTING = "security_lighting"
AMENITIES = [
    (COVERED, "Covered"),
    (CCTV, "CCTV"),
    (EV_CHARGING, "EV charging"),
    (ACCESS_24_7, "24/7 access"),
    (DISABLED_ACCESS, "Disabled access"),
    (SECURITY_LIGHTING, "Security lighting"),
]
AMENITY_VALUES = {value for value, _ in AMENITIES}

MAX_PHOTOS = 10

_url_validator = URLValidator(schemes=["http", "https"])


def validate_amenities(value):
    if not isinstance(value, list):
        raise ValidationError("Amenities must be a list.")
    unknown = [item for item in value if item not in AMENITY_VALUES]
    if unknown:
        raise ValidationError(f"Unknown amenities: {', '.join(map(str, unknown))}.")
    if len(set(value)) != len(value):
        raise ValidationError("Amenities must not repeat.")


def validate_photo_urls(value):
    if not isinstance(value, list):
        raise ValidationError("Photos must be a list of URLs.")
    if len(value) > MAX_PHOTOS:
        raise ValidationError(f"At most {MAX_PHOTOS} photos are allowed.")
    for url in value:
        if not isinstance(url, str):
            raise ValidationError("Photos must be a list of URLs.")
        _url_validator(url)


def normalize_amenities(values):
    """Drop repeats while keeping the caller's order."""
    seen = set()
    ordered = []
    for value in values:
        if value not in seen:
            seen.add(value)
            ordered.append(value)
    return ordered
