"""Address rendering for client locations."""
from urllib.parse import quote

MAPS_DIRECTIONS_URL = "https://www.google.com/maps/dir/?api=1&destination="
# Kept unescaped in the destination parameter
URI_COMPONENT_SAFE = "!*'()"


def _join(parts, sep: str) -> str:
    return sep.join(p for p in parts if p)


def format_address(loc) -> str:
    """
    "Street, 12 - Apt 3 - City ST 00000", skipping blank parts.

    >>> format_address(None)
    'Address not available'
    """
    if loc is None:
        return "Address not available"

    street = _join([loc.street_name, loc.street_number], ", ")
    city_state_zip = _join([loc.city, loc.state, loc.zip_code], " ")
    full_address = _join([street, loc.unit_number, city_state_zip], " - ")

    return full_address or "Incomplete address"


def generate_maps_url(loc) -> str:
    """Google Maps directions link to the location, "" when there is nothing to route to."""
    if loc is None:
        return ""

    address = _join(
        [loc.street_name, loc.street_number, loc.city, loc.state, loc.zip_code], " "
    )
    if not address:
        return ""

    return f"{MAPS_DIRECTIONS_URL}{quote(address, safe=URI_COMPONENT_SAFE)}"
