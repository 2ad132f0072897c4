"""Range and format checks for rune etching requests."""

from mcp_ordinals.names import MAX_NAME_LENGTH, NAME_PATTERN


MAX_DIVISIBILITY = 38

NUMERIC_FIELDS = (
    "premine",
    "cap",
    "amount",
    "height_start",
    "height_end",
    "offset_start",
    "offset_end",
    "pointer",
)


def validate_etching_request(request) -> list[str]:
    """Check an etching request and return every violated constraint.

    Checks do not short-circuit each other; an empty list means the request
    is valid. Cross-field relations such as height_start < height_end are not
    checked.
    """
    errors = []

    name = request.name
    if not name:
        errors.append("Rune name is required")
    elif len(name) > MAX_NAME_LENGTH:
        errors.append(f"Rune name must be 1-{MAX_NAME_LENGTH} characters")
    elif not NAME_PATTERN.fullmatch(name):
        errors.append("Rune name must contain only A-Z characters")

    if not 0 <= request.divisibility <= MAX_DIVISIBILITY:
        errors.append(f"Divisibility must be 0-{MAX_DIVISIBILITY}")

    if request.symbol and len(request.symbol) > 1:
        errors.append("Symbol must be a single character")

    for field_name in NUMERIC_FIELDS:
        if getattr(request, field_name) < 0:
            errors.append(f"{field_name} cannot be negative")

    return errors
