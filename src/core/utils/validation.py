import re

UUID_PATTERN = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$", re.IGNORECASE)
# Control characters except tab, newline and carriage return
CONTROL_CHARS_PATTERN = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")

EMAIL_MAX_LENGTH = 255
PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 128


def is_uuid(value: object) -> bool:
    return isinstance(value, str) and bool(UUID_PATTERN.fullmatch(value))


def is_valid_password(value: object) -> bool:
    return isinstance(value, str) and PASSWORD_MIN_LENGTH <= len(value) <= PASSWORD_MAX_LENGTH


def has_range_length(value: object, min_length: int = 1, max_length: int = 10000) -> bool:
    if not isinstance(value, str):
        return False
    return min_length <= len(value.strip()) <= max_length


def sanitize_string(value: str) -> str:
    return CONTROL_CHARS_PATTERN.sub("", value).strip()
