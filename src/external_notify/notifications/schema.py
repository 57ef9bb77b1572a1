"""
Declarative provider schemas.

A provider declares its configuration as a mapping of field name to a
(possibly partial) FieldDescriptor. The schema normalizes that mapping
once. Defaulting, validation, case-insensitive key resolution, value
parsing and help text are all derived from it.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Iterator, Mapping
from urllib.parse import urlparse

from external_notify.notifications.errors import InvalidSettingValue

Validator = Callable[[Any], bool]

_MISSING: Any = object()


def _always_valid(value: Any) -> bool:
    return True


@dataclass(frozen=True)
class FieldDescriptor:
    """Contract for a single provider configuration field."""

    default: Any = None
    example: Any = None
    required: bool = False
    validate: Validator = _always_valid
    validation_error: str = ""
    description: str = ""

    def accepts(self, value: Any) -> bool:
        """Run the validator, treating a validator crash as a rejection."""
        try:
            return bool(self.validate(value))
        except (TypeError, ValueError, AttributeError):
            return False


def _normalize_one(name: str, raw: Mapping[str, Any] | FieldDescriptor) -> FieldDescriptor:
    if isinstance(raw, FieldDescriptor):
        spec: dict[str, Any] = {
            "default": raw.default,
            "example": raw.example,
            "required": raw.required,
            "validate": raw.validate,
            "validation_error": raw.validation_error,
            "description": raw.description,
        }
    else:
        spec = dict(raw)

    default = spec.get("default", _MISSING)
    example = spec.get("example", _MISSING)
    if example is _MISSING or (example is None and default not in (_MISSING, None)):
        example = default
    if default is _MISSING:
        default = None
    if example is _MISSING:
        example = None

    return FieldDescriptor(
        default=default,
        example=example,
        required=bool(spec.get("required", False)),
        validate=spec.get("validate") or _always_valid,
        validation_error=spec.get("validation_error") or f"Invalid value for {name}",
        description=spec.get("description", ""),
    )


def normalize_fields(
    raw: Mapping[str, Mapping[str, Any] | FieldDescriptor],
) -> dict[str, FieldDescriptor]:
    """Fill in the optional attributes of every field descriptor.

    - ``required`` defaults to False
    - ``example`` falls back to ``default``
    - ``validation_error`` becomes ``"Invalid value for <field>"``
    - ``validate`` becomes an always-true predicate

    Normalizing an already normalized mapping returns equal descriptors.
    """
    return {name: _normalize_one(name, spec) for name, spec in raw.items()}


def is_blank(value: Any) -> bool:
    """True for the values that count as 'not set' for a required field."""
    return value is None or value == ""


# ---------------------------------------------------------------------------
# Predicate factories used by provider declarations
# ---------------------------------------------------------------------------


def is_string(value: Any) -> bool:
    return isinstance(value, str)


def non_empty_string(value: Any) -> bool:
    return isinstance(value, str) and len(value) > 0


def string_length(exact: int) -> Validator:
    return lambda value: isinstance(value, str) and len(value) == exact


def string_length_between(low: int, high: int) -> Validator:
    return lambda value: isinstance(value, str) and low <= len(value) <= high


def int_between(low: int, high: int) -> Validator:
    def check(value: Any) -> bool:
        return (
            isinstance(value, int)
            and not isinstance(value, bool)
            and low <= value <= high
        )

    return check


def one_of(*choices: str, case_sensitive: bool = False) -> Validator:
    allowed = set(choices) if case_sensitive else {c.upper() for c in choices}

    def check(value: Any) -> bool:
        if not isinstance(value, str):
            return False
        return (value if case_sensitive else value.upper()) in allowed

    return check


def is_url(value: Any, schemes: tuple[str, ...] = ()) -> bool:
    if not isinstance(value, str):
        return False
    parsed = urlparse(value)
    if not parsed.scheme or not parsed.netloc:
        return False
    return not schemes or parsed.scheme in schemes


def is_http_url(value: Any) -> bool:
    return is_url(value, ("http", "https"))


def is_json_object(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError:
        return False
    return isinstance(parsed, dict)


# ---------------------------------------------------------------------------
# Provider schema
# ---------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class ProviderSchema:
    """Immutable description of a provider's configuration surface.

    Holds the normalized field descriptors plus display metadata. It says
    nothing about how a notification is delivered; see ``Notifier``.
    """

    name: str
    fields: Mapping[str, Any]
    display_name: str = ""
    color: str = "magenta"
    url: str = ""
    register_url: str = ""
    setup_instructions: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "fields", MappingProxyType(normalize_fields(self.fields))
        )
        if not self.display_name:
            object.__setattr__(self, "display_name", self.name)
        object.__setattr__(self, "setup_instructions", tuple(self.setup_instructions))

    @property
    def field_names(self) -> list[str]:
        return list(self.fields)

    def resolve_key(self, setting: str) -> str | None:
        """Map a setting name in any casing to its declared key."""
        wanted = setting.lower()
        for key in self.fields:
            if key.lower() == wanted:
                return key
        return None

    def default_service_config(self) -> dict[str, Any]:
        """A fresh service config: disabled, every field at its default."""
        config: dict[str, Any] = {"enabled": False}
        for key, descriptor in self.fields.items():
            if descriptor.required or descriptor.default is not None:
                config[key] = descriptor.default
            else:
                config[key] = descriptor.example
        return config

    def apply_defaults(self, config: dict[str, Any]) -> dict[str, Any]:
        """Fill absent optional fields in place. Required fields are left alone."""
        for key, descriptor in self.fields.items():
            if not descriptor.required and key not in config:
                config[key] = descriptor.default
        return config

    def failures(self, config: Mapping[str, Any]) -> Iterator[tuple[str, FieldDescriptor]]:
        """Yield (key, descriptor) for each failing field, in declaration order."""
        for key, descriptor in self.fields.items():
            if descriptor.required:
                value = config.get(key)
                if is_blank(value):
                    yield key, descriptor
                    continue
            else:
                value = config.get(key, descriptor.default)
            if not descriptor.accepts(value):
                yield key, descriptor

    def is_valid(self, config: Mapping[str, Any]) -> bool:
        return next(self.failures(config), None) is None

    def parse_value(self, key: str, raw: str) -> Any:
        """Convert a raw command-line string using the type of the field's example."""
        descriptor = self.fields[key]
        sample = descriptor.example if descriptor.example is not None else descriptor.default

        if isinstance(sample, bool):
            lowered = raw.strip().lower()
            if lowered in ("true", "1"):
                return True
            if lowered in ("false", "0"):
                return False
            raise InvalidSettingValue(
                key, f"Invalid value for {key}: expected a boolean (true/false)"
            )

        if isinstance(sample, (int, float)):
            try:
                number = float(raw)
            except ValueError:
                raise InvalidSettingValue(
                    key, f"Invalid value for {key}: expected a number"
                ) from None
            if isinstance(sample, int) and number.is_integer():
                return int(number)
            return number

        return raw

    def quick_start(self) -> list[str]:
        """Command lines that take a new user from nothing to a test send."""
        lines = [
            f"config {self.name} {key} {descriptor.example}"
            for key, descriptor in self.fields.items()
            if descriptor.required
        ]
        lines.append("enable")
        lines.append(f"test {self.name}")
        return lines

    def config_examples(self) -> list[tuple[str, str]]:
        """(command, comment) pairs, one per declared field."""
        examples = []
        for key, descriptor in self.fields.items():
            notes = [] if descriptor.required else ["optional"]
            if descriptor.description:
                notes.append(descriptor.description)
            examples.append(
                (f"config {self.name} {key} {descriptor.example}", ", ".join(notes))
            )
        return examples
