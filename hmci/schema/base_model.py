# -----------------------------------------------------------------------------
# Copyright (c) 2025 HMC Insights
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

"""
Base model and value coercion for the HMC PCM JSON schema.

The HMC reports most metrics as one-element arrays ("metric array" form, e.g.
"totalMem": [16384.000]), sometimes as plain numbers and on some firmware as
numeric strings. Models declare their fields with the API's camelCase names
and a type annotation; BaseModel.from_api_response() walks the annotations and
coerces every value, so absent or malformed values end up as None instead of
raising.
"""

import logging
import math
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional, Union, get_args, get_origin, get_type_hints

LOG = logging.getLogger(__name__)


def first_element(value: Any) -> Any:
    """Collapse a JSON array to its first element. Non-arrays pass through."""
    if isinstance(value, list):
        return value[0] if value else None
    return value


def to_number(value: Any, name: str = 'value') -> Optional[float]:
    """
    Coerce a PCM metric value to float.

    Args:
        value: Number, numeric string, or array whose first element is one of those
        name: Field name, used for logging only

    Returns:
        The float value, or None when absent or not coercible
    """
    value = first_element(value)
    if value is None:
        return None
    if isinstance(value, bool):
        LOG.debug(f"Not coercing boolean {name}={value} to a number")
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            LOG.debug(f"Cannot coerce {name}='{value}' to a number")
            return None
    else:
        LOG.debug(f"Cannot coerce {name} of type {type(value).__name__} to a number")
        return None

    if not math.isfinite(number):
        LOG.debug(f"Ignoring non-finite {name}={value}")
        return None
    return number


def to_text(value: Any) -> Optional[str]:
    """Coerce an identifier-like value (name, id, location) to a string."""
    value = first_element(value)
    if value is None:
        return None
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def as_dict(value: Any) -> Optional[Dict[str, Any]]:
    value = first_element(value)
    return value if isinstance(value, dict) else None


def as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


@dataclass
class BaseModel:
    """
    Base class for PCM schema dataclasses.

    Subclasses declare Optional[float], Optional[str], Optional[bool], nested
    BaseModel and List[...] fields. A field can read a differently named JSON
    key through field metadata: field(default=None, metadata={'json': 'utilSamples'}).
    """

    _raw_data: Optional[Dict[str, Any]] = field(default=None, repr=False, compare=False)

    @classmethod
    def from_api_response(cls, data: Any):
        """
        Build a model from a decoded JSON object.

        Returns:
            Model instance, or None when data is not an object
        """
        data = as_dict(data)
        if data is None:
            return None

        hints = get_type_hints(cls)
        kwargs = {}
        for model_field in fields(cls):
            if model_field.name.startswith('_'):
                continue
            key = model_field.metadata.get('json', model_field.name)
            kwargs[model_field.name] = _convert(hints[model_field.name], data.get(key), key)

        return cls(_raw_data=data, **kwargs)


def _convert(field_type: Any, value: Any, name: str) -> Any:
    # Optional[T] is Union[T, None]
    if get_origin(field_type) is Union:
        non_none_types = [t for t in get_args(field_type) if t is not type(None)]
        field_type = non_none_types[0] if non_none_types else Any

    if get_origin(field_type) in (list, List):
        item_types = get_args(field_type)
        item_type = item_types[0] if item_types else Any
        converted = (_convert(item_type, item, name) for item in as_list(value))
        return [item for item in converted if item is not None]

    if isinstance(field_type, type) and issubclass(field_type, BaseModel):
        return field_type.from_api_response(value)
    if field_type is float:
        return to_number(value, name)
    if field_type is str:
        return to_text(value)
    if field_type is bool:
        value = first_element(value)
        return value if isinstance(value, bool) else None
    return first_element(value)
