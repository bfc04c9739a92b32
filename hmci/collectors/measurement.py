# -----------------------------------------------------------------------------
# Copyright (c) 2025 HMC Insights
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping, Optional


@dataclass(frozen=True)
class Measurement:
    """
    One metric sample for one entity instance: string tags plus numeric fields.

    Both maps are copied into read-only views on creation, so a Measurement
    can be handed to any number of writers. Use Measurement.build() to drop
    absent values; the maps themselves are never None.
    """
    tags: Mapping[str, str] = field(default_factory=dict)
    fields: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'tags', MappingProxyType(dict(self.tags)))
        object.__setattr__(self, 'fields', MappingProxyType(dict(self.fields)))

    @classmethod
    def build(cls, tags: Dict[str, Optional[str]], fields: Dict[str, Optional[float]]) -> 'Measurement':
        """Create a Measurement, omitting tags and fields whose value is None."""
        return cls(
            tags={k: str(v) for k, v in tags.items() if v is not None},
            fields={k: float(v) for k, v in fields.items() if v is not None},
        )

    def is_empty(self) -> bool:
        return not self.fields
