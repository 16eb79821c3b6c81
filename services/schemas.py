"""
Store Schemas — One document type per vector-store collection.

Payloads are validated in ``from_dict`` so a malformed document fails at
the boundary with SchemaError instead of leaking None into the arbiter.
"""

import math
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from arbiter.errors import SchemaError


def _require(data: Dict[str, Any], key: str, types, what: str):
    if not isinstance(data, dict):
        raise SchemaError(f"{what}: payload must be an object")
    if key not in data:
        raise SchemaError(f"{what}: missing field '{key}'")
    value = data[key]
    # bool is an int subclass; never accept it for numeric fields
    if isinstance(value, bool) and bool not in types:
        raise SchemaError(f"{what}: field '{key}' has wrong type")
    if not isinstance(value, types):
        raise SchemaError(f"{what}: field '{key}' has wrong type")
    return value


def _float_list(data: Dict[str, Any], key: str, what: str) -> List[float]:
    values = _require(data, key, (list,), what)
    result = []
    for v in values:
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise SchemaError(f"{what}: '{key}' must contain numbers")
        if not math.isfinite(v):
            raise SchemaError(f"{what}: '{key}' must contain finite numbers")
        result.append(float(v))
    return result


def weights_point_id(policy_id: str) -> str:
    """Stable point id for a policy's weight document."""
    return str(uuid.uuid5(uuid.NAMESPACE_URL, f"policy:{policy_id}"))


@dataclass
class WeightsDocument:
    policy_id: str
    version: int
    weights: List[float]
    updated_at: float = field(default_factory=time.time)

    @property
    def point_id(self) -> str:
        return weights_point_id(self.policy_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'policy_id': self.policy_id,
            'version': self.version,
            'weights': list(self.weights),
            'updated_at': self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'WeightsDocument':
        what = "weights document"
        version = _require(data, 'version', (int,), what)
        if version < 0:
            raise SchemaError(f"{what}: negative version")
        return cls(
            policy_id=_require(data, 'policy_id', (str,), what),
            version=version,
            weights=_float_list(data, 'weights', what),
            updated_at=float(_require(data, 'updated_at', (int, float), what)),
        )


@dataclass
class TrainingExampleDocument:
    """Write-only telemetry: one scored candidate of one decision."""
    policy_id: str
    position: str
    move: str
    features: List[float]
    score: Optional[float]
    selected: bool = False
    suggested: bool = False
    timestamp: float = field(default_factory=time.time)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'policy_id': self.policy_id,
            'position': self.position,
            'move': self.move,
            'features': list(self.features),
            'score': self.score,
            'selected': self.selected,
            'suggested': self.suggested,
            'timestamp': self.timestamp,
        }


@dataclass
class MemoryDocument:
    prompt: str
    timestamp: float = field(default_factory=time.time)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> Dict[str, Any]:
        return {'prompt': self.prompt, 'timestamp': self.timestamp}

    @classmethod
    def from_dict(cls, data: Dict[str, Any],
                  point_id: Optional[str] = None) -> 'MemoryDocument':
        what = "memory document"
        prompt = _require(data, 'prompt', (str,), what)
        # Older memories were stored with the prompt only
        timestamp = data.get('timestamp', 0.0)
        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
            raise SchemaError(f"{what}: field 'timestamp' has wrong type")
        doc = cls(prompt=prompt, timestamp=float(timestamp))
        if point_id:
            doc.id = point_id
        return doc
