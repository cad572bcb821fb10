"""Weight template model shared by the optimizer, the store and the API."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict


def split_metric_key(key: str) -> tuple[str, str]:
    group, _, metric = key.partition("::")
    return group, metric


class WeightTemplate(BaseModel):
    """Named group and metric weights consumed by the ranking engine.

    ``metric_weights`` is flat and keyed ``"group::metric"``. Group weights are
    renormalized before use; metric weights are normalized per group.
    """

    name: str = Field(..., min_length=1)
    event_id: Optional[str] = None
    description: str = ""
    group_weights: Dict[str, float] = Field(default_factory=dict)
    metric_weights: Dict[str, float] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "WeightTemplate":
        """Build from the stored camelCase shape; metric weights may be nested or flat."""

        raw_metrics = payload.get("metricWeights", payload.get("metric_weights")) or {}
        flat: Dict[str, float] = {}
        for key, value in raw_metrics.items():
            if isinstance(value, Mapping):
                for metric_name, metric_value in value.items():
                    if isinstance(metric_value, Mapping):
                        metric_value = metric_value.get("weight", 0.0)
                    flat[f"{key}::{metric_name}"] = float(metric_value)
            else:
                flat[str(key)] = float(value)
        event_id = payload.get("eventId", payload.get("event_id"))
        return cls(
            name=str(payload.get("name", "")),
            event_id=str(event_id) if event_id not in (None, "") else None,
            description=str(payload.get("description") or ""),
            group_weights={
                str(k): float(v)
                for k, v in (payload.get("groupWeights", payload.get("group_weights")) or {}).items()
            },
            metric_weights=flat,
        )

    def to_payload(self) -> dict[str, Any]:
        nested: Dict[str, Dict[str, float]] = {}
        for key, value in self.metric_weights.items():
            group, metric = split_metric_key(key)
            nested.setdefault(group, {})[metric] = value
        return {
            "name": self.name,
            "eventId": self.event_id,
            "description": self.description,
            "groupWeights": dict(self.group_weights),
            "metricWeights": nested,
        }

    def with_weights(
        self,
        *,
        group_weights: Optional[Mapping[str, float]] = None,
        metric_weights: Optional[Mapping[str, float]] = None,
        **updates: Any,
    ) -> "WeightTemplate":
        if group_weights is not None:
            updates["group_weights"] = dict(group_weights)
        if metric_weights is not None:
            updates["metric_weights"] = dict(metric_weights)
        return self.model_copy(update=updates)


def normalize_weights(weights: Mapping[str, float]) -> Dict[str, float]:
    """Scale weights to sum to 1; a zero total leaves them untouched."""

    total = sum(weights.values())
    if total == 0:
        return dict(weights)
    return {key: value / total for key, value in weights.items()}
