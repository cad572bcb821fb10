from __future__ import annotations

from typing import Dict

from pydantic import BaseModel, Field

from golfweights.models import WeightTemplate


class TemplatePayload(BaseModel):
    event_id: str | None = None
    description: str = ""
    group_weights: Dict[str, float] = Field(default_factory=dict)
    metric_weights: Dict[str, Dict[str, float]] = Field(default_factory=dict)

    def to_template(self, name: str) -> WeightTemplate:
        return WeightTemplate.from_payload(
            {
                "name": name,
                "eventId": self.event_id,
                "description": self.description,
                "groupWeights": self.group_weights,
                "metricWeights": self.metric_weights,
            }
        )


class TemplateResponse(BaseModel):
    name: str
    event_id: str | None = None
    description: str = ""
    group_weights: Dict[str, float]
    metric_weights: Dict[str, Dict[str, float]]

    @classmethod
    def from_template(cls, template: WeightTemplate) -> "TemplateResponse":
        payload = template.to_payload()
        return cls(
            name=template.name,
            event_id=template.event_id,
            description=template.description,
            group_weights=payload["groupWeights"],
            metric_weights=payload["metricWeights"],
        )
