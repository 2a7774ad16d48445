"""
Analytics data models.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional


@dataclass
class AnalyticsRecord:
    """One analytics event for a known customer."""
    distinct_id: str
    event: str
    properties: Dict[str, Any] = field(default_factory=dict)
    user_properties: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'distinct_id': self.distinct_id,
            'event': self.event,
            'properties': dict(self.properties),
        }
        if self.user_properties:
            data['user_properties'] = dict(self.user_properties)
        return data
