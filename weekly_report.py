# weekly_report.py
"""
WeeklyReport document model and its Firestore field mapping
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from date_utils import parse_timestamp
from safety_taxonomy import SITES, conform_categories, empty_categories, empty_leaf


@dataclass
class WeeklyReport:
    reporting_week: str = ''
    site_name: str = SITES[0]
    categories: Dict[str, Dict[str, Dict[str, str]]] = field(default_factory=empty_categories)
    proof_link: str = ''
    user_id: Optional[str] = None
    created_at: Optional[str] = None
    id: Optional[str] = None

    def to_document(self) -> Dict[str, Any]:
        """Firestore document body; categories always carry every taxonomy leaf"""
        return {
            'reportingWeek': self.reporting_week,
            'siteName': self.site_name,
            'categories': conform_categories(self.categories),
            'proofLink': self.proof_link or '',
            'userId': self.user_id,
            'createdAt': self.created_at,
        }

    @classmethod
    def from_document(cls, doc_id: str, data: Optional[Dict[str, Any]]) -> 'WeeklyReport':
        data = data or {}
        created_at = data.get('createdAt')
        if isinstance(created_at, datetime):
            created_at = created_at.isoformat()
        return cls(
            reporting_week=data.get('reportingWeek') or '',
            site_name=data.get('siteName') or '',
            categories=conform_categories(data.get('categories')),
            proof_link=data.get('proofLink') or '',
            user_id=data.get('userId'),
            created_at=created_at,
            id=doc_id,
        )

    @property
    def created_at_datetime(self) -> Optional[datetime]:
        return parse_timestamp(self.created_at)

    def leaf(self, category_id: str, subcategory_id: str) -> Dict[str, str]:
        return self.categories.get(category_id, {}).get(subcategory_id) or empty_leaf()
