from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional


@dataclass(slots=True)
class Profile:
    """Personal and business details owned by a single user."""

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    company: Optional[str] = None
    job_title: Optional[str] = None
    phone: Optional[str] = None
    country: Optional[str] = None
    picture_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
