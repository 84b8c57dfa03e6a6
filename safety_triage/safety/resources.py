"""
Crisis resource directory.

This module provides the CrisisResourceDirectory class that returns the
national crisis lines plus any region-specific lines loaded from JSON.
"""

import json
from dataclasses import dataclass
from typing import Optional, List, Dict, Any

from safety_triage.utils.logging_config import setup_logging

logger = setup_logging("crisis_resources")


@dataclass(frozen=True)
class CrisisResource:
    """A crisis support resource."""
    name: str
    phone: Optional[str] = None
    text: Optional[str] = None
    website: Optional[str] = None
    description: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CrisisResource":
        return cls(
            name=data["name"],
            phone=data.get("phone"),
            text=data.get("text"),
            website=data.get("website"),
            description=data.get("description", "")
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "phone": self.phone,
            "text": self.text,
            "website": self.website,
            "description": self.description
        }


NATIONAL_RESOURCES = (
    CrisisResource(
        name="Emergency Services",
        phone="911",
        description="Call if you or someone else is in immediate danger"
    ),
    CrisisResource(
        name="988 Suicide & Crisis Lifeline",
        phone="988",
        text="988",
        website="https://988lifeline.org/chat",
        description="24/7 call, text or chat support"
    ),
    CrisisResource(
        name="Crisis Text Line",
        text="HOME to 741741",
        description="Text-based crisis support"
    ),
)


class CrisisResourceDirectory:
    """
    Lookup of crisis resources by region.

    Region files have the shape ``{"regions": {"CA": [{...}, ...]}}``.
    A missing or malformed file leaves only the national resources.

    Example:
        directory = CrisisResourceDirectory()
        resources = directory.get_resources("CA")
    """

    def __init__(self, resources_path: Optional[str] = None):
        """
        Initialize the directory.

        Args:
            resources_path: Optional path to a regional resources JSON file
        """
        self.resources_path = resources_path
        self._regional: Dict[str, List[CrisisResource]] = {}

        if resources_path:
            self._load_data()

        logger.info(f"CrisisResourceDirectory initialized ({len(self._regional)} regions)")

    def _load_data(self) -> None:
        """Load regional resources."""
        try:
            with open(self.resources_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            logger.warning(f"Resources file not found: {self.resources_path}")
            return
        except json.JSONDecodeError as e:
            logger.error(f"Error parsing resources: {e}")
            return

        for region, entries in data.get("regions", {}).items():
            try:
                self._regional[region.upper()] = [CrisisResource.from_dict(e) for e in entries]
            except (KeyError, TypeError, AttributeError):
                logger.error(f"Skipping malformed resources for region {region}")

    def get_resources(self, region_code: Optional[str] = None) -> List[CrisisResource]:
        """National resources first, then any for the region."""
        resources = list(NATIONAL_RESOURCES)
        if region_code:
            resources.extend(self._regional.get(region_code.upper(), []))
        return resources

    def format_resources_text(
        self,
        resources: List[CrisisResource],
        include_descriptions: bool = True
    ) -> str:
        """Format resources as text for response."""
        lines = []
        for r in resources:
            line = f"- **{r.name}**"
            if r.phone:
                line += f": {r.phone}"
            if r.text:
                line += f" (Text: {r.text})"
            if include_descriptions and r.description:
                line += f"\n  {r.description}"
            lines.append(line)
        return "\n".join(lines)
